"""Tests for engine configuration and value object validation."""

import dataclasses
import json
from datetime import datetime, timezone

import pytest
import yaml

from tender_evaluation import (
    Bid,
    BidLineItem,
    CompanyInfo,
    EngineConfig,
    Evaluation,
    FixedClock,
    InvalidInput,
    LineItemPricer,
    ScoringEngine,
    ScoringWeights,
    Tender,
)

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class TestEngineConfig:
    """Tests for EngineConfig construction and loading."""

    def test_defaults(self):
        """10% tax, default weights, closed-only awards, threshold 70."""
        config = EngineConfig()
        assert config.tax_rate == 0.10
        assert config.weights == ScoringWeights()
        assert config.allow_award_while_open is False
        assert config.recommendation_threshold == 70

    def test_from_config(self):
        """A dict with nested weights builds a config."""
        config = EngineConfig.from_config({
            'tax_rate': 0.15,
            'weights': {'price': 40, 'experience': 20, 'timeline': 20, 'technical': 10, 'risk': 10},
        })
        assert config.tax_rate == 0.15
        assert config.weights.price == 40

    def test_from_config_partial_weights(self):
        """Omitted weights keep their defaults, and must still sum to 100."""
        with pytest.raises(InvalidInput):
            EngineConfig.from_config({'weights': {'price': 35}})

    def test_unknown_keys(self):
        """Unknown settings are rejected rather than ignored."""
        with pytest.raises(InvalidInput):
            EngineConfig.from_config({'gst': 0.1})
        with pytest.raises(InvalidInput):
            EngineConfig.from_config({'weights': {'communication': 10}})

    def test_from_yaml(self, tmp_path):
        """Load from a YAML file."""
        path = tmp_path / 'engine.yaml'
        path.write_text(yaml.dump({'tax_rate': 0.05, 'allow_award_while_open': True}))
        config = EngineConfig.from_yaml(str(path))
        assert config.tax_rate == 0.05
        assert config.allow_award_while_open is True

    def test_from_empty_yaml(self, tmp_path):
        """An empty YAML file gives the defaults."""
        path = tmp_path / 'engine.yaml'
        path.write_text('')
        assert EngineConfig.from_yaml(str(path)) == EngineConfig()

    def test_from_json(self, tmp_path):
        """Load from a JSON file."""
        path = tmp_path / 'engine.json'
        path.write_text(json.dumps({'recommendation_threshold': 80}))
        assert EngineConfig.from_json(str(path)).recommendation_threshold == 80

    @pytest.mark.parametrize('rate', [-0.01, 1, 2, 'ten'])
    def test_invalid_tax_rate(self, rate):
        """Tax rate must be a number in [0, 1)."""
        with pytest.raises(InvalidInput):
            EngineConfig(tax_rate=rate)

    def test_components_from_config(self):
        """Components pick up the configured tax rate and weights."""
        config = EngineConfig.from_config({'tax_rate': 0.2})
        assert LineItemPricer.from_engine_config(config).tax_rate == 0.2
        assert ScoringEngine(config.weights).weights == config.weights


class TestModels:
    """Tests for entity invariants."""

    def test_unknown_tender_status(self):
        """Tender status must be a known state."""
        with pytest.raises(InvalidInput):
            Tender('t', 'Job', deadline=NOW, status='published')

    def test_negative_budget(self):
        """Budgets can't be negative."""
        with pytest.raises(InvalidInput):
            Tender('t', 'Job', deadline=NOW, budget=-1)

    def test_unknown_bid_status(self):
        """Bid status must be a known state."""
        with pytest.raises(InvalidInput):
            Bid('b', 't', 'u', bid_amount=1, submitted_at=NOW, status='accepted')

    def test_line_items_must_share_bid(self):
        """Every line item must belong to the bid."""
        item = BidLineItem('li', 'other-bid', 1, 'X', unit_price=1)
        with pytest.raises(InvalidInput):
            Bid('b', 't', 'u', bid_amount=1, submitted_at=NOW, line_items=[item])

    def test_line_numbers_unique(self):
        """Line numbers can't repeat within a bid."""
        items = [BidLineItem('a', 'b', 1, 'X', unit_price=1), BidLineItem('c', 'b', 1, 'Y', unit_price=1)]
        with pytest.raises(InvalidInput):
            Bid('b', 't', 'u', bid_amount=1, submitted_at=NOW, line_items=items)

    def test_line_items_in_line_number_order(self):
        """Line items are held in line-number order; gaps are fine."""
        items = [BidLineItem('a', 'b', 20, 'X', unit_price=1), BidLineItem('c', 'b', 3, 'Y', unit_price=1)]
        bid = Bid('b', 't', 'u', bid_amount=2.2, submitted_at=NOW, line_items=items)
        assert [i.line_number for i in bid.line_items] == [3, 20]

    def test_evaluation_score_range(self):
        """Evaluations reject out-of-range sub-scores."""
        with pytest.raises(InvalidInput):
            Evaluation('b', 101, 50, 50, 50, 50, evaluator_id='e', evaluated_at=NOW)

    def test_evaluation_must_match_bid(self):
        """An evaluation can only be attached to its own bid."""
        evaluation = Evaluation('other', 50, 50, 50, 50, 50,
                                evaluator_id='e', evaluated_at=NOW)
        with pytest.raises(InvalidInput):
            Bid('b', 't', 'u', bid_amount=1, submitted_at=NOW, evaluation=evaluation)

    def test_evaluation_derives_overall_score(self):
        """The overall score comes from the sub-scores, not the caller."""
        evaluation = Evaluation('b', 80, 70, 90, 60, 50, evaluator_id='e', evaluated_at=NOW)
        assert evaluation.overall_score == 74
        with pytest.raises(TypeError):
            Evaluation('b', 0, 0, 0, 0, 0, overall_score=99, evaluator_id='e', evaluated_at=NOW)

    def test_evaluation_uses_its_weights(self):
        """Custom weights flow into the derived score."""
        weights = ScoringWeights(price=100, experience=0, timeline=0, technical=0, risk=0)
        evaluation = Evaluation('b', 80, 70, 90, 60, 50, evaluator_id='e', evaluated_at=NOW,
                                weights=weights)
        assert evaluation.overall_score == 80
        assert ScoringEngine(weights).score(evaluation.subscores) == evaluation.overall_score

    def test_evaluation_immutable(self):
        """Sub-scores and overall score can't drift apart by assignment."""
        evaluation = Evaluation('b', 0, 0, 0, 0, 0, evaluator_id='e', evaluated_at=NOW)
        with pytest.raises(dataclasses.FrozenInstanceError):
            evaluation.overall_score = 99
        with pytest.raises(dataclasses.FrozenInstanceError):
            evaluation.price_score = 100

    def test_evaluation_replace_recomputes(self):
        """Replacing a sub-score gives a fresh overall score."""
        evaluation = Evaluation('b', 0, 0, 0, 0, 0, evaluator_id='e', evaluated_at=NOW)
        bid = Bid('b', 't', 'u', bid_amount=1, submitted_at=NOW,
                  evaluation=dataclasses.replace(evaluation, price_score=100))
        assert bid.overall_score == 30

    def test_line_item_immutable(self):
        """A line item's price can't be changed without recomputing its total."""
        item = BidLineItem('li', 'b', 1, 'X', unit_price=10, quantity=2)
        with pytest.raises(dataclasses.FrozenInstanceError):
            item.unit_price = 50
        assert item.total == 20
        assert LineItemPricer().update_line_item(item, unit_price=50).total == 100

    def test_naive_deadline_rejected(self):
        """Deadlines must carry a timezone to be compared with the clock."""
        with pytest.raises(InvalidInput, match='timezone'):
            Tender('t', 'Job', deadline=datetime(2099, 1, 1))
        with pytest.raises(InvalidInput):
            Tender('t', 'Job', deadline='2099-01-01')

    def test_naive_submitted_at_rejected(self):
        """Submission times must carry a timezone too."""
        with pytest.raises(InvalidInput):
            Bid('b', 't', 'u', bid_amount=1, submitted_at=datetime(2026, 1, 1))

    def test_naive_fixed_clock_rejected(self):
        """A test clock can't be naive either."""
        with pytest.raises(InvalidInput):
            FixedClock(datetime(2026, 1, 1))

    def test_insurance_coverage(self):
        """Insurance coverage combines provider and liability amount."""
        assert CompanyInfo(insurance_provider='QBE').insurance_coverage == 'QBE'
        assert CompanyInfo(public_liability_amount='$10M').insurance_coverage == '$10M'
        assert CompanyInfo().insurance_coverage is None
