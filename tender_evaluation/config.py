# config.py
"""Engine configuration: scoring weights, tax rate and award policy."""

import json
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from numbers import Real
from typing import Any, Dict, Mapping, Tuple

import yaml

from .exceptions import InvalidInput

CRITERIA: Tuple[str, ...] = ("price", "experience", "timeline", "technical", "risk")

CRITERIA_NAMES = {
    "price": "Price Competitiveness",
    "experience": "Experience & Portfolio",
    "timeline": "Timeline Feasibility",
    "technical": "Technical Approach",
    "risk": "Risk Assessment",
}

DEFAULT_TAX_RATE = 0.10


def round_half_away_from_zero(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class ScoringWeights:
    """Integer weight per criterion. Must sum to exactly 100."""

    price: int = 30
    experience: int = 25
    timeline: int = 20
    technical: int = 15
    risk: int = 10

    def __post_init__(self):
        for name in CRITERIA:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInput(f"Weight for '{name}' must be an integer, got: {value!r}")
            if value < 0:
                raise InvalidInput(f"Weight for '{name}' must not be negative, got: {value}")
        total = sum(getattr(self, name) for name in CRITERIA)
        if total != 100:
            raise InvalidInput(f"Scoring weights must sum to 100, got: {total}")

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in CRITERIA}

    def overall(self, scores: Mapping[str, Any]) -> int:
        """
        Weighted overall score for already-validated sub-scores

        overall = round(sum(score * weight) / 100), halves rounded away from
        zero. Works on the decimal form of each score so 73.5 stays 73.5.
        """
        weighted_sum = sum(
            Decimal(str(scores[name])) * getattr(self, name) for name in CRITERIA
        )
        return round_half_away_from_zero(weighted_sum / 100)


@dataclass(frozen=True)
class EngineConfig:
    """Deployment-wide settings shared by all engine components."""

    tax_rate: float = DEFAULT_TAX_RATE
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    allow_award_while_open: bool = False
    recommendation_threshold: int = 70

    def __post_init__(self):
        if isinstance(self.tax_rate, bool) or not isinstance(self.tax_rate, Real):
            raise InvalidInput(f"tax_rate must be a number, got: {self.tax_rate!r}")
        if not 0 <= self.tax_rate < 1:
            raise InvalidInput(f"tax_rate must be in [0, 1), got: {self.tax_rate}")
        if not isinstance(self.weights, ScoringWeights):
            raise InvalidInput("weights must be a ScoringWeights instance")
        if not 0 <= self.recommendation_threshold <= 100:
            raise InvalidInput(
                f"recommendation_threshold must be in [0, 100], got: {self.recommendation_threshold}"
            )

    # === Factory methods ===

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EngineConfig":
        """
        Create a configuration from a dictionary

        Example:
            config = {
                'tax_rate': 0.10,
                'allow_award_while_open': False,
                'weights': {'price': 30, 'experience': 25, 'timeline': 20,
                            'technical': 15, 'risk': 10}
            }
            engine_config = EngineConfig.from_config(config)
        """
        config = dict(config)  # Don't modify original
        unknown = set(config) - {"tax_rate", "weights", "allow_award_while_open",
                                 "recommendation_threshold"}
        if unknown:
            raise InvalidInput(f"Unknown configuration keys: {sorted(unknown)}")

        weights_cfg = config.pop("weights", None)
        if weights_cfg is not None:
            unknown_criteria = set(weights_cfg) - set(CRITERIA)
            if unknown_criteria:
                raise InvalidInput(f"Unknown scoring criteria: {sorted(unknown_criteria)}")
            config["weights"] = ScoringWeights(**weights_cfg)

        return cls(**config)

    @classmethod
    def from_yaml(cls, filepath: str) -> "EngineConfig":
        """
        Create a configuration from a YAML file

        Example YAML:
            tax_rate: 0.10
            weights:
              price: 30
              experience: 25
              timeline: 20
              technical: 15
              risk: 10
        """
        with open(filepath, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_config(data or {})

    @classmethod
    def from_json(cls, filepath: str) -> "EngineConfig":
        """Create a configuration from a JSON file"""
        with open(filepath, "r") as f:
            data = json.load(f)
        return cls.from_config(data)
