# scoring.py
"""Weighted scoring of evaluator judgments into one overall score."""

import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .config import CRITERIA, CRITERIA_NAMES, ScoringWeights
from .exceptions import InvalidInput
from .models import Bid, Evaluation, SubScores
from .stores import Clock, SystemClock

logger = logging.getLogger(__name__)

ScoresLike = Union[SubScores, Mapping[str, Any]]


class ScoringEngine:
    """Applies fixed criterion weights to five sub-scores.

    overall = round(sum(subscore * weight) / 100), rounding halves away from
    zero. Scoring is pure: the same sub-scores always give the same result.
    """

    def __init__(self, weights: Optional[ScoringWeights] = None, clock: Optional[Clock] = None):
        """
        Args:
            weights: Criterion weights (default: 30/25/20/15/10)
            clock: Time source for evaluation timestamps
        """
        self.weights = weights or ScoringWeights()
        self.clock = clock or SystemClock()

    @property
    def criteria(self) -> Dict[str, int]:
        return self.weights.as_dict()

    def _coerce(self, subscores: ScoresLike) -> SubScores:
        if isinstance(subscores, SubScores):
            return subscores
        if not isinstance(subscores, Mapping):
            raise InvalidInput(f"Sub-scores must be a mapping, got: {type(subscores).__name__}")
        return SubScores.from_mapping(subscores)

    # === Core methods ===

    def score(self, subscores: ScoresLike) -> int:
        """
        Overall score (0-100) for one set of sub-scores

        Args:
            subscores: SubScores, or a mapping with price/experience/timeline/
                technical/risk keys (``price_score`` style keys also accepted)

        Returns:
            Integer overall score
        """
        return self.weights.overall(self._coerce(subscores).as_dict())

    def evaluate(self, bid_id: str, subscores: ScoresLike, evaluator_id: str,
                 evaluator_notes: str = "") -> Evaluation:
        """Builds an Evaluation with its overall score derived from the sub-scores"""
        scores = self._coerce(subscores)
        return Evaluation(
            bid_id=bid_id,
            price_score=scores.price,
            experience_score=scores.experience,
            timeline_score=scores.timeline,
            technical_score=scores.technical,
            risk_score=scores.risk,
            weights=self.weights,
            evaluator_id=evaluator_id,
            evaluated_at=self.clock.now(),
            evaluator_notes=evaluator_notes,
        )

    def evaluate_bid(self, bid: Bid, subscores: ScoresLike, evaluator_id: str,
                     evaluator_notes: str = "") -> Bid:
        """Returns the bid with a new evaluation, replacing any previous one"""
        evaluation = self.evaluate(bid.id, subscores, evaluator_id, evaluator_notes)
        if bid.evaluation is not None:
            logger.info("Replacing evaluation of bid %s (%s -> %s)",
                        bid.id, bid.evaluation.overall_score, evaluation.overall_score)
        return replace(bid, evaluation=evaluation)

    def rescore(self, evaluation: Evaluation, **changes: float) -> Evaluation:
        """
        Returns the evaluation with some sub-scores changed and the overall
        score recomputed

        Example:
            engine.rescore(evaluation, timeline=95)
        """
        scores = evaluation.subscores.as_dict()
        for key, value in changes.items():
            name = key[:-len("_score")] if key.endswith("_score") else key
            if name not in scores:
                raise InvalidInput(f"Unknown sub-score: {key}")
            scores[name] = value

        new_scores = SubScores(**scores)
        return replace(
            evaluation,
            price_score=new_scores.price,
            experience_score=new_scores.experience,
            timeline_score=new_scores.timeline,
            technical_score=new_scores.technical,
            risk_score=new_scores.risk,
            weights=self.weights,
            evaluated_at=self.clock.now(),
        )

    # === DataFrame interface ===

    def _column_for(self, df: pd.DataFrame, name: str) -> str:
        for column in (f"{name}_score", name):
            if column in df.columns:
                return column
        raise InvalidInput(f"Missing sub-score column for '{name}'")

    def score_frame(self, scores_df: pd.DataFrame, include_details: bool = True) -> pd.DataFrame:
        """
        Scores every row of a DataFrame of sub-scores

        Args:
            scores_df: One row per bid, with ``<criterion>_score`` (or
                ``<criterion>``) columns
            include_details: If True, adds a weighted ``weighted_<criterion>``
                column per criterion

        Returns:
            Copy of the DataFrame with overall_score and ranking columns,
            best score first
        """
        result = scores_df.copy()
        columns = {name: self._column_for(scores_df, name) for name in CRITERIA}

        for name, column in columns.items():
            values = pd.to_numeric(scores_df[column], errors="coerce").to_numpy(dtype=float)
            bad = ~np.isfinite(values) | (values < 0) | (values > 100)
            if bad.any():
                raise InvalidInput(
                    f"Column '{column}' has values outside [0, 100] or non-numeric "
                    f"at rows {list(scores_df.index[bad])}"
                )
            if include_details:
                result[f"weighted_{name}"] = values * self.criteria[name] / 100

        result["overall_score"] = [
            self.score({name: row[column] for name, column in columns.items()})
            for _, row in scores_df.iterrows()
        ]

        if result.empty:
            result["ranking"] = pd.Series(dtype="int64")
            return result

        result["ranking"] = result["overall_score"].rank(
            ascending=False, method="min"
        ).astype(int)

        return result.sort_values("ranking", kind="stable")

    def summary(self) -> pd.DataFrame:
        """Returns a summary of the criteria and their weights"""
        data = []
        for name, weight in self.criteria.items():
            data.append({
                "criterion": name,
                "criterion_name": CRITERIA_NAMES[name],
                "weight": weight,
                "normalized_weight": weight / 100,
            })

        return pd.DataFrame(data)
