# models.py
"""Tender, bid, line item and evaluation value objects."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from .config import CRITERIA, ScoringWeights
from .exceptions import InvalidInput

TENDER_STATUSES = ("draft", "open", "closed", "awarded", "cancelled")
BID_STATUSES = ("submitted", "under_review", "shortlisted", "awarded", "rejected")

UNCATEGORIZED = "Uncategorized"


def require_number(value: Any, name: str, minimum: Optional[float] = None,
                   maximum: Optional[float] = None) -> float:
    """Validates a numeric input without coercing it. Returns the value unchanged."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInput(f"{name} must be a number, got: {value!r}")
    if math.isnan(value) or math.isinf(value):
        raise InvalidInput(f"{name} must be finite, got: {value}")
    if minimum is not None and value < minimum:
        raise InvalidInput(f"{name} must be >= {minimum}, got: {value}")
    if maximum is not None and value > maximum:
        raise InvalidInput(f"{name} must be <= {maximum}, got: {value}")
    return value


def require_aware(value: Any, name: str) -> datetime:
    """Deadlines and timestamps are compared with the UTC clock, so they need a timezone."""
    if not isinstance(value, datetime):
        raise InvalidInput(f"{name} must be a datetime, got: {value!r}")
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidInput(f"{name} must be timezone-aware, got naive {value.isoformat()}")
    return value


@dataclass
class Tender:
    """A published request for competitive bids."""

    id: str
    title: str
    deadline: datetime
    status: str = "draft"
    budget: Optional[float] = None

    def __post_init__(self):
        if self.status not in TENDER_STATUSES:
            raise InvalidInput(
                f"Unknown tender status: {self.status}. Use one of {TENDER_STATUSES}."
            )
        require_aware(self.deadline, "deadline")
        if self.budget is not None:
            require_number(self.budget, "budget", minimum=0)


@dataclass
class CompanyInfo:
    """Bidder company details shown in bid comparisons."""

    business_name: Optional[str] = None
    abn: Optional[str] = None
    experience_summary: Optional[str] = None
    insurance_provider: Optional[str] = None
    public_liability_amount: Optional[str] = None
    license_number: Optional[str] = None

    @property
    def insurance_coverage(self) -> Optional[str]:
        if self.insurance_provider and self.public_liability_amount:
            return f"{self.insurance_provider} ({self.public_liability_amount})"
        return self.insurance_provider or self.public_liability_amount


@dataclass(frozen=True)
class BidLineItem:
    """One priced unit of work within a bid.

    ``total`` is derived from ``quantity * unit_price`` (quantity defaults to 1).
    Passing a ``total`` that disagrees with that product is rejected. Items are
    immutable; use LineItemPricer.update_line_item() to change a price.
    """

    id: str
    bid_id: str
    line_number: int
    item_description: str
    unit_price: float
    quantity: Optional[float] = None
    category: Optional[str] = None
    unit_of_measure: Optional[str] = None
    specification: Optional[str] = None
    total: Optional[float] = None
    notes: Optional[str] = None

    def __post_init__(self):
        require_number(self.unit_price, "unit_price", minimum=0)
        if self.quantity is not None:
            require_number(self.quantity, "quantity", minimum=0)

        expected = self.effective_quantity * self.unit_price
        if self.total is None:
            object.__setattr__(self, "total", expected)
        elif not math.isclose(self.total, expected, rel_tol=1e-9, abs_tol=1e-6):
            raise InvalidInput(
                f"Line {self.line_number}: total {self.total} does not equal "
                f"quantity * unit_price ({expected})"
            )

    @property
    def effective_quantity(self) -> float:
        return 1 if self.quantity is None else self.quantity

    @property
    def category_label(self) -> str:
        return self.category or UNCATEGORIZED


@dataclass(frozen=True)
class SubScores:
    """The five evaluator sub-scores, each in [0, 100]."""

    price: float
    experience: float
    timeline: float
    technical: float
    risk: float

    def __post_init__(self):
        for name in CRITERIA:
            require_number(getattr(self, name), f"{name} score", minimum=0, maximum=100)

    @classmethod
    def from_mapping(cls, scores: Mapping[str, Any]) -> "SubScores":
        """Accepts either ``price`` or ``price_score`` style keys."""
        values = {}
        for name in CRITERIA:
            if name in scores:
                values[name] = scores[name]
            elif f"{name}_score" in scores:
                values[name] = scores[f"{name}_score"]
            else:
                raise InvalidInput(f"Missing sub-score: {name}")
        return cls(**values)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in CRITERIA}


@dataclass(frozen=True)
class Evaluation:
    """An evaluator's sub-scores and the overall score derived from them.

    ``overall_score`` is not a constructor argument: it is computed from the
    sub-scores and ``weights`` whenever an Evaluation is built or replaced.
    """

    bid_id: str
    price_score: float
    experience_score: float
    timeline_score: float
    technical_score: float
    risk_score: float
    evaluator_id: str
    evaluated_at: datetime
    evaluator_notes: str = ""
    weights: ScoringWeights = field(default_factory=ScoringWeights, repr=False)
    overall_score: int = field(init=False)

    def __post_init__(self):
        for name in CRITERIA:
            require_number(getattr(self, f"{name}_score"), f"{name}_score", minimum=0, maximum=100)
        if not isinstance(self.weights, ScoringWeights):
            raise InvalidInput("weights must be a ScoringWeights instance")
        object.__setattr__(self, "overall_score", self.weights.overall(self.subscores.as_dict()))

    @property
    def subscores(self) -> SubScores:
        return SubScores(
            price=self.price_score,
            experience=self.experience_score,
            timeline=self.timeline_score,
            technical=self.technical_score,
            risk=self.risk_score,
        )


@dataclass
class Bid:
    """A contractor's priced response to a tender."""

    id: str
    tender_id: str
    bidder_id: str
    bid_amount: float
    submitted_at: datetime
    status: str = "submitted"
    company_info: CompanyInfo = field(default_factory=CompanyInfo)
    line_items: List[BidLineItem] = field(default_factory=list)
    evaluation: Optional[Evaluation] = None
    timeline_days: Optional[int] = None

    def __post_init__(self):
        if self.status not in BID_STATUSES:
            raise InvalidInput(
                f"Unknown bid status: {self.status}. Use one of {BID_STATUSES}."
            )
        require_number(self.bid_amount, "bid_amount", minimum=0)
        require_aware(self.submitted_at, "submitted_at")
        if self.timeline_days is not None:
            require_number(self.timeline_days, "timeline_days", minimum=0)

        seen = set()
        for item in self.line_items:
            if item.bid_id != self.id:
                raise InvalidInput(
                    f"Line item {item.id} belongs to bid {item.bid_id}, not {self.id}"
                )
            if item.line_number in seen:
                raise InvalidInput(f"Duplicate line number {item.line_number} in bid {self.id}")
            seen.add(item.line_number)
        self.line_items = sorted(self.line_items, key=lambda item: item.line_number)

        if self.evaluation is not None and self.evaluation.bid_id != self.id:
            raise InvalidInput(
                f"Evaluation for bid {self.evaluation.bid_id} attached to bid {self.id}"
            )

    @property
    def uses_line_items(self) -> bool:
        return bool(self.line_items)

    @property
    def overall_score(self) -> Optional[int]:
        return self.evaluation.overall_score if self.evaluation is not None else None
