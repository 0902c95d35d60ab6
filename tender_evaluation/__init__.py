"""
Tender Evaluation Engine
Line-item pricing, weighted scoring, ranking and award lifecycle for construction tenders
"""

__version__ = "0.1.0"

from .config import CRITERIA, EngineConfig, ScoringWeights

from .exceptions import (
    TenderEngineError,
    InvalidInput,
    IllegalTransition,
    EditNotPermitted,
    InsufficientSelection,
    NotFound,
    PersistenceError,
)

from .models import (
    Tender,
    Bid,
    BidLineItem,
    CompanyInfo,
    Evaluation,
    SubScores,
)

from .pricing import BidTotals, LineItemPricer
from .guard import MutabilityGuard
from .scoring import ScoringEngine
from .ranking import BidRanker
from .lifecycle import AwardOutcome, LifecycleController
from .editor import BidLineItemEditor, EditBatch, EditResult, LineItemEdit

from .stores import (
    Clock,
    SystemClock,
    FixedClock,
    LineItemStore,
    BidStore,
    TenderStore,
    InMemoryLineItemStore,
    InMemoryBidStore,
    InMemoryTenderStore,
)

__all__ = [
    "CRITERIA",
    "EngineConfig",
    "ScoringWeights",
    "TenderEngineError",
    "InvalidInput",
    "IllegalTransition",
    "EditNotPermitted",
    "InsufficientSelection",
    "NotFound",
    "PersistenceError",
    "Tender",
    "Bid",
    "BidLineItem",
    "CompanyInfo",
    "Evaluation",
    "SubScores",
    "BidTotals",
    "LineItemPricer",
    "MutabilityGuard",
    "ScoringEngine",
    "BidRanker",
    "AwardOutcome",
    "LifecycleController",
    "BidLineItemEditor",
    "EditBatch",
    "EditResult",
    "LineItemEdit",
    "Clock",
    "SystemClock",
    "FixedClock",
    "LineItemStore",
    "BidStore",
    "TenderStore",
    "InMemoryLineItemStore",
    "InMemoryBidStore",
    "InMemoryTenderStore",
]
