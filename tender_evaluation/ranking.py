# ranking.py
"""Sorting, filtering and side-by-side comparison of bids."""

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .config import EngineConfig
from .exceptions import InsufficientSelection, InvalidInput, NotFound
from .models import BID_STATUSES, Bid

SORT_KEYS: Dict[str, Callable[[Bid], Any]] = {
    "price": lambda bid: bid.bid_amount,
    "score": lambda bid: bid.overall_score if bid.overall_score is not None else 0,
    "timeline": lambda bid: bid.timeline_days if bid.timeline_days is not None else 0,
    "submitted": lambda bid: bid.submitted_at,
}

SORT_ORDERS = ("asc", "desc")

COMPARISON_COLUMNS = [
    "bid_id", "bidder_id", "bid_amount", "timeline_days",
    "overall_score", "experience_summary", "insurance_coverage",
]

BID_COLUMNS = [
    "bid_id", "tender_id", "bidder_id", "business_name", "status",
    "bid_amount", "timeline_days", "submitted_at", "overall_score",
]


class BidRanker:
    """Orders and compares the bids received on a tender.

    Every method returns new lists or DataFrames; the bids passed in are
    never reordered or modified.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def filter_status(self, bids: Iterable[Bid], statuses: Iterable[str]) -> List[Bid]:
        """Bids whose status is one of ``statuses``, in input order"""
        wanted = set(statuses)
        unknown = wanted - set(BID_STATUSES)
        if unknown:
            raise InvalidInput(f"Unknown bid statuses: {sorted(unknown)}")
        return [bid for bid in bids if bid.status in wanted]

    def rank(self, bids: Iterable[Bid], sort_by: str = "price", order: str = "asc",
             status_filter: Optional[Iterable[str]] = None) -> List[Bid]:
        """
        Sorts bids by one key

        Bids with equal keys keep their input order, in either direction.

        Args:
            bids: Bids to rank
            sort_by: 'price' (bid_amount), 'score' (overall score, unevaluated
                bids count as 0), 'timeline' (timeline_days, missing counts as
                0) or 'submitted' (submitted_at)
            order: 'asc' or 'desc'
            status_filter: If given, only bids with one of these statuses

        Returns:
            New list of bids
        """
        if sort_by not in SORT_KEYS:
            raise InvalidInput(f"Unknown sort key: {sort_by}. Use one of {list(SORT_KEYS)}.")
        if order not in SORT_ORDERS:
            raise InvalidInput(f"order must be 'asc' or 'desc', got: {order}")

        candidates = list(bids)
        if status_filter is not None:
            candidates = self.filter_status(candidates, status_filter)

        # sorted() is stable, including with reverse=True
        return sorted(candidates, key=SORT_KEYS[sort_by], reverse=(order == "desc"))

    def compare(self, bids: Iterable[Bid], selected: Sequence[str]) -> pd.DataFrame:
        """
        Side-by-side table of the selected bids

        Args:
            bids: All bids on the tender
            selected: Ids of the bids to compare, in display order

        Returns:
            DataFrame with one row per selected bid and the columns in
            COMPARISON_COLUMNS. overall_score is NaN for unevaluated bids.
        """
        selected_ids = list(dict.fromkeys(selected))
        if len(selected_ids) < 2:
            raise InsufficientSelection(
                f"Select at least 2 bids to compare, got {len(selected_ids)}"
            )

        by_id = {bid.id: bid for bid in bids}
        missing = [bid_id for bid_id in selected_ids if bid_id not in by_id]
        if missing:
            raise NotFound(f"Selected bids not found: {missing}")

        rows = []
        for bid_id in selected_ids:
            bid = by_id[bid_id]
            rows.append({
                "bid_id": bid.id,
                "bidder_id": bid.bidder_id,
                "bid_amount": bid.bid_amount,
                "timeline_days": bid.timeline_days,
                "overall_score": bid.overall_score if bid.overall_score is not None else np.nan,
                "experience_summary": bid.company_info.experience_summary,
                "insurance_coverage": bid.company_info.insurance_coverage,
            })

        return pd.DataFrame(rows, columns=COMPARISON_COLUMNS)

    def recommend(self, bids: Iterable[Bid], min_score: Optional[float] = None) -> List[Bid]:
        """
        Evaluated, still-open bids scoring at least ``min_score``, best first

        Ties on score go to the lower bid amount. ``min_score`` defaults to
        the configured recommendation threshold.
        """
        threshold = self.config.recommendation_threshold if min_score is None else min_score
        eligible = [
            bid for bid in bids
            if bid.overall_score is not None
            and bid.overall_score >= threshold
            and bid.status not in ("awarded", "rejected")
        ]
        return sorted(eligible, key=lambda bid: (-bid.overall_score, bid.bid_amount))

    # === Informational methods ===

    def statistics(self, bids: Iterable[Bid]) -> Dict[str, Any]:
        """
        Price and timeline analysis across bids

        Bids without a declared timeline are left out of the timeline figures.
        """
        bids = list(bids)
        stats: Dict[str, Any] = {
            "count": len(bids),
            "evaluated": sum(1 for bid in bids if bid.evaluation is not None),
            "price": {},
            "timeline": {},
        }

        prices = pd.Series([bid.bid_amount for bid in bids], dtype="float64")
        if not prices.empty:
            stats["price"] = {
                "lowest": prices.min(),
                "highest": prices.max(),
                "average": prices.mean(),
                "median": prices.median(),
                "range": prices.max() - prices.min(),
                "savings": prices.max() - prices.min(),
            }

        timelines = pd.Series(
            [bid.timeline_days for bid in bids if bid.timeline_days is not None],
            dtype="float64",
        )
        if not timelines.empty:
            stats["timeline"] = {
                "fastest": timelines.min(),
                "slowest": timelines.max(),
                "average": timelines.mean(),
                "range": timelines.max() - timelines.min(),
            }

        return stats

    def to_frame(self, bids: Iterable[Bid]) -> pd.DataFrame:
        """Returns a flat DataFrame of bids, in input order, for reports"""
        rows = []
        for bid in bids:
            rows.append({
                "bid_id": bid.id,
                "tender_id": bid.tender_id,
                "bidder_id": bid.bidder_id,
                "business_name": bid.company_info.business_name,
                "status": bid.status,
                "bid_amount": bid.bid_amount,
                "timeline_days": bid.timeline_days,
                "submitted_at": bid.submitted_at,
                "overall_score": bid.overall_score if bid.overall_score is not None else np.nan,
            })

        return pd.DataFrame(rows, columns=BID_COLUMNS)
