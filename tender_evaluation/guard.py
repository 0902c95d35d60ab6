# guard.py
"""Deadline and ownership gate for editing a bid's line items."""

from typing import Optional

from .exceptions import EditNotPermitted
from .models import Bid, Tender
from .stores import Clock, SystemClock


class MutabilityGuard:
    """Decides whether a bid's line items may be edited right now.

    Nothing is cached: the deadline check reads the clock on every call, so a
    bid that was editable a second ago may not be now.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()

    def can_edit(self, bid: Bid, tender: Tender, current_user_id: str,
                 read_only_override: bool = False) -> bool:
        """owner AND before deadline AND NOT read-only"""
        return self.refusal_reason(bid, tender, current_user_id, read_only_override) is None

    def refusal_reason(self, bid: Bid, tender: Tender, current_user_id: str,
                       read_only_override: bool = False) -> Optional[str]:
        """Returns why editing is refused, or None if it is allowed"""
        if bid.tender_id != tender.id:
            return f"bid {bid.id} does not belong to tender {tender.id}"
        if bid.bidder_id != current_user_id:
            return f"user {current_user_id} does not own bid {bid.id}"
        if not self.clock.now() < tender.deadline:
            return f"tender {tender.id} deadline {tender.deadline.isoformat()} has passed"
        if read_only_override:
            return "bid is opened read-only"
        return None

    def ensure_can_edit(self, bid: Bid, tender: Tender, current_user_id: str,
                        read_only_override: bool = False) -> None:
        """Raises EditNotPermitted unless can_edit() holds"""
        reason = self.refusal_reason(bid, tender, current_user_id, read_only_override)
        if reason is not None:
            raise EditNotPermitted(f"Cannot edit line items: {reason}")
