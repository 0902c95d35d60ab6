# editor.py
"""Guarded batch editing of a bid's line-item prices and notes."""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from .exceptions import NotFound, PersistenceError
from .guard import MutabilityGuard
from .models import Bid, BidLineItem, Tender
from .pricing import LineItemPricer
from .stores import LineItemStore

logger = logging.getLogger(__name__)

EDIT_STATUSES = ("saved", "unchanged", "failed")


@dataclass(frozen=True)
class LineItemEdit:
    """A pending change to one line item. None leaves a field as it is."""

    item_id: str
    unit_price: Optional[float] = None
    notes: Optional[str] = None


@dataclass
class EditResult:
    """Outcome of one edit in a batch."""

    item_id: str
    status: str
    item: BidLineItem
    error: Optional[Exception] = None

    def __post_init__(self):
        if self.status not in EDIT_STATUSES:
            raise ValueError(f"Unknown edit status: {self.status}")

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass
class EditBatch:
    """Per-item results plus the bid as it stands after the saves that succeeded."""

    bid: Bid
    results: List[EditResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> List[EditResult]:
        return [r for r in self.results if not r.ok]


class BidLineItemEditor:
    """Applies a batch of price/notes edits to a bid's line items.

    The mutability guard is checked before anything else, and every edit is
    validated before any is saved, so a bad price blocks the whole batch.
    Saves are independent: a PersistenceError on one item is reported in its
    EditResult and does not undo the others.
    """

    def __init__(self, pricer: LineItemPricer, guard: MutabilityGuard, store: LineItemStore):
        self.pricer = pricer
        self.guard = guard
        self.store = store

    def save_edits(self, bid: Bid, tender: Tender, current_user_id: str,
                   edits: Iterable[LineItemEdit], read_only_override: bool = False) -> EditBatch:
        """
        Validates, prices and saves a batch of line-item edits

        Args:
            bid: Bid being edited, with its current line items
            tender: The bid's tender (for the deadline)
            current_user_id: User making the edits
            edits: Pending edits, applied in order
            read_only_override: True when the bid is opened read-only

        Returns:
            EditBatch with one EditResult per edit

        Raises:
            EditNotPermitted: if the guard refuses editing
            NotFound: if an edit names a line item not on the bid
            InvalidInput: if an edit has an invalid unit price
        """
        self.guard.ensure_can_edit(bid, tender, current_user_id, read_only_override)

        edits = list(edits)
        current = {item.id: item for item in bid.line_items}
        for edit in edits:
            if edit.item_id not in current:
                raise NotFound(f"Line item {edit.item_id} is not on bid {bid.id}")
            self.pricer.update_line_item(current[edit.item_id], edit.unit_price, edit.notes)

        # Each edit applies to the last successfully saved version of its item,
        # so a failed save is never carried into a later one.
        results = []
        saved_items = dict(current)
        for edit in edits:
            base = saved_items[edit.item_id]
            updated = self.pricer.update_line_item(base, edit.unit_price, edit.notes)
            if updated == base:
                results.append(EditResult(edit.item_id, "unchanged", base))
                continue
            try:
                self.store.save(updated)
            except PersistenceError as e:
                logger.warning("Saving line item %s of bid %s failed: %s", edit.item_id, bid.id, e)
                results.append(EditResult(edit.item_id, "failed", base, e))
                continue
            saved_items[edit.item_id] = updated
            results.append(EditResult(edit.item_id, "saved", updated))

        if not bid.line_items:
            # Flat-amount bid: its bid_amount is authoritative
            return EditBatch(bid=bid, results=results)

        line_items = list(saved_items.values())
        grand_total = self.pricer.aggregate_bid(line_items).grand_total
        return EditBatch(bid=replace(bid, line_items=line_items, bid_amount=grand_total),
                         results=results)
