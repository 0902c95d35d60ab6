# pricing.py
"""Line-item pricing: per-line totals, bid rollups and category grouping."""

import logging
import math
import warnings
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .config import DEFAULT_TAX_RATE, EngineConfig
from .exceptions import InvalidInput
from .models import Bid, BidLineItem, require_number

logger = logging.getLogger(__name__)

LINE_ITEM_COLUMNS = [
    "line_number", "category", "item_description", "specification",
    "quantity", "unit_of_measure", "unit_price", "total", "notes",
]


@dataclass(frozen=True)
class BidTotals:
    """Financial rollup of a bid's line items."""

    subtotal: float
    tax: float
    grand_total: float


class LineItemPricer:
    """Computes line totals and bid rollups at a fixed tax rate.

    The pricer holds no state besides the tax rate; every rollup is computed
    from the line items passed in.
    """

    def __init__(self, tax_rate: float = DEFAULT_TAX_RATE):
        """
        Args:
            tax_rate: Fraction applied to the subtotal (0.10 = 10% GST)
        """
        require_number(tax_rate, "tax_rate", minimum=0)
        if tax_rate >= 1:
            raise InvalidInput(f"tax_rate must be below 1, got: {tax_rate}")
        self.tax_rate = tax_rate

    @classmethod
    def from_engine_config(cls, config: EngineConfig) -> "LineItemPricer":
        return cls(tax_rate=config.tax_rate)

    # === Line items ===

    def compute_line_total(self, quantity: Optional[float], unit_price: float) -> float:
        """total = quantity * unit_price, with a missing quantity counting as 1"""
        require_number(unit_price, "unit_price", minimum=0)
        if quantity is None:
            quantity = 1
        else:
            require_number(quantity, "quantity", minimum=0)
        return quantity * unit_price

    def update_line_item(self, item: BidLineItem, unit_price: Optional[float] = None,
                         notes: Optional[str] = None) -> BidLineItem:
        """
        Returns a copy of the item with a new unit price and/or notes

        Quantity is fixed by the tender's bill of quantities and is never
        changed here. The total is recomputed from the (possibly new) unit
        price, so applying the same edit twice gives the same result.

        Args:
            item: Line item to update
            unit_price: New unit price, or None to keep the current one
            notes: New notes, or None to keep the current ones

        Returns:
            Updated BidLineItem
        """
        new_price = item.unit_price if unit_price is None else unit_price
        total = self.compute_line_total(item.quantity, new_price)
        return replace(
            item,
            unit_price=new_price,
            notes=item.notes if notes is None else notes,
            total=total,
        )

    # === Rollups ===

    def aggregate_bid(self, line_items: Iterable[BidLineItem]) -> BidTotals:
        """Subtotal, tax and grand total for a set of line items"""
        subtotal = math.fsum(item.total for item in line_items)
        tax = subtotal * self.tax_rate
        return BidTotals(subtotal=subtotal, tax=tax, grand_total=subtotal + tax)

    def group_by_category(self, line_items: Iterable[BidLineItem]) -> "OrderedDict[str, List[BidLineItem]]":
        """
        Groups line items by category

        Items keep their line-number order within a group, and groups appear
        in the order their first item does. Items without a category go under
        "Uncategorized".
        """
        groups: "OrderedDict[str, List[BidLineItem]]" = OrderedDict()
        for item in sorted(line_items, key=lambda i: i.line_number):
            groups.setdefault(item.category_label, []).append(item)
        return groups

    def category_subtotals(self, line_items: Iterable[BidLineItem]) -> Dict[str, float]:
        """Pre-tax total per category, in group order"""
        return {
            category: math.fsum(item.total for item in items)
            for category, items in self.group_by_category(line_items).items()
        }

    def reconcile_bid_amount(self, bid: Bid) -> Bid:
        """
        Returns the bid with bid_amount set to its line-item grand total

        Flat-amount bids (no line items) are returned unchanged, since their
        bid_amount is authoritative.
        """
        if not bid.uses_line_items:
            return bid

        grand_total = self.aggregate_bid(bid.line_items).grand_total
        if not math.isclose(bid.bid_amount, grand_total, rel_tol=1e-9, abs_tol=1e-6):
            warnings.warn(
                f"Bid {bid.id}: bid_amount {bid.bid_amount} differs from the "
                f"line-item grand total {grand_total}. Using the line-item total."
            )
            logger.info("Reconciled bid %s amount %s -> %s", bid.id, bid.bid_amount, grand_total)
        return replace(bid, bid_amount=grand_total)

    # === Projections ===

    def line_items_frame(self, line_items: Iterable[BidLineItem]) -> pd.DataFrame:
        """Returns a DataFrame of line items in line-number order, for reports"""
        rows = []
        for item in sorted(line_items, key=lambda i: i.line_number):
            rows.append({
                "line_number": item.line_number,
                "category": item.category_label,
                "item_description": item.item_description,
                "specification": item.specification,
                "quantity": item.effective_quantity,
                "unit_of_measure": item.unit_of_measure,
                "unit_price": item.unit_price,
                "total": item.total,
                "notes": item.notes,
            })

        return pd.DataFrame(rows, columns=LINE_ITEM_COLUMNS)
