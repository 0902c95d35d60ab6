"""Tests for line-item pricing."""

import warnings
from datetime import datetime, timezone

import pytest

from tender_evaluation import Bid, BidLineItem, InvalidInput, LineItemPricer
from tender_evaluation.pricing import LINE_ITEM_COLUMNS

SUBMITTED = datetime(2026, 2, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def pricer():
    return LineItemPricer()


@pytest.fixture
def scenario_items():
    """Three line items: 2 x 100, 1 x 50, 3 x 10."""
    return [
        BidLineItem('li-1', 'bid-1', 1, 'Excavation', unit_price=100, quantity=2, category='Earthworks'),
        BidLineItem('li-2', 'bid-1', 2, 'Formwork', unit_price=50, quantity=1, category='Concrete'),
        BidLineItem('li-3', 'bid-1', 3, 'Backfill', unit_price=10, quantity=3, category='Earthworks'),
    ]


class TestLineTotals:
    """Tests for per-line totals."""

    def test_quantity_times_price(self, pricer):
        """total = quantity * unit_price."""
        assert pricer.compute_line_total(4, 12.5) == 50.0

    def test_missing_quantity_counts_as_one(self, pricer):
        """A line with no quantity is priced as a single unit."""
        assert pricer.compute_line_total(None, 75) == 75

    def test_zero_price_allowed(self, pricer):
        """Zero is a valid unit price."""
        assert pricer.compute_line_total(3, 0) == 0

    def test_negative_price_rejected(self, pricer):
        """Negative prices are rejected, not clamped."""
        with pytest.raises(InvalidInput):
            pricer.compute_line_total(2, -1)

    @pytest.mark.parametrize('bad', ['100', None, float('nan'), True])
    def test_non_numeric_price_rejected(self, pricer, bad):
        """Non-numeric unit prices are rejected."""
        with pytest.raises(InvalidInput):
            pricer.compute_line_total(1, bad)

    def test_line_item_derives_total(self):
        """A line item built without a total gets quantity * unit_price."""
        item = BidLineItem('li-1', 'bid-1', 1, 'Slab', unit_price=20, quantity=5)
        assert item.total == 100

    def test_line_item_rejects_inconsistent_total(self):
        """A stored total that disagrees with the product is refused."""
        with pytest.raises(InvalidInput):
            BidLineItem('li-1', 'bid-1', 1, 'Slab', unit_price=20, quantity=5, total=90)


class TestUpdateLineItem:
    """Tests for price/notes edits."""

    def test_price_change_recomputes_total(self, pricer, scenario_items):
        """Changing the unit price recomputes the total."""
        updated = pricer.update_line_item(scenario_items[0], unit_price=120)
        assert updated.unit_price == 120
        assert updated.total == 240
        assert updated.quantity == 2

    def test_original_not_modified(self, pricer, scenario_items):
        """update_line_item returns a new object."""
        original = scenario_items[0]
        pricer.update_line_item(original, unit_price=120)
        assert original.unit_price == 100
        assert original.total == 200

    def test_notes_only(self, pricer, scenario_items):
        """Editing notes keeps price and total."""
        updated = pricer.update_line_item(scenario_items[1], notes='Includes strip-out')
        assert updated.notes == 'Includes strip-out'
        assert updated.unit_price == 50
        assert updated.total == 50

    def test_idempotent(self, pricer, scenario_items):
        """Applying the same edit twice gives the same total."""
        once = pricer.update_line_item(scenario_items[2], unit_price=12.5, notes='x')
        twice = pricer.update_line_item(once, unit_price=12.5, notes='x')
        assert once.total == twice.total == 37.5
        assert once == twice

    def test_negative_price_edit_rejected(self, pricer, scenario_items):
        """A negative price edit is rejected."""
        with pytest.raises(InvalidInput):
            pricer.update_line_item(scenario_items[0], unit_price=-5)


class TestAggregateBid:
    """Tests for bid rollups."""

    def test_scenario_totals(self, pricer, scenario_items):
        """200 + 50 + 30 = 280, 10% tax = 28, grand total = 308."""
        totals = pricer.aggregate_bid(scenario_items)
        assert totals.subtotal == pytest.approx(280)
        assert totals.tax == pytest.approx(28)
        assert totals.grand_total == pytest.approx(308)

    def test_grand_total_identity(self, scenario_items):
        """grand_total == subtotal + subtotal * tax_rate for any rate."""
        for rate in (0, 0.05, 0.15, 0.2):
            totals = LineItemPricer(tax_rate=rate).aggregate_bid(scenario_items)
            assert totals.subtotal == pytest.approx(sum(i.total for i in scenario_items), abs=1e-6)
            assert totals.grand_total == pytest.approx(totals.subtotal * (1 + rate), abs=1e-6)

    def test_reflects_current_items(self, pricer, scenario_items):
        """Totals are recomputed from whatever items are passed in."""
        before = pricer.aggregate_bid(scenario_items)
        scenario_items[0] = pricer.update_line_item(scenario_items[0], unit_price=150)
        after = pricer.aggregate_bid(scenario_items)
        assert after.subtotal == pytest.approx(before.subtotal + 100)

    def test_empty(self, pricer):
        """No line items means zero totals."""
        totals = pricer.aggregate_bid([])
        assert (totals.subtotal, totals.tax, totals.grand_total) == (0, 0, 0)

    def test_invalid_tax_rate(self):
        """Tax rates outside [0, 1) are rejected."""
        with pytest.raises(InvalidInput):
            LineItemPricer(tax_rate=-0.1)
        with pytest.raises(InvalidInput):
            LineItemPricer(tax_rate=1.5)


class TestGroupByCategory:
    """Tests for category grouping."""

    def test_first_seen_order(self, pricer, scenario_items):
        """Categories appear in the order of their first line."""
        groups = pricer.group_by_category(scenario_items)
        assert list(groups) == ['Earthworks', 'Concrete']
        assert [i.id for i in groups['Earthworks']] == ['li-1', 'li-3']

    def test_line_number_order_within_group(self, pricer):
        """Items are ordered by line number even if passed out of order."""
        items = [
            BidLineItem('c', 'bid-1', 30, 'C', unit_price=1, category='Roof'),
            BidLineItem('a', 'bid-1', 5, 'A', unit_price=1, category='Roof'),
            BidLineItem('b', 'bid-1', 12, 'B', unit_price=1, category='Walls'),
        ]
        groups = pricer.group_by_category(items)
        assert list(groups) == ['Roof', 'Walls']
        assert [i.id for i in groups['Roof']] == ['a', 'c']

    def test_uncategorized(self, pricer):
        """Items with no category go under 'Uncategorized'."""
        items = [
            BidLineItem('a', 'bid-1', 1, 'A', unit_price=1),
            BidLineItem('b', 'bid-1', 2, 'B', unit_price=1, category=''),
            BidLineItem('c', 'bid-1', 3, 'C', unit_price=1, category='Roof'),
        ]
        groups = pricer.group_by_category(items)
        assert list(groups) == ['Uncategorized', 'Roof']
        assert len(groups['Uncategorized']) == 2

    def test_category_subtotals(self, pricer, scenario_items):
        """Pre-tax subtotal per category."""
        assert pricer.category_subtotals(scenario_items) == {'Earthworks': 230, 'Concrete': 50}


class TestReconcileAndFrame:
    """Tests for bid amount reconciliation and DataFrame projection."""

    def test_reconcile_sets_grand_total(self, pricer, scenario_items):
        """A drifted bid amount is replaced by the grand total, with a warning."""
        bid = Bid('bid-1', 'tender-1', 'user-1', bid_amount=300, submitted_at=SUBMITTED,
                  line_items=scenario_items)
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter('always')
            reconciled = pricer.reconcile_bid_amount(bid)
            assert any('differs from the line-item grand total' in str(x.message) for x in w)
        assert reconciled.bid_amount == pytest.approx(308)
        assert bid.bid_amount == 300

    def test_reconcile_matching_no_warning(self, pricer, scenario_items):
        """No warning when the amount already matches."""
        bid = Bid('bid-1', 'tender-1', 'user-1', bid_amount=308, submitted_at=SUBMITTED,
                  line_items=scenario_items)
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter('always')
            pricer.reconcile_bid_amount(bid)
        assert len(w) == 0

    def test_flat_amount_bid_untouched(self, pricer):
        """A bid with no line items keeps its entered amount."""
        bid = Bid('bid-2', 'tender-1', 'user-2', bid_amount=99000, submitted_at=SUBMITTED)
        assert pricer.reconcile_bid_amount(bid) is bid

    def test_line_items_frame(self, pricer, scenario_items):
        """DataFrame has one row per item in line-number order."""
        df = pricer.line_items_frame(reversed(scenario_items))
        assert list(df.columns) == LINE_ITEM_COLUMNS
        assert list(df['line_number']) == [1, 2, 3]
        assert df['total'].sum() == pytest.approx(280)

    def test_empty_frame_has_columns(self, pricer):
        """An empty item list still yields the expected columns."""
        df = pricer.line_items_frame([])
        assert df.empty
        assert list(df.columns) == LINE_ITEM_COLUMNS
