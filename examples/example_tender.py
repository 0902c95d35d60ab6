# example_tender.py
"""From line items to award on a small tender."""

from datetime import datetime, timedelta, timezone

from tender_evaluation import (
    Bid,
    BidLineItem,
    BidLineItemEditor,
    BidRanker,
    CompanyInfo,
    FixedClock,
    InMemoryBidStore,
    InMemoryLineItemStore,
    InMemoryTenderStore,
    LifecycleController,
    LineItemEdit,
    LineItemPricer,
    MutabilityGuard,
    ScoringEngine,
    Tender,
)

deadline = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
clock = FixedClock(deadline - timedelta(days=1))

tender = Tender('T-100', 'Warehouse slab and drainage', deadline=deadline,
                status='open', budget=350_000)

pricer = LineItemPricer(tax_rate=0.10)
items = [
    BidLineItem('li-1', 'B-1', 1, 'Excavation', unit_price=18_000, quantity=2, category='Earthworks'),
    BidLineItem('li-2', 'B-1', 2, 'Slab pour', unit_price=160_000, category='Concrete'),
    BidLineItem('li-3', 'B-1', 3, 'Stormwater', unit_price=4_500, quantity=6, category='Drainage'),
]
bids = [
    Bid('B-1', 'T-100', 'acme', bid_amount=pricer.aggregate_bid(items).grand_total,
        submitted_at=deadline - timedelta(days=4), timeline_days=70, line_items=items,
        company_info=CompanyInfo(business_name='Acme Civil', experience_summary='15 years civil works',
                                 insurance_provider='QBE', public_liability_amount='$20M')),
    Bid('B-2', 'T-100', 'bolt', bid_amount=298_000, submitted_at=deadline - timedelta(days=3),
        timeline_days=60, company_info=CompanyInfo(business_name='Bolt Construct')),
    Bid('B-3', 'T-100', 'crest', bid_amount=341_000, submitted_at=deadline - timedelta(days=2),
        timeline_days=85, company_info=CompanyInfo(business_name='Crest Builders')),
]

# ── Bidder revises a price before the deadline ──

print("=== Line item edits ===\n")

store = InMemoryLineItemStore(items)
editor = BidLineItemEditor(pricer, MutabilityGuard(clock), store)
batch = editor.save_edits(bids[0], tender, 'acme', [LineItemEdit('li-2', unit_price=152_000)])
bids[0] = batch.bid

for category, group in pricer.group_by_category(bids[0].line_items).items():
    print(category, [item.total for item in group])
print(pricer.aggregate_bid(bids[0].line_items))
print()

# ── Deadline passes, evaluation starts ──

clock.advance(days=2)
controller = LifecycleController(clock=clock)
tender = controller.close_if_expired(tender)
bids = [controller.start_review(b) for b in bids]

engine = ScoringEngine(clock=clock)
evaluations = {
    'B-1': {'price': 80, 'experience': 85, 'timeline': 75, 'technical': 80, 'risk': 70},
    'B-2': {'price': 90, 'experience': 60, 'timeline': 90, 'technical': 65, 'risk': 55},
    'B-3': {'price': 60, 'experience': 90, 'timeline': 55, 'technical': 85, 'risk': 80},
}
bids = [engine.evaluate_bid(b, evaluations[b.id], 'evaluator-1') for b in bids]

print("=== Ranking by score ===\n")

ranker = BidRanker()
for bid in ranker.rank(bids, sort_by='score', order='desc'):
    print(bid.id, bid.overall_score, bid.bid_amount)
print()
print(ranker.compare(bids, ['B-1', 'B-2']))
print()
print(ranker.statistics(bids))
print()

# ── Shortlist and award ──

print("=== Award ===\n")

shortlisted = [controller.shortlist(b) for b in ranker.recommend(bids)]
others = [b for b in bids if b.id not in {s.id for s in shortlisted}]
winner = shortlisted[0]

tenders = InMemoryTenderStore([tender])
bid_store = InMemoryBidStore(shortlisted + others)
outcome = controller.award_and_commit(tender, winner, shortlisted + others, tenders, bid_store)

print(outcome.tender.id, outcome.tender.status)
print(outcome.bid.id, outcome.bid.status)
print([(b.id, b.status) for b in outcome.rejected_bids])
