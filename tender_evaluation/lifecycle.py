# lifecycle.py
"""Tender and bid status state machines, including the award operation."""

import logging
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .config import EngineConfig
from .exceptions import IllegalTransition, InvalidInput, PersistenceError
from .models import Bid, Tender
from .ranking import BidRanker
from .stores import BidStore, Clock, SystemClock, TenderStore

logger = logging.getLogger(__name__)

TENDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "draft": frozenset({"open", "cancelled"}),
    "open": frozenset({"closed", "cancelled"}),
    "closed": frozenset({"awarded", "cancelled"}),
    "awarded": frozenset(),
    "cancelled": frozenset(),
}

BID_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "submitted": frozenset({"under_review"}),
    "under_review": frozenset({"shortlisted", "rejected"}),
    "shortlisted": frozenset({"awarded", "rejected"}),
    "awarded": frozenset(),
    "rejected": frozenset(),
}

# Sibling bids still in these states are rejected when another bid wins
CASCADE_REJECT_STATUSES = frozenset({"submitted", "under_review", "shortlisted"})


@dataclass(frozen=True)
class AwardOutcome:
    """The new state of everything an award touches."""

    tender: Tender
    bid: Bid
    rejected_bids: Tuple[Bid, ...] = ()

    @property
    def changed_bids(self) -> Tuple[Bid, ...]:
        return (self.bid,) + self.rejected_bids


class LifecycleController:
    """Applies legal status transitions to tenders and bids.

    Transitions never modify the objects passed in; they return updated
    copies. A tender or bid only reaches 'awarded' through award_bid(), so an
    awarded tender always has exactly one awarded bid.
    """

    def __init__(self, config: Optional[EngineConfig] = None, clock: Optional[Clock] = None,
                 ranker: Optional[BidRanker] = None):
        """
        Args:
            config: Engine settings; allow_award_while_open lets an issuer
                award an open tender before its deadline
            clock: Time source for deadline-driven closing
            ranker: Used to check award eligibility
        """
        self.config = config or EngineConfig()
        self.clock = clock or SystemClock()
        self.ranker = ranker or BidRanker(self.config)

    # === Tender transitions ===

    def transition_tender(self, tender: Tender, new_status: str) -> Tender:
        if new_status == "awarded":
            raise IllegalTransition("Tenders are awarded through award_bid(), not directly")
        self._check(TENDER_TRANSITIONS, "Tender", tender.id, tender.status, new_status)
        logger.info("Tender %s: %s -> %s", tender.id, tender.status, new_status)
        return replace(tender, status=new_status)

    def publish(self, tender: Tender) -> Tender:
        return self.transition_tender(tender, "open")

    def close(self, tender: Tender) -> Tender:
        """Closes an open tender, whether or not its deadline has passed"""
        return self.transition_tender(tender, "closed")

    def cancel(self, tender: Tender) -> Tender:
        return self.transition_tender(tender, "cancelled")

    def close_if_expired(self, tender: Tender) -> Tender:
        """Closes an open tender once its deadline has passed; otherwise no-op"""
        if tender.status == "open" and self.clock.now() >= tender.deadline:
            return self.close(tender)
        return tender

    # === Bid transitions ===

    def transition_bid(self, bid: Bid, new_status: str) -> Bid:
        if new_status == "awarded":
            raise IllegalTransition("Bids are awarded through award_bid(), not directly")
        self._check(BID_TRANSITIONS, "Bid", bid.id, bid.status, new_status)
        logger.info("Bid %s: %s -> %s", bid.id, bid.status, new_status)
        return replace(bid, status=new_status)

    def start_review(self, bid: Bid) -> Bid:
        return self.transition_bid(bid, "under_review")

    def shortlist(self, bid: Bid) -> Bid:
        return self.transition_bid(bid, "shortlisted")

    def reject(self, bid: Bid) -> Bid:
        return self.transition_bid(bid, "rejected")

    # === Award ===

    def award_bid(self, tender: Tender, bid: Bid, sibling_bids: Iterable[Bid] = ()) -> AwardOutcome:
        """
        Awards a shortlisted bid and closes out the tender

        The winning bid and the tender both become 'awarded'. Every other bid
        on the tender that is still submitted, under review or shortlisted
        becomes 'rejected'. Either all of this happens or, on an
        IllegalTransition, none of it does.

        Args:
            tender: The tender being awarded (must be closed, or open when
                allow_award_while_open is set)
            bid: The winning bid (must be shortlisted)
            sibling_bids: The other bids on the tender; the winning bid may be
                included and is skipped

        Returns:
            AwardOutcome with the updated tender, bid and rejected siblings
        """
        allowed = {"closed", "open"} if self.config.allow_award_while_open else {"closed"}
        if tender.status not in allowed:
            raise IllegalTransition(
                f"Cannot award tender {tender.id}: status is '{tender.status}', "
                f"expected one of {sorted(allowed)}"
            )
        if bid.tender_id != tender.id:
            raise IllegalTransition(f"Bid {bid.id} does not belong to tender {tender.id}")
        if not self.ranker.filter_status([bid], {"shortlisted"}):
            raise IllegalTransition(
                f"Cannot award bid {bid.id}: status is '{bid.status}', expected 'shortlisted'"
            )

        rejected: List[Bid] = []
        for sibling in sibling_bids:
            if sibling.id == bid.id:
                continue
            if sibling.tender_id != tender.id:
                raise InvalidInput(f"Bid {sibling.id} does not belong to tender {tender.id}")
            if sibling.status == "awarded":
                raise IllegalTransition(
                    f"Tender {tender.id} already has an awarded bid: {sibling.id}"
                )
            if sibling.status in CASCADE_REJECT_STATUSES:
                rejected.append(replace(sibling, status="rejected"))

        logger.info("Awarding tender %s to bid %s (%d sibling bids rejected)",
                    tender.id, bid.id, len(rejected))
        return AwardOutcome(
            tender=replace(tender, status="awarded"),
            bid=replace(bid, status="awarded"),
            rejected_bids=tuple(rejected),
        )

    def commit_award(self, outcome: AwardOutcome, tender_store: TenderStore,
                     bid_store: BidStore) -> None:
        """
        Persists an award as one logical transaction

        The previous version of every entity is loaded first. If a save fails
        part-way, the entities already written are restored and the
        PersistenceError is re-raised.
        """
        plan = [(bid_store, b) for b in outcome.changed_bids] + [(tender_store, outcome.tender)]
        previous = [(store, store.load(entity.id)) for store, entity in plan]

        saved = 0
        try:
            for store, entity in plan:
                store.save(entity)
                saved += 1
        except PersistenceError:
            logger.error("Award of tender %s failed after %d of %d saves; rolling back",
                         outcome.tender.id, saved, len(plan))
            for store, original in reversed(previous[:saved]):
                store.save(original)
            raise

    def award_and_commit(self, tender: Tender, bid: Bid, sibling_bids: Iterable[Bid],
                         tender_store: TenderStore, bid_store: BidStore) -> AwardOutcome:
        """award_bid() followed by commit_award()"""
        outcome = self.award_bid(tender, bid, sibling_bids)
        self.commit_award(outcome, tender_store, bid_store)
        return outcome

    # === Helpers ===

    def _check(self, table: Dict[str, FrozenSet[str]], kind: str, entity_id: str,
               current: str, new_status: str) -> None:
        if new_status not in table:
            raise IllegalTransition(f"{kind} {entity_id}: unknown status '{new_status}'")
        if new_status not in table[current]:
            raise IllegalTransition(
                f"{kind} {entity_id}: cannot move from '{current}' to '{new_status}'"
            )

    def allowed_tender_transitions(self, tender: Tender) -> List[str]:
        return sorted(TENDER_TRANSITIONS[tender.status])

    def allowed_bid_transitions(self, bid: Bid) -> List[str]:
        return sorted(BID_TRANSITIONS[bid.status])
