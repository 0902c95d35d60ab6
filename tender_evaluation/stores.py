# stores.py
"""Collaborator interfaces (persistence, clock) and in-memory implementations."""

import copy
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .exceptions import NotFound, PersistenceError
from .models import Bid, BidLineItem, require_aware


class Clock(ABC):
    """Source of the current time, injected so deadline checks are testable"""

    @abstractmethod
    def now(self) -> datetime:
        pass


class SystemClock(Clock):
    """Wall-clock time in UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """A clock that only moves when told to"""

    def __init__(self, current: datetime):
        self.current = require_aware(current, "current")

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        """Moves the clock forward, e.g. ``clock.advance(seconds=1)``"""
        self.current = self.current + timedelta(**kwargs)
        return self.current


class LineItemStore(ABC):
    """Persistence for bid line items"""

    @abstractmethod
    def load(self, bid_id: str) -> List[BidLineItem]:
        pass

    @abstractmethod
    def save(self, item: BidLineItem) -> None:
        """Raises PersistenceError when the item cannot be written"""
        pass


class EntityStore(ABC):
    """Persistence for tenders or bids, keyed by id"""

    @abstractmethod
    def load(self, entity_id: str) -> Any:
        """Raises NotFound when the entity does not exist"""
        pass

    @abstractmethod
    def save(self, entity: Any) -> None:
        """Raises PersistenceError when the entity cannot be written"""
        pass


class BidStore(EntityStore):
    pass


class TenderStore(EntityStore):
    pass


# === In-memory implementations ===

class InMemoryLineItemStore(LineItemStore):
    """Keeps copies of line items, so callers can't mutate stored state."""

    def __init__(self, items: Optional[List[BidLineItem]] = None):
        self._items: Dict[str, BidLineItem] = {}
        for item in items or []:
            self._items[item.id] = copy.deepcopy(item)

    def load(self, bid_id: str) -> List[BidLineItem]:
        items = [copy.deepcopy(i) for i in self._items.values() if i.bid_id == bid_id]
        return sorted(items, key=lambda i: i.line_number)

    def save(self, item: BidLineItem) -> None:
        self._items[item.id] = copy.deepcopy(item)


class _InMemoryEntityStore(EntityStore):

    kind = "entity"

    def __init__(self, entities: Optional[List[Any]] = None):
        self._entities: Dict[str, Any] = {}
        for entity in entities or []:
            self._entities[entity.id] = copy.deepcopy(entity)

    def load(self, entity_id: str) -> Any:
        if entity_id not in self._entities:
            raise NotFound(f"{self.kind} not found: {entity_id}")
        return copy.deepcopy(self._entities[entity_id])

    def save(self, entity: Any) -> None:
        if entity is None:
            raise PersistenceError(f"Cannot save an empty {self.kind}")
        self._entities[entity.id] = copy.deepcopy(entity)


class InMemoryBidStore(_InMemoryEntityStore, BidStore):

    kind = "Bid"

    def for_tender(self, tender_id: str) -> List[Bid]:
        """All bids on a tender, in insertion order"""
        return [copy.deepcopy(b) for b in self._entities.values() if b.tender_id == tender_id]


class InMemoryTenderStore(_InMemoryEntityStore, TenderStore):

    kind = "Tender"
