"""
Service / store layer.

`RecordStore` owns the in-memory sequence of events and is the only
thing that mutates it. It is free of SQL; it calls `SlotRepo` to read and
overwrite the snapshot. All write paths go through this class so the
snapshot always matches memory.

Key responsibilities:
- load the snapshot once at `init()` and recover from corrupt data
- coerce and check input (amount policy, diaper state)
- keep the sequence newest-first by insertion
- persist the full snapshot after every mutation, before returning
"""

import logging
import math
import sqlite3
import threading
import uuid
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Union

from models import (
    DiaperEvent,
    DiaperState,
    Event,
    EventKind,
    EventList,
    FeedingEvent,
    RecordFilter,
)
from repo_slots import SlotRepo
from settings import settings

logger = logging.getLogger(__name__)


class InvalidAmountError(ValueError):
    """Feeding amount is not a positive number (only under `reject`)."""


class StoreNotInitializedError(RuntimeError):
    """An operation was called before `init()` or after `teardown()`."""


def coerce_amount(raw: Union[float, str, None], policy: Optional[str] = None) -> float:
    """Turn form input into a feeding amount.

    Anything that is not a finite positive number becomes NaN under the
    `sentinel` policy and raises `InvalidAmountError` under `reject`.
    Zero and negative amounts count as invalid too, unlike the web app
    this log replaces, which kept `Number("0")` as 0.
    """

    policy = policy or settings.invalid_amount_policy
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        amount = math.nan
    if isinstance(raw, bool) or not math.isfinite(amount) or amount <= 0:
        if policy == "reject":
            raise InvalidAmountError(f"Feeding amount must be a positive number, got {raw!r}")
        return math.nan
    return amount


def filter_events(events: Iterable[Event], selector: Union[RecordFilter, str] = RecordFilter.ALL) -> List[Event]:
    """Return the events matching `selector`, in their original order.

    Always returns a new list; `events` is never modified.
    """

    selector = RecordFilter(selector)
    if selector is RecordFilter.ALL:
        return list(events)
    return [e for e in events if e.type == selector.value]


class RecordStore:
    """Ordered event log mirrored to one storage key.

    Example usage:
        store = RecordStore(SlotRepo())
        store.init()
        store.add_event("feeding", 120, note="spit up")
        store.filter("diaper")
        store.teardown()
    """

    def __init__(
        self,
        repo: SlotRepo,
        key: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repo = repo
        self._key = key
        self._clock = clock
        self._events: Optional[List[Event]] = None
        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        return self._key or settings.storage_key

    @property
    def initialized(self) -> bool:
        return self._events is not None

    @property
    def events(self) -> List[Event]:
        """A copy of the current sequence, newest first."""

        return list(self._require())

    def init(self) -> List[Event]:
        """Load the snapshot and make the store ready for use."""

        with self._lock:
            self._events = self.load()
        logger.info("Loaded %d records from %r", len(self._events), self.key)
        return list(self._events)

    def teardown(self) -> None:
        with self._lock:
            self._events = None

    def load(self) -> List[Event]:
        """Read the snapshot. Absent or unreadable data yields an empty list."""

        try:
            raw = self.repo.get(self.key)
        except sqlite3.Error as e:
            logger.warning("Storage for %r is unreadable, starting empty: %s", self.key, e)
            return []
        if raw is None:
            return []
        try:
            return EventList.validate_json(raw)
        except ValueError as e:
            logger.warning("Stored records under %r are unreadable, starting empty: %s", self.key, e)
            return []

    def persist(self, events: List[Event]) -> None:
        """Overwrite the storage key with the full sequence."""

        payload = EventList.dump_json(events).decode("utf-8")
        self.repo.set(self.key, payload)

    def add_event(
        self,
        kind: Union[EventKind, str],
        value: Union[float, str, DiaperState, None] = None,
        note: Optional[str] = "",
    ) -> Event:
        """Record a new event at the head of the sequence.

        `value` is the amount for a feeding or the diaper state for a
        diaper change.

        Raises:
        - `ValueError` for an unknown kind or diaper state
        - `InvalidAmountError` for a bad amount under the `reject` policy
        """

        kind = EventKind(kind)
        event_id = str(uuid.uuid4())
        time = self._clock().strftime(settings.time_format)
        note = note or ""

        event: Event
        if kind is EventKind.FEEDING:
            event = FeedingEvent(id=event_id, time=time, amount=coerce_amount(value), note=note)
        else:
            event = DiaperEvent(id=event_id, time=time, status=DiaperState(value), note=note)

        with self._lock:
            events = [event] + self._require()
            self._commit(events)
        logger.debug("Added %s record %s", kind.value, event_id)
        return event

    def delete_event(self, event_id: str) -> List[Event]:
        """Remove the event with `event_id`. Unknown ids are a no-op."""

        with self._lock:
            events = [e for e in self._require() if e.id != event_id]
            removed = len(events) != len(self._events)
            self._commit(events)
        if removed:
            logger.debug("Deleted record %s", event_id)
        return list(events)

    def filter(self, selector: Union[RecordFilter, str] = RecordFilter.ALL) -> List[Event]:
        return filter_events(self._require(), selector)

    def _commit(self, events: List[Event]) -> None:
        # persist first so a failed write leaves memory at the last saved state
        self.persist(events)
        self._events = events

    def _require(self) -> List[Event]:
        if self._events is None:
            raise StoreNotInitializedError("RecordStore.init() has not been called")
        return self._events
