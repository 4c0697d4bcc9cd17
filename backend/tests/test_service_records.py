"""Tests for RecordStore: ordering, persistence, filtering and recovery."""

import json
import math

import pytest

from models import DiaperEvent, DiaperState, FeedingEvent, RecordFilter
from repo_slots import SlotRepo
from service_records import (
    InvalidAmountError,
    RecordStore,
    StoreNotInitializedError,
    coerce_amount,
    filter_events,
)
from settings import settings


def stored(repo):
    return json.loads(repo.get(settings.storage_key))


class TestAddEvent:
    def test_feeding_with_note_becomes_head(self, store):
        store.add_event("diaper", "dry")
        event = store.add_event("feeding", 120, note="spit up")

        head = store.events[0]
        assert head == event
        assert isinstance(head, FeedingEvent)
        assert head.type == "feeding"
        assert head.amount == 120
        assert head.note == "spit up"
        assert head.id
        assert head.time == "2026/01/02 15:04:05"

    def test_newest_first(self, store):
        wet = store.add_event("diaper", DiaperState.WET)
        feeding = store.add_event("feeding", 90)

        assert store.events == [feeding, wet]
        assert isinstance(store.events[1], DiaperEvent)
        assert store.events[1].status is DiaperState.WET

    def test_length_matches_number_of_adds(self, store):
        added = [store.add_event("feeding", n) for n in (30, 60, 90, 120, 150)]
        assert len(store.events) == 5
        assert store.events == list(reversed(added))

    def test_ids_are_unique(self, store):
        ids = {store.add_event("feeding", 60).id for _ in range(20)}
        assert len(ids) == 20

    def test_note_defaults_to_empty(self, store):
        assert store.add_event("diaper", "both").note == ""
        assert store.add_event("diaper", "both", note=None).note == ""

    def test_amount_from_form_text(self, store):
        assert store.add_event("feeding", " 75.5 ").amount == 75.5

    def test_unknown_diaper_state_rejected(self, store):
        with pytest.raises(ValueError):
            store.add_event("diaper", "soaked")
        assert store.events == []

    def test_unknown_kind_rejected(self, store):
        with pytest.raises(ValueError):
            store.add_event("bath", None)

    def test_add_persists_before_returning(self, store, repo):
        event = store.add_event("feeding", 90, note="好")
        assert stored(repo) == [
            {"id": event.id, "type": "feeding", "time": event.time, "amount": 90.0, "note": "好"}
        ]


class TestInvalidAmount:
    @pytest.mark.parametrize("raw", ["", "abc", None, 0, -10, "inf"])
    def test_sentinel_policy_stores_nan(self, store, repo, raw):
        event = store.add_event("feeding", raw)

        assert math.isnan(event.amount)
        assert stored(repo)[0]["amount"] is None

    def test_sentinel_survives_reload(self, store, repo):
        store.add_event("feeding", "")
        (event,) = RecordStore(repo).init()
        assert math.isnan(event.amount)

    def test_reject_policy_raises(self, store, repo, monkeypatch):
        monkeypatch.setattr(settings, "invalid_amount_policy", "reject")

        with pytest.raises(InvalidAmountError):
            store.add_event("feeding", "abc")
        assert store.events == []
        assert repo.get(settings.storage_key) is None

    def test_coerce_amount_explicit_policy(self):
        assert coerce_amount("120", policy="reject") == 120.0
        assert math.isnan(coerce_amount(True, policy="sentinel"))
        with pytest.raises(InvalidAmountError):
            coerce_amount("", policy="reject")


class TestDeleteEvent:
    def test_delete_leaves_the_rest(self, store):
        wet = store.add_event("diaper", "wet")
        feeding = store.add_event("feeding", 90)

        remaining = store.delete_event(wet.id)

        assert remaining == [feeding]
        assert store.events == [feeding]

    def test_delete_is_idempotent(self, store, repo):
        wet = store.add_event("diaper", "wet")
        store.add_event("feeding", 90)

        once = store.delete_event(wet.id)
        snapshot = repo.get(settings.storage_key)
        twice = store.delete_event(wet.id)

        assert once == twice
        assert repo.get(settings.storage_key) == snapshot

    def test_delete_unknown_id_is_noop(self, store):
        store.add_event("feeding", 90)
        before = store.events
        assert store.delete_event("no-such-id") == before

    def test_delete_persists(self, store, repo):
        event = store.add_event("feeding", 90)
        store.delete_event(event.id)
        assert stored(repo) == []


class TestFilter:
    @pytest.fixture
    def mixed(self, store):
        for value in ("wet", 60, "dirty", 90, "both"):
            store.add_event("diaper" if isinstance(value, str) else "feeding", value)
        return store.events

    def test_all_returns_same_sequence(self, store, mixed):
        assert store.filter(RecordFilter.ALL) == mixed
        assert filter_events(mixed, "all") == mixed
        assert filter_events(mixed, "all") is not mixed

    def test_diaper_only_keeps_order(self, store, mixed):
        result = store.filter("diaper")
        assert [e.status for e in result] == [DiaperState.BOTH, DiaperState.DIRTY, DiaperState.WET]

    def test_feeding_only_keeps_order(self, store, mixed):
        assert [e.amount for e in store.filter("feeding")] == [90, 60]

    def test_partition(self, mixed):
        feeding = filter_events(mixed, RecordFilter.FEEDING)
        diaper = filter_events(mixed, RecordFilter.DIAPER)

        feeding_ids = {e.id for e in feeding}
        diaper_ids = {e.id for e in diaper}
        assert feeding_ids | diaper_ids == {e.id for e in mixed}
        assert not feeding_ids & diaper_ids

    def test_filter_does_not_mutate(self, mixed):
        copy = list(mixed)
        filter_events(mixed, "feeding")
        assert mixed == copy

    def test_scenario_diaper_only(self, store):
        wet = store.add_event("diaper", "wet")
        store.add_event("feeding", 90)
        assert store.filter("diaper") == [wet]

    def test_unknown_selector_rejected(self):
        with pytest.raises(ValueError):
            filter_events([], "bath")


class TestPersistence:
    def test_load_absent_key_is_empty(self, repo):
        assert RecordStore(repo).load() == []

    def test_round_trip(self, store, repo):
        store.add_event("diaper", "wet", note="morning")
        store.add_event("feeding", 110.5)
        seq = store.events

        store.persist(seq)
        assert RecordStore(repo).load() == seq

    def test_new_store_sees_last_snapshot(self, store, repo):
        store.add_event("feeding", 90)
        wet = store.add_event("diaper", "wet")
        store.delete_event(store.events[1].id)

        assert RecordStore(repo).init() == [wet]

    @pytest.mark.parametrize("raw", [
        "not json",
        '{"id": "a"}',
        '[{"type": "feeding"}]',
        '[{"id": "a", "type": "diaper", "time": "t", "status": "soaked"}]',
    ])
    def test_corrupt_snapshot_loads_empty(self, repo, raw):
        repo.set(settings.storage_key, raw)
        store = RecordStore(repo)

        assert store.init() == []
        assert store.events == []

    def test_loads_snapshot_written_by_web_app(self, repo):
        repo.set(settings.storage_key, json.dumps([
            {"id": "b", "type": "diaper", "time": "2026/1/2 下午3:10:00", "status": "wet", "note": ""},
            {"id": "a", "type": "feeding", "time": "2026/1/2 下午3:00:00", "amount": 120, "note": "spit up"},
        ], ensure_ascii=False))

        events = RecordStore(repo).init()

        assert [e.id for e in events] == ["b", "a"]
        assert events[1].amount == 120

    def test_unreadable_storage_file_loads_empty(self, storage_path):
        storage_path.write_bytes(b"this is not an sqlite database" * 100)
        store = RecordStore(SlotRepo())

        assert store.init() == []
        assert store.initialized

    def test_custom_key(self, repo):
        store = RecordStore(repo, key="other-baby")
        store.init()
        store.add_event("feeding", 50)

        assert repo.get("other-baby") is not None
        assert repo.get(settings.storage_key) is None


class TestLifecycle:
    def test_operations_require_init(self, repo):
        store = RecordStore(repo)
        assert not store.initialized
        with pytest.raises(StoreNotInitializedError):
            store.add_event("feeding", 90)
        with pytest.raises(StoreNotInitializedError):
            store.delete_event("a")
        with pytest.raises(StoreNotInitializedError):
            store.filter()

    def test_teardown_releases_state(self, repo):
        store = RecordStore(repo)
        store.init()
        store.teardown()
        with pytest.raises(StoreNotInitializedError):
            _ = store.events
