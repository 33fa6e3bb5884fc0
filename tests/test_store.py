from __future__ import annotations

import threading

from kitchen_screen.models import Order, Rejected, RejectionReason
from kitchen_screen.store import OrderStore, validate_draft

from conftest import MINUTE, T0, make_draft


class TestSubmit:
    def test_reference_order_timestamps(self, store):
        order = store.submit(make_draft("GF-254", 20, {"Борщ": 1, "Хлеб": 2}))

        assert isinstance(order, Order)
        assert order.created_at == T0
        assert order.ends_at == T0 + 1_200_000
        assert order.expires_at == T0 + 1_500_000
        assert [(item.name, item.qty) for item in order.items] == [("Борщ", 1), ("Хлеб", 2)]
        assert store.snapshot() == (order,)

    def test_reference_order_disappears_after_grace(self, store, clock):
        store.submit(make_draft("GF-254", 20, {"Борщ": 1, "Хлеб": 2}))

        clock.set(T0 + 1_499_999)
        assert len(store.snapshot()) == 1
        clock.set(T0 + 1_500_000)
        assert store.snapshot() == ()

        clock.set(T0 + 1_500_001)
        assert store.snapshot() == ()

    def test_label_is_trimmed(self, store):
        order = store.submit(make_draft("  A-7  "))
        assert order.label == "A-7"

    def test_ids_are_unique(self, store):
        first = store.submit(make_draft("A"))
        second = store.submit(make_draft("B"))
        assert first.id != second.id

    def test_empty_cart_rejected_without_mutation(self, store):
        store.submit(make_draft("A"))
        before = store.snapshot()
        version = store.version

        result = store.submit(make_draft("B", cart={}))

        assert result == Rejected(RejectionReason.EMPTY_CART)
        assert store.snapshot() == before
        assert store.version == version

    def test_zero_quantities_count_as_empty_cart(self, store):
        assert store.submit(make_draft(cart={"Борщ": 0})) == Rejected(RejectionReason.EMPTY_CART)

    def test_blank_label_rejected(self, store):
        assert store.submit(make_draft("   ")) == Rejected(RejectionReason.EMPTY_LABEL)
        assert store.snapshot() == ()

    def test_duration_bounds(self, store):
        assert store.submit(make_draft(minutes=0)) == Rejected(RejectionReason.INVALID_DURATION)
        assert store.submit(make_draft(minutes=241)) == Rejected(RejectionReason.INVALID_DURATION)
        assert isinstance(store.submit(make_draft(minutes=240)), Order)
        assert isinstance(store.submit(make_draft(minutes=1)), Order)

    def test_validate_draft_reports_first_failure(self):
        assert validate_draft(make_draft("", 0, {})) == RejectionReason.EMPTY_LABEL
        assert validate_draft(make_draft("A", 0, {})) == RejectionReason.EMPTY_CART
        assert validate_draft(make_draft("A", 0)) == RejectionReason.INVALID_DURATION
        assert validate_draft(make_draft("A", 10)) is None


class TestNormalize:
    def test_capacity_keeps_ten_most_recent(self, store, clock):
        admitted = []
        for idx in range(11):
            admitted.append(store.submit(make_draft(f"N-{idx}")))
            clock.advance(1000)

        snap = store.snapshot()

        assert len(snap) == 10
        assert admitted[0] not in snap
        assert [order.label for order in snap] == [f"N-{idx}" for idx in range(10, 0, -1)]

    def test_snapshot_is_sorted_by_recency(self, store, clock):
        for idx in range(5):
            store.submit(make_draft(f"N-{idx}", minutes=30 - idx))
            clock.advance(MINUTE)

        created = [order.created_at for order in store.snapshot()]
        assert created == sorted(created, reverse=True)

    def test_expiry_bound(self, store, clock):
        store.submit(make_draft("short", minutes=1))
        store.submit(make_draft("long", minutes=60))

        clock.advance(6 * MINUTE)
        now = clock.now_ms()
        snap = store.snapshot()

        assert [order.label for order in snap] == ["long"]
        assert all(order.expires_at > now for order in snap)

    def test_normalize_is_idempotent(self, store, clock):
        store.submit(make_draft("short", minutes=1))
        store.submit(make_draft("long", minutes=60))
        clock.advance(6 * MINUTE)

        assert store.normalize() is True
        first = store.snapshot()
        assert store.normalize() is False
        assert store.snapshot() == first

    def test_normalize_without_change_reports_false(self, store):
        store.submit(make_draft())
        assert store.normalize() is False

    def test_capacity_holds_under_concurrent_submissions(self, store):
        def worker(prefix: str) -> None:
            for idx in range(10):
                store.submit(make_draft(f"{prefix}-{idx}"))

        threads = [threading.Thread(target=worker, args=(f"T{n}",)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snap = store.snapshot()
        assert len(snap) == 10
        assert len({order.id for order in snap}) == 10


class TestListeners:
    def test_listener_called_once_per_submission(self, store):
        calls = []
        store.add_listener(lambda: calls.append(store.version))

        store.submit(make_draft("A"))
        store.submit(make_draft("B", cart={}))

        assert calls == [1]

    def test_listener_called_when_normalize_evicts(self, store, clock):
        store.submit(make_draft("A", minutes=1))
        calls = []
        store.add_listener(lambda: calls.append("changed"))

        assert store.normalize() is False
        assert calls == []

        clock.advance(6 * MINUTE)
        assert store.normalize() is True
        assert calls == ["changed"]

    def test_failing_listener_does_not_break_submission(self, store):
        def boom() -> None:
            raise RuntimeError("listener down")

        store.add_listener(boom)
        assert isinstance(store.submit(make_draft()), Order)

    def test_removed_listener_is_not_called(self, store):
        calls = []

        def listener() -> None:
            calls.append(1)

        store.add_listener(listener)
        store.remove_listener(listener)
        store.submit(make_draft())
        assert calls == []

    def test_capacity_can_be_configured(self, clock):
        small = OrderStore(clock, capacity=2)
        for label in ("A", "B", "C"):
            small.submit(make_draft(label))
            clock.advance(1)
        assert [order.label for order in small.snapshot()] == ["C", "B"]

    def test_versioned_snapshot_matches_store(self, store):
        order = store.submit(make_draft("A"))

        snap = store.versioned_snapshot()

        assert snap.version == store.version == 1
        assert snap.orders == (order,)
        assert [row["label"] for row in snap.to_list()] == ["A"]
