"""Capacity- and expiry-bounded order store."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable
from uuid import uuid4

from kitchen_screen.clock import Clock
from kitchen_screen.constant import (
    GRACE_MINUTES,
    MAX_PREP_MINUTES,
    MIN_PREP_MINUTES,
    MS_PER_MINUTE,
    ORDER_CAPACITY,
)
from kitchen_screen.models import Draft, Order, OrderItem, Rejected, RejectionReason

logger = logging.getLogger(__name__)

StoreListener = Callable[[], None]


@dataclass(frozen=True)
class Snapshot:
    """An ordered, read-only view of the store at one version."""

    version: int
    orders: tuple[Order, ...]

    def to_list(self) -> list[dict[str, object]]:
        return [order.to_dict() for order in self.orders]


def validate_draft(draft: Draft) -> RejectionReason | None:
    """Return the first violated admission constraint, if any."""
    if not draft.label.strip():
        return RejectionReason.EMPTY_LABEL
    if not any(isinstance(qty, int) and qty >= 1 for qty in draft.cart.values()):
        return RejectionReason.EMPTY_CART
    minutes = draft.prep_minutes
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        return RejectionReason.INVALID_DURATION
    if not (MIN_PREP_MINUTES <= minutes <= MAX_PREP_MINUTES):
        return RejectionReason.INVALID_DURATION
    return None


class OrderStore:
    """
    Single source of truth for admitted orders.

    `submit` is the only mutation entry point and `snapshot` the only read
    entry point. Both run `normalize` under the store lock, so readers never
    see an order before its final sort position is settled.
    """

    def __init__(self, clock: Clock, capacity: int = ORDER_CAPACITY) -> None:
        self.clock = clock
        self.capacity = capacity
        self._lock = threading.RLock()
        self._orders: list[Order] = []
        self._version = 0
        self._listeners: list[StoreListener] = []

    def add_listener(self, listener: StoreListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def submit(self, draft: Draft) -> Order | Rejected:
        """Admit a draft, or reject it without touching the store."""
        reason = validate_draft(draft)
        if reason is not None:
            logger.info("submit rejected label=%r reason=%s", draft.label, reason.value)
            return Rejected(reason)

        items = tuple(OrderItem(name=name, qty=qty) for name, qty in draft.cart.items() if qty >= 1)
        with self._lock:
            created_at = self.clock.now_ms()
            ends_at = created_at + draft.prep_minutes * MS_PER_MINUTE
            order = Order(
                id=uuid4().hex,
                label=draft.label.strip(),
                prep_minutes=draft.prep_minutes,
                created_at=created_at,
                ends_at=ends_at,
                expires_at=ends_at + GRACE_MINUTES * MS_PER_MINUTE,
                items=items,
            )
            self._orders.insert(0, order)
            self._normalize_unlocked(created_at)
            self._version += 1

        logger.info(
            "order admitted id=%s label=%r prep_minutes=%d items=%d",
            order.id,
            order.label,
            order.prep_minutes,
            len(order.items),
        )
        self._notify()
        return order

    def normalize(self) -> bool:
        """Evict expired orders, sort by recency and truncate to capacity."""
        with self._lock:
            changed = self._normalize_unlocked(self.clock.now_ms())
            if changed:
                self._version += 1
        if changed:
            self._notify()
        return changed

    def snapshot(self) -> tuple[Order, ...]:
        return self.versioned_snapshot().orders

    def versioned_snapshot(self) -> Snapshot:
        with self._lock:
            now = self.clock.now_ms()
            changed = self._normalize_unlocked(now)
            if changed:
                self._version += 1
            snap = Snapshot(version=self._version, orders=tuple(self._orders))
        if changed:
            self._notify()
        return snap

    def _normalize_unlocked(self, now: int) -> bool:
        before = [order.id for order in self._orders]
        kept = [order for order in self._orders if order.expires_at > now]
        # Stable sort: orders created in the same millisecond keep head-insertion order.
        kept.sort(key=lambda order: order.created_at, reverse=True)
        kept = kept[: self.capacity]
        after = [order.id for order in kept]
        self._orders = kept
        if after == before:
            return False

        dropped = set(before) - set(after)
        if dropped:
            logger.debug("normalize dropped=%d retained=%d now=%d", len(dropped), len(after), now)
        return True

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("store listener failed")
