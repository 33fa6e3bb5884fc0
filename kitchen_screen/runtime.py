"""Wiring of the in-process core: clock, store, channel and sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from kitchen_screen import config
from kitchen_screen.broadcast import BroadcastChannel, PeriodicNormalizer
from kitchen_screen.clock import Clock, SystemClock
from kitchen_screen.data import CATALOG, Catalog
from kitchen_screen.session import CompositionService, CompositionSession, SessionRegistry, allow_listed
from kitchen_screen.store import OrderStore


@dataclass
class KitchenRuntime:
    clock: Clock
    store: OrderStore
    channel: BroadcastChannel
    registry: SessionRegistry
    service: CompositionService
    normalizer: PeriodicNormalizer

    def start(self) -> None:
        self.normalizer.start()

    def stop(self) -> None:
        self.normalizer.stop()
        self.channel.close()


def build_runtime(
    clock: Clock | None = None,
    catalog: Catalog = CATALOG,
    is_allowed: Callable[[str], bool] | None = None,
    public_url: str = config.PUBLIC_URL,
    normalize_interval_seconds: float = config.NORMALIZE_INTERVAL_SECONDS,
    session_ttl_seconds: float = config.SESSION_IDLE_TTL_SECONDS,
) -> KitchenRuntime:
    """Build a runtime; the background normalizer starts only on `start()`."""
    clock = clock or SystemClock()
    store = OrderStore(clock)
    channel = BroadcastChannel(store)
    registry = SessionRegistry(
        factory=lambda user_id: CompositionSession(user_id, store, catalog, public_url=public_url),
        ttl_seconds=session_ttl_seconds,
        clock=clock,
    )
    service = CompositionService(registry, is_allowed or allow_listed(config.MANAGER_IDS))
    normalizer = PeriodicNormalizer(store, normalize_interval_seconds, sweepers=[registry.sweep_idle])
    return KitchenRuntime(
        clock=clock,
        store=store,
        channel=channel,
        registry=registry,
        service=service,
        normalizer=normalizer,
    )
