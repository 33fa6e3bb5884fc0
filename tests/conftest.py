from __future__ import annotations

import pytest

from kitchen_screen.broadcast import BroadcastChannel
from kitchen_screen.clock import FixedClock
from kitchen_screen.data import CATALOG
from kitchen_screen.models import Draft, Step
from kitchen_screen.session import CompositionSession
from kitchen_screen.store import OrderStore

T0 = 1_700_000_000_000
MINUTE = 60_000


def make_draft(label: str = "GF-254", minutes: int = 20, cart: dict[str, int] | None = None) -> Draft:
    return Draft(
        step=Step.SELECTING_ITEMS,
        label=label,
        prep_minutes=minutes,
        cart=dict(cart if cart is not None else {"Борщ": 1}),
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def store(clock: FixedClock) -> OrderStore:
    return OrderStore(clock)


@pytest.fixture
def channel(store: OrderStore):
    channel = BroadcastChannel(store)
    yield channel
    channel.close()


@pytest.fixture
def session_factory(store: OrderStore):
    def factory(user_id: str = "100") -> CompositionSession:
        return CompositionSession(user_id, store, CATALOG, public_url="http://tv.local")

    return factory
