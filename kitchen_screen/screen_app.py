"""Read-only kitchen display: pulls the order snapshot and counts down each card."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import httpx
from textual.app import App, ComposeResult
from textual.containers import Grid, Horizontal
from textual.css.query import NoMatches
from textual.widgets import Static

from kitchen_screen.broadcast import TransportFailure
from kitchen_screen.clock import Clock, SystemClock
from kitchen_screen.config import SCREEN_POLL_SECONDS, SCREEN_TICK_SECONDS
from kitchen_screen.constant import ORDER_CAPACITY
from kitchen_screen.models import Order
from kitchen_screen.projection import DisplayRecord, project_visible
from kitchen_screen.rendering import format_order_card

logger = logging.getLogger(__name__)

OrderSource = Callable[[], list[Order]]


def remote_source(base_url: str, timeout: float = 1.5) -> OrderSource:
    """Build a source that pulls `/api/orders` from a running server."""
    url = f"{base_url.rstrip('/')}/api/orders"

    def fetch() -> list[Order]:
        try:
            response = httpx.get(url, headers={"Cache-Control": "no-store"}, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TransportFailure(str(exc)) from exc
        return [Order.from_dict(row) for row in payload]

    return fetch


class KitchenScreenApp(App):
    """A Textual screen showing up to ten live order cards."""

    TITLE = "Kitchen Screen"

    CSS = """
    Screen {
        layout: vertical;
        background: #0b1220;
    }

    #top {
        height: 1;
        padding: 0 1;
    }

    #title {
        width: 1fr;
        text-style: bold;
    }

    #clock {
        width: auto;
        color: $text-muted;
    }

    #status {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }

    #grid {
        layout: grid;
        grid-size: 2;
        grid-gutter: 1;
        padding: 0 1;
        height: 1fr;
    }

    .card {
        border: round #334155;
        background: #111b31;
        padding: 0 1;
        height: 1fr;
    }

    .card.empty {
        border: dashed #1e293b;
        background: #0b1220;
    }
    """

    BINDINGS = [
        ("r", "refresh_orders", "Refresh"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        source: OrderSource,
        clock: Clock | None = None,
        poll_seconds: float = SCREEN_POLL_SECONDS,
        tick_seconds: float = SCREEN_TICK_SECONDS,
    ) -> None:
        super().__init__()
        self.source = source
        self.clock = clock or SystemClock()
        self.poll_seconds = poll_seconds
        self.tick_seconds = tick_seconds
        self.orders: list[Order] = []
        self.visible_records: list[DisplayRecord] = []
        self.status_text = "loading…"

    def compose(self) -> ComposeResult:
        with Horizontal(id="top"):
            yield Static("KITCHEN SCREEN", id="title")
            yield Static(id="clock")
        yield Static(self.status_text, id="status")
        with Grid(id="grid"):
            for idx in range(ORDER_CAPACITY):
                yield Static(id=f"card-{idx}", classes="card empty")

    def on_mount(self) -> None:
        self.set_interval(self.poll_seconds, self.action_refresh_orders)
        self.set_interval(self.tick_seconds, self.tick)
        self.action_refresh_orders()
        self.tick()

    def action_refresh_orders(self) -> None:
        try:
            self.orders = list(self.source())
        except Exception as exc:
            logger.warning("screen fetch failed: %s", exc)
            self.status_text = f"fetch error: {exc}"
        else:
            updated = datetime.now().strftime("%H:%M:%S")
            self.status_text = f"orders: {len(self.orders)} | updated: {updated}"
        self._update_static("#status", self.status_text)

    def tick(self) -> None:
        now = self.clock.now_ms()
        self._update_static("#clock", datetime.fromtimestamp(now / 1000).strftime("%Y-%m-%d %H:%M:%S"))
        # The snapshot may be up to one poll old, so expiry and order are re-derived locally.
        ordered = sorted(self.orders, key=lambda order: order.created_at, reverse=True)
        self.visible_records = project_visible(ordered, now)[:ORDER_CAPACITY]
        self._refresh_cards()

    def _refresh_cards(self) -> None:
        for idx in range(ORDER_CAPACITY):
            try:
                card = self.query_one(f"#card-{idx}", Static)
            except NoMatches:
                return
            if idx < len(self.visible_records):
                card.set_class(False, "empty")
                card.update(format_order_card(self.visible_records[idx]))
            else:
                card.set_class(True, "empty")
                card.update("")

    def _update_static(self, selector: str, value: str) -> None:
        try:
            self.query_one(selector, Static).update(value)
        except NoMatches:
            return
