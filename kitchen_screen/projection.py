"""Pure order -> display record projection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from kitchen_screen.constant import MS_PER_MINUTE, NORMAL_ABOVE_MINUTES, WARNING_ABOVE_MINUTES
from kitchen_screen.models import Order


class UrgencyTier(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DisplayRecord:
    """What the screen shows for one order at one instant."""

    order: Order
    remaining_ms: int
    urgency: UrgencyTier
    visible: bool

    @property
    def finished(self) -> bool:
        return self.remaining_ms <= 0


def urgency_for(remaining_ms: int) -> UrgencyTier:
    remaining_minutes = remaining_ms / MS_PER_MINUTE
    if remaining_minutes > NORMAL_ABOVE_MINUTES:
        return UrgencyTier.NORMAL
    if remaining_minutes > WARNING_ABOVE_MINUTES:
        return UrgencyTier.WARNING
    return UrgencyTier.CRITICAL


def project(order: Order, now: int) -> DisplayRecord:
    remaining_ms = max(0, order.ends_at - now)
    return DisplayRecord(
        order=order,
        remaining_ms=remaining_ms,
        urgency=urgency_for(remaining_ms),
        visible=order.expires_at > now,
    )


def project_visible(orders: tuple[Order, ...] | list[Order], now: int) -> list[DisplayRecord]:
    """Project a snapshot, keeping only orders still visible at `now`."""
    records = [project(order, now) for order in orders]
    return [record for record in records if record.visible]


def format_countdown(remaining_ms: int) -> str:
    """Format milliseconds as m:ss, clamped at 0:00."""
    seconds = max(0, remaining_ms // 1000)
    return f"{seconds // 60}:{seconds % 60:02d}"
