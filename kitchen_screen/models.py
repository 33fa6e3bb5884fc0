"""Domain models for kitchen-screen."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from kitchen_screen.constant import DEFAULT_PREP_MINUTES


@dataclass(frozen=True)
class OrderItem:
    """One cart line frozen into an admitted order."""

    name: str
    qty: int


@dataclass(frozen=True)
class Order:
    """An admitted order. Timestamps are epoch milliseconds."""

    id: str
    label: str
    prep_minutes: int
    created_at: int
    ends_at: int
    expires_at: int
    items: tuple[OrderItem, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "label": self.label,
            "prepDurationMinutes": self.prep_minutes,
            "createdAt": self.created_at,
            "endsAt": self.ends_at,
            "expiresAt": self.expires_at,
            "items": [{"name": item.name, "qty": item.qty} for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Order:
        """Rebuild an order from its wire form (see `to_dict`)."""
        raw_items = data.get("items") or []
        return cls(
            id=str(data["id"]),
            label=str(data["label"]),
            prep_minutes=int(data["prepDurationMinutes"]),  # type: ignore[arg-type]
            created_at=int(data["createdAt"]),  # type: ignore[arg-type]
            ends_at=int(data["endsAt"]),  # type: ignore[arg-type]
            expires_at=int(data["expiresAt"]),  # type: ignore[arg-type]
            items=tuple(OrderItem(name=str(it["name"]), qty=int(it["qty"])) for it in raw_items),  # type: ignore[union-attr]
        )


class RejectionReason(str, Enum):
    EMPTY_LABEL = "EmptyLabel"
    EMPTY_CART = "EmptyCart"
    INVALID_DURATION = "InvalidDuration"


@dataclass(frozen=True)
class Rejected:
    """Outcome of a submission that failed validation."""

    reason: RejectionReason


class Step(str, Enum):
    IDLE = "idle"
    AWAITING_LABEL = "awaiting_label"
    AWAITING_DURATION = "awaiting_duration"
    SELECTING_ITEMS = "selecting_items"


@dataclass
class Draft:
    """An order under construction by a single session."""

    step: Step = Step.IDLE
    label: str = ""
    prep_minutes: int = DEFAULT_PREP_MINUTES
    cart: dict[str, int] = field(default_factory=dict)
    active_category: str | None = None

    def reset(self, step: Step = Step.IDLE) -> None:
        self.step = step
        self.label = ""
        self.prep_minutes = DEFAULT_PREP_MINUTES
        self.cart = {}
        self.active_category = None
