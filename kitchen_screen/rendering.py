"""Rendering helpers for the composer and the kitchen display."""

from __future__ import annotations

from rich.text import Text

from kitchen_screen.constant import TEXTS
from kitchen_screen.models import OrderItem
from kitchen_screen.projection import DisplayRecord, UrgencyTier, format_countdown
from kitchen_screen.session import ComposerView, ViewKind

NBSP4 = "\u00a0" * 4


def urgency_style(tier: UrgencyTier) -> str:
    """Return the countdown color for an urgency tier."""
    if tier == UrgencyTier.NORMAL:
        return "bold #22c55e"
    if tier == UrgencyTier.WARNING:
        return "bold #f59e0b"
    return "bold #ef4444"


def cart_summary(cart: tuple[OrderItem, ...]) -> str:
    if not cart:
        return "— пусто —"
    return "\n".join(f"• {item.name}{NBSP4}x{item.qty}" for item in cart)


def format_composer(view: ComposerView) -> Text:
    """Render the composer header, cart and current choices."""
    text = Text()
    if view.kind == ViewKind.ITEMS and view.category is not None:
        text.append(f"📂 {view.category.label}\n\n", style="bold")
        text.append(f"Номер: {view.label or '—'} | Время: {view.prep_minutes} мин\n\n")
    else:
        text.append("🧾 Создание заказа\n\n", style="bold")
        text.append(f"Номер: {view.label or '—'}\n")
        text.append(f"Время: {view.prep_minutes} мин\n\n")

    text.append("Корзина:\n")
    text.append(cart_summary(view.cart))
    return text


def choice_labels(view: ComposerView) -> list[str]:
    """Labels for the selectable rows of the current view, in order."""
    if view.kind == ViewKind.ITEMS and view.category is not None:
        return [f"➕ {name}" for name in view.category.items]
    if view.kind == ViewKind.REMOVAL:
        return [f"➖ {item.name} (x{item.qty})" for item in view.cart]
    if view.kind == ViewKind.CATEGORIES:
        return [category.label for category in view.categories]
    return []


def format_order_card(record: DisplayRecord) -> Text:
    """Render one display card: label, prep time, items and countdown."""
    order = record.order
    text = Text()
    text.append(order.label, style="bold")
    text.append(f"   {order.prep_minutes} мин\n\n", style="dim")
    for item in order.items:
        text.append(item.name, style="bold")
        text.append(f"  x{item.qty}\n")
    text.append("\n")
    text.append(format_countdown(record.remaining_ms), style=urgency_style(record.urgency))
    if record.finished:
        text.append(f"\n{TEXTS['done_note']}", style="bold")
    return text
