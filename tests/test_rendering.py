from __future__ import annotations

from kitchen_screen.constant import TEXTS
from kitchen_screen.models import OrderItem
from kitchen_screen.projection import UrgencyTier, project
from kitchen_screen.rendering import NBSP4, cart_summary, choice_labels, format_order_card, urgency_style
from kitchen_screen.session import AddItem, OpenCategory, ShowCart, Start, Text

from conftest import MINUTE, T0, make_draft


class TestRendering:
    def test_urgency_colors(self):
        assert "#22c55e" in urgency_style(UrgencyTier.NORMAL)
        assert "#f59e0b" in urgency_style(UrgencyTier.WARNING)
        assert "#ef4444" in urgency_style(UrgencyTier.CRITICAL)

    def test_cart_summary(self):
        assert cart_summary(()) == "— пусто —"
        assert cart_summary((OrderItem("Борщ", 2),)) == f"• Борщ{NBSP4}x2"

    def test_order_card_shows_countdown(self, store):
        order = store.submit(make_draft("GF-254", 20, {"Борщ": 1}))

        card = format_order_card(project(order, T0)).plain

        assert "GF-254" in card
        assert "Борщ  x1" in card
        assert "20:00" in card
        assert TEXTS["done_note"] not in card

    def test_finished_card_has_done_note(self, store):
        order = store.submit(make_draft("GF-254", 20))

        card = format_order_card(project(order, T0 + 21 * MINUTE)).plain

        assert "0:00" in card
        assert TEXTS["done_note"] in card

    def test_choice_labels_follow_view(self, session_factory):
        session = session_factory()
        session.handle(Start())
        assert choice_labels(session.handle(Text("A1")).view) == []

        categories = session.handle(Text("20")).view
        assert choice_labels(categories)[0] == "🍲 Супы"

        items = session.handle(OpenCategory("salads")).view
        assert choice_labels(items) == ["➕ Салат", "➕ Огурец свежий", "➕ Свекольник"]

        session.handle(AddItem("Салат"))
        assert choice_labels(session.handle(ShowCart()).view) == ["➖ Салат (x1)"]
