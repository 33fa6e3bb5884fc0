"""Console composer: a local operator terminal that drives a composition session."""

from __future__ import annotations

import logging

from rich.text import Text as RichText
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from kitchen_screen.constant import TEXTS
from kitchen_screen.models import Step
from kitchen_screen.prompt_modal import PromptModal
from kitchen_screen.rendering import choice_labels, format_composer
from kitchen_screen.session import (
    AddItem,
    Clear,
    ComposerView,
    CompositionService,
    Intent,
    OpenCategory,
    RemoveItem,
    Reply,
    ReplyStatus,
    Restart,
    ShowCart,
    ShowCategories,
    Start,
    Submit,
    Text,
    ViewKind,
)

logger = logging.getLogger(__name__)


class ComposerApp(App):
    """A Textual app for composing kitchen orders and sending them to the screen."""

    TITLE = "Kitchen Composer"
    SUB_TITLE = "Новый заказ"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #draft-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #choices-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #status-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #choices {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #draft {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    selected_index = reactive(0)

    BINDINGS = [
        Binding("ctrl+s", "submit", "Send to screen", priority=True),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, service: CompositionService, user_id: str = "console") -> None:
        super().__init__()
        self.service = service
        self.user_id = user_id
        self.current_view: ComposerView | None = None
        self.system_status = TEXTS["press_new"]

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="draft-pane"):
                yield Static("Заказ", classes="pane-title")
                yield Static(id="draft")
            with Vertical(id="choices-pane"):
                yield Static(id="status-bar")
                yield Static(id="choices")

    def on_mount(self) -> None:
        self._refresh_all()

    def on_key(self, event: Key) -> None:
        # While a prompt is open, the modal owns keyboard handling.
        if isinstance(self.screen, PromptModal):
            return

        if event.key in {"up", "down"}:
            self.action_cycle_choices(-1 if event.key == "up" else 1)
            event.stop()
            return

        if event.key == "enter":
            self.action_activate_selected()
            event.stop()
            return

        if not event.is_printable or not event.character:
            return

        key = event.character.lower()
        intents: dict[str, Intent] = {
            "b": ShowCategories(),
            "x": ShowCart(),
            "c": Clear(),
        }
        if key == "j":
            self.action_cycle_choices(1)
        elif key == "k":
            self.action_cycle_choices(-1)
        elif key == "n":
            self.send(Start())
            self._prompt_label()
        elif key == "e":
            reply = self.send(Restart())
            if reply.status == ReplyStatus.OK:
                self._prompt_label()
        elif key in intents:
            self.send(intents[key])
        else:
            return
        event.stop()

    def send(self, intent: Intent) -> Reply:
        reply = self.service.handle(self.user_id, intent)
        if reply.view is not None:
            previous = self.current_view
            if previous is None or (reply.view.kind, reply.view.category) != (previous.kind, previous.category):
                self.selected_index = 0
            self.current_view = reply.view
        self.system_status = reply.text
        self._refresh_all()
        return reply

    def action_cycle_choices(self, delta: int) -> None:
        if isinstance(self.screen, PromptModal):
            return
        labels = self._choice_labels()
        if not labels:
            self.selected_index = 0
            return
        self.selected_index = (self.selected_index + delta) % len(labels)
        self._refresh_choices()

    def action_activate_selected(self) -> None:
        if isinstance(self.screen, PromptModal) or self.current_view is None:
            return

        if self.current_view.kind == ViewKind.PROMPT:
            self._reopen_prompt()
            return

        labels = self._choice_labels()
        if not labels:
            return
        idx = min(self.selected_index, len(labels) - 1)
        if self.current_view.kind == ViewKind.CATEGORIES:
            self.send(OpenCategory(self.current_view.categories[idx].key))
        elif self.current_view.kind == ViewKind.ITEMS and self.current_view.category is not None:
            self.send(AddItem(self.current_view.category.items[idx]))
        elif self.current_view.kind == ViewKind.REMOVAL:
            self.send(RemoveItem(self.current_view.cart[idx].name))

    def action_submit(self) -> None:
        if isinstance(self.screen, PromptModal):
            return
        reply = self.send(Submit())
        if reply.order is not None:
            logger.info("composer submitted order id=%s label=%r", reply.order.id, reply.order.label)

    def _reopen_prompt(self) -> None:
        if self.current_view is None:
            return
        if self.current_view.step == Step.AWAITING_LABEL:
            self._prompt_label()
        elif self.current_view.step == Step.AWAITING_DURATION:
            self._prompt_duration()

    def _prompt_label(self) -> None:
        self.push_screen(PromptModal("Номер заказа", TEXTS["ask_label"]), self._on_label_entered)

    def _prompt_duration(self) -> None:
        self.push_screen(
            PromptModal("Время приготовления", TEXTS["ask_duration"], digits_only=True, max_length=3),
            self._on_duration_entered,
        )

    def _on_label_entered(self, value: str | None) -> None:
        if value is None:
            return
        reply = self.send(Text(value))
        if reply.view is not None and reply.view.step == Step.AWAITING_DURATION:
            self._prompt_duration()

    def _on_duration_entered(self, value: str | None) -> None:
        if value is None:
            return
        reply = self.send(Text(value))
        if reply.status == ReplyStatus.ERROR:
            self._prompt_duration()

    def _choice_labels(self) -> list[str]:
        if self.current_view is None:
            return []
        return choice_labels(self.current_view)

    def _refresh_all(self) -> None:
        self._refresh_draft()
        self._refresh_status()
        self._refresh_choices()

    def _refresh_draft(self) -> None:
        try:
            draft_widget = self.query_one("#draft", Static)
        except NoMatches:
            return
        if self.current_view is None or self.current_view.step == Step.IDLE:
            draft_widget.update("(нет заказа)")
            return
        draft_widget.update(format_composer(self.current_view))

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        text = RichText()
        text.append(self.system_status or "Ready")
        text.append("\nN новый · B категории · X убрать · C очистить · E заново · Ctrl+S отправить", style="dim")
        bar.update(text)

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            start = max(0, selected - rows // 2)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_choices(self) -> None:
        try:
            choices_widget = self.query_one("#choices", Static)
        except NoMatches:
            return
        labels = self._choice_labels()
        if not labels:
            choices_widget.update("")
            return

        if self.selected_index >= len(labels):
            self.selected_index = 0

        start, end = self._window_bounds(len(labels), self._visible_rows(choices_widget), self.selected_index)

        lines = RichText()
        if start > 0:
            lines.append("⋮\n", style="dim")

        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(f"{pointer}{labels[idx]}")

        if end < len(labels):
            lines.append("\n⋮", style="dim")

        choices_widget.update(lines)
