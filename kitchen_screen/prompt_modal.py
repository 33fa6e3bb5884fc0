"""Single-line text entry modal for the order label and prep time."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


class PromptModal(ModalScreen[str | None]):
    """Prompt for one line of text; dismisses with the text or None."""

    CSS = """
    PromptModal {
        align: center middle;
    }

    #prompt-dialog {
        width: 56;
        height: auto;
        border: round $accent;
        padding: 1 2;
    }

    #prompt-value {
        border: tall $accent;
        margin: 1 0;
    }

    #prompt-error {
        color: $error;
    }
    """

    def __init__(self, title: str, prompt: str, digits_only: bool = False, max_length: int = 32) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.digits_only = digits_only
        self.max_length = max_length
        self.value = ""
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(f"[b]{self.title_text}[/b]\n{self.prompt_text}", id="prompt-text")
            yield Static(id="prompt-value")
            yield Static(id="prompt-error")
            yield Static("Enter: OK  Esc: cancel", classes="hint")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        key = event.key
        if key in {"escape", "ctrl+c"} or (key == "enter" and self.value.strip()):
            event.stop()
            self.dismiss(None if key != "enter" else self.value)
            return
        if key == "enter":
            self.error = "A value is required."
        elif key == "backspace":
            self.value = self.value[:-1]
            self.error = ""
        elif event.is_printable and event.character:
            accepted = event.character.isdigit() or not self.digits_only
            if accepted and len(self.value) < self.max_length:
                self.value += event.character
                self.error = ""
        else:
            return
        event.stop()
        self._refresh_content()

    def _refresh_content(self) -> None:
        self.query_one("#prompt-value", Static).update(self.value)
        self.query_one("#prompt-error", Static).update(self.error)
