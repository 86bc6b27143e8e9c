"""Modal screens used by the Sight2Sense app."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Input, Static

from .attachments import IMAGE_EXTENSIONS


class ImageAttachScreen(ModalScreen[str | None]):
    """Collect the path of a circuit or PCB photo to stage for the next message."""

    CSS = """
    ImageAttachScreen {
        align: center middle;
    }

    #image-attach-dialog {
        width: 64;
        padding: 1 3;
        border: round $panel;
        background: $surface;
    }

    #image-attach-title {
        padding-bottom: 1;
        text-style: bold;
    }

    #image-attach-input {
        width: 100%;
        margin: 1 0;
    }

    #image-attach-help {
        padding-top: 1;
        text-align: center;
    }
    """

    def compose(self) -> ComposeResult:
        with Container(id="image-attach-dialog"):
            yield Static("Add circuit image", id="image-attach-title")
            yield Input(
                placeholder="Path to a photo of your board or schematic...",
                id="image-attach-input",
            )
            yield Static(
                f"{' '.join(sorted(IMAGE_EXTENSIONS))}\nEnter to confirm  |  Esc to cancel",
                id="image-attach-help",
            )

    def on_mount(self) -> None:
        self.query_one("#image-attach-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "image-attach-input":
            return
        event.stop()
        value = event.value.strip()
        self.dismiss(value if value else None)

    def on_key(self, event: Any) -> None:  # noqa: ANN401
        if str(getattr(event, "key", "")).lower() == "escape":
            self.dismiss(None)
