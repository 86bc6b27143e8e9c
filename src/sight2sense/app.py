"""Main Textual application for the Sight2Sense electronics mentor."""

from __future__ import annotations

import logging
from pathlib import Path
import sys
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, VerticalScroll
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Markdown,
    OptionList,
    Select,
    Static,
)

from .attachments import load_image
from .config import load_config, resolve_api_key
from .exceptions import AttachmentError
from .insight import InsightClient
from .logging_utils import configure_logging
from .models import Conversation, Role, SkillLevel, Turn
from .screens import ImageAttachScreen
from .session import ChatSession
from .suggestions import pick_starter_questions

LOGGER = logging.getLogger(__name__)

_SKILL_LEVELS: tuple[SkillLevel, ...] = tuple(SkillLevel)


class Sight2SenseApp(App[None]):
    """Single-window chat with a multimodal electronics troubleshooting mentor."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        height: 1fr;
    }

    #conversation {
        height: 1fr;
        padding: 0 1;
    }

    #suggestions {
        height: auto;
        max-height: 9;
        margin: 0 1;
        border: round $panel;
    }

    #controls, #composer {
        height: auto;
        padding: 0 1;
    }

    #skill_select {
        width: 28;
    }

    #message_input {
        width: 1fr;
    }

    #status_line {
        height: 1;
        padding: 0 2;
        color: $text-muted;
    }

    #status_line.error {
        color: $error;
    }

    .message {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
        height: auto;
    }

    .message-user {
        margin-left: 8;
        background: $primary 30%;
    }

    .message-model {
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "attach_image": "Attach",
        "analyze_image": "Analyze",
        "cycle_skill_level": "Skill",
        "reset_session": "Reset",
        "quit": "Quit",
    }

    def __init__(
        self,
        config: dict[str, dict[str, Any]] | None = None,
        session: ChatSession | None = None,
    ) -> None:
        self.config = config or load_config()
        configure_logging(self.config["logging"])
        LOGGER.info(
            "app.python",
            extra={
                "event": "app.python",
                "executable": sys.executable,
                "version": sys.version.split()[0],
            },
        )
        gemini_cfg = self.config["gemini"]
        if session is None:
            client = InsightClient(
                api_key=resolve_api_key(),
                model=str(gemini_cfg["model"]),
                temperature=float(gemini_cfg["temperature"]),
                top_p=float(gemini_cfg["top_p"]),
            )
            session = ChatSession(
                client, skill_level=SkillLevel.parse(gemini_cfg["skill_level"])
            )
        self.session = session
        if not self.session.client.has_credential:
            LOGGER.error(
                "app.credential.missing",
                extra={"event": "app.credential.missing"},
            )

        self._binding_specs = self._binding_specs_from_config(self.config)
        self._suggestions = pick_starter_questions(
            int(self.config["ui"]["starter_question_count"])
        )
        self._staged_name: str = ""
        self._rendered_turns = 0
        self._rendered_generation = self.session.store.generation
        super().__init__()

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name, description in cls.DEFAULT_ACTION_DESCRIPTIONS.items():
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=description,
                        show=True,
                    )
                )
        return bindings

    def compose(self) -> ComposeResult:
        """Compose app widgets."""
        yield Header()
        with Container(id="app-root"):
            yield VerticalScroll(id="conversation")
            yield OptionList(*self._suggestions, id="suggestions")
            with Horizontal(id="controls"):
                yield Select(
                    [(level.value, level) for level in _SKILL_LEVELS],
                    value=self.session.skill_level,
                    allow_blank=False,
                    id="skill_select",
                )
                yield Button("Add image", id="attach_button")
                yield Button("Analyze image", id="analyze_button")
                yield Button("Reset", id="reset_button", variant="warning")
            with Horizontal(id="composer"):
                yield Input(
                    placeholder="Ask about components, faults, or GPCS design...",
                    id="message_input",
                )
                yield Button("Send", id="send_button", variant="primary")
            yield Static("", id="status_line", markup=False)
        yield Footer()

    async def on_mount(self) -> None:
        """Register runtime keybindings and render the empty conversation."""
        self.title = str(self.config["app"]["title"])
        self.sub_title = str(self.config["app"]["subtitle"])
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
            )
        self.session.on_change(self._render_conversation)
        self._render_conversation(self.session.conversation)
        if not self.session.client.has_credential:
            self.notify(
                "GEMINI_API_KEY is missing. Requests will fail until it is set.",
                severity="error",
                timeout=10,
            )
        self.query_one("#message_input", Input).focus()

    async def on_unmount(self) -> None:
        await self.session.client.aclose()

    def _build_bubble(self, turn: Turn) -> Static | Markdown:
        stamp = ""
        if self.config["ui"]["show_timestamps"]:
            stamp = turn.timestamp.astimezone().strftime("%H:%M")
        if turn.role == Role.MODEL:
            body = f"{turn.text}\n\n*{stamp}*" if stamp else turn.text
            return Markdown(body, classes="message message-model")
        lines = [turn.text]
        if turn.image is not None:
            lines.append(f"[image: {turn.image.mime_type}, {turn.image.size} bytes]")
        if stamp:
            lines.append(stamp)
        return Static("\n".join(lines), classes="message message-user", markup=False)

    def _render_conversation(self, conversation: Conversation) -> None:
        view = self.query_one("#conversation", VerticalScroll)
        if conversation.generation != self._rendered_generation:
            view.remove_children()
            self._rendered_turns = 0
            self._rendered_generation = conversation.generation
        new_turns = conversation.turns[self._rendered_turns :]
        if new_turns:
            view.mount(*(self._build_bubble(turn) for turn in new_turns))
        self._rendered_turns = len(conversation.turns)
        view.scroll_end(animate=False)

        self.query_one("#suggestions", OptionList).display = (
            conversation.is_empty and not conversation.pending
        )
        self.query_one("#message_input", Input).disabled = conversation.pending
        self.query_one("#send_button", Button).disabled = conversation.pending
        self.query_one("#analyze_button", Button).disabled = conversation.pending
        self._update_status_line(conversation)

    def _update_status_line(self, conversation: Conversation) -> None:
        status = self.query_one("#status_line", Static)
        status.set_class(bool(conversation.error), "error")
        if conversation.pending:
            status.update("Analyzing...")
        elif conversation.error:
            status.update(f"Error: {conversation.error}")
        elif self.session.store.staged_image is not None:
            status.update(f"Image staged: {self._staged_name}")
        else:
            status.update(f"Skill level: {self.session.skill_level.value}")

    def _dispatch_submit(self, text: str | None = None) -> None:
        if self.session.store.pending:
            return
        if self.session.store.staged_image is not None:
            self._staged_name = ""
        self.run_worker(self.session.submit(text), group="inference", exit_on_error=False)

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "message_input":
            return
        text = event.value
        event.input.value = ""
        self._dispatch_submit(text)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "send_button":
            input_widget = self.query_one("#message_input", Input)
            text = input_widget.value
            input_widget.value = ""
            self._dispatch_submit(text)
        elif button_id == "attach_button":
            await self.action_attach_image()
        elif button_id == "analyze_button":
            await self.action_analyze_image()
        elif button_id == "reset_button":
            await self.action_reset_session()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_list.id != "suggestions":
            return
        index = event.option_index
        if 0 <= index < len(self._suggestions):
            self._dispatch_submit(self._suggestions[index])

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "skill_select" or event.value is Select.BLANK:
            return
        level = self.session.set_skill_level(event.value)
        LOGGER.info(
            "app.skill_level.changed",
            extra={"event": "app.skill_level.changed", "skill_level": level.value},
        )
        self._update_status_line(self.session.conversation)

    async def action_attach_image(self) -> None:
        self.push_screen(ImageAttachScreen(), callback=self._on_image_dismissed)

    def _on_image_dismissed(self, path: str | None) -> None:
        if not path:
            return
        try:
            image = load_image(path, max_bytes=int(self.config["ui"]["max_image_bytes"]))
        except AttachmentError as exc:
            LOGGER.warning(
                "app.attachment.validation_failed",
                extra={"event": "app.attachment.validation_failed", "error": str(exc)},
            )
            self.notify(str(exc), severity="warning")
            return
        self.session.store.stage_image(image)
        self._staged_name = Path(path).name
        self._update_status_line(self.session.conversation)

    async def action_analyze_image(self) -> None:
        """Run the automated safety and component check on the staged image."""
        image = self.session.store.staged_image
        if image is None:
            self.notify("Add an image first.", severity="warning")
            return
        if self.session.store.pending:
            return
        self._staged_name = ""
        self.run_worker(
            self.session.analyze_image(image), group="inference", exit_on_error=False
        )

    async def action_cycle_skill_level(self) -> None:
        current = _SKILL_LEVELS.index(self.session.skill_level)
        self.query_one("#skill_select", Select).value = _SKILL_LEVELS[
            (current + 1) % len(_SKILL_LEVELS)
        ]

    async def action_reset_session(self) -> None:
        """Clear the conversation; a late answer to an earlier request is dropped."""
        self._staged_name = ""
        self.session.reset()
        self._suggestions = pick_starter_questions(
            int(self.config["ui"]["starter_question_count"])
        )
        options = self.query_one("#suggestions", OptionList)
        options.clear_options()
        options.add_options(self._suggestions)
        self.sub_title = str(self.config["app"]["subtitle"])
