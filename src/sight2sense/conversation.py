"""In-memory conversation store with pending-gated transitions."""

from __future__ import annotations

from dataclasses import dataclass
import itertools
import logging

from .models import Conversation, ImagePayload, Role, Turn

LOGGER = logging.getLogger(__name__)

IMAGE_ONLY_PLACEHOLDER = "Analyze this image."


@dataclass(frozen=True)
class PendingRequest:
    """Everything the insight client needs for the turn just submitted.

    ``history`` holds the turns strictly before the new user turn; the new
    turn is carried by ``prompt`` and ``image`` instead.
    """

    prompt: str
    history: tuple[Turn, ...]
    image: ImagePayload | None
    generation: int


class ConversationStore:
    """Hold conversation state and apply the legal transitions.

    Every public method performs one synchronous update, so asyncio callers
    never observe a half-applied transition.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._conversation = Conversation()
        self._staged_image: ImagePayload | None = None

    @property
    def turns(self) -> tuple[Turn, ...]:
        return self._conversation.turns

    @property
    def pending(self) -> bool:
        return self._conversation.pending

    @property
    def error(self) -> str | None:
        return self._conversation.error

    @property
    def generation(self) -> int:
        return self._conversation.generation

    @property
    def staged_image(self) -> ImagePayload | None:
        return self._staged_image

    def snapshot(self) -> Conversation:
        """Return the current immutable conversation view."""
        return self._conversation

    def stage_image(self, image: ImagePayload) -> None:
        """Hold an image until the next submission consumes it."""
        self._staged_image = image
        LOGGER.info(
            "conversation.image.staged",
            extra={
                "event": "conversation.image.staged",
                "mime_type": image.mime_type,
                "bytes": image.size,
            },
        )

    def clear_staged_image(self) -> None:
        self._staged_image = None

    def submit(
        self, text: str | None = None, image: ImagePayload | None = None
    ) -> PendingRequest | None:
        """Append a provisional user turn and enter the pending state.

        Returns ``None`` without touching state when there is nothing to send
        or a request is already outstanding.
        """
        prompt = (text or "").strip()
        attached = image if image is not None else self._staged_image
        if not prompt and attached is None:
            return None
        if self._conversation.pending:
            LOGGER.info(
                "conversation.submit.rejected",
                extra={"event": "conversation.submit.rejected", "reason": "pending"},
            )
            return None

        history = self._conversation.turns
        turn = Turn(
            id=next(self._ids),
            role=Role.USER,
            text=prompt or IMAGE_ONLY_PLACEHOLDER,
            image=attached,
        )
        self._conversation = Conversation(
            turns=history + (turn,),
            pending=True,
            error=None,
            generation=self._conversation.generation,
        )
        self._staged_image = None
        LOGGER.info(
            "conversation.submit",
            extra={
                "event": "conversation.submit",
                "turn_id": turn.id,
                "has_image": attached is not None,
                "history_turns": len(history),
            },
        )
        return PendingRequest(
            prompt=turn.text,
            history=history,
            image=attached,
            generation=self._conversation.generation,
        )

    def resolve(self, text: str, generation: int | None = None) -> bool:
        """Append the model's reply and leave the pending state."""
        if not self._accepts_completion(generation, "resolve"):
            return False
        turn = Turn(id=next(self._ids), role=Role.MODEL, text=text)
        self._conversation = Conversation(
            turns=self._conversation.turns + (turn,),
            pending=False,
            error=None,
            generation=self._conversation.generation,
        )
        return True

    def fail(self, message: str, generation: int | None = None) -> bool:
        """Record a failed request without appending a turn."""
        if not self._accepts_completion(generation, "fail"):
            return False
        self._conversation = Conversation(
            turns=self._conversation.turns,
            pending=False,
            error=message,
            generation=self._conversation.generation,
        )
        return True

    def reset(self) -> None:
        """Replace the conversation with an empty one and drop the staged image."""
        self._conversation = Conversation(generation=self._conversation.generation + 1)
        self._staged_image = None
        LOGGER.info(
            "conversation.reset",
            extra={
                "event": "conversation.reset",
                "generation": self._conversation.generation,
            },
        )

    def _accepts_completion(self, generation: int | None, kind: str) -> bool:
        stale = generation is not None and generation != self._conversation.generation
        if stale or not self._conversation.pending:
            LOGGER.info(
                "conversation.completion.ignored",
                extra={
                    "event": "conversation.completion.ignored",
                    "kind": kind,
                    "stale": stale,
                },
            )
            return False
        return True
