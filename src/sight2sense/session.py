"""Chat session wiring the conversation store to the insight client."""

from __future__ import annotations

from collections.abc import Callable
import logging

from .conversation import ConversationStore
from .exceptions import Sight2SenseError
from .insight import ENGINE_FAILURE_TEXT, InsightClient
from .models import Conversation, ImagePayload, SkillLevel

LOGGER = logging.getLogger(__name__)

AUTO_ANALYSIS_PROMPT = (
    "Initiate full Safety Check and Component Identification. Be concise for mobile."
)


class ChatSession:
    """Run one submission at a time through the store and the client."""

    def __init__(
        self,
        client: InsightClient,
        store: ConversationStore | None = None,
        skill_level: SkillLevel = SkillLevel.INTERMEDIATE,
    ) -> None:
        self.client = client
        self.store = store or ConversationStore()
        self.skill_level = skill_level
        self._on_change: list[Callable[[Conversation], None]] = []

    def on_change(self, callback: Callable[[Conversation], None]) -> None:
        """Register a callback run after every applied transition."""
        self._on_change.append(callback)

    def _notify(self) -> None:
        snapshot = self.store.snapshot()
        for callback in self._on_change:
            callback(snapshot)

    @property
    def conversation(self) -> Conversation:
        return self.store.snapshot()

    def set_skill_level(self, value: str | SkillLevel) -> SkillLevel:
        self.skill_level = SkillLevel.parse(value)
        return self.skill_level

    async def submit(
        self, text: str | None = None, image: ImagePayload | None = None
    ) -> bool:
        """Send one user turn and apply the outcome to the store.

        Returns False when the store rejected the submission (nothing to send
        or a request already pending).
        """
        request = self.store.submit(text, image)
        if request is None:
            return False
        self._notify()

        try:
            reply = await self.client.generate(
                request.prompt,
                request.history,
                self.skill_level,
                request.image,
            )
        except Sight2SenseError as exc:
            self._apply_failure(str(exc), request.generation, exc)
            return True
        except Exception as exc:  # noqa: BLE001 - the pending turn must always settle.
            self._apply_failure(
                str(exc).strip() or ENGINE_FAILURE_TEXT, request.generation, exc
            )
            return True

        if self.store.resolve(reply, request.generation):
            self._notify()
        return True

    def _apply_failure(self, message: str, generation: int, exc: Exception) -> None:
        applied = self.store.fail(message, generation)
        LOGGER.warning(
            "session.request.failed",
            extra={
                "event": "session.request.failed",
                "error_type": type(exc).__name__,
                "applied": applied,
            },
        )
        if applied:
            self._notify()

    async def analyze_image(self, image: ImagePayload) -> bool:
        """Submit an image with the automated safety and identification prompt."""
        return await self.submit(AUTO_ANALYSIS_PROMPT, image)

    def reset(self) -> None:
        self.store.reset()
        self._notify()
