"""Async Gemini client that turns a conversation turn into one inference request."""

from __future__ import annotations

from collections.abc import Sequence
import logging
import time
from typing import Any

from google import genai

from .exceptions import InsightEngineError, MissingCredentialError
from .models import ImagePayload, Role, SkillLevel, Turn

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_TEMPERATURE = 0.4
DEFAULT_TOP_P = 0.9

NO_RESPONSE_TEXT = "No response generated."
ENGINE_FAILURE_TEXT = "Engine failure."

_SYSTEM_INSTRUCTION_TEMPLATE = """\
You are Sight2Sense, an expert electronics and embedded-systems mentor.
Your goal is to help users troubleshoot, analyze, and design electronic systems, \
circuits, PCBs, and General Purpose Control Systems (GPCS).

CORE PERSONALITY & MENTORSHIP:
- Use beginner-friendly yet technically accurate language.
- Mentor the user as if they are in a lab.
- Explain why each step matters, not just what to do.
- Encourage safe practices and logical reasoning.
- Adapt depth based on user skill level: {skill_level}.

IF THE USER PROVIDES AN IMAGE:
- Analyze visible components, layout, and connections.
- Identify potential issues (short circuits, bad solder joints, polarity risks).
- Suggest safe diagnostic steps based on visual evidence.
- Mandatory Sections:
  ### Safety Check
  ### Component Identification

IF THE USER PROVIDES TEXT ONLY:
- Treat it as a general troubleshooting or design question.
- Guide the user through logical diagnostic steps.
- Explain expected readings and probing techniques.

SPECIFIC SCENARIOS TO HANDLE WELL:
- No power issues
- GPCS architecture explanation
- Input protection identification

MOBILE OPTIMIZATION:
- Short paragraphs
- Bullet points
- Clear summaries

SAFETY FIRST:
- Warn about high voltage and battery risks.
- Encourage datasheet verification.
"""


def build_system_instruction(skill_level: SkillLevel) -> str:
    """Render the mentor persona with the requested skill level embedded."""
    return _SYSTEM_INSTRUCTION_TEMPLATE.format(skill_level=skill_level.value)


def _image_part(image: ImagePayload) -> dict[str, Any]:
    return {"inline_data": {"mime_type": image.mime_type, "data": image.data}}


def build_contents(
    prompt: str,
    history: Sequence[Turn],
    image: ImagePayload | None = None,
) -> list[dict[str, Any]]:
    """Re-express prior turns plus the new user turn as Gemini request contents.

    Images always precede the text part of the turn they belong to.
    """
    contents: list[dict[str, Any]] = []
    for turn in history:
        parts: list[dict[str, Any]] = []
        if turn.image is not None:
            parts.append(_image_part(turn.image))
        parts.append({"text": turn.text})
        role = Role.USER.value if turn.role == Role.USER else Role.MODEL.value
        contents.append({"role": role, "parts": parts})

    current: list[dict[str, Any]] = []
    if image is not None:
        current.append(_image_part(image))
    current.append({"text": prompt})
    contents.append({"role": Role.USER.value, "parts": current})
    return contents


class InsightClient:
    """Single-shot Gemini wrapper: one request in, generated text or one error out."""

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        top_p: float = DEFAULT_TOP_P,
        client: Any | None = None,
    ) -> None:
        self.api_key = (api_key or "").strip()
        self.model = model
        self.temperature = temperature
        self.top_p = top_p
        self._client = client

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def _require_credential(self) -> None:
        if not self.api_key:
            raise MissingCredentialError(
                "GEMINI_API_KEY is missing. Export it before starting Sight2Sense."
            )

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def build_config(self, skill_level: SkillLevel) -> dict[str, Any]:
        """Return the generation config sent alongside the contents."""
        return {
            "system_instruction": build_system_instruction(skill_level),
            "temperature": self.temperature,
            "top_p": self.top_p,
        }

    async def generate(
        self,
        prompt: str,
        history: Sequence[Turn],
        skill_level: SkillLevel,
        image: ImagePayload | None = None,
    ) -> str:
        """Issue exactly one inference request and return the generated text.

        Raises:
            MissingCredentialError: no API key; nothing is sent.
            InsightEngineError: the call failed for any other reason.
        """
        self._require_credential()
        contents = build_contents(prompt, history, image)
        config = self.build_config(skill_level)

        started = time.perf_counter()
        LOGGER.info(
            "insight.request.start",
            extra={
                "event": "insight.request.start",
                "model": self.model,
                "skill_level": skill_level.value,
                "history_turns": len(history),
                "has_image": image is not None,
            },
        )
        try:
            client = self._get_client()
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as exc:  # noqa: BLE001 - every transport failure maps to one error.
            message = str(exc).strip() or ENGINE_FAILURE_TEXT
            LOGGER.warning(
                "insight.request.failed",
                extra={
                    "event": "insight.request.failed",
                    "model": self.model,
                    "error_type": type(exc).__name__,
                    "error": message,
                },
            )
            raise InsightEngineError(message) from exc

        text = getattr(response, "text", None)
        LOGGER.info(
            "insight.request.complete",
            extra={
                "event": "insight.request.complete",
                "model": self.model,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
                "empty": not text,
            },
        )
        return text or NO_RESPONSE_TEXT

    async def aclose(self) -> None:
        """Release the underlying async transport if one was created."""
        if self._client is None:
            return
        await self._client.aio.aclose()
