"""Conversation data model: turns, skill levels and image payloads."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import mimetypes
from pathlib import Path

from .exceptions import AttachmentError

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


class Role(str, Enum):
    """Speaker of a turn."""

    USER = "user"
    MODEL = "model"


class SkillLevel(str, Enum):
    """Explanation depth requested from the model."""

    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @classmethod
    def parse(cls, value: str | SkillLevel) -> SkillLevel:
        """Resolve a skill level from an enum member or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for level in cls:
            if level.value.lower() == normalized or level.name.lower() == normalized:
                return level
        raise ValueError(f"Unknown skill level {value!r}.")


@dataclass(frozen=True)
class ImagePayload:
    """Opaque image bytes plus the media type declared to the model."""

    data: bytes
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE

    @classmethod
    def from_data_url(cls, value: str) -> ImagePayload:
        """Decode a ``data:<mime>;base64,<body>`` URL or a bare base64 string."""
        header, sep, body = value.partition(",")
        mime_type = DEFAULT_IMAGE_MIME_TYPE
        if sep:
            declared = header.removeprefix("data:").split(";", 1)[0].strip()
            if declared:
                mime_type = declared
        else:
            body = header
        try:
            data = base64.b64decode(body.strip(), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise AttachmentError(f"Image data is not valid base64: {exc}") from exc
        return cls(data=data, mime_type=mime_type)

    @classmethod
    def from_path(cls, path: Path) -> ImagePayload:
        """Read an image from disk, guessing the media type from its extension."""
        guessed, _ = mimetypes.guess_type(path.name)
        mime_type = guessed if guessed and guessed.startswith("image/") else None
        return cls(data=path.read_bytes(), mime_type=mime_type or DEFAULT_IMAGE_MIME_TYPE)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Turn:
    """One immutable message in the conversation."""

    id: int
    role: Role
    text: str
    image: ImagePayload | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Conversation:
    """Read-only view of the conversation state."""

    turns: tuple[Turn, ...] = ()
    pending: bool = False
    error: str | None = None
    generation: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.turns
