"""Top-level package for the Sight2Sense electronics troubleshooting chat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import Sight2SenseApp
    from .config import ensure_config_dir, load_config
    from .conversation import ConversationStore, PendingRequest
    from .exceptions import (
        AttachmentError,
        ConfigValidationError,
        InsightEngineError,
        MissingCredentialError,
        Sight2SenseError,
    )
    from .insight import InsightClient
    from .models import Conversation, ImagePayload, Role, SkillLevel, Turn
    from .session import ChatSession

__all__ = [
    "AttachmentError",
    "ChatSession",
    "ConfigValidationError",
    "Conversation",
    "ConversationStore",
    "ImagePayload",
    "InsightClient",
    "InsightEngineError",
    "MissingCredentialError",
    "PendingRequest",
    "Role",
    "Sight2SenseApp",
    "Sight2SenseError",
    "SkillLevel",
    "Turn",
    "ensure_config_dir",
    "load_config",
]

_EXCEPTIONS = {
    "AttachmentError",
    "ConfigValidationError",
    "InsightEngineError",
    "MissingCredentialError",
    "Sight2SenseError",
}
_MODELS = {"Conversation", "ImagePayload", "Role", "SkillLevel", "Turn"}


def __getattr__(name: str) -> Any:
    """Lazily import symbols so the core can be used without loading the TUI."""
    if name in _EXCEPTIONS:
        from . import exceptions

        return getattr(exceptions, name)
    if name in _MODELS:
        from . import models

        return getattr(models, name)
    if name in {"ConversationStore", "PendingRequest"}:
        from . import conversation

        return getattr(conversation, name)
    if name == "InsightClient":
        from .insight import InsightClient

        return InsightClient
    if name == "ChatSession":
        from .session import ChatSession

        return ChatSession
    if name in {"ensure_config_dir", "load_config"}:
        from . import config

        return getattr(config, name)
    if name == "Sight2SenseApp":
        from .app import Sight2SenseApp

        return Sight2SenseApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
