"""Domain exception hierarchy for the Sight2Sense chat client."""

from __future__ import annotations


class Sight2SenseError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ConfigValidationError(Sight2SenseError):
    """Raised when configuration cannot be validated safely."""


class MissingCredentialError(ConfigValidationError):
    """Raised when the Gemini API key is not configured."""


class InsightEngineError(Sight2SenseError):
    """Raised when the inference call fails for any transport or service reason."""


class AttachmentError(Sight2SenseError):
    """Raised when an image attachment cannot be staged."""
