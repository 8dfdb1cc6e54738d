"""
Domain-specific exceptions for the content studio pipeline.

Request handlers catch everything below ``ContentStudioError`` except
``ConfigurationError`` and turn it into a ``success: false`` response.
Configuration problems are fatal and propagate to the CLI entry point.
"""

from __future__ import annotations


class ContentStudioError(Exception):
    """Base exception for all pipeline errors."""


class ConfigurationError(ContentStudioError):
    """Raised when required configuration (settings files, env vars) is missing."""


class InsufficientDataError(ContentStudioError):
    """Raised when a request lacks the data needed to proceed (unknown brand, empty content)."""


class InsufficientReferencesError(InsufficientDataError):
    """Raised when no reference image exists at any tier of the fallback cascade."""

    def __init__(self, message: str = "insufficient brand examples") -> None:
        super().__init__(message)


class ProviderGenerationError(ContentStudioError):
    """Raised when a generation collaborator (gateway, Gemini) fails.

    Attributes
    ----------
    status:
        HTTP-style status code reported by the collaborator, when known.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class TransientProviderError(ProviderGenerationError):
    """Rate limits, gateway hiccups and empty/unparsable success bodies. Retryable."""


class QuotaExceededError(ProviderGenerationError):
    """Raised on 402 responses. Never retried."""

    def __init__(self, message: str = "AI credits exhausted", status: int | None = 402) -> None:
        super().__init__(message, status)


class ResponseParseError(ContentStudioError):
    """Raised when a text collaborator returns malformed or incomplete JSON."""


class StorageUploadError(ContentStudioError):
    """Raised when a synthesized bitmap cannot be persisted to object storage."""


class LifecycleError(ContentStudioError):
    """Raised on a rejected content status transition."""
