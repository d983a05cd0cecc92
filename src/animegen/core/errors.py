"""Error taxonomy shared by the core services and the HTTP surface.

Every error carries a free-text message that is returned to the client as
``{"error": message}``.  Extra keyword arguments are merged into the JSON
body, which is how ``ValidationError`` reports ``supportedStyles``.

Only ``ValidationError``, ``AuthenticationError`` and ``EnrichmentError`` have
dedicated handlers.  ``GenerationError`` falls through to the catch-all
handler (generic 500) and ``PersistenceError`` never leaves the orchestrator.
"""

from __future__ import annotations

from typing import Any


class AnimegenError(Exception):
    """Base class for all errors raised by Animegen services."""

    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


class ValidationError(AnimegenError):
    """Missing or unsupported request fields."""

    status_code = 400


class AuthenticationError(AnimegenError):
    """Missing, malformed or expired access token."""

    status_code = 401


class EnrichmentError(AnimegenError):
    """The chat-completion call failed or returned no content."""


class GenerationError(AnimegenError):
    """The txt2img API failed or returned no image."""


class PersistenceError(AnimegenError):
    """The generated image could not be written to disk."""
