"""
Generation client failures. Only these propagate out of LLM.complete();
pipeline stages catch GenerationError and degrade to an empty result.
"""

from __future__ import annotations

from typing import Optional

BODY_PREVIEW_CHARS = 500


class GenerationError(Exception):
    """Base class for generation collaborator failures."""


class RateLimitExceeded(GenerationError):
    def __init__(self, attempts: int):
        super().__init__(f"Rate limit exceeded after {attempts} attempts")
        self.attempts = attempts


class UpstreamProtocolError(GenerationError):
    """Non-2xx status, non-JSON body, or transport failure."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = (body or "")[:BODY_PREVIEW_CHARS]


class UpstreamShapeError(GenerationError):
    """Well-formed JSON without usable message content."""
