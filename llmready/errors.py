"""Exceptions surfaced to HTTP handlers and the CLI."""

from __future__ import annotations


class LlmReadyError(RuntimeError):
    """Base class for user-facing failures.

    Attributes:
        message -- human-readable reason
        status  -- HTTP status code the failure maps to
    """

    status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LlmReadyError):
    """Unresolved URL, missing item, or item not eligible for export."""

    status = 404


class UnauthorizedError(LlmReadyError):
    """Administrative operation attempted without the required capability."""

    status = 403


class RateLimitedError(LlmReadyError):
    """A manual cache flush was requested while the cooldown is active."""

    status = 429

    def __init__(self, message: str, retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after
