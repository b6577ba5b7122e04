"""Moderation error taxonomy.

Every expected business outcome has its own exception type so callers can
tell a duplicate submission from a permissions problem without parsing
messages. ``status_code`` is the HTTP status the API layer maps it to.
"""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for moderation outcomes surfaced to callers."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ModerationError):
    """Input failed a bound or format check."""

    status_code = 422


class NotFoundError(ModerationError):
    status_code = 404


class ForbiddenError(ModerationError):
    status_code = 403


class DuplicateError(ModerationError):
    """A uniqueness constraint rejected the write."""

    status_code = 409


class InvalidOperationError(ModerationError):
    status_code = 400


class InvalidStateError(ModerationError):
    """Entity is not in a state that allows the transition."""

    status_code = 409


class DeadlineExpiredError(ModerationError):
    status_code = 410


class RateLimitedError(ModerationError):
    status_code = 429


class StorageFailure(ModerationError):
    """Backend failure. Callers may retry once; nothing retries internally."""

    status_code = 503
