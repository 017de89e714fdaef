"""Domain errors raised by the content repository and auth services."""

from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced id or key does not exist."""


class ConflictError(ValueError):
    """The write would violate a uniqueness or admin-count invariant."""


class ContentValidationError(ValueError):
    """A content payload does not match the shape its type requires."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class MediaStorageError(OSError):
    """The stored file behind a media row could not be removed."""
