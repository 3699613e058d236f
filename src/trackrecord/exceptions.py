# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""Centralized exception hierarchy for TrackRecord.

All TrackRecord exceptions inherit from TrackRecordError. Errors that reach
callers carry short, stable messages that never include internal detail.
"""

from typing import Optional


class TrackRecordError(Exception):
    """Base exception for all TrackRecord errors."""


class ValidationError(TrackRecordError):
    """Malformed or out-of-range input."""


class NotFoundError(TrackRecordError):
    """Unknown agent, metrics row or proof."""


class AuthFailureError(TrackRecordError):
    """Credential did not match the one issued to the agent."""

    def __init__(self, message: str = "Invalid credential") -> None:
        super().__init__(message)


class ExpiredError(TrackRecordError):
    """Proof is past its validity window."""

    def __init__(self, message: str = "Proof has expired") -> None:
        super().__init__(message)


class RateLimitedError(TrackRecordError):
    """Caller exceeded its request budget."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class CollaboratorUnavailableError(TrackRecordError):
    """The privacy collaborator failed, timed out or answered nonsense.

    Always recovered inside the core; never surfaced to callers.
    """

    def __init__(self, operation: str, reason: str = "") -> None:
        super().__init__(f"{operation} unavailable: {reason}" if reason else f"{operation} unavailable")
        self.operation = operation
        self.reason = reason


class StorageError(TrackRecordError):
    """Errors related to durable storage backend operations."""


__all__ = [
    "TrackRecordError",
    "ValidationError",
    "NotFoundError",
    "AuthFailureError",
    "ExpiredError",
    "RateLimitedError",
    "CollaboratorUnavailableError",
    "StorageError",
]
