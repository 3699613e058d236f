"""
Rate Limiter Service

Fixed-window rate limiting per identifier, with a temporary block once an
identifier exceeds its window budget.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import BaseModel, Field, model_validator

from trackrecord.exceptions import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimitConfig(BaseModel):
    """Configuration for one rate limit policy."""

    max_requests: int = Field(default=100, ge=1)
    window_seconds: float = Field(default=60.0, gt=0)
    block_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="How long an identifier stays blocked after a violation; defaults to the window",
    )

    @model_validator(mode="after")
    def _default_block(self) -> "RateLimitConfig":
        if self.block_seconds is None:
            self.block_seconds = self.window_seconds
        return self


class RateLimitResult(BaseModel):
    """Result of a rate limit check."""

    allowed: bool
    remaining: int
    reset_in_seconds: float
    limit: int


@dataclass
class _Window:
    count: int
    reset_at: float
    blocked_until: Optional[float] = None


class RateLimiter:
    """Per-identifier fixed-window limiter.

    Args:
        config: Window size, request budget and block duration.
        name: Policy name used in logs and errors.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or RateLimitConfig()
        self.name = name
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for *identifier* and report whether it is allowed."""
        now = self._clock()
        limit = self.config.max_requests
        entry = self._windows.get(identifier)

        if entry is not None and entry.blocked_until is not None:
            if now < entry.blocked_until:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_in_seconds=entry.blocked_until - now,
                    limit=limit,
                )
            entry = None

        if entry is None or now >= entry.reset_at:
            entry = _Window(count=1, reset_at=now + self.config.window_seconds)
            self._windows[identifier] = entry
            return RateLimitResult(
                allowed=True,
                remaining=limit - 1,
                reset_in_seconds=self.config.window_seconds,
                limit=limit,
            )

        if entry.count >= limit:
            entry.blocked_until = now + self.config.block_seconds
            logger.warning("Rate limit %s exceeded by %s", self.name, identifier)
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_in_seconds=self.config.block_seconds,
                limit=limit,
            )

        entry.count += 1
        return RateLimitResult(
            allowed=True,
            remaining=limit - entry.count,
            reset_in_seconds=entry.reset_at - now,
            limit=limit,
        )

    def peek(self, identifier: str) -> RateLimitResult:
        """What :meth:`check` would decide for *identifier*, without counting."""
        now = self._clock()
        limit = self.config.max_requests
        entry = self._windows.get(identifier)

        if entry is not None and entry.blocked_until is not None and now < entry.blocked_until:
            return RateLimitResult(
                allowed=False, remaining=0, reset_in_seconds=entry.blocked_until - now, limit=limit
            )
        if entry is None or entry.blocked_until is not None or now >= entry.reset_at:
            return RateLimitResult(
                allowed=True,
                remaining=limit - 1,
                reset_in_seconds=self.config.window_seconds,
                limit=limit,
            )
        if entry.count >= limit:
            return RateLimitResult(
                allowed=False, remaining=0, reset_in_seconds=self.config.block_seconds, limit=limit
            )
        return RateLimitResult(
            allowed=True,
            remaining=limit - entry.count - 1,
            reset_in_seconds=entry.reset_at - now,
            limit=limit,
        )

    def enforce(self, identifier: str) -> RateLimitResult:
        """Like :meth:`check` but raises when the request is rejected.

        Raises:
            RateLimitedError: With ``retry_after`` set to the wait in seconds.
        """
        result = self.check(identifier)
        if not result.allowed:
            raise RateLimitedError(retry_after=result.reset_in_seconds)
        return result

    def evict_expired(self) -> int:
        """Drop identifiers whose window and block have both elapsed."""
        now = self._clock()
        expired = [
            identifier
            for identifier, entry in self._windows.items()
            if now >= entry.reset_at
            and (entry.blocked_until is None or now >= entry.blocked_until)
        ]
        for identifier in expired:
            del self._windows[identifier]
        return len(expired)

    def get_status(self, identifier: str) -> dict:
        """Current state for *identifier* without counting a request."""
        now = self._clock()
        entry = self._windows.get(identifier)
        status: dict = {
            "identifier": identifier,
            "policy": self.name,
            "limit": self.config.max_requests,
            "count": 0,
            "blocked": False,
            "reset_in_seconds": 0.0,
        }
        if entry is None:
            return status
        if entry.blocked_until is not None and now < entry.blocked_until:
            status["blocked"] = True
            status["count"] = entry.count
            status["reset_in_seconds"] = entry.blocked_until - now
        elif now < entry.reset_at:
            status["count"] = entry.count
            status["reset_in_seconds"] = entry.reset_at - now
        return status

    def reset(self, identifier: Optional[str] = None) -> None:
        """Reset limits for an identifier or for everyone."""
        if identifier is not None:
            self._windows.pop(identifier, None)
        else:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
