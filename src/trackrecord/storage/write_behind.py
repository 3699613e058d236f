# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Write-behind persistence.

The in-memory cache is authoritative; durable writes are submitted as
background tasks and never block or fail a caller. Writes for the same key
run in submission order. Failures are logged, counted and not retried.
Health follows the outcome of the most recent backend call.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Literal, Optional

from pydantic import BaseModel

from trackrecord.constants import DEFAULT_CALL_TIMEOUT_SECONDS
from trackrecord.locks import KeyedLock
from trackrecord.models import utcnow

from .provider import AbstractStorageProvider

logger = logging.getLogger(__name__)


class BackendHealth(BaseModel):
    """Observable state of the durable tier."""

    mode: Literal["durable", "cache_only"]
    healthy: bool
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    failed_writes: int = 0
    pending_writes: int = 0


class WriteBehindStore:
    """
    Fire-and-forget front for an AbstractStorageProvider.

    Args:
        provider: Durable backend, or None for cache-only operation.
        timeout: Upper bound in seconds on each backend call.
        on_failure: Optional callback invoked once per failed write.
        on_health_change: Optional callback invoked with the new value
            whenever ``health.healthy`` flips.
    """

    def __init__(
        self,
        provider: Optional[AbstractStorageProvider] = None,
        timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        on_failure: Optional[Callable[[], None]] = None,
        on_health_change: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self.provider = provider
        self.timeout = timeout
        self._on_failure = on_failure
        self._on_health_change = on_health_change
        self._locks = KeyedLock()
        self._pending: set[asyncio.Task] = set()
        self._connected = False
        self._failing = False
        self.failed_writes = 0
        self.last_error: Optional[str] = None
        self.last_error_at: Optional[datetime] = None
        self.last_success_at: Optional[datetime] = None

    @property
    def durable(self) -> bool:
        return self.provider is not None and self._connected

    @property
    def healthy(self) -> bool:
        return self.durable and not self._failing

    @property
    def health(self) -> BackendHealth:
        return BackendHealth(
            mode="durable" if self.durable else "cache_only",
            healthy=self.healthy,
            last_error=self.last_error,
            last_error_at=self.last_error_at,
            last_success_at=self.last_success_at,
            failed_writes=self.failed_writes,
            pending_writes=len(self._pending),
        )

    def _set_state(self, connected: Optional[bool] = None, failing: Optional[bool] = None) -> None:
        before = self.healthy
        if connected is not None:
            self._connected = connected
        if failing is not None:
            self._failing = failing
        if self._on_health_change is not None and self.healthy != before:
            self._on_health_change(self.healthy)

    def _record_error(self, what: str, error: BaseException) -> None:
        reason = str(error) or type(error).__name__
        self.last_error = f"{what}: {reason}"
        self.last_error_at = utcnow()
        self._set_state(failing=True)

    def _record_success(self, connected: Optional[bool] = None) -> None:
        self.last_success_at = utcnow()
        self._set_state(connected=connected, failing=False)

    async def connect(self) -> bool:
        """Connect the backend; on failure stay in cache-only mode."""
        if self.provider is None:
            return False
        try:
            await asyncio.wait_for(self.provider.connect(), timeout=self.timeout)
        except Exception as e:
            logger.warning("Storage backend unavailable, running cache-only: %s", e)
            self._record_error("connect", e)
            self._set_state(connected=False)
            return False
        self._record_success(connected=True)
        return True

    async def disconnect(self) -> None:
        if self.provider is None or not self._connected:
            return
        try:
            await asyncio.wait_for(self.provider.disconnect(), timeout=self.timeout)
        except Exception as e:
            logger.warning("Storage disconnect failed: %s", e)
        self._set_state(connected=False)

    async def read(self, what: str, factory: Callable[[], Awaitable]) -> Optional[object]:
        """Run one backend read with the timeout; None when unavailable."""
        if not self.durable:
            return None
        try:
            result = await asyncio.wait_for(factory(), timeout=self.timeout)
        except Exception as e:
            logger.warning("Storage read %s failed: %s", what, e)
            self._record_error(what, e)
            return None
        self._record_success()
        return result

    def submit(
        self,
        key: str,
        what: str,
        factory: Callable[[], Awaitable[None]],
    ) -> Optional[asyncio.Task]:
        """Schedule a durable write for *key*; returns the task, or None when cache-only."""
        if not self.durable:
            return None
        task = asyncio.create_task(self._run(key, what, factory))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, key: str, what: str, factory: Callable[[], Awaitable[None]]) -> None:
        # asyncio.Lock wakes waiters in FIFO order
        async with self._locks.hold(key):
            try:
                await asyncio.wait_for(factory(), timeout=self.timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failed_writes += 1
                self._record_error(what, e)
                logger.warning("Durable write %s for %s failed: %s", what, key, e)
                if self._on_failure is not None:
                    self._on_failure()
            else:
                if self._failing:
                    logger.info("Storage backend recovered after %d failed writes", self.failed_writes)
                self._record_success()
                logger.debug("Durable write %s for %s done", what, key)

    async def drain(self) -> None:
        """Wait for every pending write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
