# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Privacy Gateway.

Wraps a PrivacyCollaborator with a per-call timeout and the local fallback
for every operation. Callers never see collaborator failures; they see
either an attested result or an unattested local one.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from trackrecord.constants import DEFAULT_CALL_TIMEOUT_SECONDS
from trackrecord.exceptions import CollaboratorUnavailableError
from trackrecord.models import PerformanceMetrics, utcnow
from trackrecord.privacy.fallback import LocalPrivacyFallback
from trackrecord.privacy.provider import (
    EncryptionResult,
    FoldResult,
    PrivacyCollaborator,
    ProofResult,
    ScoreResult,
    VerifyResult,
)
from trackrecord.proofs.claims import Claim
from trackrecord.reputation.ladders import TIER_NAMES, assign_tier

logger = logging.getLogger(__name__)


class PrivacyGateway:
    """
    Fault-tolerant front for the privacy collaborator.

    Args:
        collaborator: The collaborator to call, or None to run offline.
        timeout: Upper bound in seconds on each collaborator call.
        on_failure: Optional callback receiving the failed operation name.
    """

    def __init__(
        self,
        collaborator: Optional[PrivacyCollaborator] = None,
        timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        on_failure: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.collaborator = collaborator
        self.timeout = timeout
        self._fallback = LocalPrivacyFallback()
        self._on_failure = on_failure
        self._available = collaborator is not None
        self.failure_count = 0
        self.last_error: Optional[str] = None
        self.last_failure_at: Optional[datetime] = None

    @property
    def online(self) -> bool:
        """True when a collaborator is configured."""
        return self.collaborator is not None

    @property
    def available(self) -> bool:
        """True when the last collaborator call succeeded."""
        return self._available

    async def _call(self, operation: str, factory: Callable[[], Awaitable[Any]]) -> Optional[Any]:
        """Run one collaborator call; None means fall back."""
        if self.collaborator is None:
            return None
        try:
            result = await asyncio.wait_for(factory(), timeout=self.timeout)
        except asyncio.TimeoutError:
            self._record_failure(operation, f"timed out after {self.timeout}s")
            return None
        except CollaboratorUnavailableError as e:
            self._record_failure(operation, str(e))
            return None
        except Exception as e:
            logger.exception("Unexpected privacy collaborator error during %s", operation)
            self._record_failure(operation, type(e).__name__)
            return None
        self._available = True
        return result

    def _record_failure(self, operation: str, reason: str) -> None:
        logger.warning("Privacy collaborator %s failed: %s", operation, reason)
        self._available = False
        self.failure_count += 1
        self.last_error = f"{operation}: {reason}"
        self.last_failure_at = utcnow()
        if self._on_failure is not None:
            self._on_failure(operation)

    async def encrypt(self, value: float) -> Optional[EncryptionResult]:
        """Fresh ciphertext for *value*, or None when unavailable."""
        return await self._call("encrypt", lambda: self.collaborator.encrypt(value))

    async def fold(self, ciphertext: str, delta: float) -> Optional[FoldResult]:
        """Ciphertext with *delta* added, or None (handle stays stale)."""
        return await self._call("fold", lambda: self.collaborator.fold(ciphertext, delta))

    async def prove(self, claim: Claim) -> ProofResult:
        result = await self._call(
            "prove",
            lambda: self.collaborator.prove(
                claim.proof_type,
                claim.circuit_inputs,
                claim.private_inputs,
                claim.circuit,
            ),
        )
        if result is None:
            return self._fallback.prove(claim)
        return result

    async def verify(
        self,
        proof: str,
        verification_key: str,
        public_inputs: dict[str, Any],
    ) -> VerifyResult:
        result = await self._call(
            "verify",
            lambda: self.collaborator.verify(proof, verification_key, public_inputs),
        )
        if result is None:
            return self._fallback.verify(proof, verification_key)
        return result

    async def score(
        self,
        agent_id: str,
        ciphertext: Optional[str],
        proofs: list[str],
        metrics: PerformanceMetrics,
    ) -> ScoreResult:
        """Collaborator score, falling back to the local formula.

        An unknown or missing collaborator tier is replaced by the tier the
        local ladder assigns to the collaborator's score.
        """
        result = await self._call(
            "score",
            lambda: self.collaborator.score(agent_id, ciphertext or "", proofs),
        )
        if result is None:
            return self._fallback.score(agent_id, metrics, len(proofs))
        if result.tier not in TIER_NAMES:
            if result.tier is not None:
                logger.debug("Ignoring unknown collaborator tier %r", result.tier)
            result = result.model_copy(
                update={"tier": assign_tier(result.score, metrics.total_trades, metrics.win_rate)}
            )
        return result

    async def health_check(self) -> bool:
        if self.collaborator is None:
            return False
        healthy = await self._call("health_check", self.collaborator.health_check)
        return bool(healthy)

    async def close(self) -> None:
        if self.collaborator is not None:
            await self.collaborator.close()
