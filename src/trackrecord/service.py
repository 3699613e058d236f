# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""
TrackRecord Service.

Async facade over the reputation core. Wires the credential vault, metrics
store, proof ledger and reputation engine to the privacy gateway and the
write-behind tier, applies rate limits to mutating entry points, checks
credentials on trade logging, and owns the background sweeps.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from trackrecord.config import TrackRecordConfig
from trackrecord.exceptions import AuthFailureError, NotFoundError, RateLimitedError
from trackrecord.identity.credentials import CredentialVault
from trackrecord.models import (
    Agent,
    EncryptedMetricsHandle,
    LeaderboardEntry,
    PerformanceMetrics,
    ProofVerification,
    ReputationProof,
    StarRating,
    TradeRecord,
    TrustCertificate,
    TrustCheck,
    VerifiedReputation,
    parse_model,
    utcnow,
)
from trackrecord.observability.metrics import MetricsCollector
from trackrecord.privacy.gateway import PrivacyGateway
from trackrecord.privacy.http_client import HttpPrivacyCollaborator
from trackrecord.privacy.provider import PrivacyCollaborator
from trackrecord.services.metrics_store import MetricsStore
from trackrecord.services.proof_ledger import ProofLedger
from trackrecord.services.rate_limiter import RateLimiter
from trackrecord.services.reputation_engine import ReputationEngine
from trackrecord.services.scheduler import PeriodicTask
from trackrecord.storage import create_storage_provider
from trackrecord.storage.provider import AbstractStorageProvider
from trackrecord.storage.write_behind import WriteBehindStore

logger = logging.getLogger(__name__)

ANONYMOUS_CLIENT = "anonymous"


class TrackRecordService:
    """
    Private agent reputation core.

    Args:
        config: Service configuration; defaults to ``TrackRecordConfig()``.
        collaborator: Privacy collaborator. When omitted, one is built from
            ``config.privacy``; with no URL the service runs offline.
        storage: Durable backend. When omitted, one is built from
            ``config.storage``; ``backend="none"`` runs cache-only.
        collector: Prometheus collector; a private one is created if omitted.
        clock: UTC time source for proofs and certificates.
        rate_clock: Monotonic time source for the rate limiters.

    Example:
        async with TrackRecordService() as service:
            agent, secret = await service.register_agent("Bot1")
            await service.log_trade(agent.agent_id, secret, pnl_usd=150)
    """

    def __init__(
        self,
        config: Optional[TrackRecordConfig] = None,
        collaborator: Optional[PrivacyCollaborator] = None,
        storage: Optional[AbstractStorageProvider] = None,
        collector: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = utcnow,
        rate_clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config or TrackRecordConfig()
        self.collector = collector or MetricsCollector()

        if collaborator is None and self.config.privacy.enabled and self.config.privacy.base_url:
            collaborator = HttpPrivacyCollaborator(
                self.config.privacy.base_url,
                timeout=self.config.privacy.timeout_seconds,
            )
        if not self.config.privacy.enabled:
            collaborator = None

        self.gateway = PrivacyGateway(
            collaborator,
            timeout=self.config.privacy.timeout_seconds,
            on_failure=self.collector.record_collaborator_failure,
        )
        self.store = WriteBehindStore(
            storage if storage is not None else create_storage_provider(self.config.storage),
            timeout=self.config.storage.timeout_seconds,
            on_failure=self.collector.record_backend_failure,
            on_health_change=self.collector.set_backend_healthy,
        )
        self.vault = CredentialVault(self.config.credentials)
        self.metrics_store = MetricsStore(
            self.vault, self.gateway, self.store, collector=self.collector
        )
        self.proof_ledger = ProofLedger(
            self.metrics_store,
            self.gateway,
            self.store,
            ttl_seconds=self.config.proof_ttl_seconds,
            clock=clock,
            collector=self.collector,
        )
        self.reputation_engine = ReputationEngine(
            self.metrics_store,
            self.proof_ledger,
            self.gateway,
            self.store,
            certificate_ttl_seconds=self.config.certificate_ttl_seconds,
            clock=clock,
            collector=self.collector,
        )

        limiter_kwargs = {"clock": rate_clock} if rate_clock is not None else {}
        self.general_limiter = RateLimiter(
            self.config.general_rate_limit, name="general", **limiter_kwargs
        )
        self.write_limiter = RateLimiter(
            self.config.write_rate_limit, name="write", **limiter_kwargs
        )

        self._proof_sweep = PeriodicTask(
            "proof-sweep",
            self.config.proof_sweep_interval_seconds,
            self.proof_ledger.sweep_expired,
        )
        self._rate_limit_sweep = PeriodicTask(
            "rate-limit-sweep",
            self.config.rate_limit_sweep_interval_seconds,
            self._evict_rate_limits,
        )
        self._started = False

    # Lifecycle

    async def start(self) -> None:
        """Connect the backend, hydrate the cache and start sweeps."""
        if self._started:
            return
        if self.store.provider is not None:
            if await self.store.connect():
                await self.metrics_store.hydrate()
        self.collector.set_backend_healthy(self.store.health.healthy)
        self._proof_sweep.start()
        self._rate_limit_sweep.start()
        self._started = True
        logger.info(
            "TrackRecord started (privacy=%s, storage=%s)",
            "online" if self.gateway.online else "offline",
            self.store.health.mode,
        )

    async def stop(self) -> None:
        """Stop sweeps, flush pending writes and release connections."""
        if not self._started:
            return
        await self._proof_sweep.stop()
        await self._rate_limit_sweep.stop()
        await self.store.drain()
        await self.gateway.close()
        await self.store.disconnect()
        self._started = False
        logger.info("TrackRecord stopped")

    async def __aenter__(self) -> "TrackRecordService":
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    def _evict_rate_limits(self) -> int:
        return self.general_limiter.evict_expired() + self.write_limiter.evict_expired()

    def _limit(self, client_id: str, write: bool = False) -> None:
        # a rejected request is charged to neither window
        if write and not self.write_limiter.peek(client_id).allowed:
            limiters = [self.write_limiter]
        elif write:
            limiters = [self.general_limiter, self.write_limiter]
        else:
            limiters = [self.general_limiter]
        for limiter in limiters:
            try:
                limiter.enforce(client_id)
            except RateLimitedError:
                self.collector.record_rate_limited(limiter.name)
                raise

    # Mutating entry points

    async def register_agent(
        self,
        name: str,
        public_key: Optional[str] = None,
        client_id: str = ANONYMOUS_CLIENT,
    ) -> tuple[Agent, str]:
        """Register an agent and return it with its one-time credential."""
        self._limit(client_id)
        return await self.metrics_store.register_agent(name, public_key)

    async def log_trade(
        self,
        agent_id: str,
        credential: str,
        pnl_usd: float,
        token_in: str = "SOL",
        token_out: str = "USDC",
        amount_in: float = 0.0,
        amount_out: float = 0.0,
        execution_time_ms: int = 100,
        client_id: Optional[str] = None,
    ) -> PerformanceMetrics:
        """
        Log a trade on behalf of an agent.

        Raises:
            RateLimitedError: If the caller is over a rate limit.
            NotFoundError: If the agent is unknown.
            AuthFailureError: If the credential does not match.
            ValidationError: If a trade field is out of range.
        """
        self._limit(client_id or agent_id, write=True)
        if agent_id not in self.metrics_store:
            raise NotFoundError("Agent not found")
        if not await self.metrics_store.validate_credential(agent_id, credential):
            logger.warning("Rejected trade for agent %s: invalid credential", agent_id)
            raise AuthFailureError()

        trade = parse_model(
            TradeRecord,
            {
                "agent_id": agent_id,
                "pnl_usd": pnl_usd,
                "token_in": token_in,
                "token_out": token_out,
                "amount_in": amount_in,
                "amount_out": amount_out,
                "execution_time_ms": execution_time_ms,
            },
        )
        return await self.metrics_store.log_trade(trade)

    async def generate_proof(
        self,
        agent_id: str,
        proof_type: str,
        public_inputs: Optional[Mapping[str, Any]] = None,
        client_id: Optional[str] = None,
    ) -> ReputationProof:
        self._limit(client_id or agent_id, write=True)
        return await self.proof_ledger.generate_proof(agent_id, proof_type, public_inputs)

    async def compute_reputation(
        self,
        agent_id: str,
        client_id: Optional[str] = None,
    ) -> VerifiedReputation:
        self._limit(client_id or agent_id)
        return await self.reputation_engine.compute_verified_reputation(agent_id)

    async def verify_proof(self, proof_id: str) -> ProofVerification:
        return await self.proof_ledger.verify_proof(proof_id)

    # Reads

    def get_agent(self, agent_id: str) -> Agent:
        agent = self.metrics_store.get_agent(agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")
        return agent

    def list_agents(self) -> list[Agent]:
        return self.metrics_store.list_agents()

    def get_metrics(self, agent_id: str) -> PerformanceMetrics:
        metrics = self.metrics_store.get_metrics(agent_id)
        if metrics is None:
            raise NotFoundError("Agent not found")
        return metrics

    def get_encrypted_metrics(self, agent_id: str) -> Optional[EncryptedMetricsHandle]:
        """The agent's encrypted handle; None until the collaborator produced one."""
        self.get_agent(agent_id)
        return self.metrics_store.get_encrypted_metrics(agent_id)

    def get_proof(self, proof_id: str) -> ReputationProof:
        proof = self.proof_ledger.get_proof(proof_id)
        if proof is None:
            raise NotFoundError("Proof not found")
        return proof

    def list_agent_proofs(
        self,
        agent_id: str,
        include_expired: bool = False,
    ) -> list[ReputationProof]:
        self.get_agent(agent_id)
        return self.proof_ledger.list_agent_proofs(agent_id, include_expired=include_expired)

    def get_reputation(self, agent_id: str) -> Optional[VerifiedReputation]:
        self.get_agent(agent_id)
        return self.reputation_engine.get_verified_reputation(agent_id)

    def get_star_rating(self, agent_id: str) -> StarRating:
        return self.reputation_engine.calculate_star_rating(agent_id)

    def get_trust_certificate(self, agent_id: str) -> TrustCertificate:
        return self.reputation_engine.get_trust_certificate(agent_id)

    def check_trust(self, agent_id: str, min_stars: int = 0) -> TrustCheck:
        return self.reputation_engine.check_trust(agent_id, min_stars)

    def get_leaderboard(self, limit: Optional[int] = None) -> list[LeaderboardEntry]:
        return self.reputation_engine.get_leaderboard(limit)

    def health(self) -> dict:
        """Component status for health endpoints."""
        backend = self.store.health
        self.collector.set_backend_healthy(backend.healthy)
        collaborator_ok = self.gateway.online and self.gateway.available
        degraded = (self.store.provider is not None and not backend.healthy) or (
            self.gateway.online and not self.gateway.available
        )
        return {
            "status": "degraded" if degraded else "ok",
            "privacy": {
                "mode": "online" if self.gateway.online else "offline",
                "available": collaborator_ok,
                "failures": self.gateway.failure_count,
                "last_error": self.gateway.last_error,
            },
            "backend": backend.model_dump(),
            "agents": len(self.metrics_store),
            "proofs": len(self.proof_ledger),
        }
