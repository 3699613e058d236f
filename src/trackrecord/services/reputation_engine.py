"""
Reputation Engine Service

Derives an agent's verified reputation from its metrics, encrypted handle
and unexpired proofs, then projects it into public views: star ratings,
trust certificates, trust checks and the leaderboard.

Scores come from the privacy collaborator when it answers and from the
local formula otherwise. The engine only reads the metrics store and the
proof ledger; it never writes back to them.
"""

import hashlib
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from trackrecord.constants import CERTIFICATE_HASH_LENGTH, CERTIFICATE_TTL_SECONDS, TIER_UNVERIFIED
from trackrecord.exceptions import NotFoundError, ValidationError
from trackrecord.models import (
    LeaderboardEntry,
    StarRating,
    TrustCertificate,
    TrustCheck,
    VerifiedReputation,
    utcnow,
)
from trackrecord.observability.metrics import MetricsCollector
from trackrecord.privacy.gateway import PrivacyGateway
from trackrecord.reputation.badges import evaluate_badges
from trackrecord.reputation.ladders import UNVERIFIED_RATING, assign_stars, assign_tier
from trackrecord.services.metrics_store import MetricsStore
from trackrecord.services.proof_ledger import ProofLedger
from trackrecord.storage.write_behind import WriteBehindStore

logger = logging.getLogger(__name__)


def certificate_hash(agent_id: str, score: int, stars: int, issued_at: datetime) -> str:
    """Display fingerprint of a certificate; not a signature."""
    issued_at_ms = int(issued_at.timestamp() * 1000)
    payload = f"{agent_id}:{score}:{stars}:{issued_at_ms}"
    return hashlib.sha256(payload.encode()).hexdigest()[:CERTIFICATE_HASH_LENGTH]


class ReputationEngine:
    """
    Reputation Engine.

    Holds the latest VerifiedReputation per agent; each computation
    overwrites the previous one.
    """

    def __init__(
        self,
        metrics_store: MetricsStore,
        proof_ledger: ProofLedger,
        gateway: PrivacyGateway,
        store: Optional[WriteBehindStore] = None,
        certificate_ttl_seconds: int = CERTIFICATE_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
        collector: Optional[MetricsCollector] = None,
    ):
        self.metrics_store = metrics_store
        self.proof_ledger = proof_ledger
        self.gateway = gateway
        self.store = store or metrics_store.store
        self.certificate_ttl = timedelta(seconds=certificate_ttl_seconds)
        self.clock = clock
        self.collector = collector
        self._reputations: dict[str, VerifiedReputation] = {}

    async def compute_verified_reputation(self, agent_id: str) -> VerifiedReputation:
        """
        Compute and cache the agent's verified reputation.

        Raises:
            NotFoundError: If the agent or its metrics are unknown.
        """
        if self.metrics_store.get_agent(agent_id) is None:
            raise NotFoundError("Agent not found")
        metrics = self.metrics_store.get_metrics(agent_id)
        if metrics is None:
            raise NotFoundError("Agent not found")

        handle = self.metrics_store.get_encrypted_metrics(agent_id)
        proofs = self.proof_ledger.unexpired_proofs(agent_id)
        result = await self.gateway.score(
            agent_id,
            handle.ciphertext if handle else None,
            [p.proof_data for p in proofs],
            metrics,
        )

        verified_at = self.clock()
        reputation = VerifiedReputation(
            agent_id=agent_id,
            score=result.score,
            tier=result.tier or assign_tier(result.score, metrics.total_trades, metrics.win_rate),
            badges=evaluate_badges(metrics, verified_at),
            attestation=result.attestation,
            attested=result.attested,
            verified_at=verified_at,
        )
        self._reputations[agent_id] = reputation

        provider = self.store.provider
        self.store.submit(
            agent_id, "upsert_reputation", lambda: provider.upsert_reputation(reputation)
        )

        source = "collaborator" if reputation.attested else "local"
        if self.collector:
            self.collector.record_reputation(source)
        logger.info(
            "Verified reputation for agent %s: score=%d tier=%s (%s)",
            agent_id, reputation.score, reputation.tier, source,
        )
        return reputation

    def get_verified_reputation(self, agent_id: str) -> Optional[VerifiedReputation]:
        return self._reputations.get(agent_id)

    def calculate_star_rating(self, agent_id: str) -> StarRating:
        """
        Star rating from the latest verified score and current metrics.

        Raises:
            NotFoundError: If the agent is unknown.
        """
        metrics = self.metrics_store.get_metrics(agent_id)
        if metrics is None:
            raise NotFoundError("Agent not found")
        reputation = self._reputations.get(agent_id)
        if reputation is None:
            return UNVERIFIED_RATING
        return assign_stars(
            reputation.score,
            metrics.total_trades,
            metrics.win_rate,
            metrics.total_pnl_usd,
        )

    def get_trust_certificate(self, agent_id: str) -> TrustCertificate:
        """
        Public-safe snapshot of the agent's rating.

        Raises:
            NotFoundError: If the agent is unknown.
        """
        agent = self.metrics_store.get_agent(agent_id)
        metrics = self.metrics_store.get_metrics(agent_id)
        if agent is None or metrics is None:
            raise NotFoundError("Agent not found")

        reputation = self._reputations.get(agent_id)
        rating = self.calculate_star_rating(agent_id)
        score = reputation.score if reputation else 0
        issued_at = self.clock()
        return TrustCertificate(
            agent_id=agent_id,
            agent_name=agent.name,
            verified=reputation is not None,
            star_rating=rating.stars,
            rating_label=rating.label,
            rating_display=rating.display,
            tier=reputation.tier if reputation else TIER_UNVERIFIED,
            score=score,
            total_trades=metrics.total_trades,
            win_rate=round(metrics.win_rate, 1),
            verified_at=reputation.verified_at if reputation else None,
            certificate_hash=certificate_hash(agent_id, score, rating.stars, issued_at),
            issued_at=issued_at,
            valid_until=issued_at + self.certificate_ttl,
        )

    def check_trust(self, agent_id: str, min_stars: int = 0) -> TrustCheck:
        """
        Does the agent meet a minimum star requirement?

        Advisory only: no certificate hash is authenticated here.

        Raises:
            NotFoundError: If the agent is unknown.
            ValidationError: If ``min_stars`` is outside 0-3.
        """
        if not 0 <= min_stars <= 3:
            raise ValidationError("min_stars must be between 0 and 3")
        rating = self.calculate_star_rating(agent_id)
        reputation = self._reputations.get(agent_id)
        verified = reputation is not None
        meets = rating.stars >= min_stars
        return TrustCheck(
            agent_id=agent_id,
            verified=verified,
            star_rating=rating.stars,
            required_stars=min_stars,
            meets_requirement=meets,
            valid=verified and meets,
            verified_at=reputation.verified_at if reputation else None,
        )

    def get_leaderboard(self, limit: Optional[int] = None) -> list[LeaderboardEntry]:
        """
        Verified agents with a positive score, best first.

        Ordered by stars then score, both descending; ties keep
        registration order.
        """
        candidates = []
        for agent in self.metrics_store.list_agents():
            reputation = self._reputations.get(agent.agent_id)
            if reputation is None or reputation.score <= 0:
                continue
            metrics = self.metrics_store.get_metrics(agent.agent_id)
            rating = self.calculate_star_rating(agent.agent_id)
            candidates.append((agent, reputation, metrics, rating))

        candidates.sort(key=lambda c: (-c[3].stars, -c[1].score))
        if limit is not None:
            candidates = candidates[:max(limit, 0)]

        return [
            LeaderboardEntry(
                rank=rank,
                agent_id=agent.agent_id,
                agent_name=agent.name,
                score=reputation.score,
                star_rating=rating.stars,
                rating_display=rating.display,
                tier=reputation.tier,
                badge_count=len(reputation.badges),
                total_trades=metrics.total_trades,
                win_rate=round(metrics.win_rate, 1),
            )
            for rank, (agent, reputation, metrics, rating) in enumerate(candidates, start=1)
        ]
