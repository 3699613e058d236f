"""
Proof Ledger Service

Generates, stores and verifies time-bounded reputation proofs. Proofs are
valid for a fixed TTL from creation; expiry is enforced on every read that
matters, independently of the background sweep that purges them.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from trackrecord.constants import PROOF_TTL_SECONDS
from trackrecord.exceptions import ExpiredError, NotFoundError
from trackrecord.models import ProofVerification, ReputationProof, new_id, utcnow
from trackrecord.observability.metrics import MetricsCollector
from trackrecord.privacy.gateway import PrivacyGateway
from trackrecord.proofs.claims import build_claim
from trackrecord.services.metrics_store import MetricsStore
from trackrecord.storage.write_behind import WriteBehindStore

logger = logging.getLogger(__name__)


class ProofLedger:
    """
    Proof Ledger.

    Args:
        metrics_store: Source of the private metrics being proven.
        gateway: Privacy gateway used to prove and verify.
        store: Write-behind tier for durable appends.
        ttl_seconds: Proof validity window.
        clock: Returns the current UTC time; injectable for tests.
        collector: Optional Prometheus collector.
    """

    def __init__(
        self,
        metrics_store: MetricsStore,
        gateway: PrivacyGateway,
        store: Optional[WriteBehindStore] = None,
        ttl_seconds: int = PROOF_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
        collector: Optional[MetricsCollector] = None,
    ):
        self.metrics_store = metrics_store
        self.gateway = gateway
        self.store = store or metrics_store.store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self.collector = collector
        self._proofs: dict[str, ReputationProof] = {}

    async def generate_proof(
        self,
        agent_id: str,
        proof_type: str,
        public_inputs: Optional[Mapping[str, Any]] = None,
    ) -> ReputationProof:
        """
        Prove a threshold claim over an agent's current metrics.

        A proof is stored even when the collaborator is unavailable; it is
        then a local placeholder (``source == "local"``).

        Raises:
            NotFoundError: If the agent has no metrics.
            ValidationError: Unknown proof type or invalid public inputs.
        """
        metrics = self.metrics_store.get_metrics(agent_id)
        if metrics is None:
            raise NotFoundError("Agent not found")

        claim = build_claim(proof_type, metrics, public_inputs or {})
        result = await self.gateway.prove(claim)

        created_at = self.clock()
        proof = ReputationProof(
            proof_id=new_id(),
            agent_id=agent_id,
            proof_type=claim.proof_type,
            proof_data=result.proof,
            verification_key=result.verification_key,
            public_inputs=claim.public_inputs,
            public_outputs=claim.public_outputs,
            created_at=created_at,
            expires_at=created_at + self.ttl,
            circuit_tag=claim.circuit_tag,
            source="collaborator" if result.attested else "local",
        )
        self._proofs[proof.proof_id] = proof

        provider = self.store.provider
        self.store.submit(agent_id, "append_proof", lambda: provider.append_proof(proof))

        if self.collector:
            self.collector.record_proof(proof.proof_type, proof.source)
            self.collector.set_stored_proofs(len(self._proofs))
        logger.info(
            "Generated %s proof %s for agent %s (%s)",
            proof.proof_type, proof.proof_id, agent_id, proof.source,
        )
        return proof

    async def verify_proof(self, proof_id: str) -> ProofVerification:
        """
        Verify a stored proof.

        Raises:
            NotFoundError: If the proof is unknown or already swept.
            ExpiredError: If the proof is past its TTL.
        """
        proof = self._proofs.get(proof_id)
        if proof is None:
            raise NotFoundError("Proof not found")
        if proof.is_expired(self.clock()):
            if self.collector:
                self.collector.record_verification("expired")
            raise ExpiredError()

        result = await self.gateway.verify(
            proof.proof_data,
            proof.verification_key,
            proof.public_outputs,
        )
        if self.collector:
            self.collector.record_verification("valid" if result.valid else "invalid")
        return ProofVerification(
            proof_id=proof_id,
            valid=result.valid,
            evidence=result.evidence,
            attested=result.attested,
        )

    def get_proof(self, proof_id: str) -> Optional[ReputationProof]:
        return self._proofs.get(proof_id)

    def list_agent_proofs(
        self,
        agent_id: str,
        include_expired: bool = False,
    ) -> list[ReputationProof]:
        """Proofs for an agent, oldest first."""
        now = self.clock()
        return [
            p for p in self._proofs.values()
            if p.agent_id == agent_id and (include_expired or not p.is_expired(now))
        ]

    def unexpired_proofs(self, agent_id: str) -> list[ReputationProof]:
        return self.list_agent_proofs(agent_id, include_expired=False)

    def sweep_expired(self) -> int:
        """Delete every expired proof. Returns how many were removed."""
        now = self.clock()
        expired = [pid for pid, p in self._proofs.items() if p.is_expired(now)]
        for proof_id in expired:
            del self._proofs[proof_id]
        if self.collector:
            self.collector.set_stored_proofs(len(self._proofs))
        return len(expired)

    def __len__(self) -> int:
        return len(self._proofs)
