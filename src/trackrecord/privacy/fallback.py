"""
Local privacy fallback.

What the core does on its own when the collaborator cannot answer. Nothing
produced here is attested: encryption yields no handle, proofs are
claim-consistent placeholders, verification is a structural check, and the
score comes from the deterministic local formula.
"""

import hashlib
import json
import time

from trackrecord.models import PerformanceMetrics
from trackrecord.privacy.provider import ProofResult, ScoreResult, VerifyResult
from trackrecord.proofs.claims import Claim
from trackrecord.reputation.ladders import assign_tier
from trackrecord.reputation.scoring import fallback_score


def _stamp() -> str:
    return format(int(time.time() * 1000), "x")


class LocalPrivacyFallback:
    """Deterministic stand-ins for every collaborator operation."""

    def prove(self, claim: Claim) -> ProofResult:
        digest = hashlib.sha256(
            json.dumps(
                {
                    "proof_type": claim.proof_type,
                    "circuit": claim.circuit,
                    "public_inputs": claim.public_inputs,
                    "public_outputs": claim.public_outputs,
                },
                sort_keys=True,
                default=str,
            ).encode()
        ).hexdigest()
        return ProofResult(
            proof=f"local:{digest}",
            verification_key=f"local_vk:{claim.circuit}",
            public_outputs=dict(claim.public_outputs),
            attested=False,
        )

    def verify(self, proof: str, verification_key: str) -> VerifyResult:
        return VerifyResult(
            valid=bool(proof) and bool(verification_key),
            evidence=f"local_check:{_stamp()}",
            attested=False,
        )

    def score(
        self,
        agent_id: str,
        metrics: PerformanceMetrics,
        unexpired_proof_count: int,
    ) -> ScoreResult:
        score = fallback_score(metrics, unexpired_proof_count)
        return ScoreResult(
            score=score,
            tier=assign_tier(score, metrics.total_trades, metrics.win_rate),
            attestation=f"local:{agent_id[:8]}:{_stamp()}",
            attested=False,
        )
