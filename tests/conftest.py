"""Shared fixtures for TrackRecord tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from trackrecord.config import TrackRecordConfig
from trackrecord.exceptions import CollaboratorUnavailableError
from trackrecord.identity.credentials import CredentialConfig, CredentialVault
from trackrecord.observability.metrics import MetricsCollector
from trackrecord.privacy.gateway import PrivacyGateway
from trackrecord.privacy.provider import (
    EncryptionResult,
    FoldResult,
    PrivacyCollaborator,
    ProofResult,
    ScoreResult,
    VerifyResult,
)
from trackrecord.service import TrackRecordService
from trackrecord.services.metrics_store import MetricsStore
from trackrecord.services.proof_ledger import ProofLedger
from trackrecord.services.reputation_engine import ReputationEngine

# Cheap scrypt parameters; the defaults take tens of milliseconds per hash.
FAST_CREDENTIALS = CredentialConfig(scrypt_n=2**4, scrypt_r=1, scrypt_p=1)

REFERENCE_PNL = [150, -50, 200, 75, -25, 300, 125, -100, 180, 250]
REFERENCE_EXEC_MS = [85, 120, 95, 110, 88, 92, 78, 105, 82, 90]


class FrozenClock:
    """UTC clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class ManualClock:
    """Monotonic seconds for the rate limiter."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubCollaborator(PrivacyCollaborator):
    """Deterministic in-process collaborator.

    ``scores`` maps agent ids to the score to return; agents not listed
    make ``score`` fail so the local fallback is used.
    """

    def __init__(self, scores: Optional[dict] = None, tier: Optional[str] = None, valid: bool = True):
        self.scores = scores if scores is not None else {}
        self.tier = tier
        self.valid = valid
        self.calls: list[tuple] = []

    async def encrypt(self, value):
        self.calls.append(("encrypt", value))
        return EncryptionResult(ciphertext=f"ct[{value}]", proof="fhe-proof", mode="computed")

    async def fold(self, ciphertext, delta):
        self.calls.append(("fold", ciphertext, delta))
        return FoldResult(ciphertext=f"{ciphertext}+[{delta}]", proof="fold-proof")

    async def prove(self, proof_type, public_inputs, private_inputs, circuit):
        self.calls.append(("prove", proof_type, public_inputs, private_inputs, circuit))
        # deliberately disagrees with local truth
        return ProofResult(
            proof=f"zk:{proof_type}",
            verification_key=f"vk:{circuit}",
            public_outputs={"meets_threshold": "remote"},
        )

    async def verify(self, proof, verification_key, public_inputs):
        self.calls.append(("verify", proof, verification_key, public_inputs))
        return VerifyResult(valid=self.valid, evidence="zk-verified")

    async def score(self, agent_id, ciphertext, proofs):
        self.calls.append(("score", agent_id, ciphertext, list(proofs)))
        if agent_id not in self.scores:
            raise CollaboratorUnavailableError("score", "no score configured")
        return ScoreResult(score=self.scores[agent_id], tier=self.tier, attestation="mpc-attestation")

    async def health_check(self):
        return True

    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def collector():
    return MetricsCollector()


@pytest.fixture
def offline_gateway():
    return PrivacyGateway(None)


@pytest.fixture
def vault():
    return CredentialVault(FAST_CREDENTIALS)


@pytest.fixture
def metrics_store(vault, offline_gateway, collector):
    return MetricsStore(vault, offline_gateway, collector=collector)


@pytest.fixture
def proof_ledger(metrics_store, offline_gateway, clock, collector):
    return ProofLedger(metrics_store, offline_gateway, clock=clock, collector=collector)


@pytest.fixture
def reputation_engine(metrics_store, proof_ledger, offline_gateway, clock, collector):
    return ReputationEngine(
        metrics_store, proof_ledger, offline_gateway, clock=clock, collector=collector
    )


@pytest.fixture
def config():
    return TrackRecordConfig(credentials=FAST_CREDENTIALS)


@pytest.fixture
async def service(config, clock):
    """Offline, cache-only service."""
    svc = TrackRecordService(config, clock=clock)
    await svc.start()
    yield svc
    await svc.stop()
