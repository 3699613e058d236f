# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Privacy Collaborator Interface.

The narrow contract the core needs from the external privacy provider:
encrypt, fold, prove, verify and score. Implementations raise
CollaboratorUnavailableError on any failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class EncryptionResult(BaseModel):
    """Fresh ciphertext for a plaintext value."""

    ciphertext: str
    proof: str = ""
    mode: Literal["live", "computed"] = "computed"


class FoldResult(BaseModel):
    """Ciphertext after homomorphically adding a delta."""

    ciphertext: str
    proof: str = ""


class ProofResult(BaseModel):
    """A generated proof and the material needed to verify it."""

    proof: str
    verification_key: str
    public_outputs: dict[str, Any] = Field(default_factory=dict)
    attested: bool = True


class VerifyResult(BaseModel):
    """Verifier verdict."""

    valid: bool
    evidence: str = ""
    attested: bool = True


class ScoreResult(BaseModel):
    """Multi-party computed reputation score."""

    score: int = Field(..., ge=0, le=100)
    tier: Optional[str] = None
    attestation: str = ""
    attested: bool = True


class PrivacyCollaborator(ABC):
    """
    Abstract privacy collaborator.

    Every method may fail (timeout, transport error, non-2xx, malformed
    payload); callers must treat failure as an expected branch.
    """

    @abstractmethod
    async def encrypt(self, value: float) -> EncryptionResult:
        """Encrypt a plaintext value."""
        pass

    @abstractmethod
    async def fold(self, ciphertext: str, delta: float) -> FoldResult:
        """Homomorphically add *delta* to *ciphertext*."""
        pass

    @abstractmethod
    async def prove(
        self,
        proof_type: str,
        public_inputs: dict[str, Any],
        private_inputs: dict[str, Any],
        circuit: str,
    ) -> ProofResult:
        """Generate a zero-knowledge proof of a claim over private inputs."""
        pass

    @abstractmethod
    async def verify(
        self,
        proof: str,
        verification_key: str,
        public_inputs: dict[str, Any],
    ) -> VerifyResult:
        """Verify a proof against its public inputs."""
        pass

    @abstractmethod
    async def score(
        self,
        agent_id: str,
        ciphertext: str,
        proofs: list[str],
    ) -> ScoreResult:
        """Compute a reputation score from encrypted metrics and proofs."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the collaborator is reachable."""
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None
