# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""
HTTP Privacy Collaborator.

Talks to a capability router over ``POST /invoke`` using httpx. Each
operation maps onto one capability id; every transport error, non-2xx
status, ``success: false`` or malformed payload becomes
CollaboratorUnavailableError.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from trackrecord.constants import DEFAULT_CALL_TIMEOUT_SECONDS
from trackrecord.exceptions import CollaboratorUnavailableError
from trackrecord.privacy.provider import (
    EncryptionResult,
    FoldResult,
    PrivacyCollaborator,
    ProofResult,
    ScoreResult,
    VerifyResult,
)

logger = logging.getLogger(__name__)

CAP_FHE_COMPUTE = "cap.fhe.compute.v1"
CAP_ZK_PROOF = "cap.zk.proof.v1"
CAP_ZK_VERIFY = "cap.zk.verify.v1"
CAP_MPC_COMPUTE = "cap.mpc.compute.v1"


class HttpPrivacyCollaborator(PrivacyCollaborator):
    """
    Capability-router client.

    Args:
        base_url: Router base URL (e.g. ``https://router.example``).
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpPrivacyCollaborator":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def invoke(
        self,
        capability_id: str,
        inputs: dict[str, Any],
        privacy_required: bool = False,
    ) -> dict[str, Any]:
        """Invoke a capability and return its ``outputs`` mapping.

        Raises:
            CollaboratorUnavailableError: On any failure.
        """
        body: dict[str, Any] = {"capability_id": capability_id, "inputs": inputs}
        if privacy_required:
            body["preferences"] = {"privacy_required": True}

        try:
            response = await self._client.post("/invoke", json=body)
        except httpx.HTTPError as e:
            raise CollaboratorUnavailableError(capability_id, type(e).__name__) from e

        if response.status_code >= 400:
            raise CollaboratorUnavailableError(capability_id, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise CollaboratorUnavailableError(capability_id, "malformed JSON") from e

        if not isinstance(payload, dict) or not payload.get("success"):
            error = payload.get("error") if isinstance(payload, dict) else None
            raise CollaboratorUnavailableError(capability_id, error or "request failed")

        outputs = payload.get("outputs")
        if not isinstance(outputs, dict):
            raise CollaboratorUnavailableError(capability_id, "missing outputs")
        return outputs

    async def encrypt(self, value: float) -> EncryptionResult:
        outputs = await self.invoke(
            CAP_FHE_COMPUTE,
            {"operation": "add", "operands": [value, 0]},
            privacy_required=True,
        )
        ciphertext = outputs.get("encrypted_result")
        if not ciphertext:
            raise CollaboratorUnavailableError(CAP_FHE_COMPUTE, "empty ciphertext")
        mode = outputs.get("mode", "computed")
        return EncryptionResult(
            ciphertext=ciphertext,
            proof=outputs.get("computation_proof") or "",
            mode=mode if mode in ("live", "computed") else "computed",
        )

    async def fold(self, ciphertext: str, delta: float) -> FoldResult:
        outputs = await self.invoke(
            CAP_FHE_COMPUTE,
            {"operation": "add", "operands": [ciphertext, delta]},
        )
        folded = outputs.get("encrypted_result")
        if not folded:
            raise CollaboratorUnavailableError(CAP_FHE_COMPUTE, "empty ciphertext")
        return FoldResult(ciphertext=folded, proof=outputs.get("computation_proof") or "")

    async def prove(
        self,
        proof_type: str,
        public_inputs: dict[str, Any],
        private_inputs: dict[str, Any],
        circuit: str,
    ) -> ProofResult:
        outputs = await self.invoke(
            CAP_ZK_PROOF,
            {
                "proof_type": proof_type,
                "circuit": circuit,
                "public_inputs": public_inputs,
                "private_inputs": private_inputs,
            },
        )
        proof = outputs.get("proof")
        verification_key = outputs.get("verification_key")
        if not proof or not verification_key:
            raise CollaboratorUnavailableError(CAP_ZK_PROOF, "missing proof material")
        public_outputs = outputs.get("public_outputs")
        return ProofResult(
            proof=proof,
            verification_key=verification_key,
            public_outputs=public_outputs if isinstance(public_outputs, dict) else {},
        )

    async def verify(
        self,
        proof: str,
        verification_key: str,
        public_inputs: dict[str, Any],
    ) -> VerifyResult:
        outputs = await self.invoke(
            CAP_ZK_VERIFY,
            {
                "proof": proof,
                "verification_key": verification_key,
                "public_inputs": public_inputs,
            },
        )
        valid = outputs.get("valid")
        if not isinstance(valid, bool):
            raise CollaboratorUnavailableError(CAP_ZK_VERIFY, "missing verdict")
        return VerifyResult(valid=valid, evidence=outputs.get("verification_proof") or "")

    async def score(
        self,
        agent_id: str,
        ciphertext: str,
        proofs: list[str],
    ) -> ScoreResult:
        outputs = await self.invoke(
            CAP_MPC_COMPUTE,
            {
                "computation_type": "reputation_score",
                "agent_id": agent_id,
                "encrypted_metrics": ciphertext,
                "proofs": proofs,
            },
            privacy_required=True,
        )
        if outputs.get("reputation_score") is None:
            raise CollaboratorUnavailableError(CAP_MPC_COMPUTE, "missing score")
        try:
            return ScoreResult(
                score=outputs["reputation_score"],
                tier=outputs.get("tier") or None,
                attestation=outputs.get("mpc_attestation") or "",
            )
        except PydanticValidationError as e:
            raise CollaboratorUnavailableError(CAP_MPC_COMPUTE, "malformed score") from e

    async def health_check(self) -> bool:
        """Check if the router answers ``GET /health``."""
        try:
            response = await self._client.get("/health", timeout=5.0)
        except httpx.HTTPError:
            logger.debug("Privacy collaborator health check failed", exc_info=True)
            return False
        return response.status_code == 200
