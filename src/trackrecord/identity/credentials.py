"""
Credential Vault

Issues one-time agent secrets and verifies them against salted scrypt
hashes. Raw secrets are handed back to the caller exactly once and never
stored, logged or re-derivable.
"""

import asyncio
import base64
import logging
import secrets
from typing import Optional

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SECRET_PREFIX = "trk_"
HASH_SCHEME = "scrypt"
SALT_BYTES = 16
KEY_LENGTH = 32


class CredentialConfig(BaseModel):
    """Cost parameters for the credential hash."""

    scrypt_n: int = Field(default=2**14, ge=2, description="CPU/memory cost, power of two")
    scrypt_r: int = Field(default=8, ge=1)
    scrypt_p: int = Field(default=1, ge=1)


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii")


def _unb64(data: str) -> bytes:
    return base64.urlsafe_b64decode(data.encode("ascii"))


def hash_secret(secret: str, config: CredentialConfig) -> str:
    """Hash *secret* with a fresh random salt.

    Returns:
        ``scrypt$<n>$<r>$<p>$<salt>$<key>`` with base64 salt and key.
    """
    salt = secrets.token_bytes(SALT_BYTES)
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=config.scrypt_n, r=config.scrypt_r, p=config.scrypt_p)
    key = kdf.derive(secret.encode("utf-8"))
    return "$".join(
        [HASH_SCHEME, str(config.scrypt_n), str(config.scrypt_r), str(config.scrypt_p), _b64(salt), _b64(key)]
    )


def verify_secret(secret: str, encoded: str) -> bool:
    """Constant-time check of *secret* against an encoded hash.

    Malformed hashes and secrets that are not encodable as UTF-8 fail closed.
    """
    parts = encoded.split("$")
    if len(parts) != 6 or parts[0] != HASH_SCHEME:
        return False
    try:
        n, r, p = int(parts[1]), int(parts[2]), int(parts[3])
        salt, key = _unb64(parts[4]), _unb64(parts[5])
        kdf = Scrypt(salt=salt, length=len(key), n=n, r=r, p=p)
        candidate = secret.encode("utf-8")
    except ValueError:
        # UnicodeEncodeError is a ValueError
        return False
    try:
        kdf.verify(candidate, key)
    except InvalidKey:
        return False
    return True


class CredentialVault:
    """Per-agent secret issuance and verification.

    Hashing is CPU-bound, so it runs in a worker thread to keep the event
    loop responsive.

    Args:
        config: scrypt cost parameters.
    """

    def __init__(self, config: Optional[CredentialConfig] = None) -> None:
        self._config = config or CredentialConfig()
        self._hashes: dict[str, str] = {}

    async def issue(self, agent_id: str) -> str:
        """Generate a secret for *agent_id* and store only its hash.

        Re-issuing replaces the previous hash.

        Returns:
            The raw secret. This is the only time it is available.
        """
        secret = SECRET_PREFIX + secrets.token_urlsafe(32)
        self._hashes[agent_id] = await asyncio.to_thread(hash_secret, secret, self._config)
        logger.debug("Issued credential for agent %s", agent_id)
        return secret

    async def verify(self, agent_id: str, candidate: str) -> bool:
        """Check *candidate* against the stored hash for *agent_id*."""
        encoded = self._hashes.get(agent_id)
        if not encoded or not candidate:
            return False
        return await asyncio.to_thread(verify_secret, candidate, encoded)

    def hash_for(self, agent_id: str) -> Optional[str]:
        return self._hashes.get(agent_id)

    def restore(self, agent_id: str, credential_hash: str) -> None:
        """Load a hash read back from durable storage."""
        self._hashes[agent_id] = credential_hash

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._hashes

    def __len__(self) -> int:
        return len(self._hashes)
