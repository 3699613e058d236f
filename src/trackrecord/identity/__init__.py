"""
Agent credentials.

Salted, tunable-cost hashing of per-agent secrets.
"""

from .credentials import CredentialConfig, CredentialVault, hash_secret, verify_secret

__all__ = [
    "CredentialConfig",
    "CredentialVault",
    "hash_secret",
    "verify_secret",
]
