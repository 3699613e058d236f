"""
Reputation proofs

Claim construction for each supported proof type.
"""

from .claims import DEFAULT_INPUTS, Claim, build_claim, resolve_inputs

__all__ = [
    "DEFAULT_INPUTS",
    "Claim",
    "build_claim",
    "resolve_inputs",
]
