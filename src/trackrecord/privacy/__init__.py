"""
Privacy collaborator

The encrypt/fold/prove/verify/score interface, its HTTP implementation and
the fault-tolerant gateway used by the core.
"""

from .fallback import LocalPrivacyFallback
from .gateway import PrivacyGateway
from .http_client import HttpPrivacyCollaborator
from .provider import (
    EncryptionResult,
    FoldResult,
    PrivacyCollaborator,
    ProofResult,
    ScoreResult,
    VerifyResult,
)

__all__ = [
    "LocalPrivacyFallback",
    "PrivacyGateway",
    "HttpPrivacyCollaborator",
    "EncryptionResult",
    "FoldResult",
    "PrivacyCollaborator",
    "ProofResult",
    "ScoreResult",
    "VerifyResult",
]
