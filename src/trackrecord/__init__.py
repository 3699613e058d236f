"""
TrackRecord - Private Agent Reputation Core

Performance aggregates · Time-bounded proofs · Trust ratings

Trading agents build a verifiable track record without exposing their raw
trades. Encryption, proof generation and multi-party scoring are delegated
to an external privacy collaborator; every one of those calls has a local
fallback, so the core keeps working when the collaborator does not.

Version: 0.1.0
"""

__version__ = "0.1.0"

from .config import PrivacyConfig, TrackRecordConfig
from .exceptions import (
    AuthFailureError,
    CollaboratorUnavailableError,
    ExpiredError,
    NotFoundError,
    RateLimitedError,
    StorageError,
    TrackRecordError,
    ValidationError,
)
from .identity import CredentialConfig, CredentialVault
from .models import (
    Agent,
    EarnedBadge,
    EncryptedMetricsHandle,
    LeaderboardEntry,
    PerformanceMetrics,
    ProofVerification,
    ReputationProof,
    StarRating,
    TradeRecord,
    TrustCertificate,
    TrustCheck,
    VerifiedReputation,
)
from .observability import MetricsCollector
from .privacy import HttpPrivacyCollaborator, PrivacyCollaborator, PrivacyGateway
from .service import TrackRecordService
from .services import (
    MetricsStore,
    PeriodicTask,
    ProofLedger,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    ReputationEngine,
)
from .storage import (
    AbstractStorageProvider,
    BackendHealth,
    MemoryStorageProvider,
    SQLStorageProvider,
    StorageConfig,
    WriteBehindStore,
)

__all__ = [
    "__version__",
    # Service
    "TrackRecordService",
    "TrackRecordConfig",
    "PrivacyConfig",
    # Components
    "CredentialConfig",
    "CredentialVault",
    "MetricsStore",
    "ProofLedger",
    "ReputationEngine",
    "RateLimitConfig",
    "RateLimiter",
    "RateLimitResult",
    "PeriodicTask",
    # Privacy
    "PrivacyCollaborator",
    "HttpPrivacyCollaborator",
    "PrivacyGateway",
    # Storage
    "AbstractStorageProvider",
    "StorageConfig",
    "MemoryStorageProvider",
    "SQLStorageProvider",
    "WriteBehindStore",
    "BackendHealth",
    # Observability
    "MetricsCollector",
    # Models
    "Agent",
    "TradeRecord",
    "PerformanceMetrics",
    "EncryptedMetricsHandle",
    "ReputationProof",
    "ProofVerification",
    "EarnedBadge",
    "VerifiedReputation",
    "StarRating",
    "TrustCertificate",
    "TrustCheck",
    "LeaderboardEntry",
    # Exceptions
    "TrackRecordError",
    "ValidationError",
    "NotFoundError",
    "AuthFailureError",
    "ExpiredError",
    "RateLimitedError",
    "CollaboratorUnavailableError",
    "StorageError",
]
