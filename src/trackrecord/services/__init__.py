"""
TrackRecord services

Stateful components of the reputation core.
"""

from .rate_limiter import RateLimitConfig, RateLimiter, RateLimitResult
from .scheduler import PeriodicTask
from .metrics_store import MetricsStore
from .proof_ledger import ProofLedger
from .reputation_engine import ReputationEngine, certificate_hash

__all__ = [
    "RateLimitConfig",
    "RateLimiter",
    "RateLimitResult",
    "PeriodicTask",
    "MetricsStore",
    "ProofLedger",
    "ReputationEngine",
    "certificate_hash",
]
