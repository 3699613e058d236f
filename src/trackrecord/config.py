"""
TrackRecord configuration.

Each component owns a small pydantic config model; ``TrackRecordConfig``
aggregates them and can be populated from ``TRACKRECORD_*`` environment
variables.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

from trackrecord.constants import (
    CERTIFICATE_TTL_SECONDS,
    DEFAULT_CALL_TIMEOUT_SECONDS,
    GENERAL_MAX_REQUESTS,
    GENERAL_WINDOW_SECONDS,
    PROOF_SWEEP_INTERVAL_SECONDS,
    PROOF_TTL_SECONDS,
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS,
    WRITE_BLOCK_SECONDS,
    WRITE_MAX_REQUESTS,
    WRITE_WINDOW_SECONDS,
)
from trackrecord.identity.credentials import CredentialConfig
from trackrecord.services.rate_limiter import RateLimitConfig
from trackrecord.storage.provider import StorageConfig


class PrivacyConfig(BaseModel):
    """Configuration for the privacy collaborator client."""

    base_url: Optional[str] = Field(
        default=None,
        description="Capability router URL; None runs fully on local fallbacks",
    )
    timeout_seconds: float = Field(default=DEFAULT_CALL_TIMEOUT_SECONDS, gt=0)
    enabled: bool = True


class TrackRecordConfig(BaseModel):
    """Top-level configuration for :class:`TrackRecordService`."""

    privacy: PrivacyConfig = Field(default_factory=PrivacyConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    credentials: CredentialConfig = Field(default_factory=CredentialConfig)
    general_rate_limit: RateLimitConfig = Field(
        default_factory=lambda: RateLimitConfig(
            max_requests=GENERAL_MAX_REQUESTS,
            window_seconds=GENERAL_WINDOW_SECONDS,
        )
    )
    write_rate_limit: RateLimitConfig = Field(
        default_factory=lambda: RateLimitConfig(
            max_requests=WRITE_MAX_REQUESTS,
            window_seconds=WRITE_WINDOW_SECONDS,
            block_seconds=WRITE_BLOCK_SECONDS,
        )
    )
    proof_ttl_seconds: int = Field(default=PROOF_TTL_SECONDS, gt=0)
    proof_sweep_interval_seconds: float = Field(default=PROOF_SWEEP_INTERVAL_SECONDS, gt=0)
    rate_limit_sweep_interval_seconds: float = Field(
        default=RATE_LIMIT_SWEEP_INTERVAL_SECONDS, gt=0
    )
    certificate_ttl_seconds: int = Field(default=CERTIFICATE_TTL_SECONDS, gt=0)

    @classmethod
    def from_env(cls) -> "TrackRecordConfig":
        """Build a config from ``TRACKRECORD_*`` environment variables.

        Unset variables keep their defaults.
        """
        privacy = PrivacyConfig(
            base_url=os.getenv("TRACKRECORD_PRIVACY_URL") or None,
            timeout_seconds=float(
                os.getenv("TRACKRECORD_PRIVACY_TIMEOUT", DEFAULT_CALL_TIMEOUT_SECONDS)
            ),
            enabled=os.getenv("TRACKRECORD_PRIVACY_ENABLED", "true").lower() != "false",
        )
        storage = StorageConfig(
            backend=os.getenv("TRACKRECORD_STORAGE_BACKEND", "none"),
            connection_string=os.getenv("TRACKRECORD_DATABASE_URL") or None,
            timeout_seconds=float(
                os.getenv("TRACKRECORD_STORAGE_TIMEOUT", DEFAULT_CALL_TIMEOUT_SECONDS)
            ),
        )
        credentials = CredentialConfig(
            scrypt_n=int(os.getenv("TRACKRECORD_SCRYPT_N", CredentialConfig().scrypt_n)),
        )
        return cls(privacy=privacy, storage=storage, credentials=credentials)
