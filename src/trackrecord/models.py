"""
TrackRecord data models.

Agents, trades and performance aggregates, encrypted handles, proofs,
verified reputations and the derived public views built from them.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from trackrecord.constants import (
    AMOUNT_MAX,
    EXECUTION_TIME_MAX_MS,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    PNL_ABS_MAX,
    PUBLIC_KEY_MAX_LENGTH,
    SCORE_MAX,
    SCORE_MIN,
    TIER_UNVERIFIED,
    TOKEN_SYMBOL_MAX_LENGTH,
)
from trackrecord.exceptions import ValidationError

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\s]+$")

ProofType = Literal[
    "win_rate",
    "pnl_threshold",
    "trade_count",
    "sharpe_ratio",
    "max_drawdown",
    "uptime",
    "composite",
]
PROOF_TYPES: tuple[str, ...] = (
    "win_rate",
    "pnl_threshold",
    "trade_count",
    "sharpe_ratio",
    "max_drawdown",
    "uptime",
    "composite",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class AgentRegistration(BaseModel):
    """Validated registration request."""

    name: str = Field(..., min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    public_key: Optional[str] = Field(default=None, max_length=PUBLIC_KEY_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _NAME_PATTERN.match(value):
            raise ValueError(
                "Name can only contain letters, numbers, underscores, hyphens, and spaces"
            )
        return value


class Agent(BaseModel):
    """A registered trading agent. Immutable after registration."""

    agent_id: str
    name: str
    created_at: datetime = Field(default_factory=utcnow)
    credential_hash: str = Field(..., repr=False)
    public_key: Optional[str] = None

    model_config = {"frozen": True}


class TradeRecord(BaseModel):
    """A single executed trade as reported by the agent."""

    trade_id: str = Field(default_factory=new_id)
    agent_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    token_in: str = Field(default="SOL", max_length=TOKEN_SYMBOL_MAX_LENGTH)
    token_out: str = Field(default="USDC", max_length=TOKEN_SYMBOL_MAX_LENGTH)
    amount_in: float = Field(default=0.0, ge=0, le=AMOUNT_MAX)
    amount_out: float = Field(default=0.0, ge=0, le=AMOUNT_MAX)
    pnl_usd: float = Field(..., ge=-PNL_ABS_MAX, le=PNL_ABS_MAX)
    execution_time_ms: int = Field(default=100, ge=0, le=EXECUTION_TIME_MAX_MS)

    model_config = {"frozen": True}


class PerformanceMetrics(BaseModel):
    """Running aggregates over every trade an agent has logged."""

    agent_id: str
    total_trades: int = Field(default=0, ge=0)
    winning_trades: int = Field(default=0, ge=0)
    total_pnl_usd: float = 0.0
    max_drawdown_bps: int = Field(default=0, ge=0)
    sharpe_proxy: float = 0.0
    avg_execution_time_ms: float = 0.0
    uptime_pct: float = 100.0
    last_updated: datetime = Field(default_factory=utcnow)

    @property
    def win_rate_fraction(self) -> float:
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades / self.total_trades

    @property
    def win_rate(self) -> float:
        """Win rate as a percentage in [0, 100]."""
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades * 100 / self.total_trades


class EncryptedMetricsHandle(BaseModel):
    """Opaque ciphertext of an agent's P&L, shareable without the plaintext."""

    agent_id: str
    ciphertext: str
    proof: str = ""
    mode: Literal["live", "computed"] = "computed"
    covered_trades: int = Field(default=0, ge=0, description="Trades already folded into the ciphertext")
    last_updated: datetime = Field(default_factory=utcnow)


class ReputationProof(BaseModel):
    """A time-bounded attestation that a claim over private metrics holds."""

    proof_id: str = Field(default_factory=new_id)
    agent_id: str
    proof_type: ProofType
    proof_data: str
    verification_key: str
    public_inputs: dict[str, float] = Field(default_factory=dict)
    public_outputs: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    expires_at: datetime
    circuit_tag: str
    source: Literal["collaborator", "local"] = "collaborator"

    model_config = {"frozen": True}

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class ProofVerification(BaseModel):
    """Outcome of verifying a stored proof."""

    proof_id: str
    valid: bool
    evidence: str
    attested: bool


class EarnedBadge(BaseModel):
    """A badge whose predicate held at verification time."""

    badge_id: str
    name: str
    description: str
    earned_at: datetime


class VerifiedReputation(BaseModel):
    """The latest verified score for an agent; overwritten on each run."""

    agent_id: str
    score: int = Field(..., ge=SCORE_MIN, le=SCORE_MAX)
    tier: str = TIER_UNVERIFIED
    badges: list[EarnedBadge] = Field(default_factory=list)
    attestation: str = ""
    attested: bool = False
    verified_at: datetime = Field(default_factory=utcnow)


class StarRating(BaseModel):
    """Public star rating on the 0-3 scale."""

    stars: int = Field(..., ge=0, le=3)
    label: str
    display: str


class TrustCertificate(BaseModel):
    """Ephemeral, public-safe snapshot of an agent's rating."""

    agent_id: str
    agent_name: str
    verified: bool
    star_rating: int = Field(..., ge=0, le=3)
    rating_label: str
    rating_display: str
    tier: str
    score: int
    total_trades: int
    win_rate: float
    verified_at: Optional[datetime] = None
    certificate_hash: str
    issued_at: datetime
    valid_until: datetime


class TrustCheck(BaseModel):
    """Answer to "does this agent meet my minimum star requirement?"."""

    agent_id: str
    verified: bool
    star_rating: int
    required_stars: int
    meets_requirement: bool
    valid: bool
    verified_at: Optional[datetime] = None


class LeaderboardEntry(BaseModel):
    """Agent ranking entry on the public leaderboard."""

    rank: int
    agent_id: str
    agent_name: str
    score: int
    star_rating: int
    rating_display: str
    tier: str
    badge_count: int
    total_trades: int
    win_rate: float


def parse_model(model_cls, data: dict[str, Any]):
    """Validate *data* into *model_cls*, raising the package ValidationError."""
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(messages) from e
