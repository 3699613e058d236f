"""
Abstract Storage Provider Interface.

Defines the contract that all durable backends must implement. The core
never blocks on these calls; they run behind the write-behind tier.
"""

from abc import ABC, abstractmethod
from typing import Literal, Optional

from pydantic import BaseModel, Field

from trackrecord.constants import DEFAULT_CALL_TIMEOUT_SECONDS
from trackrecord.models import (
    Agent,
    PerformanceMetrics,
    ReputationProof,
    TradeRecord,
    VerifiedReputation,
)


class StorageConfig(BaseModel):
    """Configuration for storage provider."""

    backend: Literal["none", "memory", "sql"] = Field(
        default="none", description="Storage backend type"
    )
    connection_string: Optional[str] = Field(
        default=None, description="SQLAlchemy async URL, e.g. postgresql+asyncpg://..."
    )
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    timeout_seconds: float = Field(
        default=DEFAULT_CALL_TIMEOUT_SECONDS, gt=0, le=300, description="Operation timeout"
    )
    echo: bool = Field(default=False, description="Log emitted SQL")


class AbstractStorageProvider(ABC):
    """
    Abstract storage provider.

    Supports:
    - Agent rows (insert once)
    - Metrics rows (upsert)
    - Append-only trade and proof logs
    - Verified reputation rows (upsert)
    """

    def __init__(self, config: StorageConfig):
        """Initialize storage provider with configuration."""
        self.config = config

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to storage backend."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to storage backend."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if storage backend is healthy."""
        pass

    # Agents

    @abstractmethod
    async def save_agent(self, agent: Agent) -> None:
        """Insert an agent; an existing row is left untouched."""
        pass

    @abstractmethod
    async def get_agent(self, agent_id: str) -> Optional[Agent]:
        pass

    @abstractmethod
    async def list_agents(self) -> list[Agent]:
        """All agents in registration order."""
        pass

    # Metrics

    @abstractmethod
    async def save_metrics(self, metrics: PerformanceMetrics) -> None:
        """Insert or replace the metrics row for an agent."""
        pass

    @abstractmethod
    async def get_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        pass

    @abstractmethod
    async def list_metrics(self) -> list[PerformanceMetrics]:
        pass

    # Trades

    @abstractmethod
    async def append_trade(self, trade: TradeRecord) -> None:
        """Append a trade; a duplicate ``trade_id`` is ignored."""
        pass

    @abstractmethod
    async def list_trades(self, agent_id: str) -> list[TradeRecord]:
        """Trades for an agent, oldest first."""
        pass

    # Proofs

    @abstractmethod
    async def append_proof(self, proof: ReputationProof) -> None:
        """Append a proof; a duplicate ``proof_id`` is ignored."""
        pass

    @abstractmethod
    async def list_proofs(self, agent_id: str) -> list[ReputationProof]:
        pass

    # Reputations

    @abstractmethod
    async def upsert_reputation(self, reputation: VerifiedReputation) -> None:
        pass

    @abstractmethod
    async def get_reputation(self, agent_id: str) -> Optional[VerifiedReputation]:
        pass
