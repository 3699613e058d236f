"""
In-Memory Storage Provider.

Simple in-memory implementation for development and testing.
"""

from typing import Optional

from trackrecord.models import (
    Agent,
    PerformanceMetrics,
    ReputationProof,
    TradeRecord,
    VerifiedReputation,
)

from .provider import AbstractStorageProvider, StorageConfig


class MemoryStorageProvider(AbstractStorageProvider):
    """
    In-memory storage provider.

    Uses Python dictionaries for storage. Data is lost on restart.
    Suitable for development and testing only.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize in-memory storage."""
        super().__init__(config or StorageConfig(backend="memory"))
        self._agents: dict[str, Agent] = {}
        self._metrics: dict[str, PerformanceMetrics] = {}
        self._trades: dict[str, TradeRecord] = {}
        self._proofs: dict[str, ReputationProof] = {}
        self._reputations: dict[str, VerifiedReputation] = {}
        self._connected = False

    async def connect(self) -> None:
        """Establish connection (no-op for memory)."""
        self._connected = True

    async def disconnect(self) -> None:
        """Close connection (no-op for memory)."""
        self._connected = False

    async def health_check(self) -> bool:
        """Check if storage is healthy."""
        return self._connected

    async def save_agent(self, agent: Agent) -> None:
        self._agents.setdefault(agent.agent_id, agent)

    async def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get(agent_id)

    async def list_agents(self) -> list[Agent]:
        return sorted(self._agents.values(), key=lambda a: a.created_at)

    async def save_metrics(self, metrics: PerformanceMetrics) -> None:
        self._metrics[metrics.agent_id] = metrics

    async def get_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        return self._metrics.get(agent_id)

    async def list_metrics(self) -> list[PerformanceMetrics]:
        return list(self._metrics.values())

    async def append_trade(self, trade: TradeRecord) -> None:
        self._trades.setdefault(trade.trade_id, trade)

    async def list_trades(self, agent_id: str) -> list[TradeRecord]:
        return [t for t in self._trades.values() if t.agent_id == agent_id]

    async def append_proof(self, proof: ReputationProof) -> None:
        self._proofs.setdefault(proof.proof_id, proof)

    async def list_proofs(self, agent_id: str) -> list[ReputationProof]:
        return [p for p in self._proofs.values() if p.agent_id == agent_id]

    async def upsert_reputation(self, reputation: VerifiedReputation) -> None:
        self._reputations[reputation.agent_id] = reputation

    async def get_reputation(self, agent_id: str) -> Optional[VerifiedReputation]:
        return self._reputations.get(agent_id)
