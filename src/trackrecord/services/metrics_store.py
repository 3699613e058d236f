# Copyright (c) TrackRecord Contributors. All rights reserved.
# Licensed under the MIT License.
"""
Metrics Store Service

Agent registry and trade ingestion. Owns:
- Registered agents (immutable after registration)
- Per-agent performance aggregates
- Encrypted P&L handles produced by the privacy collaborator

The in-memory maps are authoritative. Durable writes go through the
write-behind tier and collaborator calls through the privacy gateway; a
failure in either never fails the caller.
"""

import logging
from typing import Optional

from trackrecord.exceptions import NotFoundError
from trackrecord.identity.credentials import CredentialVault
from trackrecord.locks import KeyedLock
from trackrecord.metrics.aggregates import apply_trade
from trackrecord.models import (
    Agent,
    AgentRegistration,
    EncryptedMetricsHandle,
    PerformanceMetrics,
    TradeRecord,
    new_id,
    parse_model,
    utcnow,
)
from trackrecord.observability.metrics import MetricsCollector
from trackrecord.privacy.gateway import PrivacyGateway
from trackrecord.storage.write_behind import WriteBehindStore

logger = logging.getLogger(__name__)


class MetricsStore:
    """
    Metrics Store.

    Metric updates for one agent are serialized by a per-agent lock; handle
    folds use a second per-agent lock so a slow collaborator never holds up
    metric updates.
    """

    def __init__(
        self,
        vault: CredentialVault,
        gateway: PrivacyGateway,
        store: Optional[WriteBehindStore] = None,
        collector: Optional[MetricsCollector] = None,
    ):
        self.vault = vault
        self.gateway = gateway
        self.store = store or WriteBehindStore()
        self.collector = collector
        self._agents: dict[str, Agent] = {}
        self._metrics: dict[str, PerformanceMetrics] = {}
        self._handles: dict[str, EncryptedMetricsHandle] = {}
        self._metrics_locks = KeyedLock()
        self._handle_locks = KeyedLock()

    async def register_agent(
        self,
        name: str,
        public_key: Optional[str] = None,
    ) -> tuple[Agent, str]:
        """
        Register a new agent.

        Args:
            name: Display name; names need not be unique.
            public_key: Optional public key of the agent.

        Returns:
            The agent and its raw credential. The credential is not stored
            and cannot be recovered later.

        Raises:
            ValidationError: If the name or public key is malformed.
        """
        registration = parse_model(AgentRegistration, {"name": name, "public_key": public_key})
        agent_id = new_id()
        secret = await self.vault.issue(agent_id)

        agent = Agent(
            agent_id=agent_id,
            name=registration.name,
            credential_hash=self.vault.hash_for(agent_id),
            public_key=registration.public_key,
        )
        metrics = PerformanceMetrics(agent_id=agent_id, last_updated=agent.created_at)
        self._agents[agent_id] = agent
        self._metrics[agent_id] = metrics
        if self.collector:
            self.collector.set_registered_agents(len(self._agents))
        logger.info("Registered agent %s", agent_id)

        provider = self.store.provider
        self.store.submit(agent_id, "save_agent", lambda: provider.save_agent(agent))
        self.store.submit(agent_id, "save_metrics", lambda: provider.save_metrics(metrics))

        async with self._handle_locks.hold(agent_id):
            if agent_id not in self._handles:
                await self._encrypt_handle(agent_id)

        return agent, secret

    async def validate_credential(self, agent_id: str, secret: str) -> bool:
        return await self.vault.verify(agent_id, secret)

    async def log_trade(self, trade: TradeRecord) -> PerformanceMetrics:
        """
        Fold a trade into the agent's aggregates.

        Returns:
            The agent's metrics including this trade.

        Raises:
            NotFoundError: If the agent is unknown.
        """
        agent_id = trade.agent_id
        if agent_id not in self._agents:
            raise NotFoundError("Agent not found")

        provider = self.store.provider
        async with self._metrics_locks.hold(agent_id):
            metrics = apply_trade(self._metrics[agent_id], trade)
            self._metrics[agent_id] = metrics
            self.store.submit(agent_id, "append_trade", lambda: provider.append_trade(trade))
            self.store.submit(agent_id, "save_metrics", lambda: provider.save_metrics(metrics))
        # position of this trade in the agent's history
        sequence = metrics.total_trades

        if self.collector:
            self.collector.record_trade()
        logger.debug("Logged trade %s for agent %s", trade.trade_id, agent_id)

        async with self._handle_locks.hold(agent_id):
            handle = self._handles.get(agent_id)
            if handle is None:
                await self._encrypt_handle(agent_id)
            elif sequence > handle.covered_trades:
                folded = await self.gateway.fold(handle.ciphertext, trade.pnl_usd)
                if folded is not None:
                    self._handles[agent_id] = handle.model_copy(
                        update={
                            "ciphertext": folded.ciphertext,
                            "proof": folded.proof or handle.proof,
                            "covered_trades": sequence,
                            "last_updated": utcnow(),
                        }
                    )

        return metrics

    async def _encrypt_handle(self, agent_id: str) -> None:
        # caller holds the handle lock; trades already in the snapshot are
        # never folded again
        snapshot = self._metrics[agent_id]
        encrypted = await self.gateway.encrypt(snapshot.total_pnl_usd)
        if encrypted is None:
            logger.debug("No encrypted handle for agent %s yet", agent_id)
            return
        self._handles[agent_id] = EncryptedMetricsHandle(
            agent_id=agent_id,
            ciphertext=encrypted.ciphertext,
            proof=encrypted.proof,
            mode=encrypted.mode,
            covered_trades=snapshot.total_trades,
        )

    async def hydrate(self) -> int:
        """Load agents and metrics from the durable store into the cache.

        Agents already in the cache are kept as they are.

        Returns:
            Number of agents loaded.
        """
        provider = self.store.provider
        agents = await self.store.read("list_agents", provider.list_agents) if provider else None
        if not agents:
            return 0
        metrics_rows = await self.store.read("list_metrics", provider.list_metrics) or []
        metrics_by_agent = {m.agent_id: m for m in metrics_rows}

        loaded = 0
        for agent in agents:
            if agent.agent_id in self._agents:
                continue
            self._agents[agent.agent_id] = agent
            self._metrics[agent.agent_id] = metrics_by_agent.get(
                agent.agent_id,
                PerformanceMetrics(agent_id=agent.agent_id),
            )
            self.vault.restore(agent.agent_id, agent.credential_hash)
            loaded += 1

        if self.collector:
            self.collector.set_registered_agents(len(self._agents))
        logger.info("Hydrated %d agents from durable store", loaded)
        return loaded

    # Reads

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get(agent_id)

    def list_agents(self) -> list[Agent]:
        """All agents in registration order."""
        return list(self._agents.values())

    def get_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        return self._metrics.get(agent_id)

    def get_encrypted_metrics(self, agent_id: str) -> Optional[EncryptedMetricsHandle]:
        return self._handles.get(agent_id)

    def get_win_rate(self, agent_id: str) -> Optional[float]:
        """Win rate in percent, or None for an unknown agent."""
        metrics = self._metrics.get(agent_id)
        return metrics.win_rate if metrics else None

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)
