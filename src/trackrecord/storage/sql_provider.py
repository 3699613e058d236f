"""
SQL Storage Provider.

Durable backend on SQLAlchemy's async engine. PostgreSQL (asyncpg) in
production; SQLite (aiosqlite) works for local runs and tests.

Requires: sqlalchemy[asyncio] plus asyncpg or aiosqlite
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    select,
    text,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from trackrecord.exceptions import StorageError
from trackrecord.models import (
    Agent,
    EarnedBadge,
    PerformanceMetrics,
    ReputationProof,
    TradeRecord,
    VerifiedReputation,
)

from .provider import AbstractStorageProvider, StorageConfig

logger = logging.getLogger(__name__)

metadata = MetaData()

agents_table = Table(
    "agents",
    metadata,
    Column("agent_id", String(64), primary_key=True),
    Column("name", String(64), nullable=False),
    Column("credential_hash", Text, nullable=False),
    Column("public_key", String(256)),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
)

metrics_table = Table(
    "metrics",
    metadata,
    Column("agent_id", String(64), primary_key=True),
    Column("total_trades", Integer, nullable=False, default=0),
    Column("winning_trades", Integer, nullable=False, default=0),
    Column("total_pnl_usd", Float, nullable=False, default=0.0),
    Column("max_drawdown_bps", Integer, nullable=False, default=0),
    Column("sharpe_proxy", Float, nullable=False, default=0.0),
    Column("avg_execution_time_ms", Float, nullable=False, default=0.0),
    Column("uptime_pct", Float, nullable=False, default=100.0),
    Column("last_updated", DateTime(timezone=True), nullable=False),
)

trades_table = Table(
    "trades",
    metadata,
    Column("trade_id", String(64), primary_key=True),
    Column("agent_id", String(64), nullable=False, index=True),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("token_in", String(32), nullable=False),
    Column("token_out", String(32), nullable=False),
    Column("amount_in", Float, nullable=False),
    Column("amount_out", Float, nullable=False),
    Column("pnl_usd", Float, nullable=False),
    Column("execution_time_ms", Integer, nullable=False),
)

proofs_table = Table(
    "proofs",
    metadata,
    Column("proof_id", String(64), primary_key=True),
    Column("agent_id", String(64), nullable=False, index=True),
    Column("proof_type", String(32), nullable=False),
    Column("proof_data", Text, nullable=False),
    Column("verification_key", Text, nullable=False),
    Column("public_inputs", JSON, nullable=False),
    Column("public_outputs", JSON, nullable=False),
    Column("circuit_tag", String(128), nullable=False),
    Column("source", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("expires_at", DateTime(timezone=True), nullable=False, index=True),
)

reputations_table = Table(
    "reputations",
    metadata,
    Column("agent_id", String(64), primary_key=True),
    Column("score", Integer, nullable=False),
    Column("tier", String(32), nullable=False),
    Column("badges", JSON, nullable=False),
    Column("attestation", Text, nullable=False),
    Column("attested", Boolean, nullable=False),
    Column("verified_at", DateTime(timezone=True), nullable=False),
)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SQLStorageProvider(AbstractStorageProvider):
    """
    SQL storage provider.

    Features:
    - Async SQLAlchemy Core
    - Connection pooling (PostgreSQL)
    - Idempotent appends keyed by trade/proof id
    - Native upserts via ON CONFLICT
    """

    def __init__(self, config: StorageConfig):
        """Initialize SQL storage."""
        super().__init__(config)
        if not config.connection_string:
            raise StorageError("SQLStorageProvider requires a connection_string")
        self._engine: Optional[AsyncEngine] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StorageError("Not connected")
        return self._engine

    async def connect(self) -> None:
        """Create the engine and the schema."""
        url = make_url(self.config.connection_string)
        backend = url.get_backend_name()
        if backend not in _UPSERT_DIALECTS:
            raise StorageError(f"Unsupported SQL backend: {backend}")

        engine_kwargs: dict[str, Any] = {"echo": self.config.echo}
        if backend == "postgresql":
            engine_kwargs.update(
                pool_size=self.config.pool_size,
                max_overflow=20,
                pool_pre_ping=True,
            )

        try:
            self._engine = create_async_engine(url, **engine_kwargs)
            async with self._engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to connect: {type(e).__name__}") from e
        logger.info("Connected to %s storage", backend)

    async def disconnect(self) -> None:
        """Dispose the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def health_check(self) -> bool:
        """Check if the database answers a trivial query."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.debug("Storage health check failed", exc_info=True)
            return False

    def _insert(self, table: Table):
        return _UPSERT_DIALECTS[self.engine.dialect.name](table)

    async def _write(self, statement) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.execute(statement)
        except SQLAlchemyError as e:
            raise StorageError(f"Write failed: {type(e).__name__}") from e

    async def _read(self, statement) -> list[Any]:
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(statement)
                return list(result.mappings())
        except SQLAlchemyError as e:
            raise StorageError(f"Read failed: {type(e).__name__}") from e

    # Agents

    async def save_agent(self, agent: Agent) -> None:
        stmt = self._insert(agents_table).values(
            agent_id=agent.agent_id,
            name=agent.name,
            credential_hash=agent.credential_hash,
            public_key=agent.public_key,
            created_at=agent.created_at,
        )
        await self._write(stmt.on_conflict_do_nothing(index_elements=["agent_id"]))

    @staticmethod
    def _agent(row) -> Agent:
        return Agent(
            agent_id=row["agent_id"],
            name=row["name"],
            credential_hash=row["credential_hash"],
            public_key=row["public_key"],
            created_at=_aware(row["created_at"]),
        )

    async def get_agent(self, agent_id: str) -> Optional[Agent]:
        rows = await self._read(
            select(agents_table).where(agents_table.c.agent_id == agent_id)
        )
        return self._agent(rows[0]) if rows else None

    async def list_agents(self) -> list[Agent]:
        rows = await self._read(select(agents_table).order_by(agents_table.c.created_at))
        return [self._agent(row) for row in rows]

    # Metrics

    async def save_metrics(self, metrics: PerformanceMetrics) -> None:
        values = metrics.model_dump()
        stmt = self._insert(metrics_table).values(**values)
        await self._write(
            stmt.on_conflict_do_update(
                index_elements=["agent_id"],
                set_={k: v for k, v in values.items() if k != "agent_id"},
            )
        )

    @staticmethod
    def _metrics(row) -> PerformanceMetrics:
        data = dict(row)
        data["last_updated"] = _aware(data["last_updated"])
        return PerformanceMetrics(**data)

    async def get_metrics(self, agent_id: str) -> Optional[PerformanceMetrics]:
        rows = await self._read(
            select(metrics_table).where(metrics_table.c.agent_id == agent_id)
        )
        return self._metrics(rows[0]) if rows else None

    async def list_metrics(self) -> list[PerformanceMetrics]:
        rows = await self._read(select(metrics_table))
        return [self._metrics(row) for row in rows]

    # Trades

    async def append_trade(self, trade: TradeRecord) -> None:
        stmt = self._insert(trades_table).values(**trade.model_dump())
        await self._write(stmt.on_conflict_do_nothing(index_elements=["trade_id"]))

    async def list_trades(self, agent_id: str) -> list[TradeRecord]:
        rows = await self._read(
            select(trades_table)
            .where(trades_table.c.agent_id == agent_id)
            .order_by(trades_table.c.timestamp)
        )
        trades = []
        for row in rows:
            data = dict(row)
            data["timestamp"] = _aware(data["timestamp"])
            trades.append(TradeRecord(**data))
        return trades

    # Proofs

    async def append_proof(self, proof: ReputationProof) -> None:
        stmt = self._insert(proofs_table).values(**proof.model_dump(mode="json"))
        # JSON mode stringifies datetimes; keep the real values for DateTime columns
        stmt = stmt.values(created_at=proof.created_at, expires_at=proof.expires_at)
        await self._write(stmt.on_conflict_do_nothing(index_elements=["proof_id"]))

    async def list_proofs(self, agent_id: str) -> list[ReputationProof]:
        rows = await self._read(
            select(proofs_table)
            .where(proofs_table.c.agent_id == agent_id)
            .order_by(proofs_table.c.created_at)
        )
        proofs = []
        for row in rows:
            data = dict(row)
            data["created_at"] = _aware(data["created_at"])
            data["expires_at"] = _aware(data["expires_at"])
            proofs.append(ReputationProof(**data))
        return proofs

    # Reputations

    async def upsert_reputation(self, reputation: VerifiedReputation) -> None:
        values = {
            "agent_id": reputation.agent_id,
            "score": reputation.score,
            "tier": reputation.tier,
            "badges": [badge.model_dump(mode="json") for badge in reputation.badges],
            "attestation": reputation.attestation,
            "attested": reputation.attested,
            "verified_at": reputation.verified_at,
        }
        stmt = self._insert(reputations_table).values(**values)
        await self._write(
            stmt.on_conflict_do_update(
                index_elements=["agent_id"],
                set_={k: v for k, v in values.items() if k != "agent_id"},
            )
        )

    async def get_reputation(self, agent_id: str) -> Optional[VerifiedReputation]:
        rows = await self._read(
            select(reputations_table).where(reputations_table.c.agent_id == agent_id)
        )
        if not rows:
            return None
        data = dict(rows[0])
        data["verified_at"] = _aware(data["verified_at"])
        data["badges"] = [EarnedBadge(**badge) for badge in data["badges"]]
        return VerifiedReputation(**data)
