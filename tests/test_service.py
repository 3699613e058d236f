"""End-to-end tests for the TrackRecord service facade."""

from unittest.mock import AsyncMock

import pytest

from trackrecord import TrackRecordService
from trackrecord.config import PrivacyConfig, TrackRecordConfig
from trackrecord.exceptions import (
    AuthFailureError,
    ExpiredError,
    NotFoundError,
    RateLimitedError,
    StorageError,
    ValidationError,
)
from trackrecord.services.rate_limiter import RateLimitConfig
from trackrecord.storage import MemoryStorageProvider

from conftest import FAST_CREDENTIALS, REFERENCE_EXEC_MS, REFERENCE_PNL, ManualClock, StubCollaborator


async def _seed(service, name="Bot1"):
    agent, secret = await service.register_agent(name)
    for pnl, ms in zip(REFERENCE_PNL, REFERENCE_EXEC_MS):
        await service.log_trade(agent.agent_id, secret, pnl_usd=pnl, execution_time_ms=ms)
    return agent, secret


class TestReferenceScenario:
    @pytest.mark.asyncio
    async def test_offline_flow(self, service, clock):
        agent, secret = await _seed(service)

        metrics = service.get_metrics(agent.agent_id)
        assert metrics.total_trades == 10
        assert metrics.winning_trades == 7
        assert metrics.total_pnl_usd == pytest.approx(1105)

        proof = await service.generate_proof(agent.agent_id, "win_rate", {"threshold": 50})
        assert proof.public_outputs["meets_threshold"] is True
        assert service.get_proof(proof.proof_id) == proof
        assert service.list_agent_proofs(agent.agent_id) == [proof]

        verification = await service.verify_proof(proof.proof_id)
        assert verification.valid is True
        assert verification.attested is False

        reputation = await service.compute_reputation(agent.agent_id)
        assert reputation.score == 44
        assert service.get_reputation(agent.agent_id) == reputation
        assert service.get_star_rating(agent.agent_id).label == "Verified"

        cert = service.get_trust_certificate(agent.agent_id)
        assert cert.verified is True
        assert cert.score == 44
        assert service.check_trust(agent.agent_id, 0).valid is True
        assert [e.agent_id for e in service.get_leaderboard()] == [agent.agent_id]

        clock.advance(hours=24, seconds=1)
        with pytest.raises(ExpiredError):
            await service.verify_proof(proof.proof_id)
        assert service.list_agent_proofs(agent.agent_id) == []
        assert service.list_agent_proofs(agent.agent_id, include_expired=True) == [proof]

    @pytest.mark.asyncio
    async def test_online_flow(self, config, clock):
        collaborator = StubCollaborator()
        async with TrackRecordService(config, collaborator=collaborator, clock=clock) as service:
            agent, _ = await _seed(service)
            collaborator.scores[agent.agent_id] = 66
            await service.generate_proof(agent.agent_id, "composite")

            reputation = await service.compute_reputation(agent.agent_id)
            assert reputation.score == 66
            assert reputation.attested is True
            assert service.get_encrypted_metrics(agent.agent_id).ciphertext.startswith("ct[0.0]")
            assert service.health()["privacy"] == {
                "mode": "online",
                "available": True,
                "failures": 0,
                "last_error": None,
            }


class TestTradeLogging:
    @pytest.mark.asyncio
    async def test_bad_credential(self, service):
        agent, secret = await service.register_agent("Bot1")
        with pytest.raises(AuthFailureError, match="Invalid credential"):
            await service.log_trade(agent.agent_id, secret + "x", pnl_usd=10)
        assert service.get_metrics(agent.agent_id).total_trades == 0

    @pytest.mark.asyncio
    async def test_unencodable_credential(self, service):
        agent, _ = await service.register_agent("Bot1")
        with pytest.raises(AuthFailureError):
            await service.log_trade(agent.agent_id, "\ud800", pnl_usd=1)

    @pytest.mark.asyncio
    async def test_other_agents_credential(self, service):
        first, _ = await service.register_agent("Bot1")
        _, second_secret = await service.register_agent("Bot2")
        with pytest.raises(AuthFailureError):
            await service.log_trade(first.agent_id, second_secret, pnl_usd=10)

    @pytest.mark.asyncio
    async def test_unknown_agent(self, service):
        with pytest.raises(NotFoundError):
            await service.log_trade("missing", "trk_whatever", pnl_usd=10)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field,value",
        [
            ("pnl_usd", 2e9),
            ("execution_time_ms", -1),
            ("amount_in", -5.0),
            ("token_in", "X" * 21),
        ],
    )
    async def test_invalid_trade(self, service, field, value):
        agent, secret = await service.register_agent("Bot1")
        kwargs = {"pnl_usd": 10, field: value}
        with pytest.raises(ValidationError, match=field):
            await service.log_trade(agent.agent_id, secret, **kwargs)
        assert service.get_metrics(agent.agent_id).total_trades == 0


class TestReads:
    @pytest.mark.asyncio
    async def test_unknown_agent(self, service):
        for read in (
            service.get_agent,
            service.get_metrics,
            service.get_encrypted_metrics,
            service.list_agent_proofs,
            service.get_reputation,
            service.get_star_rating,
            service.get_trust_certificate,
            service.check_trust,
        ):
            with pytest.raises(NotFoundError):
                read("missing")

    @pytest.mark.asyncio
    async def test_unknown_proof(self, service):
        with pytest.raises(NotFoundError, match="Proof not found"):
            service.get_proof("missing")
        with pytest.raises(NotFoundError):
            await service.verify_proof("missing")

    @pytest.mark.asyncio
    async def test_list_agents(self, service):
        first, _ = await service.register_agent("Bot1")
        second, _ = await service.register_agent("Bot1")
        assert [a.agent_id for a in service.list_agents()] == [first.agent_id, second.agent_id]
        assert service.get_reputation(first.agent_id) is None


class TestRateLimiting:
    @pytest.fixture
    def rate_clock(self):
        return ManualClock()

    @pytest.fixture
    async def limited(self, clock, rate_clock):
        config = TrackRecordConfig(
            credentials=FAST_CREDENTIALS,
            general_rate_limit=RateLimitConfig(max_requests=5, window_seconds=60),
            write_rate_limit=RateLimitConfig(max_requests=2, window_seconds=60, block_seconds=120),
        )
        async with TrackRecordService(config, clock=clock, rate_clock=rate_clock) as service:
            yield service

    @pytest.mark.asyncio
    async def test_write_limit(self, limited, rate_clock):
        agent, secret = await limited.register_agent("Bot1", client_id="owner")
        await limited.log_trade(agent.agent_id, secret, pnl_usd=1)
        await limited.log_trade(agent.agent_id, secret, pnl_usd=1)
        with pytest.raises(RateLimitedError) as exc:
            await limited.log_trade(agent.agent_id, secret, pnl_usd=1)
        assert exc.value.retry_after == pytest.approx(120)
        assert limited.get_metrics(agent.agent_id).total_trades == 2
        assert limited.collector.value("trackrecord_rate_limited_total", {"policy": "write"}) == 1

        rate_clock.advance(120)
        await limited.log_trade(agent.agent_id, secret, pnl_usd=1)
        assert limited.get_metrics(agent.agent_id).total_trades == 3

    @pytest.mark.asyncio
    async def test_write_rejection_keeps_general_budget(self, limited):
        agent, secret = await limited.register_agent("Bot1")
        for _ in range(2):
            await limited.log_trade(agent.agent_id, secret, pnl_usd=1, client_id="c")
        for _ in range(3):
            with pytest.raises(RateLimitedError):
                await limited.log_trade(agent.agent_id, secret, pnl_usd=1, client_id="c")

        assert limited.general_limiter.get_status("c")["count"] == 2
        for _ in range(3):
            await limited.compute_reputation(agent.agent_id, client_id="c")
        with pytest.raises(RateLimitedError):
            await limited.compute_reputation(agent.agent_id, client_id="c")
        assert limited.collector.value("trackrecord_rate_limited_total", {"policy": "write"}) == 3

    @pytest.mark.asyncio
    async def test_rejected_before_credential_check(self, limited):
        agent, secret = await limited.register_agent("Bot1")
        for _ in range(2):
            await limited.log_trade(agent.agent_id, secret, pnl_usd=1)
        with pytest.raises(RateLimitedError):
            await limited.log_trade(agent.agent_id, "trk_wrong", pnl_usd=1)

    @pytest.mark.asyncio
    async def test_clients_are_independent(self, limited):
        agent, secret = await limited.register_agent("Bot1")
        for _ in range(2):
            await limited.log_trade(agent.agent_id, secret, pnl_usd=1, client_id="alice")
        await limited.log_trade(agent.agent_id, secret, pnl_usd=1, client_id="bob")

    @pytest.mark.asyncio
    async def test_general_limit_covers_registration(self, limited):
        for i in range(5):
            await limited.register_agent(f"Bot{i}")
        with pytest.raises(RateLimitedError):
            await limited.register_agent("Bot5")
        assert limited.collector.value(
            "trackrecord_rate_limited_total", {"policy": "general"}
        ) == 1

    @pytest.mark.asyncio
    async def test_verify_is_not_limited(self, limited):
        agent, secret = await limited.register_agent("Bot1")
        await limited.log_trade(agent.agent_id, secret, pnl_usd=1)
        proof = await limited.generate_proof(agent.agent_id, "trade_count")
        for _ in range(10):
            assert (await limited.verify_proof(proof.proof_id)).proof_id == proof.proof_id


class TestDurability:
    @pytest.mark.asyncio
    async def test_restart_hydrates_from_backend(self, config, clock):
        provider = MemoryStorageProvider()
        async with TrackRecordService(config, storage=provider, clock=clock) as first:
            agent, secret = await _seed(first)
            reputation = await first.compute_reputation(agent.agent_id)

        assert await provider.get_reputation(agent.agent_id) == reputation
        assert len(await provider.list_trades(agent.agent_id)) == 10

        async with TrackRecordService(config, storage=provider, clock=clock) as second:
            assert second.get_agent(agent.agent_id) == agent
            assert second.get_metrics(agent.agent_id).total_trades == 10
            await second.log_trade(agent.agent_id, secret, pnl_usd=5)
            assert second.get_metrics(agent.agent_id).total_trades == 11
            assert second.health()["backend"]["mode"] == "durable"

    @pytest.mark.asyncio
    async def test_backend_down_runs_cache_only(self, config, clock):
        provider = MemoryStorageProvider()
        provider.connect = AsyncMock(side_effect=StorageError("db down"))
        async with TrackRecordService(config, storage=provider, clock=clock) as service:
            agent, _ = await _seed(service)
            assert service.get_metrics(agent.agent_id).total_trades == 10
            health = service.health()
            assert health["status"] == "degraded"
            assert health["backend"]["mode"] == "cache_only"
            assert service.collector.value("trackrecord_backend_healthy") == 0

    @pytest.mark.asyncio
    async def test_failed_writes_are_counted(self, config, clock):
        provider = MemoryStorageProvider()
        provider.append_trade = AsyncMock(side_effect=StorageError("disk full"))
        async with TrackRecordService(config, storage=provider, clock=clock) as service:
            agent, secret = await service.register_agent("Bot1")
            await service.log_trade(agent.agent_id, secret, pnl_usd=10)
            await service.store.drain()
            assert service.get_metrics(agent.agent_id).total_trades == 1
            assert service.health()["backend"]["failed_writes"] == 1
            assert service.collector.value("trackrecord_backend_write_failures_total") == 1

    @pytest.mark.asyncio
    async def test_backend_recovers_after_transient_failure(self, config, clock):
        provider = MemoryStorageProvider()
        provider.append_trade = AsyncMock(side_effect=StorageError("transient"))
        async with TrackRecordService(config, storage=provider, clock=clock) as service:
            agent, secret = await service.register_agent("Bot1")
            await service.store.drain()
            provider.save_metrics = AsyncMock(side_effect=StorageError("transient"))
            await service.log_trade(agent.agent_id, secret, pnl_usd=10)
            await service.store.drain()
            assert service.collector.value("trackrecord_backend_healthy") == 0
            assert service.health()["status"] == "degraded"

            del provider.append_trade
            del provider.save_metrics
            await service.log_trade(agent.agent_id, secret, pnl_usd=5)
            await service.store.drain()
            assert service.collector.value("trackrecord_backend_healthy") == 1
            health = service.health()
            assert health["status"] == "ok"
            assert health["backend"]["healthy"] is True
            assert health["backend"]["failed_writes"] == 2
            assert len(await provider.list_trades(agent.agent_id)) == 1


class TestHealthAndLifecycle:
    @pytest.mark.asyncio
    async def test_offline_health(self, service):
        await service.register_agent("Bot1")
        health = service.health()
        assert health["status"] == "ok"
        assert health["privacy"]["mode"] == "offline"
        assert health["privacy"]["available"] is False
        assert health["backend"]["mode"] == "cache_only"
        assert health["agents"] == 1
        assert health["proofs"] == 0

    @pytest.mark.asyncio
    async def test_collaborator_failures_degrade(self, config, clock):
        collaborator = StubCollaborator()
        collaborator.encrypt = AsyncMock(side_effect=RuntimeError("router crashed"))
        async with TrackRecordService(config, collaborator=collaborator, clock=clock) as service:
            agent, _ = await service.register_agent("Bot1")
            assert service.get_encrypted_metrics(agent.agent_id) is None
            health = service.health()
            assert health["status"] == "degraded"
            assert health["privacy"]["failures"] == 1
            assert health["privacy"]["last_error"].startswith("encrypt")
            assert service.collector.value(
                "trackrecord_collaborator_failures_total", {"operation": "encrypt"}
            ) == 1

    @pytest.mark.asyncio
    async def test_disabled_privacy_ignores_collaborator(self, clock):
        config = TrackRecordConfig(
            credentials=FAST_CREDENTIALS, privacy=PrivacyConfig(enabled=False)
        )
        service = TrackRecordService(config, collaborator=StubCollaborator(), clock=clock)
        assert service.gateway.online is False

    @pytest.mark.asyncio
    async def test_privacy_url_builds_http_client(self, clock):
        config = TrackRecordConfig(
            credentials=FAST_CREDENTIALS,
            privacy=PrivacyConfig(base_url="http://router.test", timeout_seconds=2),
        )
        async with TrackRecordService(config, clock=clock) as service:
            assert service.gateway.online is True

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, config, clock):
        service = TrackRecordService(config, clock=clock)
        await service.start()
        await service.start()
        await service.stop()
        await service.stop()

    @pytest.mark.asyncio
    async def test_counters(self, service):
        agent, secret = await _seed(service)
        await service.generate_proof(agent.agent_id, "win_rate")
        await service.compute_reputation(agent.agent_id)

        collector = service.collector
        assert collector.value("trackrecord_trades_logged_total") == 10
        assert collector.value("trackrecord_registered_agents") == 1
        assert collector.value("trackrecord_stored_proofs") == 1
        assert collector.value(
            "trackrecord_reputation_computations_total", {"source": "local"}
        ) == 1
        assert b"trackrecord_trades_logged_total 10.0" in collector.export()


class TestConfig:
    def test_defaults(self):
        config = TrackRecordConfig()
        assert config.privacy.base_url is None
        assert config.storage.backend == "none"
        assert config.write_rate_limit.max_requests == 100
        assert config.proof_ttl_seconds == 24 * 60 * 60

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TRACKRECORD_PRIVACY_URL", "http://router:8080")
        monkeypatch.setenv("TRACKRECORD_PRIVACY_TIMEOUT", "5")
        monkeypatch.setenv("TRACKRECORD_STORAGE_BACKEND", "sql")
        monkeypatch.setenv("TRACKRECORD_DATABASE_URL", "sqlite+aiosqlite:///track.db")
        config = TrackRecordConfig.from_env()
        assert config.privacy.base_url == "http://router:8080"
        assert config.privacy.timeout_seconds == 5
        assert config.storage.backend == "sql"
        assert config.storage.connection_string == "sqlite+aiosqlite:///track.db"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("TRACKRECORD_PRIVACY_URL", "TRACKRECORD_STORAGE_BACKEND"):
            monkeypatch.delenv(name, raising=False)
        config = TrackRecordConfig.from_env()
        assert config.privacy.base_url is None
        assert config.storage.backend == "none"
