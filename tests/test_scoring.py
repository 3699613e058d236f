"""Tests for the local score formula, tier and star ladders, and badges."""

import pytest

from trackrecord.models import PerformanceMetrics, utcnow
from trackrecord.reputation import (
    STAR_BANDS,
    TIER_BANDS,
    assign_stars,
    assign_tier,
    evaluate_badges,
    execution_component,
    fallback_score,
    metrics_score,
    pnl_component,
    proof_bonus,
    round_half_up,
    trades_component,
    win_rate_component,
)


def _metrics(**kwargs) -> PerformanceMetrics:
    return PerformanceMetrics(agent_id="a1", **kwargs)


REFERENCE = _metrics(
    total_trades=10,
    winning_trades=7,
    total_pnl_usd=1105,
    avg_execution_time_ms=94.5,
)


class TestComponents:
    def test_trades_component_caps(self):
        assert trades_component(0) == 0
        assert trades_component(100) == pytest.approx(15)
        assert trades_component(200) == 30
        assert trades_component(10_000) == 30

    def test_win_rate_component(self):
        assert win_rate_component(0.5) == pytest.approx(20)
        assert win_rate_component(1.0) == 40

    def test_pnl_component_ignores_losses(self):
        assert pnl_component(-5000) == 0
        assert pnl_component(5000) == pytest.approx(10)
        assert pnl_component(1_000_000) == 20

    @pytest.mark.parametrize(
        "avg_ms,points",
        [(0, 10), (50, 10), (50.1, 7), (94.5, 7), (100, 7), (150, 4), (200, 4), (200.5, 0)],
    )
    def test_execution_bands(self, avg_ms, points):
        assert execution_component(avg_ms) == points

    def test_proof_bonus_caps(self):
        assert proof_bonus(0) == 0
        assert proof_bonus(2) == 10
        assert proof_bonus(3) == 15
        assert proof_bonus(10) == 15

    def test_round_half_up(self):
        assert round_half_up(38.5) == 39
        assert round_half_up(38.49) == 38
        assert round_half_up(0.5) == 1


class TestFallbackScore:
    def test_reference_metrics(self):
        # 1.5 + 28 + 2.21 + 7 = 38.71
        assert metrics_score(REFERENCE) == 39
        assert fallback_score(REFERENCE, 0) == 39
        assert fallback_score(REFERENCE, 1) == 44
        assert fallback_score(REFERENCE, 5) == 54

    def test_clipped_to_100(self):
        strong = _metrics(
            total_trades=1000,
            winning_trades=1000,
            total_pnl_usd=1e6,
            avg_execution_time_ms=10,
        )
        assert metrics_score(strong) == 100
        assert fallback_score(strong, 3) == 100

    def test_new_agent(self):
        # no trades: only the execution band contributes
        assert fallback_score(_metrics(), 0) == 10


class TestTierLadder:
    def test_bands_strictest_first(self):
        scores = [band.min_score for band in TIER_BANDS]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.parametrize(
        "score,trades,win_rate,tier",
        [
            (95, 600, 75, "diamond"),
            (95, 499, 75, "platinum"),
            (85, 250, 66, "platinum"),
            (75, 150, 61, "gold"),
            (65, 60, 56, "silver"),
            (55, 20, 50, "bronze"),
            (55, 9, 90, "unverified"),
            (49, 1000, 100, "unverified"),
            (100, 1000, 49, "unverified"),
        ],
    )
    def test_first_match(self, score, trades, win_rate, tier):
        assert assign_tier(score, trades, win_rate) == tier

    def test_idempotent(self):
        assert assign_tier(72, 120, 61) == assign_tier(72, 120, 61)


class TestStarLadder:
    @pytest.mark.parametrize(
        "score,trades,win_rate,pnl,stars",
        [
            (95, 600, 80, 60_000, 3),
            (95, 600, 80, 40_000, 2),
            (85, 250, 70, 20_000, 2),
            (75, 150, 62, 2_000, 1),
            (75, 150, 62, 500, 0),
            (10, 0, 0, -1_000, 0),
        ],
    )
    def test_first_match(self, score, trades, win_rate, pnl, stars):
        assert assign_stars(score, trades, win_rate, pnl).stars == stars

    def test_labels(self):
        assert [(b.stars, b.label, b.display) for b in STAR_BANDS] == [
            (3, "Exceptional", "◆◆◆"),
            (2, "Excellent", "◆◆"),
            (1, "Very Good", "◆"),
            (0, "Verified", "✓"),
        ]


class TestBadges:
    def test_reference_badges(self):
        earned_at = utcnow()
        badges = evaluate_badges(REFERENCE, earned_at)
        assert [b.badge_id for b in badges] == [
            "first_trade",
            "profitable",
            "consistent",
            "speed_demon",
        ]
        assert all(b.earned_at == earned_at for b in badges)

    def test_no_badges_for_new_agent(self):
        assert evaluate_badges(_metrics(), utcnow()) == []

    def test_veteran_and_whale(self):
        metrics = _metrics(
            total_trades=150,
            winning_trades=60,
            total_pnl_usd=10_000,
            avg_execution_time_ms=150,
        )
        ids = {b.badge_id for b in evaluate_badges(metrics, utcnow())}
        assert ids == {"first_trade", "profitable", "veteran", "whale"}
