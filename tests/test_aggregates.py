"""Tests for trade aggregation."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from trackrecord.constants import EXECUTION_TIME_MAX_MS, PNL_ABS_MAX
from trackrecord.metrics import apply_trade, drawdown_bps
from trackrecord.models import PerformanceMetrics, TradeRecord

from conftest import REFERENCE_EXEC_MS, REFERENCE_PNL

pnl_values = st.floats(
    min_value=-PNL_ABS_MAX, max_value=PNL_ABS_MAX, allow_nan=False, allow_infinity=False
)
exec_times = st.integers(min_value=0, max_value=EXECUTION_TIME_MAX_MS)
trade_sequences = st.lists(st.tuples(pnl_values, exec_times), max_size=60)


def _fold(pnls, exec_ms=None):
    metrics = PerformanceMetrics(agent_id="a1")
    exec_ms = exec_ms or [100] * len(pnls)
    for pnl, ms in zip(pnls, exec_ms):
        metrics = apply_trade(
            metrics, TradeRecord(agent_id="a1", pnl_usd=pnl, execution_time_ms=ms)
        )
    return metrics


class TestApplyTrade:
    def test_reference_sequence(self):
        metrics = _fold(REFERENCE_PNL, REFERENCE_EXEC_MS)
        assert metrics.total_trades == 10
        assert metrics.winning_trades == 7
        assert metrics.total_pnl_usd == pytest.approx(1105)
        assert metrics.avg_execution_time_ms == pytest.approx(94.5)
        assert metrics.win_rate == pytest.approx(70.0)
        assert metrics.sharpe_proxy == pytest.approx(1.4)
        assert metrics.max_drawdown_bps == 10000

    def test_input_not_mutated(self):
        original = PerformanceMetrics(agent_id="a1")
        apply_trade(original, TradeRecord(agent_id="a1", pnl_usd=10))
        assert original.total_trades == 0
        assert original.total_pnl_usd == 0

    def test_zero_pnl_is_not_a_win(self):
        metrics = _fold([0])
        assert metrics.total_trades == 1
        assert metrics.winning_trades == 0
        assert metrics.max_drawdown_bps == 0

    def test_empty_metrics(self):
        metrics = PerformanceMetrics(agent_id="a1")
        assert metrics.win_rate == 0
        assert metrics.win_rate_fraction == 0
        assert metrics.sharpe_proxy == 0

    def test_drawdown_rounding(self):
        assert drawdown_bps(-0.125) == 13
        assert drawdown_bps(-0.25) == 25
        assert drawdown_bps(-12.5) == 1250

    def test_drawdown_never_decreases(self):
        metrics = _fold([-100, -10, 50, -5])
        assert metrics.max_drawdown_bps == 10000


class TestAggregateInvariants:
    """Invariants that hold after every trade of any sequence."""

    @given(trades=trade_sequences)
    @settings(max_examples=200)
    def test_invariants_after_every_trade(self, trades):
        metrics = PerformanceMetrics(agent_id="a1")
        previous_drawdown = 0
        exec_total = 0
        for n, (pnl, exec_ms) in enumerate(trades, start=1):
            exec_total += exec_ms
            metrics = apply_trade(
                metrics, TradeRecord(agent_id="a1", pnl_usd=pnl, execution_time_ms=exec_ms)
            )

            assert metrics.total_trades == n
            assert 0 <= metrics.winning_trades <= metrics.total_trades
            assert 0 <= metrics.win_rate <= 100
            assert metrics.win_rate == pytest.approx(metrics.winning_trades / n * 100)
            assert metrics.sharpe_proxy == pytest.approx(metrics.win_rate_fraction * 2)
            assert metrics.max_drawdown_bps >= previous_drawdown
            assert metrics.avg_execution_time_ms == pytest.approx(exec_total / n)
            previous_drawdown = metrics.max_drawdown_bps

    @given(trades=trade_sequences)
    @settings(max_examples=200)
    def test_wins_are_strictly_positive_trades(self, trades):
        metrics = _fold([pnl for pnl, _ in trades], [ms for _, ms in trades])
        assert metrics.total_trades == len(trades)
        assert metrics.winning_trades == sum(1 for pnl, _ in trades if pnl > 0)

    @given(trades=trade_sequences)
    @settings(max_examples=200)
    def test_drawdown_is_worst_single_loss(self, trades):
        metrics = _fold([pnl for pnl, _ in trades], [ms for _, ms in trades])
        losses = [drawdown_bps(pnl) for pnl, _ in trades if pnl < 0]
        assert metrics.max_drawdown_bps == max(losses, default=0)

    @given(pnl=pnl_values)
    def test_drawdown_bps_is_non_negative(self, pnl):
        assert drawdown_bps(pnl) >= 0
        assert drawdown_bps(pnl) == drawdown_bps(-pnl)
