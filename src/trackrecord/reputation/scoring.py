"""
Local reputation score.

Deterministic fallback used whenever the privacy collaborator cannot
produce a score. Four capped components over the plaintext aggregates,
plus a bonus for unexpired proofs, clipped to 100.
"""

import math

from trackrecord.constants import (
    EXEC_SPEED_BANDS,
    PNL_COMPONENT_MAX,
    PNL_COMPONENT_SATURATION,
    PROOF_BONUS_MAX,
    PROOF_BONUS_PER_PROOF,
    SCORE_MAX,
    TRADES_COMPONENT_MAX,
    TRADES_COMPONENT_SATURATION,
    WIN_RATE_COMPONENT_MAX,
)
from trackrecord.models import PerformanceMetrics


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return int(math.floor(value + 0.5))


def trades_component(total_trades: int) -> float:
    return min(total_trades / TRADES_COMPONENT_SATURATION * TRADES_COMPONENT_MAX, TRADES_COMPONENT_MAX)


def win_rate_component(win_rate_fraction: float) -> float:
    return min(win_rate_fraction * WIN_RATE_COMPONENT_MAX, WIN_RATE_COMPONENT_MAX)


def pnl_component(total_pnl_usd: float) -> float:
    return min(max(total_pnl_usd, 0.0) / PNL_COMPONENT_SATURATION * PNL_COMPONENT_MAX, PNL_COMPONENT_MAX)


def execution_component(avg_execution_time_ms: float) -> int:
    """Points for execution speed; slower than every band earns nothing."""
    for max_ms, points in EXEC_SPEED_BANDS:
        if avg_execution_time_ms <= max_ms:
            return points
    return 0


def metrics_score(metrics: PerformanceMetrics) -> int:
    """Rounded sum of the four metric components."""
    total = (
        trades_component(metrics.total_trades)
        + win_rate_component(metrics.win_rate_fraction)
        + pnl_component(metrics.total_pnl_usd)
        + execution_component(metrics.avg_execution_time_ms)
    )
    return round_half_up(total)


def proof_bonus(unexpired_proof_count: int) -> int:
    return min(PROOF_BONUS_PER_PROOF * max(unexpired_proof_count, 0), PROOF_BONUS_MAX)


def fallback_score(metrics: PerformanceMetrics, unexpired_proof_count: int) -> int:
    """Local reputation score in [0, 100]."""
    return min(metrics_score(metrics) + proof_bonus(unexpired_proof_count), SCORE_MAX)
