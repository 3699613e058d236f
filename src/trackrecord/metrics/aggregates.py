"""
Performance aggregates.

Folding one trade into an agent's running metrics. The update is pure: it
returns a new PerformanceMetrics and leaves the input untouched, so callers
can swap the cached value in a single assignment while holding the agent's
lock.
"""

from datetime import datetime
from typing import Optional

from trackrecord.models import PerformanceMetrics, TradeRecord, utcnow
from trackrecord.reputation.scoring import round_half_up


def drawdown_bps(pnl_usd: float) -> int:
    """Drawdown contributed by a losing trade, in basis points."""
    return round_half_up(abs(pnl_usd) * 100)


def apply_trade(
    metrics: PerformanceMetrics,
    trade: TradeRecord,
    now: Optional[datetime] = None,
) -> PerformanceMetrics:
    """Return *metrics* with *trade* folded in.

    Invariants:
        - ``0 <= winning_trades <= total_trades``
        - ``avg_execution_time_ms`` is the running mean over all trades
        - ``sharpe_proxy == winning_trades / total_trades * 2``
        - ``max_drawdown_bps`` never decreases
    """
    old_n = metrics.total_trades
    new_n = old_n + 1
    winning = metrics.winning_trades + (1 if trade.pnl_usd > 0 else 0)

    max_drawdown = metrics.max_drawdown_bps
    if trade.pnl_usd < 0:
        max_drawdown = max(max_drawdown, drawdown_bps(trade.pnl_usd))

    return metrics.model_copy(
        update={
            "total_trades": new_n,
            "winning_trades": winning,
            "total_pnl_usd": metrics.total_pnl_usd + trade.pnl_usd,
            "avg_execution_time_ms": (
                (metrics.avg_execution_time_ms * old_n + trade.execution_time_ms) / new_n
            ),
            "sharpe_proxy": (winning / new_n) * 2,
            "max_drawdown_bps": max_drawdown,
            "last_updated": now or utcnow(),
        }
    )
