"""Achievement badges, recomputed from current metrics on every verification."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from trackrecord.models import EarnedBadge, PerformanceMetrics


@dataclass(frozen=True)
class BadgeDefinition:
    badge_id: str
    name: str
    description: str
    predicate: Callable[[PerformanceMetrics], bool]


BADGE_CATALOG: tuple[BadgeDefinition, ...] = (
    BadgeDefinition(
        "first_trade", "First Trade", "Completed first trade",
        lambda m: m.total_trades >= 1,
    ),
    BadgeDefinition(
        "profitable", "Profitable", "Achieved positive PnL",
        lambda m: m.total_pnl_usd > 0,
    ),
    BadgeDefinition(
        "consistent", "Consistent", "Win rate above 60%",
        lambda m: m.total_trades > 0 and m.win_rate >= 60,
    ),
    BadgeDefinition(
        "veteran", "Veteran", "Completed 100+ trades",
        lambda m: m.total_trades >= 100,
    ),
    BadgeDefinition(
        "whale", "Whale", "PnL exceeds $10,000",
        lambda m: m.total_pnl_usd >= 10_000,
    ),
    # no trades means no execution times to average
    BadgeDefinition(
        "speed_demon", "Speed Demon", "Average execution under 100ms",
        lambda m: m.total_trades > 0 and m.avg_execution_time_ms < 100,
    ),
)


def evaluate_badges(metrics: PerformanceMetrics, earned_at: datetime) -> list[EarnedBadge]:
    """Badges whose predicates currently hold, in catalog order."""
    return [
        EarnedBadge(
            badge_id=badge.badge_id,
            name=badge.name,
            description=badge.description,
            earned_at=earned_at,
        )
        for badge in BADGE_CATALOG
        if badge.predicate(metrics)
    ]
