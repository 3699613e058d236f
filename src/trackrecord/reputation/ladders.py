"""
Tier and star ladders.

Two independent, ordered classification ladders over the same inputs.
Bands are listed strictest first; an agent must meet every criterion of a
band to qualify, and the first qualifying band wins.
"""

from dataclasses import dataclass
from typing import Optional

from trackrecord.constants import TIER_UNVERIFIED
from trackrecord.models import StarRating


@dataclass(frozen=True)
class TierBand:
    """Minimum score, trade count and win rate (percent) for a tier."""

    name: str
    min_score: int
    min_trades: int
    min_win_rate: float

    def admits(self, score: int, total_trades: int, win_rate: float) -> bool:
        return (
            score >= self.min_score
            and total_trades >= self.min_trades
            and win_rate >= self.min_win_rate
        )


@dataclass(frozen=True)
class StarBand:
    """Minimum score, trade count, win rate (percent) and P&L for a rating."""

    stars: int
    label: str
    display: str
    min_score: int
    min_trades: int
    min_win_rate: float
    min_pnl: float

    def admits(self, score: int, total_trades: int, win_rate: float, total_pnl: float) -> bool:
        return (
            score >= self.min_score
            and total_trades >= self.min_trades
            and win_rate >= self.min_win_rate
            and total_pnl >= self.min_pnl
        )

    def rating(self) -> StarRating:
        return StarRating(stars=self.stars, label=self.label, display=self.display)


TIER_BANDS: tuple[TierBand, ...] = (
    TierBand("diamond", min_score=90, min_trades=500, min_win_rate=70),
    TierBand("platinum", min_score=80, min_trades=200, min_win_rate=65),
    TierBand("gold", min_score=70, min_trades=100, min_win_rate=60),
    TierBand("silver", min_score=60, min_trades=50, min_win_rate=55),
    TierBand("bronze", min_score=50, min_trades=10, min_win_rate=50),
)

TIER_NAMES: frozenset[str] = frozenset(band.name for band in TIER_BANDS) | {TIER_UNVERIFIED}

STAR_BANDS: tuple[StarBand, ...] = (
    StarBand(3, "Exceptional", "◆◆◆", min_score=90, min_trades=500, min_win_rate=75, min_pnl=50_000),
    StarBand(2, "Excellent", "◆◆", min_score=80, min_trades=200, min_win_rate=65, min_pnl=10_000),
    StarBand(1, "Very Good", "◆", min_score=70, min_trades=100, min_win_rate=60, min_pnl=1_000),
    StarBand(0, "Verified", "✓", min_score=0, min_trades=0, min_win_rate=0, min_pnl=float("-inf")),
)

UNVERIFIED_RATING = StarRating(stars=0, label="Unverified", display="—")


def match_tier(score: int, total_trades: int, win_rate: float) -> Optional[TierBand]:
    for band in TIER_BANDS:
        if band.admits(score, total_trades, win_rate):
            return band
    return None


def assign_tier(score: int, total_trades: int, win_rate: float) -> str:
    """Name of the strictest tier the inputs qualify for, else ``unverified``."""
    band = match_tier(score, total_trades, win_rate)
    return band.name if band else TIER_UNVERIFIED


def assign_stars(score: int, total_trades: int, win_rate: float, total_pnl: float) -> StarRating:
    """Star rating for a verified agent.

    The last band has no requirements, so a verified agent always rates at
    least "Verified".
    """
    for band in STAR_BANDS:
        if band.admits(score, total_trades, win_rate, total_pnl):
            return band.rating()
    return STAR_BANDS[-1].rating()
