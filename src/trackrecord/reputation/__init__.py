"""
Reputation scoring

Pure functions behind the Reputation Engine: the local score formula, the
tier and star ladders, and the badge catalog.
"""

from .badges import BADGE_CATALOG, BadgeDefinition, evaluate_badges
from .ladders import (
    STAR_BANDS,
    TIER_BANDS,
    TIER_NAMES,
    UNVERIFIED_RATING,
    StarBand,
    TierBand,
    assign_stars,
    assign_tier,
    match_tier,
)
from .scoring import (
    execution_component,
    fallback_score,
    metrics_score,
    pnl_component,
    proof_bonus,
    round_half_up,
    trades_component,
    win_rate_component,
)

__all__ = [
    "BADGE_CATALOG",
    "BadgeDefinition",
    "evaluate_badges",
    "STAR_BANDS",
    "TIER_BANDS",
    "TIER_NAMES",
    "UNVERIFIED_RATING",
    "StarBand",
    "TierBand",
    "assign_stars",
    "assign_tier",
    "match_tier",
    "execution_component",
    "fallback_score",
    "metrics_score",
    "pnl_component",
    "proof_bonus",
    "round_half_up",
    "trades_component",
    "win_rate_component",
]
