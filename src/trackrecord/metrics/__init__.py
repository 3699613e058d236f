"""
Performance metrics

Running aggregates derived from an agent's trade stream.
"""

from .aggregates import apply_trade, drawdown_bps

__all__ = [
    "apply_trade",
    "drawdown_bps",
]
