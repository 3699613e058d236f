"""
Proof claims.

Turns a proof request into the claim being proven: the thresholds (with
defaults applied), the private values backing them, the circuit that
proves them, and the public outputs computed locally from plaintext
metrics. Local outputs are the ground truth recorded in the ledger even if
the collaborator reports something different.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from trackrecord.constants import PUBLIC_INPUT_ABS_MAX
from trackrecord.exceptions import ValidationError
from trackrecord.models import PROOF_TYPES, PerformanceMetrics

DEFAULT_INPUTS: dict[str, dict[str, float]] = {
    "win_rate": {"threshold": 50},
    "pnl_threshold": {"min_pnl": 0, "max_pnl": 1_000_000},
    "trade_count": {"min_trades": 10},
    "sharpe_ratio": {"min_sharpe": 0.5},
    "max_drawdown": {"max_drawdown_bps": 2000},
    "uptime": {"min_uptime": 95},
    "composite": {
        "min_win_rate": 50,
        "min_pnl": 0,
        "min_trades": 10,
        "min_sharpe": 0.5,
        "max_drawdown": 2000,
    },
}


@dataclass(frozen=True)
class Claim:
    """A threshold statement over private metrics, ready to be proven."""

    proof_type: str
    scheme: str
    circuit: str
    public_inputs: dict[str, float]
    circuit_inputs: dict[str, Any]
    private_inputs: dict[str, Any]
    public_outputs: dict[str, Any] = field(default_factory=dict)

    @property
    def circuit_tag(self) -> str:
        return f"{self.circuit}:{self.proof_type}:v1"


def resolve_inputs(proof_type: str, public_inputs: Mapping[str, Any]) -> dict[str, float]:
    """Validate caller inputs and fill in defaults for *proof_type*.

    Keys the proof type does not use are ignored.

    Raises:
        ValidationError: Unknown proof type or non-numeric/out-of-range input.
    """
    if proof_type not in PROOF_TYPES:
        raise ValidationError(f"Unknown proof type: {proof_type}")

    resolved = dict(DEFAULT_INPUTS[proof_type])
    for key in resolved:
        if key not in public_inputs or public_inputs[key] is None:
            continue
        value = public_inputs[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"Invalid public input: {key}")
        if abs(value) > PUBLIC_INPUT_ABS_MAX:
            raise ValidationError(f"Public input out of range: {key}")
        resolved[key] = value
    return resolved


def _win_rate(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    threshold = inputs["threshold"]
    return Claim(
        proof_type="win_rate",
        scheme="balance_threshold",
        circuit="strategy_performance",
        public_inputs=inputs,
        circuit_inputs={"min_win_rate_pct": threshold},
        private_inputs={"actual_win_rate": metrics.win_rate},
        public_outputs={
            "threshold": threshold,
            "meets_threshold": metrics.win_rate >= threshold,
        },
    )


def _pnl_threshold(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    min_pnl, max_pnl = inputs["min_pnl"], inputs["max_pnl"]
    if min_pnl > max_pnl:
        raise ValidationError("min_pnl must not exceed max_pnl")
    return Claim(
        proof_type="pnl_threshold",
        scheme="pnl_attestation",
        circuit="pnl_attestation",
        public_inputs=inputs,
        circuit_inputs={"min_pnl": min_pnl, "max_pnl": max_pnl},
        private_inputs={"actual_pnl": metrics.total_pnl_usd},
        public_outputs={
            "min_pnl": min_pnl,
            "max_pnl": max_pnl,
            "pnl_in_range": min_pnl <= metrics.total_pnl_usd <= max_pnl,
        },
    )


def _trade_count(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    min_trades = inputs["min_trades"]
    return Claim(
        proof_type="trade_count",
        scheme="delegation_eligibility",
        circuit="delegation_eligibility",
        public_inputs=inputs,
        circuit_inputs={"min_trades": min_trades},
        private_inputs={"trade_count": metrics.total_trades},
        public_outputs={
            "min_trades": min_trades,
            "meets_threshold": metrics.total_trades >= min_trades,
        },
    )


def _sharpe_ratio(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    min_sharpe = inputs["min_sharpe"]
    return Claim(
        proof_type="sharpe_ratio",
        scheme="balance_threshold",
        circuit="strategy_performance",
        public_inputs=inputs,
        circuit_inputs={"min_sharpe_ratio": min_sharpe},
        private_inputs={"actual_sharpe": metrics.sharpe_proxy},
        public_outputs={
            "min_sharpe": min_sharpe,
            "meets_threshold": metrics.sharpe_proxy >= min_sharpe,
        },
    )


def _max_drawdown(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    max_drawdown = inputs["max_drawdown_bps"]
    return Claim(
        proof_type="max_drawdown",
        scheme="balance_threshold",
        circuit="strategy_performance",
        public_inputs=inputs,
        circuit_inputs={"max_drawdown_bps": max_drawdown},
        private_inputs={"actual_drawdown": metrics.max_drawdown_bps},
        public_outputs={
            "max_drawdown_bps": max_drawdown,
            "meets_threshold": metrics.max_drawdown_bps <= max_drawdown,
        },
    )


def _uptime(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    min_uptime = inputs["min_uptime"]
    return Claim(
        proof_type="uptime",
        scheme="uptime_attestation",
        circuit="uptime_attestation",
        public_inputs=inputs,
        circuit_inputs={"min_uptime_pct": min_uptime},
        private_inputs={"actual_uptime": metrics.uptime_pct},
        public_outputs={
            "min_uptime": min_uptime,
            "meets_threshold": metrics.uptime_pct >= min_uptime,
        },
    )


def _composite(metrics: PerformanceMetrics, inputs: dict[str, float]) -> Claim:
    criteria_results = {
        "win_rate": metrics.win_rate >= inputs["min_win_rate"],
        "pnl": metrics.total_pnl_usd >= inputs["min_pnl"],
        "trades": metrics.total_trades >= inputs["min_trades"],
        "sharpe": metrics.sharpe_proxy >= inputs["min_sharpe"],
        "drawdown": metrics.max_drawdown_bps <= inputs["max_drawdown"],
    }
    return Claim(
        proof_type="composite",
        scheme="balance_threshold",
        circuit="strategy_performance",
        public_inputs=inputs,
        circuit_inputs={
            "min_win_rate_pct": inputs["min_win_rate"],
            "min_pnl": inputs["min_pnl"],
            "min_trades": inputs["min_trades"],
            "min_sharpe_ratio": inputs["min_sharpe"],
            "max_drawdown_bps": inputs["max_drawdown"],
        },
        private_inputs={
            "actual_win_rate": metrics.win_rate,
            "actual_pnl": metrics.total_pnl_usd,
            "trade_count": metrics.total_trades,
            "actual_sharpe": metrics.sharpe_proxy,
            "actual_drawdown": metrics.max_drawdown_bps,
        },
        public_outputs={
            **inputs,
            "criteria_results": criteria_results,
            "all_criteria_met": all(criteria_results.values()),
        },
    )


_BUILDERS: dict[str, Callable[[PerformanceMetrics, dict[str, float]], Claim]] = {
    "win_rate": _win_rate,
    "pnl_threshold": _pnl_threshold,
    "trade_count": _trade_count,
    "sharpe_ratio": _sharpe_ratio,
    "max_drawdown": _max_drawdown,
    "uptime": _uptime,
    "composite": _composite,
}


def build_claim(
    proof_type: str,
    metrics: PerformanceMetrics,
    public_inputs: Mapping[str, Any],
) -> Claim:
    """Build the claim for *proof_type* over *metrics*.

    Raises:
        ValidationError: Unknown proof type or invalid inputs.
    """
    inputs = resolve_inputs(proof_type, public_inputs)
    return _BUILDERS[proof_type](metrics, inputs)
