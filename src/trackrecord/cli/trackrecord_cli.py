"""
TrackRecord CLI

Commands:
- demo: Run a full register/trade/prove/verify/rate cycle in-process
- score: Show the local score, tier and star rating for given aggregates
"""

import asyncio
import json
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from trackrecord.config import PrivacyConfig, TrackRecordConfig
from trackrecord.models import PerformanceMetrics
from trackrecord.reputation.ladders import assign_stars, assign_tier
from trackrecord.reputation.scoring import fallback_score
from trackrecord.service import TrackRecordService

console = Console()

DEMO_TRADES = [
    (150, 85), (-50, 120), (200, 95), (75, 110), (-25, 88),
    (300, 92), (125, 78), (-100, 105), (180, 82), (250, 90),
]

_TIER_STYLES = {
    "diamond": "bold cyan",
    "platinum": "bold white",
    "gold": "yellow",
    "silver": "white",
    "bronze": "dark_orange",
    "unverified": "dim",
}


def _output_json(data: object) -> None:
    """Print data as JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def _tier_markup(tier: str) -> str:
    style = _TIER_STYLES.get(tier, "white")
    return f"[{style}]{tier}[/{style}]"


async def _run_demo(privacy_url: Optional[str]) -> dict:
    config = TrackRecordConfig(privacy=PrivacyConfig(base_url=privacy_url))
    async with TrackRecordService(config) as service:
        agent, secret = await service.register_agent("DemoBot")
        metrics = None
        for pnl, exec_ms in DEMO_TRADES:
            metrics = await service.log_trade(
                agent.agent_id, secret, pnl_usd=pnl, execution_time_ms=exec_ms
            )
        proof = await service.generate_proof(agent.agent_id, "win_rate", {"threshold": 50})
        verification = await service.verify_proof(proof.proof_id)
        reputation = await service.compute_reputation(agent.agent_id)
        certificate = service.get_trust_certificate(agent.agent_id)
        return {
            "agent": agent.model_dump(mode="json", exclude={"credential_hash"}),
            "metrics": {**metrics.model_dump(mode="json"), "win_rate": metrics.win_rate},
            "proof": proof.model_dump(mode="json"),
            "verification": verification.model_dump(mode="json"),
            "reputation": reputation.model_dump(mode="json"),
            "certificate": certificate.model_dump(mode="json"),
        }


@click.group()
def cli():
    """Private agent reputation: metrics, proofs and trust ratings."""
    pass


@cli.command()
@click.option(
    "--privacy-url", default=None,
    help="Capability router URL. Runs on local fallbacks when omitted.",
)
@click.option("--json", "json_flag", is_flag=True, help="Output as JSON.")
def demo(privacy_url: Optional[str], json_flag: bool):
    """Register an agent, log ten trades and rate it."""
    result = asyncio.run(_run_demo(privacy_url))
    if json_flag:
        _output_json(result)
        return

    metrics = result["metrics"]
    proof = result["proof"]
    reputation = result["reputation"]
    certificate = result["certificate"]

    console.print(f"\n[bold blue]TrackRecord demo: {result['agent']['name']}[/bold blue]\n")

    table = Table(title="Performance", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Trades", str(metrics["total_trades"]))
    table.add_row("Winning", str(metrics["winning_trades"]))
    table.add_row("Win rate", f"{metrics['win_rate']:.1f}%")
    table.add_row("P&L", f"${metrics['total_pnl_usd']:,.2f}")
    table.add_row("Avg execution", f"{metrics['avg_execution_time_ms']:.1f} ms")
    table.add_row("Max drawdown", f"{metrics['max_drawdown_bps']} bps")
    console.print(table)

    table = Table(title="Proof", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Type", proof["proof_type"])
    table.add_row("Source", proof["source"])
    table.add_row("Meets threshold", str(proof["public_outputs"].get("meets_threshold")))
    table.add_row("Valid", str(result["verification"]["valid"]))
    table.add_row("Expires", proof["expires_at"])
    console.print(table)

    table = Table(title="Trust Certificate", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Rating", f"{certificate['rating_display']} {certificate['rating_label']}")
    table.add_row("Tier", _tier_markup(reputation["tier"]))
    table.add_row("Score", str(reputation["score"]))
    table.add_row("Attested", "[green]yes[/green]" if reputation["attested"] else "[yellow]local[/yellow]")
    table.add_row("Badges", ", ".join(b["name"] for b in reputation["badges"]) or "—")
    table.add_row("Hash", certificate["certificate_hash"])
    console.print(table)
    console.print()


@cli.command()
@click.option("--trades", type=click.IntRange(min=0), required=True, help="Total trades.")
@click.option("--winning", type=click.IntRange(min=0), required=True, help="Winning trades.")
@click.option("--pnl", type=float, default=0.0, help="Total P&L in USD.")
@click.option("--avg-exec-ms", type=click.FloatRange(min=0), default=0.0, help="Average execution time.")
@click.option("--proofs", type=click.IntRange(min=0), default=0, help="Unexpired proof count.")
@click.option("--json", "json_flag", is_flag=True, help="Output as JSON.")
def score(
    trades: int,
    winning: int,
    pnl: float,
    avg_exec_ms: float,
    proofs: int,
    json_flag: bool,
):
    """Compute the local fallback score for the given aggregates."""
    if winning > trades:
        raise click.BadParameter("cannot exceed --trades", param_hint="--winning")

    metrics = PerformanceMetrics(
        agent_id="cli",
        total_trades=trades,
        winning_trades=winning,
        total_pnl_usd=pnl,
        avg_execution_time_ms=avg_exec_ms,
    )
    value = fallback_score(metrics, proofs)
    tier = assign_tier(value, trades, metrics.win_rate)
    rating = assign_stars(value, trades, metrics.win_rate, pnl)

    if json_flag:
        _output_json({
            "score": value,
            "tier": tier,
            "stars": rating.stars,
            "label": rating.label,
            "display": rating.display,
            "win_rate": round(metrics.win_rate, 1),
        })
        return

    console.print(f"\n  Score:   [bold]{value}[/bold]")
    console.print(f"  Tier:    {_tier_markup(tier)}")
    console.print(f"  Rating:  {rating.display} {rating.label}")
    console.print(f"  Win:     {metrics.win_rate:.1f}%\n")


def main():
    cli()


if __name__ == "__main__":
    main()
