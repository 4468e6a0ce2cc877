"""CLI entrypoint for phoenix-planner."""

import argparse
import asyncio
import logging
import sys

import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from phoenix_planner.clients import MarketDataClient
from phoenix_planner.config import Settings, load_config
from phoenix_planner.data import DataStore
from phoenix_planner.models import (
    Diagnostics,
    ExecutionPlan,
    PlanSide,
    ReviewRecord,
    SimulationResult,
    StrategyKind,
    SupplementParams,
    SwapParams,
)
from phoenix_planner.planning import build_plan
from phoenix_planner.workflow import InvalidPositionError, Workflow

console = Console()

_HEALTH_STYLE = {"healthy": "green", "subhealthy": "yellow", "crisis": "red"}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phoenix-planner",
        description="Diagnose a position, simulate a strategy and build an execution plan.",
    )
    parser.add_argument("--config", help="Path to config YAML (default: $PHOENIX_CONFIG)")
    parser.add_argument("--symbol", help="Ticker symbol")
    parser.add_argument("--cost", help="Average cost per share")
    parser.add_argument("--quantity", help="Shares held")
    parser.add_argument("--date", help="Acquisition date (YYYY-MM-DD)")
    parser.add_argument(
        "--strategy",
        choices=[k.value for k in StrategyKind],
        default=StrategyKind.HOLD.value,
    )
    parser.add_argument("--add-quantity", type=int, help="Supplement: shares to add")
    parser.add_argument("--add-price", type=float, help="Supplement: price to add at")
    parser.add_argument("--sell-quantity", type=int, help="Swap: shares to sell")
    parser.add_argument("--target", help="Swap: symbol to rotate into")
    parser.add_argument("--save", action="store_true", help="Save the plan to history")
    parser.add_argument("--history", action="store_true", help="Show review history and exit")
    parser.add_argument("--reset", action="store_true", help="Clear stored history and exit")
    parser.add_argument("--offline", action="store_true", help="Skip live quote lookups")
    parser.add_argument("--dashboard", action="store_true", help="Serve the JSON API")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _apply_overrides(workflow: Workflow, args: argparse.Namespace) -> None:
    """Replace default strategy params with any values given on the command line."""
    params = workflow.state.strategy
    if isinstance(params, SupplementParams) and (
        args.add_quantity is not None or args.add_price is not None
    ):
        workflow.set_strategy(
            SupplementParams(
                add_quantity=(
                    args.add_quantity if args.add_quantity is not None else params.add_quantity
                ),
                add_price=args.add_price if args.add_price is not None else params.add_price,
            )
        )
    elif isinstance(params, SwapParams) and (args.sell_quantity is not None or args.target):
        workflow.set_strategy(
            SwapParams(
                sell_quantity=(
                    args.sell_quantity if args.sell_quantity is not None else params.sell_quantity
                ),
                target_symbol=args.target or params.target_symbol,
            )
        )


def print_diagnostics(diag: Diagnostics) -> None:
    table = Table(title=f"Diagnosis — {diag.symbol}")
    table.add_column("Signal", style="cyan")
    table.add_column("Value")

    pos = diag.position
    table.add_row("Position", f"{pos.quantity} @ ${pos.cost_price:,.2f}")
    if diag.quote:
        table.add_row("Price", f"{diag.quote.currency} {diag.quote.price:,.2f}")
    else:
        table.add_row("Price", "[dim]unavailable — using cost[/dim]")
    if diag.fundamentals:
        f = diag.fundamentals
        style = _HEALTH_STYLE.get(f.health.value, "white")
        table.add_row("Health", f"[{style}]{f.health.value}[/{style}] {f.comment}")
        table.add_row("ROE / Debt / Rev YoY", f"{f.roe} / {f.debt_ratio} / {f.revenue_yoy}")
    if diag.sentiment:
        s = diag.sentiment
        table.add_row("Sentiment", f"{s.score:+.2f} (heat {s.popularity:.0f}) {s.summary}")
    console.print(table)


def print_simulation(kind: str, result: SimulationResult) -> None:
    color = "green" if result.profit_loss >= 0 else "red"
    console.print(
        f"[bold]{kind.upper()}[/bold] break-even ${result.break_even_price:,.4f} | "
        f"P&L [{color}]${result.profit_loss:+,.2f} ({result.profit_loss_pct:+.2f}%)[/{color}] | "
        f"exposure {result.exposure_change_pct:+.2f}% | risk {result.risk_coefficient:.0f}/100"
    )
    console.print(
        f"  target ${result.target_price:,.2f}  stop ${result.stop_price:,.2f}"
    )
    for w in result.warnings:
        console.print(f"  [yellow]⚠ {w}[/yellow]")

    table = Table(title="P&L Curve")
    table.add_column("Price", justify="right")
    table.add_column("P&L", justify="right")
    for point in result.curve:
        style = "green" if point.pnl >= 0 else "red"
        table.add_row(f"{point.price:,.2f}", f"[{style}]{point.pnl:+,.2f}[/{style}]")
    console.print(table)


def print_plan(plan: ExecutionPlan) -> None:
    table = Table(title="Execution Plan")
    table.add_column("Step")
    table.add_column("Action", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Trigger", justify="right")
    for a in plan.actions:
        style = "green" if a.action == PlanSide.BUY else "red"
        table.add_row(
            a.label, f"[{style}]{a.action.value}[/{style}]", str(a.quantity),
            f"{a.trigger_price:,.2f}",
        )
    console.print(table)
    console.print(f"  Stop-loss ${plan.stop_loss:,.2f}  Take-profit ${plan.take_profit:,.2f}")


def print_history(reviews: list[ReviewRecord]) -> None:
    if not reviews:
        console.print("[dim]No saved plans yet[/dim]")
        return
    table = Table(title="Review History")
    table.add_column("When")
    table.add_column("Decision", style="cyan")
    table.add_column("P&L", justify="right")
    table.add_column("Notes", style="dim")
    for r in reviews:
        pnl = f"{r.result_pnl:+,.2f}" if r.result_pnl is not None else "-"
        table.add_row(r.timestamp.strftime("%Y-%m-%d %H:%M"), r.decision.value, pnl, r.notes)
    console.print(table)


def main(argv: list[str] | None = None):
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    settings = Settings()
    config = load_config(args.config or settings.phoenix_config)
    if args.offline:
        config.market_data.live_quotes = False

    store = DataStore(settings.phoenix_db_path)
    if args.reset:
        store.reset()
        console.print(f"[green]Cleared history in {settings.phoenix_db_path}[/green]")
        return

    workflow = Workflow(MarketDataClient(config.market_data), store=store, config=config)
    workflow.load_history()

    if args.history:
        print_history(workflow.state.reviews)
        return

    if args.dashboard:
        from phoenix_planner.dashboard import app, set_workflow

        set_workflow(workflow)
        port = settings.port
        console.print(f"[bold green]API[/bold green] → http://localhost:{port}/docs")
        uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")
        return

    defaults = config.defaults
    try:
        diagnostics = asyncio.run(
            workflow.run_diagnosis(
                args.symbol or defaults.symbol,
                args.cost if args.cost is not None else defaults.cost_price,
                args.quantity if args.quantity is not None else defaults.quantity,
                args.date,
            )
        )
    except InvalidPositionError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    print_diagnostics(diagnostics)

    workflow.advance_to_simulate()
    workflow.select_strategy(args.strategy)
    try:
        _apply_overrides(workflow, args)
    except ValidationError as e:
        console.print(f"[red]Invalid strategy parameters: {e.errors()[0]['msg']}[/red]")
        sys.exit(1)

    result = workflow.run_simulation()
    print_simulation(args.strategy, result)

    if args.save:
        workflow.save_plan()
        print_plan(workflow.state.plan)
        console.print(f"[green]✓ Saved to history ({len(workflow.state.reviews)} records)[/green]")
    else:
        print_plan(build_plan(diagnostics.position, result))
        console.print("[yellow]Preview only — pass --save to record this plan[/yellow]")


if __name__ == "__main__":
    main()
