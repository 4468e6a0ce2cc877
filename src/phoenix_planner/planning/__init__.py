"""Execution plan builder: turns a simulation into trigger orders.

The ratios are a fixed baseline, not an optimized policy. Pass a different
``PlanRatios`` to experiment with other levels.
"""

import math

from pydantic import BaseModel

from phoenix_planner.models import (
    ExecutionPlan,
    PlanAction,
    PlanSide,
    Position,
    SimulationResult,
)


class PlanRatios(BaseModel):
    buy_fraction: float = 0.2  # share of holdings to re-add on a dip
    buy_trigger: float = 0.9
    sell_fraction: float = 0.3  # share of holdings to trim on strength
    sell_trigger: float = 1.1
    stop_loss: float = 0.85
    take_profit: float = 1.15


DEFAULT_RATIOS = PlanRatios()


def build_plan(
    position: Position | None,
    simulation: SimulationResult | None,
    ratios: PlanRatios = DEFAULT_RATIOS,
) -> ExecutionPlan | None:
    """Derive a two-step plan around the break-even price.

    Returns None when either input is missing (nothing diagnosed or simulated yet).
    """
    if position is None or simulation is None:
        return None

    be = simulation.break_even_price
    buy_qty = math.floor(position.quantity * ratios.buy_fraction)
    sell_qty = math.floor(position.quantity * ratios.sell_fraction)

    actions = [
        PlanAction(
            label=f"Add {buy_qty} shares",
            trigger_price=round(be * ratios.buy_trigger, 2),
            action=PlanSide.BUY,
            quantity=buy_qty,
        ),
        PlanAction(
            label=f"Trim {sell_qty} shares",
            trigger_price=round(be * ratios.sell_trigger, 2),
            action=PlanSide.SELL,
            quantity=sell_qty,
        ),
    ]
    return ExecutionPlan(
        actions=actions,
        stop_loss=round(be * ratios.stop_loss, 2),
        take_profit=round(be * ratios.take_profit, 2),
    )
