"""Strategy simulation engine: projects P/L and risk for a position under a strategy.

Every function here is pure: no I/O, no shared state. The engine assumes
validated input (quantity >= 0, cost >= 0, add quantity > 0) and only guards
against division by zero.
"""

from phoenix_planner.models import (
    CurvePoint,
    Position,
    Quote,
    SimulationResult,
    StrategyKind,
    StrategyParams,
)

CURVE_MULTIPLIERS = (0.8, 0.9, 1.0, 1.1, 1.2)
RISK_FLOOR = 5.0
RISK_CEILING = 95.0
PRICE_EPSILON = 1e-6

# Exposure increase above this percentage triggers a warning on supplement
EXPOSURE_WARNING_PCT = 30.0


def current_price(position: Position, quote: Quote | None) -> float:
    """Latest price, falling back to cost when no quote is available."""
    return quote.price if quote is not None else position.cost_price


def break_even_price(position: Position) -> float:
    return position.cost_price


def pnl_at_price(position: Position, price: float) -> float:
    """Profit/loss of the whole position if marked at ``price``."""
    return round(price * position.quantity - position.cost_price * position.quantity, 2)


def pnl_pct(position: Position, price: float) -> float:
    """Profit/loss at ``price`` as a percentage of total cost basis."""
    total_cost = position.total_cost
    if total_cost == 0:
        return 0.0
    return round(pnl_at_price(position, price) / total_cost * 100, 2)


def curve(position: Position, center_price: float) -> list[CurvePoint]:
    """P/L at five scenario prices around ``center_price``."""
    return [
        CurvePoint(price=round(center_price * m, 2), pnl=pnl_at_price(position, center_price * m))
        for m in CURVE_MULTIPLIERS
    ]


def clamp_risk(value: float) -> float:
    return round(max(RISK_FLOOR, min(RISK_CEILING, value)), 2)


def simulate_supplement(
    position: Position, quote: Quote | None, add_quantity: int, add_price: float
) -> SimulationResult:
    """Add ``add_quantity`` shares at ``add_price`` and re-average the cost."""
    price = current_price(position, quote)
    new_qty = position.quantity + add_quantity
    new_cost = (position.cost_price * position.quantity + add_price * add_quantity) / new_qty
    projected = position.model_copy(update={"cost_price": new_cost, "quantity": new_qty})

    if position.quantity:
        exposure_change_pct = round(add_quantity / position.quantity * 100, 2)
    else:
        exposure_change_pct = 100.0  # opening a fresh position

    warnings = []
    if exposure_change_pct > EXPOSURE_WARNING_PCT:
        warnings.append(f"Supplement raises exposure by {exposure_change_pct}%")
    if add_price > price:
        warnings.append("Adding above the market price raises the break-even price")

    premium_pct = round((add_price - price) / max(price, PRICE_EPSILON) * 100, 2)
    risk = clamp_risk(
        40
        + exposure_change_pct * 0.8
        + max(0.0, premium_pct) * 1.2
        - max(0.0, -premium_pct) * 0.6
    )

    return SimulationResult(
        break_even_price=round(new_cost, 4),
        profit_loss=pnl_at_price(projected, price),
        profit_loss_pct=pnl_pct(projected, price),
        exposure_change_pct=exposure_change_pct,
        curve=curve(projected, price),
        warnings=warnings,
        risk_coefficient=risk,
        target_price=round(new_cost * 1.15, 4),
        stop_price=round(new_cost * 0.85, 4),
    )


def simulate_swap(position: Position, quote: Quote | None, sell_quantity: int) -> SimulationResult:
    """Sell ``sell_quantity`` shares; cost basis of the remainder is unchanged."""
    price = current_price(position, quote)
    remaining = position.model_copy(
        update={"quantity": max(0, position.quantity - sell_quantity)}
    )
    reduced_pct = (
        round(sell_quantity / position.quantity * 100, 2) if position.quantity else 0.0
    )

    warnings = []
    if remaining.quantity == 0:
        warnings.append("Full exit: make sure the replacement matches your risk tolerance")

    return SimulationResult(
        break_even_price=position.cost_price,
        profit_loss=pnl_at_price(remaining, price),
        profit_loss_pct=pnl_pct(remaining, price),
        exposure_change_pct=-reduced_pct or 0.0,
        curve=curve(remaining, price),
        warnings=warnings,
        risk_coefficient=clamp_risk(35 - reduced_pct * 0.5),
        target_price=round(position.cost_price * 1.12, 4),
        stop_price=round(position.cost_price * 0.9, 4),
    )


def simulate_hold(position: Position, quote: Quote | None) -> SimulationResult:
    """Keep the position unchanged."""
    price = current_price(position, quote)
    pnl = pnl_at_price(position, price)
    return SimulationResult(
        break_even_price=break_even_price(position),
        profit_loss=pnl,
        profit_loss_pct=pnl_pct(position, price),
        exposure_change_pct=0.0,
        curve=curve(position, price),
        warnings=[],
        risk_coefficient=32.0 if pnl < 0 else 24.0,
        target_price=round(position.cost_price * 1.1, 4),
        stop_price=round(position.cost_price * 0.92, 4),
    )


def simulate(
    position: Position, quote: Quote | None, strategy: StrategyParams
) -> SimulationResult:
    """Run the strategy against the position. Unknown kinds are treated as hold."""
    kind = getattr(strategy, "kind", None)
    if kind == StrategyKind.SUPPLEMENT:
        return simulate_supplement(position, quote, strategy.add_quantity, strategy.add_price)
    if kind == StrategyKind.SWAP:
        return simulate_swap(position, quote, strategy.sell_quantity)
    return simulate_hold(position, quote)
