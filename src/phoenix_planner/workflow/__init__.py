"""Workflow state machine — diagnose → simulate → plan → review for one session."""

import logging
import math
from datetime import date, datetime

from phoenix_planner.config import AppConfig
from phoenix_planner.data import DataStore
from phoenix_planner.diagnostics import SignalProvider, diagnose
from phoenix_planner.models import (
    Attribution,
    Diagnostics,
    HoldParams,
    Position,
    ReviewRecord,
    SessionState,
    SimulationResult,
    Stage,
    StrategyKind,
    StrategyParams,
    SupplementParams,
    SwapParams,
)
from phoenix_planner.planning import build_plan
from phoenix_planner.simulation import simulate

logger = logging.getLogger(__name__)

SAVED_ATTRIBUTION = Attribution(market=50, stock_specific=30, emotional=20, execution=70)
SAVED_NOTE = "Plan saved; entering the review loop."


class InvalidPositionError(ValueError):
    """Raised when user input cannot be turned into a valid position."""


def normalize_position(
    symbol, cost_price, quantity, acquired_on: date | str | None = None
) -> Position:
    """Clean raw user input into a Position: trimmed upper-case symbol, numeric fields."""
    symbol = str(symbol or "").strip().upper()
    if not symbol:
        raise InvalidPositionError("Symbol is required")
    try:
        cost = float(cost_price)
        qty = int(float(quantity))
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidPositionError(f"Cost and quantity must be numeric: {e}") from e
    if not math.isfinite(cost) or cost < 0:
        raise InvalidPositionError(f"Cost price must be a non-negative number, got {cost_price}")
    if qty < 0:
        raise InvalidPositionError(f"Quantity must be non-negative, got {quantity}")
    if isinstance(acquired_on, str):
        try:
            acquired_on = date.fromisoformat(acquired_on) if acquired_on else None
        except ValueError as e:
            raise InvalidPositionError(f"Invalid acquisition date: {acquired_on}") from e
    return Position(symbol=symbol, cost_price=cost, quantity=qty, acquired_on=acquired_on)


class Workflow:
    """Owns one session's state and runs the stage transitions in order.

    Transitions whose preconditions are not met are no-ops that return
    None/False. Callers must not overlap transitions on the same workflow.
    """

    def __init__(
        self,
        provider: SignalProvider,
        store: DataStore | None = None,
        config: AppConfig | None = None,
    ):
        self.provider = provider
        self.store = store
        self.config = config or AppConfig()
        self.state = SessionState()

    def reset(self) -> None:
        """Start a fresh session, keeping the review history."""
        self.state = SessionState(reviews=self.state.reviews)

    def load_history(self) -> list[ReviewRecord]:
        """Load persisted review history into the session."""
        self.state.reviews = self.store.load_reviews() if self.store else []
        return self.state.reviews

    async def run_diagnosis(
        self, symbol, cost_price, quantity, acquired_on: date | str | None = None
    ) -> Diagnostics:
        position = normalize_position(symbol, cost_price, quantity, acquired_on)
        diagnostics = await diagnose(
            position, self.provider, timeout=self.config.market_data.signal_timeout_seconds
        )
        self.state.diagnostics = diagnostics
        # A new diagnosis invalidates anything derived from the previous one
        self.state.strategy = None
        self.state.simulation = None
        self.state.plan = None
        self.state.stage = Stage.DIAGNOSE
        return diagnostics

    def advance_to_simulate(self) -> bool:
        if self.state.diagnostics is None:
            logger.debug("Cannot advance to simulate: no diagnosis yet")
            return False
        self.state.stage = Stage.SIMULATE
        return True

    def _reference_position(self) -> tuple[float, int]:
        if self.state.diagnostics is not None:
            return self.state.diagnostics.current_price, self.state.diagnostics.position.quantity
        defaults = self.config.defaults
        return defaults.cost_price, defaults.quantity

    def select_strategy(self, kind: StrategyKind | str) -> StrategyParams:
        """Replace the current strategy with default parameters for ``kind``."""
        kind = StrategyKind(kind)
        price, qty = self._reference_position()
        cfg = self.config.strategy
        if kind == StrategyKind.SUPPLEMENT:
            params = SupplementParams(
                add_quantity=cfg.supplement_quantity,
                add_price=round(price * cfg.supplement_discount, 2),
            )
        elif kind == StrategyKind.SWAP:
            params = SwapParams(
                sell_quantity=math.floor(qty * cfg.swap_fraction),
                target_symbol=cfg.swap_target,
            )
        else:
            params = HoldParams()
        self.set_strategy(params)
        return params

    def set_strategy(self, params: StrategyParams) -> None:
        self.state.strategy = params
        self.state.simulation = None
        self.state.plan = None

    def run_simulation(self) -> SimulationResult | None:
        diagnostics, strategy = self.state.diagnostics, self.state.strategy
        if diagnostics is None or strategy is None:
            logger.debug("Cannot simulate: diagnosis or strategy missing")
            return None
        result = simulate(diagnostics.position, diagnostics.quote, strategy)
        self.state.simulation = result
        self.state.stage = Stage.PLAN
        return result

    def save_plan(self) -> ReviewRecord | None:
        """Build the plan, record a review and persist the session."""
        diagnostics, simulation = self.state.diagnostics, self.state.simulation
        plan = build_plan(diagnostics.position if diagnostics else None, simulation)
        if plan is None:
            logger.debug("Cannot save plan: nothing simulated yet")
            return None

        record = ReviewRecord(
            timestamp=datetime.now(),
            decision=self.state.strategy.kind if self.state.strategy else StrategyKind.HOLD,
            result_pnl=simulation.profit_loss,
            attribution=SAVED_ATTRIBUTION.model_copy(),
            notes=SAVED_NOTE,
        )
        self.state.plan = plan
        self.state.reviews = [record, *self.state.reviews]

        if self.store is not None:
            self.store.save_session(self.state.reviews, plan, diagnostics, simulation)
        self.state.stage = Stage.REVIEW
        logger.info("Saved %s plan for %s", record.decision.value, diagnostics.symbol)
        return record
