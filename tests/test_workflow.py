"""Tests for the workflow state machine."""

import asyncio

import pytest

from phoenix_planner.data import DataStore
from phoenix_planner.models import (
    Fundamentals,
    HealthStatus,
    HoldParams,
    Quote,
    Sentiment,
    Stage,
    StrategyKind,
    SupplementParams,
    SwapParams,
)
from phoenix_planner.workflow import InvalidPositionError, Workflow, normalize_position


class FixedProvider:
    """Signal provider with a fixed quote price."""

    def __init__(self, price=126.0):
        self.price = price

    async def fetch_quote(self, symbol):
        return Quote(symbol=symbol, price=self.price)

    def fetch_fundamentals(self, symbol):
        return Fundamentals(symbol=symbol, health=HealthStatus.HEALTHY)

    def fetch_sentiment(self, symbol):
        return Sentiment(symbol=symbol, score=0.2)


def _make_workflow(store=None, price=126.0):
    return Workflow(FixedProvider(price), store=store)


def _diagnose(workflow, symbol=" aapl ", cost=120, quantity=100):
    return asyncio.run(workflow.run_diagnosis(symbol, cost, quantity))


def test_normalize_position_cleans_input():
    position = normalize_position("  msft ", "310.5", "12", "2024-01-02")
    assert position.symbol == "MSFT"
    assert position.cost_price == 310.5
    assert position.quantity == 12
    assert position.acquired_on.year == 2024


@pytest.mark.parametrize(
    "symbol,cost,qty",
    [("", 10, 1), ("AAPL", "abc", 1), ("AAPL", 10, "ten"), ("AAPL", -1, 1), ("AAPL", 10, -5),
     ("AAPL", "nan", 1)],
)
def test_normalize_position_rejects_bad_input(symbol, cost, qty):
    with pytest.raises(InvalidPositionError):
        normalize_position(symbol, cost, qty)


def test_diagnosis_stays_in_diagnose_stage():
    workflow = _make_workflow()
    diagnostics = _diagnose(workflow)
    assert diagnostics.symbol == "AAPL"
    assert workflow.state.stage == Stage.DIAGNOSE
    assert workflow.state.diagnostics is diagnostics


def test_advance_requires_diagnosis():
    workflow = _make_workflow()
    assert workflow.advance_to_simulate() is False
    assert workflow.state.stage == Stage.DIAGNOSE

    _diagnose(workflow)
    assert workflow.advance_to_simulate() is True
    assert workflow.state.stage == Stage.SIMULATE


def test_select_strategy_defaults():
    workflow = _make_workflow()
    _diagnose(workflow)

    supplement = workflow.select_strategy("supplement")
    assert supplement == SupplementParams(add_quantity=100, add_price=119.7)

    swap = workflow.select_strategy(StrategyKind.SWAP)
    assert swap == SwapParams(sell_quantity=30, target_symbol="MSFT")
    assert workflow.state.strategy is swap

    assert workflow.select_strategy("hold") == HoldParams()


def test_select_strategy_without_diagnosis_uses_config_defaults():
    workflow = _make_workflow()
    supplement = workflow.select_strategy("supplement")
    assert supplement.add_price == 114.0


def test_select_unknown_strategy_rejected():
    workflow = _make_workflow()
    with pytest.raises(ValueError):
        workflow.select_strategy("hedge")


def test_simulation_is_noop_without_preconditions():
    workflow = _make_workflow()
    workflow.select_strategy("hold")
    assert workflow.run_simulation() is None
    assert workflow.state.simulation is None

    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.state.strategy = None
    assert workflow.run_simulation() is None
    assert workflow.state.stage == Stage.DIAGNOSE


def test_full_hold_session():
    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.advance_to_simulate()
    workflow.select_strategy("hold")

    result = workflow.run_simulation()
    assert result.profit_loss == 600.00
    assert result.profit_loss_pct == 5.00
    assert result.risk_coefficient == 24
    assert workflow.state.stage == Stage.PLAN

    record = workflow.save_plan()
    assert record.decision == StrategyKind.HOLD
    assert record.result_pnl == 600.00
    assert record.attribution.market == 50
    assert workflow.state.stage == Stage.REVIEW
    assert len(workflow.state.plan.actions) == 2
    assert workflow.state.reviews == [record]


def test_custom_supplement_scenario():
    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.set_strategy(SupplementParams(add_quantity=100, add_price=114))
    result = workflow.run_simulation()
    assert result.break_even_price == 117
    assert result.profit_loss == 1800.00
    assert result.exposure_change_pct == 100.00


def test_save_plan_aborts_without_simulation():
    workflow = _make_workflow()
    assert workflow.save_plan() is None
    _diagnose(workflow)
    workflow.select_strategy("swap")
    assert workflow.save_plan() is None
    assert workflow.state.reviews == []
    assert workflow.state.plan is None
    assert workflow.state.stage == Stage.DIAGNOSE


def test_save_plan_appends_once_per_successful_call():
    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.select_strategy("swap")
    workflow.run_simulation()

    first = workflow.save_plan()
    second = workflow.save_plan()
    assert workflow.state.reviews == [second, first]

    # New diagnosis drops the simulation, so the next save is refused
    _diagnose(workflow, symbol="msft")
    assert workflow.save_plan() is None
    assert len(workflow.state.reviews) == 2


def test_new_diagnosis_drops_previous_strategy():
    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.select_strategy("swap")

    _diagnose(workflow, symbol="msft", cost=300, quantity=10)
    assert workflow.state.strategy is None
    assert workflow.run_simulation() is None

    swap = workflow.select_strategy("swap")
    assert swap.sell_quantity == 3
    result = workflow.run_simulation()
    assert result.exposure_change_pct == -30.0
    assert result.warnings == []


def test_changing_strategy_clears_stale_simulation():
    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.select_strategy("hold")
    workflow.run_simulation()
    workflow.select_strategy("supplement")
    assert workflow.state.simulation is None


def test_history_persisted_and_reloaded(tmp_path):
    store = DataStore(tmp_path / "session.db")
    workflow = _make_workflow(store=store)
    _diagnose(workflow)
    workflow.select_strategy("supplement")
    workflow.run_simulation()
    workflow.save_plan()

    restarted = _make_workflow(store=DataStore(tmp_path / "session.db"))
    history = restarted.load_history()
    assert len(history) == 1
    assert history[0].decision == StrategyKind.SUPPLEMENT
    assert store.load_last_plan() == workflow.state.plan
    assert store.load_last_simulation() == workflow.state.simulation


def test_load_history_without_store_is_empty():
    workflow = _make_workflow()
    assert workflow.load_history() == []


def test_reset_keeps_history():
    workflow = _make_workflow()
    _diagnose(workflow)
    workflow.select_strategy("hold")
    workflow.run_simulation()
    workflow.save_plan()

    workflow.reset()
    assert workflow.state.stage == Stage.DIAGNOSE
    assert workflow.state.diagnostics is None
    assert len(workflow.state.reviews) == 1
