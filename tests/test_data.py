"""Tests for the SQLite session store."""

from phoenix_planner.data import LAST_PLAN_KEY, REVIEWS_KEY, DataStore
from phoenix_planner.models import (
    Diagnostics,
    ExecutionPlan,
    PlanAction,
    PlanSide,
    Position,
    ReviewRecord,
    SimulationResult,
    StrategyKind,
)


def _make_store(tmp_path):
    return DataStore(tmp_path / "test.db")


def _make_plan():
    return ExecutionPlan(
        actions=[PlanAction(label="Add 20 shares", trigger_price=108, action=PlanSide.BUY, quantity=20)],
        stop_loss=102,
        take_profit=138,
    )


def _make_simulation():
    return SimulationResult(
        break_even_price=120,
        profit_loss=600,
        profit_loss_pct=5,
        risk_coefficient=24,
        target_price=132,
        stop_price=110.4,
    )


def test_empty_store_returns_defaults(tmp_path):
    store = _make_store(tmp_path)
    assert store.load_reviews() == []
    assert store.load_last_plan() is None
    assert store.load_last_diagnostics() is None
    assert store.load_last_simulation() is None


def test_save_session_round_trip(tmp_path):
    store = _make_store(tmp_path)
    reviews = [
        ReviewRecord(decision=StrategyKind.SWAP, result_pnl=420),
        ReviewRecord(decision=StrategyKind.HOLD, result_pnl=600),
    ]
    diagnostics = Diagnostics(
        symbol="AAPL", position=Position(symbol="AAPL", cost_price=120, quantity=100)
    )
    store.save_session(reviews, _make_plan(), diagnostics, _make_simulation())
    store.close()

    reopened = _make_store(tmp_path)
    loaded = reopened.load_reviews()
    assert [r.decision for r in loaded] == [StrategyKind.SWAP, StrategyKind.HOLD]
    assert reopened.load_last_plan() == _make_plan()
    assert reopened.load_last_diagnostics().quote is None
    assert reopened.load_last_simulation().profit_loss == 600


def test_corrupt_history_is_discarded(tmp_path):
    store = _make_store(tmp_path)
    store.set_state(REVIEWS_KEY, "{not json")
    store.set_state(LAST_PLAN_KEY, '{"actions": "nope"}')
    assert store.load_reviews() == []
    assert store.load_last_plan() is None


def test_write_failure_is_not_raised(tmp_path):
    store = _make_store(tmp_path)
    store.close()
    assert store.set_state(REVIEWS_KEY, "[]") is False
    assert store.get_state(REVIEWS_KEY) is None


def test_reset_clears_keys(tmp_path):
    store = _make_store(tmp_path)
    store.set_state(REVIEWS_KEY, "[]")
    store.reset()
    assert store.get_state(REVIEWS_KEY) is None


def test_corrupt_database_file_falls_back_to_memory(tmp_path):
    path = tmp_path / "bad.db"
    path.write_bytes(b"this is not a sqlite database at all" * 100)

    store = DataStore(path)
    assert store.load_reviews() == []
    assert store.set_state(REVIEWS_KEY, "[]") is True
    store.reset()
    assert path.read_bytes().startswith(b"this is not a sqlite database")
