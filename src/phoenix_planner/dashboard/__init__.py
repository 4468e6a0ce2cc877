"""JSON API over the planning workflow."""

from datetime import date
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from phoenix_planner.models import StrategyKind
from phoenix_planner.workflow import InvalidPositionError, Workflow

try:
    APP_VERSION = pkg_version("phoenix-planner")
except PackageNotFoundError:
    APP_VERSION = "dev"

app = FastAPI(title="phoenix-planner")

_workflow: Workflow | None = None


def set_workflow(workflow: Workflow | None) -> None:
    global _workflow
    _workflow = workflow


def _get_workflow() -> Workflow:
    if _workflow is None:
        raise HTTPException(status_code=503, detail="Workflow not initialised")
    return _workflow


class PositionRequest(BaseModel):
    # Raw values; normalised by the workflow
    symbol: str
    cost_price: float | str
    quantity: int | float | str
    acquired_on: date | None = None


@app.get("/api/health")
def api_health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/api/state")
def api_state():
    return _get_workflow().state


@app.post("/api/diagnose")
async def api_diagnose(body: PositionRequest):
    workflow = _get_workflow()
    try:
        return await workflow.run_diagnosis(
            body.symbol, body.cost_price, body.quantity, body.acquired_on
        )
    except InvalidPositionError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/api/advance")
def api_advance():
    workflow = _get_workflow()
    if not workflow.advance_to_simulate():
        raise HTTPException(status_code=409, detail="Run a diagnosis first")
    return workflow.state


@app.post("/api/strategy/{kind}")
def api_strategy(kind: StrategyKind):
    return _get_workflow().select_strategy(kind)


@app.post("/api/simulate")
def api_simulate():
    result = _get_workflow().run_simulation()
    if result is None:
        raise HTTPException(status_code=409, detail="Diagnosis and strategy are required")
    return result


@app.post("/api/plan")
def api_save_plan():
    workflow = _get_workflow()
    record = workflow.save_plan()
    if record is None:
        raise HTTPException(status_code=409, detail="Run a simulation first")
    return {"review": record, "plan": workflow.state.plan}


@app.get("/api/reviews")
def api_reviews():
    return _get_workflow().state.reviews


@app.get("/api/last")
def api_last():
    store = _get_workflow().store
    if store is None:
        return {"plan": None, "diagnostics": None, "simulation": None}
    return {
        "plan": store.load_last_plan(),
        "diagnostics": store.load_last_diagnostics(),
        "simulation": store.load_last_simulation(),
    }
