"""Pydantic models for positions, market signals, strategies, and plans."""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class Stage(str, Enum):
    DIAGNOSE = "diagnose"
    SIMULATE = "simulate"
    PLAN = "plan"
    REVIEW = "review"


class StrategyKind(str, Enum):
    SUPPLEMENT = "supplement"
    SWAP = "swap"
    HOLD = "hold"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    SUBHEALTHY = "subhealthy"
    CRISIS = "crisis"


class PlanSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class Position(BaseModel):
    """A holding in a single symbol. Frozen: what-if states are derived copies."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    cost_price: float = Field(ge=0)  # average cost per share
    quantity: int = Field(ge=0)
    acquired_on: date | None = None

    @property
    def total_cost(self) -> float:
        return self.cost_price * self.quantity


class Quote(BaseModel):
    """Latest traded price for a symbol."""

    symbol: str
    price: float = Field(ge=0)
    currency: str = "USD"
    timestamp: datetime = Field(default_factory=datetime.now)


class Fundamentals(BaseModel):
    symbol: str
    roe: float | None = None
    debt_ratio: float | None = None
    revenue_yoy: float | None = None
    health: HealthStatus
    comment: str = ""


class Sentiment(BaseModel):
    symbol: str
    score: float = Field(ge=-1, le=1)  # -1 fear .. +1 greed
    popularity: float = 0.0
    summary: str = ""


class Diagnostics(BaseModel):
    """Point-in-time health snapshot of a position. Missing signals are None."""

    symbol: str
    quote: Quote | None = None
    fundamentals: Fundamentals | None = None
    sentiment: Sentiment | None = None
    position: Position

    @property
    def current_price(self) -> float:
        return self.quote.price if self.quote else self.position.cost_price


class SupplementParams(BaseModel):
    kind: Literal["supplement"] = "supplement"
    add_quantity: int = Field(gt=0)
    add_price: float = Field(ge=0)


class SwapParams(BaseModel):
    kind: Literal["swap"] = "swap"
    sell_quantity: int = Field(ge=0)
    target_symbol: str | None = None
    target_expected_return_pct: float | None = None


class HoldParams(BaseModel):
    kind: Literal["hold"] = "hold"
    horizon_days: int | None = Field(default=None, ge=0)


StrategyParams = Annotated[
    Union[SupplementParams, SwapParams, HoldParams], Field(discriminator="kind")
]


class CurvePoint(BaseModel):
    price: float
    pnl: float


class SimulationResult(BaseModel):
    """Projected outcome of applying a strategy to a position."""

    break_even_price: float
    profit_loss: float
    profit_loss_pct: float
    exposure_change_pct: float = 0.0
    curve: list[CurvePoint] = []
    warnings: list[str] = []
    risk_coefficient: float
    target_price: float
    stop_price: float


class PlanAction(BaseModel):
    label: str
    trigger_price: float
    action: PlanSide
    quantity: int


class ExecutionPlan(BaseModel):
    actions: list[PlanAction]
    stop_loss: float
    take_profit: float


class Attribution(BaseModel):
    """Breakdown of a result into market, stock, emotional and execution parts (0..100)."""

    market: float = 0.0
    stock_specific: float = 0.0
    emotional: float = 0.0
    execution: float = 0.0


class ReviewRecord(BaseModel):
    """A saved plan outcome, kept in history for later review."""

    timestamp: datetime = Field(default_factory=datetime.now)
    decision: StrategyKind
    result_pnl: float | None = None
    attribution: Attribution = Attribution()
    notes: str = ""


class SessionState(BaseModel):
    """Mutable state of one interactive workflow session."""

    stage: Stage = Stage.DIAGNOSE
    diagnostics: Diagnostics | None = None
    strategy: StrategyParams | None = None
    simulation: SimulationResult | None = None
    plan: ExecutionPlan | None = None
    reviews: list[ReviewRecord] = []
