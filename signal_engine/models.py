from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Recommendation(str, Enum):
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"


class Trend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class TrendState(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class TradeSignalType(str, Enum):
    BUY_SETUP_A = "BUY_SETUP_A"
    BUY_SETUP_B = "BUY_SETUP_B"
    SELL_PARTIAL = "SELL_PARTIAL"
    SELL_MAJORITY = "SELL_MAJORITY"
    SELL_FULL = "SELL_FULL"
    SHORT_SETUP = "SHORT_SETUP"
    HOLD = "HOLD"
    NO_TRADE = "NO_TRADE"


class SignalStrength(str, Enum):
    STRONG = "STRONG"
    MODERATE = "MODERATE"
    WEAK = "WEAK"
    NONE = "NONE"


class PricePoint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: date
    high: float
    low: float
    close: float
    open: float | None = None
    volume: float | None = None


class VolatilityStop(BaseModel):
    model_config = ConfigDict(extra="ignore")

    atr: float
    stop_loss: float
    stop_loss_percentage: float
    recommendation: Recommendation


class TrailingStopPoint(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: date
    close: float
    atr: float
    stop_loss: float
    stop_loss_percentage: float
    trend: Trend
    signal: Recommendation


class MovingAverageSet(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ma50: float
    ma150: float
    ma200: float


class MovingAverageSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: date
    close: float
    mas: MovingAverageSet


class SignalAssessment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    signal: TradeSignalType
    strength: SignalStrength
    reasons: list[str] = Field(default_factory=list)


class TrendReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    mas: MovingAverageSet
    trend_state: TrendState
    signal: TradeSignalType
    strength: SignalStrength
    reasons: list[str] = Field(default_factory=list)


class SymbolReport(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str
    as_of: date
    current_price: float
    atr: float
    volatility_stop: VolatilityStop
    trailing_stops: list[TrailingStopPoint] = Field(default_factory=list)
    trend: TrendReport | None = None


class SymbolFailure(BaseModel):
    model_config = ConfigDict(extra="ignore")

    symbol: str
    error: str
    required: int | None = None
    actual: int | None = None


class BatchResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[SymbolReport] = Field(default_factory=list)
    errors: list[SymbolFailure] = Field(default_factory=list)
    total_processed: int = 0
    total_successful: int = 0
    total_failed: int = 0
    calculated_at: datetime


class RunResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: date
    symbols: list[str]
    batch: BatchResult
    output_json: str
    output_markdown: str
