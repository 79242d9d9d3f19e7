from __future__ import annotations

from collections.abc import Sequence

from signal_engine.config import TrendThresholds
from signal_engine.errors import InsufficientDataError
from signal_engine.models import (
    MovingAverageSet,
    MovingAverageSnapshot,
    PricePoint,
    SignalAssessment,
    SignalStrength,
    TradeSignalType,
    TrendReport,
    TrendState,
)

SHORT_WINDOW = 50
MID_WINDOW = 150
LONG_WINDOW = 200

SIGNAL_STRENGTH: dict[TradeSignalType, SignalStrength] = {
    TradeSignalType.NO_TRADE: SignalStrength.NONE,
    TradeSignalType.SELL_FULL: SignalStrength.STRONG,
    TradeSignalType.BUY_SETUP_A: SignalStrength.STRONG,
    TradeSignalType.BUY_SETUP_B: SignalStrength.MODERATE,
    TradeSignalType.SELL_PARTIAL: SignalStrength.WEAK,
    TradeSignalType.SELL_MAJORITY: SignalStrength.MODERATE,
    TradeSignalType.SHORT_SETUP: SignalStrength.MODERATE,
    TradeSignalType.HOLD: SignalStrength.NONE,
}


def calculate_moving_averages(series: Sequence[PricePoint]) -> MovingAverageSet:
    if len(series) < LONG_WINDOW:
        raise InsufficientDataError(LONG_WINDOW, len(series), what="200-day moving average")
    closes = [point.close for point in series[-LONG_WINDOW:]]
    return MovingAverageSet(
        ma50=sum(closes[-SHORT_WINDOW:]) / SHORT_WINDOW,
        ma150=sum(closes[-MID_WINDOW:]) / MID_WINDOW,
        ma200=sum(closes) / LONG_WINDOW,
    )


def moving_average_history(series: Sequence[PricePoint], lookback: int) -> list[MovingAverageSnapshot]:
    """Moving-average snapshots for the last ``lookback + 1`` dates, oldest first."""
    required = LONG_WINDOW + lookback
    if len(series) < required:
        raise InsufficientDataError(required, len(series), what="moving-average history")

    prefix = [0.0]
    for point in series:
        prefix.append(prefix[-1] + point.close)

    def window_mean(end: int, window: int) -> float:
        return (prefix[end] - prefix[end - window]) / window

    snapshots: list[MovingAverageSnapshot] = []
    for end in range(len(series) - lookback, len(series) + 1):
        point = series[end - 1]
        snapshots.append(
            MovingAverageSnapshot(
                date=point.date,
                close=point.close,
                mas=MovingAverageSet(
                    ma50=window_mean(end, SHORT_WINDOW),
                    ma150=window_mean(end, MID_WINDOW),
                    ma200=window_mean(end, LONG_WINDOW),
                ),
            )
        )
    return snapshots


def pct_gap(a: float, b: float) -> float:
    return abs(a - b) / min(a, b) * 100


def is_tangled(mas: MovingAverageSet, tangle_pct: float) -> bool:
    return (
        pct_gap(mas.ma50, mas.ma150) <= tangle_pct
        and pct_gap(mas.ma150, mas.ma200) <= tangle_pct
        and pct_gap(mas.ma50, mas.ma200) <= tangle_pct
    )


def is_bullish_aligned(price: float, mas: MovingAverageSet) -> bool:
    return price > mas.ma200 and mas.ma50 > mas.ma150 > mas.ma200


def is_bearish_aligned(price: float, mas: MovingAverageSet) -> bool:
    return price < mas.ma200 and mas.ma50 < mas.ma150 < mas.ma200


def classify_trend(
    price: float,
    mas: MovingAverageSet,
    thresholds: TrendThresholds | None = None,
) -> TrendState:
    limits = thresholds or TrendThresholds()
    if is_tangled(mas, limits.tangle_pct):
        return TrendState.NEUTRAL
    if is_bullish_aligned(price, mas):
        return TrendState.BULLISH
    if is_bearish_aligned(price, mas):
        return TrendState.BEARISH
    return TrendState.NEUTRAL


def _assessment(signal: TradeSignalType, *reasons: str) -> SignalAssessment:
    return SignalAssessment(signal=signal, strength=SIGNAL_STRENGTH[signal], reasons=list(reasons))


def classify_signal(
    price: float,
    mas: MovingAverageSet,
    recent_history: Sequence[MovingAverageSnapshot],
    thresholds: TrendThresholds | None = None,
) -> SignalAssessment:
    """Map price and the 50/150/200-day averages to one trade signal.

    ``recent_history`` holds the snapshots before the evaluation date, oldest
    first. Rules are checked in priority order and the first match wins; a
    close below the 200-day is checked before any entry setup.
    """
    if not recent_history:
        raise InsufficientDataError(1, 0, what="signal history")
    limits = thresholds or TrendThresholds()

    # 1. No-trade zone
    if is_tangled(mas, limits.tangle_pct):
        return _assessment(TradeSignalType.NO_TRADE, "50/150/200-day averages are tangled")
    extension = (price - mas.ma50) / mas.ma50 * 100
    if extension > limits.extension_pct:
        return _assessment(
            TradeSignalType.NO_TRADE,
            f"price extended {extension:.1f}% above the 50-day",
        )
    base_ma200 = recent_history[0].mas.ma200
    slope = (mas.ma200 - base_ma200) / base_ma200 * 100
    if abs(slope) < limits.flat_slope_pct:
        return _assessment(
            TradeSignalType.NO_TRADE,
            f"200-day slope {slope:.2f}% over {len(recent_history)} days is flat",
        )

    was_above_200 = any(snap.close >= snap.mas.ma200 for snap in recent_history)
    was_below_200 = any(snap.close <= snap.mas.ma200 for snap in recent_history)
    fast_was_below_mid = any(snap.mas.ma50 <= snap.mas.ma150 for snap in recent_history)
    fast_was_above_mid = any(snap.mas.ma50 >= snap.mas.ma150 for snap in recent_history)

    fast_rolled_under_mid = mas.ma50 < mas.ma150 and fast_was_above_mid

    # 2. Trend break; also overrides any weaker sell below the 200-day
    if price < mas.ma200 and (
        was_above_200 or fast_rolled_under_mid or not is_bearish_aligned(price, mas)
    ):
        return _assessment(TradeSignalType.SELL_FULL, "close below the 200-day")

    # 3. Pullback to the 50-day in a full uptrend
    if is_bullish_aligned(price, mas) and 0 <= extension <= limits.pullback_pct:
        return _assessment(
            TradeSignalType.BUY_SETUP_A,
            "full bullish alignment",
            f"pullback to within {extension:.1f}% of the 50-day",
        )

    # 4. Fresh crossover
    if (
        price > mas.ma200
        and mas.ma50 > mas.ma150
        and was_below_200
        and fast_was_below_mid
    ):
        return _assessment(
            TradeSignalType.BUY_SETUP_B,
            "price crossed above the 200-day",
            "50-day crossed above the 150-day",
        )

    # 5. Close below the 50-day, holding the 150-day and the 200-day
    if price >= mas.ma200 and mas.ma150 < price < mas.ma50:
        return _assessment(TradeSignalType.SELL_PARTIAL, "close below the 50-day above the 150-day")

    # 6. 50-day rolled under the 150-day
    if price >= mas.ma200 and fast_rolled_under_mid:
        return _assessment(TradeSignalType.SELL_MAJORITY, "50-day crossed below the 150-day")

    # 7. Rally into resistance in a full downtrend
    if is_bearish_aligned(price, mas):
        distance = (mas.ma50 - price) / mas.ma50 * 100
        if 0 <= distance <= limits.resistance_pct:
            return _assessment(
                TradeSignalType.SHORT_SETUP,
                "full bearish alignment",
                f"price within {distance:.1f}% below 50-day resistance",
            )

    return _assessment(TradeSignalType.HOLD)


def assess_trend(
    series: Sequence[PricePoint],
    thresholds: TrendThresholds | None = None,
) -> TrendReport:
    limits = thresholds or TrendThresholds()
    history = moving_average_history(series, limits.lookback)
    current = history[-1]
    state = classify_trend(current.close, current.mas, limits)
    assessment = classify_signal(current.close, current.mas, history[:-1], limits)
    return TrendReport(
        mas=current.mas,
        trend_state=state,
        signal=assessment.signal,
        strength=assessment.strength,
        reasons=assessment.reasons,
    )
