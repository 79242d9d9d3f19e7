from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
from itertools import accumulate

from signal_engine.errors import InsufficientDataError
from signal_engine.models import (
    PricePoint,
    Recommendation,
    TrailingStopPoint,
    Trend,
    VolatilityStop,
)
from signal_engine.strategy.ranges import calculate_atr

# Stop distance, in percent of price, beyond which holding is too risky.
SELL_ABOVE_PCT = 10.0
# Stop distance, in percent of price, below which the name is calm enough to buy.
BUY_BELOW_PCT = 3.0


@dataclass(frozen=True)
class StopState:
    stop_loss: float
    trend: Trend


def stop_distance_pct(price: float, stop_loss: float) -> float:
    return (price - stop_loss) / price * 100


def recommend(stop_loss_percentage: float) -> Recommendation:
    if stop_loss_percentage > SELL_ABOVE_PCT:
        return Recommendation.SELL
    if stop_loss_percentage < BUY_BELOW_PCT:
        return Recommendation.BUY
    return Recommendation.HOLD


def calculate_volatility_stop(
    current_price: float,
    atr: float,
    multiplier: float = 2.0,
) -> VolatilityStop:
    stop_loss = current_price - atr * multiplier
    stop_loss_percentage = stop_distance_pct(current_price, stop_loss)
    return VolatilityStop(
        atr=atr,
        stop_loss=stop_loss,
        stop_loss_percentage=stop_loss_percentage,
        recommendation=recommend(stop_loss_percentage),
    )


def initial_stop_state(price: float, atr: float, multiplier: float) -> StopState:
    return StopState(stop_loss=price - multiplier * atr, trend=Trend.UP)


def advance_stop(state: StopState, price: float, atr: float, multiplier: float) -> StopState:
    """One step of the trailing-stop fold.

    An UP stop only ratchets upward and a DOWN stop only downward. A close
    through the previous stop flips the trend and resets the stop to the
    opposite side of price.
    """
    stop_up = price - multiplier * atr
    stop_down = price + multiplier * atr

    if state.trend is Trend.UP:
        if price < state.stop_loss:
            return StopState(stop_loss=stop_down, trend=Trend.DOWN)
        return StopState(stop_loss=max(state.stop_loss, stop_up), trend=Trend.UP)

    if price > state.stop_loss:
        return StopState(stop_loss=stop_up, trend=Trend.UP)
    return StopState(stop_loss=min(state.stop_loss, stop_down), trend=Trend.DOWN)


def trailing_signal(price: float, state: StopState, stop_loss_percentage: float) -> Recommendation:
    if state.trend is Trend.UP and price > state.stop_loss:
        return Recommendation.BUY if stop_loss_percentage < BUY_BELOW_PCT else Recommendation.HOLD
    if state.trend is Trend.DOWN and price < state.stop_loss:
        return Recommendation.SELL if stop_loss_percentage < BUY_BELOW_PCT else Recommendation.HOLD
    return Recommendation.HOLD


def calculate_trailing_stops(
    series: Sequence[PricePoint],
    atr_period: int = 14,
    multiplier: float = 2.0,
) -> list[TrailingStopPoint]:
    """Trailing volatility stop for every day past the ATR warm-up window.

    A single ATR, computed over the whole series, sets the stop distance for
    every day; only the stop level and trend are carried from day to day.
    """
    if len(series) < atr_period + 1:
        raise InsufficientDataError(atr_period + 1, len(series), what="volatility stop")

    atr = calculate_atr(series, atr_period)
    window = series[atr_period:]
    step = partial(advance_stop, atr=atr, multiplier=multiplier)
    states = accumulate(
        (point.close for point in window[1:]),
        step,
        initial=initial_stop_state(window[0].close, atr, multiplier),
    )

    results: list[TrailingStopPoint] = []
    for point, state in zip(window, states):
        pct = abs(stop_distance_pct(point.close, state.stop_loss))
        results.append(
            TrailingStopPoint(
                date=point.date,
                close=point.close,
                atr=atr,
                stop_loss=state.stop_loss,
                stop_loss_percentage=pct,
                trend=state.trend,
                signal=trailing_signal(point.close, state, pct),
            )
        )
    return results
