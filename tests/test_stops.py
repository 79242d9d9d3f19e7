from datetime import date, timedelta

import pytest

from signal_engine.errors import InsufficientDataError
from signal_engine.models import PricePoint, Recommendation, Trend
from signal_engine.sample import generate_sample_series
from signal_engine.strategy.stops import (
    StopState,
    advance_stop,
    calculate_trailing_stops,
    calculate_volatility_stop,
)


def _series(closes: list[float], spread: float = 0.0) -> list[PricePoint]:
    start = date(2026, 1, 1)
    return [
        PricePoint(
            date=start + timedelta(days=i),
            high=close + spread,
            low=close - spread,
            close=close,
        )
        for i, close in enumerate(closes)
    ]


# ATR is exactly 2.0 for this path: every bar spans 2 and no close moves more than 1.
SWING_CLOSES = [100.0] * 15 + [
    101, 102, 103, 102, 101, 100, 99, 98, 97, 96, 97, 98, 99, 100, 101,
]


def test_static_stop_formula() -> None:
    stop = calculate_volatility_stop(current_price=100, atr=5, multiplier=2.0)
    assert stop.atr == 5
    assert stop.stop_loss == 90.0
    assert stop.stop_loss_percentage == 10.0


def test_static_stop_exactly_ten_percent_is_hold() -> None:
    stop = calculate_volatility_stop(100, 5, 2.0)
    assert stop.recommendation == Recommendation.HOLD


@pytest.mark.parametrize(
    ("atr", "expected"),
    [
        (0.0, Recommendation.BUY),
        (1.0, Recommendation.BUY),
        (1.5, Recommendation.HOLD),
        (4.0, Recommendation.HOLD),
        (6.0, Recommendation.SELL),
    ],
)
def test_static_stop_recommendation_thresholds(atr: float, expected: Recommendation) -> None:
    assert calculate_volatility_stop(100, atr, 2.0).recommendation == expected


def test_static_stop_percentage_matches_stop_level() -> None:
    price = 187.35
    stop = calculate_volatility_stop(price, atr=3.17, multiplier=2.5)
    assert stop.stop_loss == pytest.approx(price - 3.17 * 2.5)
    assert price * (1 - stop.stop_loss_percentage / 100) == pytest.approx(stop.stop_loss)


def test_static_stop_keeps_full_precision() -> None:
    stop = calculate_volatility_stop(100, 1 / 3, 1.0)
    assert stop.stop_loss == 100 - 1 / 3


def test_trailing_flat_series_holds() -> None:
    points = calculate_trailing_stops(_series([100.0] * 20), atr_period=14)
    assert len(points) == 6
    assert all(point.atr == 0 for point in points)
    assert all(point.stop_loss == 100 for point in points)
    assert all(point.trend == Trend.UP for point in points)
    assert all(point.signal == Recommendation.HOLD for point in points)


def test_trailing_rejects_short_series() -> None:
    with pytest.raises(InsufficientDataError) as exc_info:
        calculate_trailing_stops(_series([100.0] * 10), atr_period=14)
    assert exc_info.value.required == 15
    assert exc_info.value.actual == 10


def test_trailing_swing_path() -> None:
    series = _series(SWING_CLOSES, spread=1.0)
    points = calculate_trailing_stops(series, atr_period=14, multiplier=2.0)

    assert len(points) == len(series) - 14
    assert points[0].date == series[14].date
    assert all(point.atr == pytest.approx(2.0) for point in points)

    stops = [point.stop_loss for point in points]
    trends = [point.trend for point in points]
    assert stops == pytest.approx(
        [96, 97, 98, 99, 99, 99, 99, 99, 102, 101, 100, 100, 100, 100, 100, 97]
    )
    assert trends == [Trend.UP] * 8 + [Trend.DOWN] * 7 + [Trend.UP]


def test_trailing_swing_signals() -> None:
    points = calculate_trailing_stops(_series(SWING_CLOSES, spread=1.0), atr_period=14)
    signals = [point.signal for point in points]
    # close within 3% above an UP stop, or within 3% below a DOWN stop
    assert signals[4] == Recommendation.BUY
    assert signals[6] == Recommendation.BUY
    assert signals[13] == Recommendation.SELL
    # distance of 3% or more
    assert signals[0] == Recommendation.HOLD
    assert signals[8] == Recommendation.HOLD
    # close sitting on the stop
    assert signals[7] == Recommendation.HOLD
    assert signals[14] == Recommendation.HOLD


def test_trailing_percentage_is_absolute() -> None:
    points = calculate_trailing_stops(_series(SWING_CLOSES, spread=1.0), atr_period=14)
    down = points[8]
    assert down.trend == Trend.DOWN
    assert down.stop_loss_percentage == pytest.approx((102 - 98) / 98 * 100)


def test_trailing_stop_ratchets_within_a_trend() -> None:
    series = generate_sample_series(50.0, days=300, seed=11)
    points = calculate_trailing_stops(series, atr_period=14, multiplier=1.5)
    for prev, curr in zip(points, points[1:]):
        if prev.trend != curr.trend:
            continue
        if curr.trend == Trend.UP:
            assert curr.stop_loss >= prev.stop_loss
        else:
            assert curr.stop_loss <= prev.stop_loss


def test_advance_stop_flips_on_close_through_stop() -> None:
    state = StopState(stop_loss=95.0, trend=Trend.UP)
    flipped = advance_stop(state, price=94.0, atr=2.0, multiplier=2.0)
    assert flipped == StopState(stop_loss=98.0, trend=Trend.DOWN)

    back = advance_stop(flipped, price=99.0, atr=2.0, multiplier=2.0)
    assert back == StopState(stop_loss=95.0, trend=Trend.UP)
