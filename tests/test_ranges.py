from datetime import date, timedelta

import pytest

from signal_engine.errors import InsufficientDataError
from signal_engine.models import PricePoint
from signal_engine.strategy.ranges import calculate_atr, true_range, true_ranges


def _points(rows: list[tuple[float, float, float]]) -> list[PricePoint]:
    start = date(2026, 1, 1)
    return [
        PricePoint(date=start + timedelta(days=i), high=high, low=low, close=close)
        for i, (high, low, close) in enumerate(rows)
    ]


def _flat(count: int, price: float = 100.0) -> list[PricePoint]:
    return _points([(price, price, price)] * count)


def test_true_range_picks_largest_measure() -> None:
    assert true_range(high=10, low=8, previous_close=9) == 2
    assert true_range(high=12, low=11, previous_close=9) == 3
    assert true_range(high=8, low=7, previous_close=10) == 3


def test_true_ranges_one_per_adjacent_pair() -> None:
    series = _points([(10, 9, 10), (11, 9, 10), (12, 10, 11)])
    assert true_ranges(series) == [2, 2]


def test_atr_seed_then_wilder_smoothing() -> None:
    series = _points(
        [
            (10, 9, 10),
            (11, 9, 10),
            (12, 10, 11),
            (14, 11, 13),
            (13, 12, 12),
        ]
    )
    # true ranges 2, 2, 3, 1 -> seed 2.0 -> 2.5 -> 1.75
    assert calculate_atr(series, period=2) == pytest.approx(1.75)


def test_atr_flat_series_is_zero() -> None:
    assert calculate_atr(_flat(15), period=14) == 0.0


@pytest.mark.parametrize("count", [0, 1, 10, 14])
def test_atr_rejects_short_series(count: int) -> None:
    with pytest.raises(InsufficientDataError) as exc_info:
        calculate_atr(_flat(count), period=14)
    assert exc_info.value.required == 15
    assert exc_info.value.actual == count


def test_atr_accepts_exactly_period_plus_one() -> None:
    calculate_atr(_flat(15), period=14)


def test_insufficient_data_message_names_shortfall() -> None:
    with pytest.raises(InsufficientDataError, match="at least 15") as exc_info:
        calculate_atr(_flat(10), period=14)
    assert "5 short" in str(exc_info.value)
    assert isinstance(exc_info.value, ValueError)


def test_atr_is_deterministic() -> None:
    series = _points([(10 + i % 3, 9 - i % 2, 9.5 + (i % 4) * 0.5) for i in range(30)])
    assert calculate_atr(series) == calculate_atr(series)


def test_atr_depends_on_order() -> None:
    series = _points([(10, 10, 10), (10, 10, 10), (20, 10, 20), (20, 20, 20)])
    forward = calculate_atr(series, period=2)
    backward = calculate_atr(list(reversed(series)), period=2)
    assert forward == pytest.approx(2.5)
    assert backward == pytest.approx(5.0)
