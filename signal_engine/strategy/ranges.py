from __future__ import annotations

from collections.abc import Sequence

from signal_engine.errors import InsufficientDataError
from signal_engine.models import PricePoint


def true_range(high: float, low: float, previous_close: float) -> float:
    return max(
        high - low,
        abs(high - previous_close),
        abs(low - previous_close),
    )


def true_ranges(series: Sequence[PricePoint]) -> list[float]:
    tr_values: list[float] = []
    for idx in range(1, len(series)):
        curr = series[idx]
        prev = series[idx - 1]
        tr_values.append(true_range(curr.high, curr.low, prev.close))
    return tr_values


def calculate_atr(series: Sequence[PricePoint], period: int = 14) -> float:
    """Wilder-smoothed Average True Range over the whole series.

    The first ``period`` true ranges seed a simple mean; every later value is
    folded in as ``(atr * (period - 1) + tr) / period``. The result depends on
    the full ordered window, not only its tail.
    """
    if period < 1:
        raise ValueError("ATR period must be at least 1")
    if len(series) < period + 1:
        raise InsufficientDataError(period + 1, len(series), what="ATR")

    tr_values = true_ranges(series)
    atr = sum(tr_values[:period]) / period
    for tr in tr_values[period:]:
        atr = (atr * (period - 1) + tr) / period
    return atr
