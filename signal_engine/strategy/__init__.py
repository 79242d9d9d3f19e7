from .ranges import calculate_atr, true_range, true_ranges
from .stops import (
    StopState,
    advance_stop,
    calculate_trailing_stops,
    calculate_volatility_stop,
    recommend,
)
from .trend import (
    assess_trend,
    calculate_moving_averages,
    classify_signal,
    classify_trend,
    moving_average_history,
)

__all__ = [
    "StopState",
    "advance_stop",
    "assess_trend",
    "calculate_atr",
    "calculate_moving_averages",
    "calculate_trailing_stops",
    "calculate_volatility_stop",
    "classify_signal",
    "classify_trend",
    "moving_average_history",
    "recommend",
    "true_range",
    "true_ranges",
]
