from datetime import date, timedelta

from signal_engine.sample import generate_sample_series


def test_sample_is_reproducible_for_seed() -> None:
    first = generate_sample_series(100.0, days=50, seed=42, end=date(2026, 6, 30))
    second = generate_sample_series(100.0, days=50, seed=42, end=date(2026, 6, 30))
    assert first == second


def test_sample_shape() -> None:
    series = generate_sample_series(100.0, days=30, seed=1, end=date(2026, 6, 30))
    assert len(series) == 30
    assert series[-1].date == date(2026, 6, 30)
    assert series[0].date == date(2026, 6, 30) - timedelta(days=29)
    for prev, curr in zip(series, series[1:]):
        assert curr.date > prev.date
    for point in series:
        assert point.low <= point.close <= point.high
