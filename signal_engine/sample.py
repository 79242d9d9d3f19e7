from __future__ import annotations

import random
from datetime import date, timedelta

from signal_engine.models import PricePoint

DAILY_VOLATILITY = 0.02


def generate_sample_series(
    base_price: float,
    days: int = 20,
    seed: int | None = None,
    end: date | None = None,
) -> list[PricePoint]:
    """Random-walk daily series ending at ``end`` (today by default).

    Each day moves the close by up to half of a 2% band and spreads high and
    low around it by up to the full band. Values are rounded to cents.
    """
    rng = random.Random(seed)
    last_day = end or date.today()
    price = base_price
    points: list[PricePoint] = []
    for i in range(days):
        volatility = price * DAILY_VOLATILITY
        price += (rng.random() - 0.5) * volatility
        high = price + rng.random() * volatility
        low = price - rng.random() * volatility
        points.append(
            PricePoint(
                date=last_day - timedelta(days=days - i - 1),
                high=round(high, 2),
                low=round(low, 2),
                close=round(price, 2),
            )
        )
    return points
