from __future__ import annotations

import math
import re
from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def round_safe(value: float | None, ndigits: int = 2) -> float | None:
    if value is None:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, ndigits)


def sanitize_symbol(text: str, max_len: int = 32) -> str:
    cleaned = re.sub(r"[\\/:*?\"<>|\s]", "", text).strip().upper()
    return cleaned[:max_len]
