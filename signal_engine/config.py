from __future__ import annotations

import csv
import logging
from datetime import date
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from signal_engine.models import PricePoint


class VolatilityConfig(BaseModel):
    atr_period: int = Field(default=14, ge=1)
    atr_multiplier: float = Field(default=2.0, gt=0.0)


class TrendThresholds(BaseModel):
    """Percent thresholds of the 50/150/200-day framework.

    tangle_pct: every pair of averages within this distance means the trend
        has no direction worth trading.
    extension_pct: price this far above the 50-day is too stretched to buy.
    pullback_pct: a bullish close within this distance above the 50-day is a
        pullback to support.
    resistance_pct: a bearish close within this distance below the 50-day is a
        rally into resistance.
    flat_slope_pct: a 200-day average that moved less than this over
        ``lookback`` days is treated as flat.
    lookback: days of history scanned for crossovers and slope.
    """

    tangle_pct: float = Field(default=2.0, ge=0.0)
    extension_pct: float = Field(default=15.0, gt=0.0)
    pullback_pct: float = Field(default=3.0, ge=0.0)
    resistance_pct: float = Field(default=3.0, ge=0.0)
    flat_slope_pct: float = Field(default=0.5, ge=0.0)
    lookback: int = Field(default=20, ge=1)


class EngineConfig(BaseModel):
    include_trailing: bool = True
    include_trend: bool = True


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    universe_file: str = "config/watchlist.csv"
    prices_dir: str = "data/prices"
    results_dir: str = "results"
    volatility: VolatilityConfig = Field(default_factory=VolatilityConfig)
    trend: TrendThresholds = Field(default_factory=TrendThresholds)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    config_path = Path(path or "config/config.yaml")
    if not config_path.exists():
        return AppConfig()
    raw = config_path.read_text(encoding="utf-8")
    payload = yaml.safe_load(raw) or {}
    return AppConfig.model_validate(payload)


def merge_volatility(
    base: VolatilityConfig,
    atr_period: int | None = None,
    atr_multiplier: float | None = None,
) -> VolatilityConfig:
    """Validated copy of ``base`` with any non-None override applied."""
    overrides = {
        key: value
        for key, value in (("atr_period", atr_period), ("atr_multiplier", atr_multiplier))
        if value is not None
    }
    return VolatilityConfig.model_validate({**base.model_dump(), **overrides})


class WatchlistEntry(BaseModel):
    """One watchlist row; blank ATR columns fall back to ``AppConfig.volatility``."""

    model_config = ConfigDict(extra="ignore")

    symbol: str
    atr_period: int | None = Field(default=None, ge=1)
    atr_multiplier: float | None = Field(default=None, gt=0.0)

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        symbol = value.strip().upper()
        if not symbol:
            raise ValueError("symbol cannot be empty")
        return symbol

    def volatility(self, base: VolatilityConfig) -> VolatilityConfig:
        return merge_volatility(base, self.atr_period, self.atr_multiplier)


WATCHLIST_COLUMNS = ("symbol", "atr_period", "atr_multiplier")


def _watchlist_rows(handle) -> list[dict[str, str]]:
    reader = csv.DictReader(handle)
    if "symbol" in (reader.fieldnames or []):
        return list(reader)
    # headerless file: SYMBOL[,ATR_PERIOD[,ATR_MULTIPLIER]] per line
    handle.seek(0)
    return [dict(zip(WATCHLIST_COLUMNS, row)) for row in csv.reader(handle)]


def load_watchlist(universe_file: str | Path) -> list[WatchlistEntry]:
    """Watchlist entries in file order; the first row for a symbol wins."""
    csv_path = Path(universe_file)
    if not csv_path.exists():
        return []

    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        rows = _watchlist_rows(handle)

    entries: dict[str, WatchlistEntry] = {}
    for row in rows:
        payload = {
            key: (row.get(key) or "").strip()
            for key in WATCHLIST_COLUMNS
            if (row.get(key) or "").strip()
        }
        if not payload.get("symbol") or payload["symbol"].upper() == "SYMBOL":
            continue
        entry = WatchlistEntry.model_validate(payload)
        entries.setdefault(entry.symbol, entry)
    return list(entries.values())


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def load_price_series(path: str | Path) -> list[PricePoint]:
    """Read a ``date,open,high,low,close,volume`` CSV, oldest row first."""
    csv_path = Path(path)
    points: list[PricePoint] = []
    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            points.append(
                PricePoint(
                    date=date.fromisoformat(row["date"].strip()),
                    open=_optional_float(row.get("open")),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=_optional_float(row.get("volume")),
                )
            )
    points.sort(key=lambda x: x.date)
    return points


def write_price_series(path: str | Path, series: list[PricePoint]) -> Path:
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with csv_path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["date", "open", "high", "low", "close", "volume"])
        for point in series:
            writer.writerow(
                [
                    point.date.isoformat(),
                    "" if point.open is None else point.open,
                    point.high,
                    point.low,
                    point.close,
                    "" if point.volume is None else point.volume,
                ]
            )
    return csv_path
