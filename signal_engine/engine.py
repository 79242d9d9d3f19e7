from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date
from pathlib import Path

from signal_engine.config import AppConfig, VolatilityConfig, load_price_series, load_watchlist
from signal_engine.errors import InsufficientDataError
from signal_engine.models import (
    BatchResult,
    PricePoint,
    RunResult,
    SymbolFailure,
    SymbolReport,
)
from signal_engine.reporting import write_reports
from signal_engine.strategy import (
    assess_trend,
    calculate_atr,
    calculate_trailing_stops,
    calculate_volatility_stop,
)
from signal_engine.utils import now_utc, sanitize_symbol

logger = logging.getLogger(__name__)


def _failure(symbol: str, err: Exception) -> SymbolFailure:
    if isinstance(err, InsufficientDataError):
        return SymbolFailure(symbol=symbol, error=str(err), required=err.required, actual=err.actual)
    return SymbolFailure(symbol=symbol, error=str(err))


class SignalEngine:
    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or AppConfig()

    def evaluate(
        self,
        symbol: str,
        series: Sequence[PricePoint],
        current_price: float | None = None,
        volatility: VolatilityConfig | None = None,
    ) -> SymbolReport:
        """Volatility stop, trailing stops and trend signal for one symbol.

        ``current_price`` defaults to the last close of ``series``; ``volatility``
        replaces the configured ATR period and multiplier for this call.
        """
        settings = volatility or self.config.volatility
        if not series:
            raise InsufficientDataError(settings.atr_period + 1, 0, what="ATR")

        period = settings.atr_period
        multiplier = settings.atr_multiplier
        price = series[-1].close if current_price is None else current_price

        atr = calculate_atr(series, period)
        stop = calculate_volatility_stop(price, atr, multiplier)
        trailing = (
            calculate_trailing_stops(series, period, multiplier)
            if self.config.engine.include_trailing
            else []
        )
        trend = assess_trend(series, self.config.trend) if self.config.engine.include_trend else None

        logger.debug(
            "%s: atr=%.4f stop=%.4f recommendation=%s",
            symbol,
            atr,
            stop.stop_loss,
            stop.recommendation.value,
        )
        return SymbolReport(
            symbol=symbol,
            as_of=series[-1].date,
            current_price=price,
            atr=atr,
            volatility_stop=stop,
            trailing_stops=trailing,
            trend=trend,
        )

    def evaluate_batch(
        self,
        series_by_symbol: Mapping[str, Sequence[PricePoint]],
        current_prices: Mapping[str, float] | None = None,
        failures: Sequence[SymbolFailure] = (),
        volatility_by_symbol: Mapping[str, VolatilityConfig] | None = None,
    ) -> BatchResult:
        """Evaluate every symbol, recording failures instead of aborting the batch.

        Symbols missing from ``volatility_by_symbol`` use ``config.volatility``.
        """
        prices = current_prices or {}
        settings = volatility_by_symbol or {}
        results: list[SymbolReport] = []
        errors: list[SymbolFailure] = list(failures)

        for symbol, series in series_by_symbol.items():
            try:
                report = self.evaluate(symbol, series, prices.get(symbol), settings.get(symbol))
            except ValueError as err:
                logger.warning("%s: evaluation failed: %s", symbol, err)
                errors.append(_failure(symbol, err))
                continue
            results.append(report)
            logger.info(
                "%s: stop at %.2f (%s)",
                symbol,
                report.volatility_stop.stop_loss,
                report.volatility_stop.recommendation.value,
            )

        return BatchResult(
            results=results,
            errors=errors,
            total_processed=len(results) + len(errors),
            total_successful=len(results),
            total_failed=len(errors),
            calculated_at=now_utc(),
        )

    def load_series(self, symbols: Sequence[str]) -> tuple[dict[str, list[PricePoint]], list[SymbolFailure]]:
        prices_dir = Path(self.config.prices_dir)
        loaded: dict[str, list[PricePoint]] = {}
        failures: list[SymbolFailure] = []
        for symbol in symbols:
            path = prices_dir / f"{sanitize_symbol(symbol)}.csv"
            try:
                loaded[symbol] = load_price_series(path)
            except (OSError, KeyError, ValueError) as err:
                logger.warning("%s: cannot load %s: %s", symbol, path, err)
                failures.append(SymbolFailure(symbol=symbol, error=f"cannot load {path}: {err}"))
        return loaded, failures

    def run_once(self, symbols: Sequence[str] | None = None, day: date | None = None) -> RunResult:
        entries = {entry.symbol: entry for entry in load_watchlist(self.config.universe_file)}
        target_symbols = [symbol.strip().upper() for symbol in symbols] if symbols else list(entries)
        if not target_symbols:
            raise ValueError("No symbols provided and watchlist is empty.")

        logger.info("Evaluating %d symbols", len(target_symbols))
        loaded, failures = self.load_series(target_symbols)
        volatility_by_symbol = {
            symbol: entries[symbol].volatility(self.config.volatility)
            for symbol in target_symbols
            if symbol in entries
        }
        batch = self.evaluate_batch(loaded, failures=failures, volatility_by_symbol=volatility_by_symbol)

        report_day = day or now_utc().date()
        json_path, md_path = write_reports(self.config.results_dir, report_day, batch)
        logger.info(
            "Done: %d successful, %d failed, report at %s",
            batch.total_successful,
            batch.total_failed,
            md_path,
        )
        return RunResult(
            date=report_day,
            symbols=target_symbols,
            batch=batch,
            output_json=str(json_path),
            output_markdown=str(md_path),
        )
