from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

from signal_engine.models import (
    BatchResult,
    Recommendation,
    SignalStrength,
    SymbolReport,
    TradeSignalType,
    Trend,
    TrendState,
)
from signal_engine.utils import round_safe

RECOMMENDATION_LABELS: dict[Recommendation, str] = {
    Recommendation.BUY: "Buy (tight stop, low volatility)",
    Recommendation.HOLD: "Hold (moderate volatility)",
    Recommendation.SELL: "Sell (wide stop, high volatility)",
}

TREND_LABELS: dict[Trend, str] = {
    Trend.UP: "up",
    Trend.DOWN: "down",
}

TREND_STATE_LABELS: dict[TrendState, str] = {
    TrendState.BULLISH: "Bullish",
    TrendState.BEARISH: "Bearish",
    TrendState.NEUTRAL: "Neutral",
}

SIGNAL_LABELS: dict[TradeSignalType, str] = {
    TradeSignalType.BUY_SETUP_A: "Buy setup A: pullback to the 50-day",
    TradeSignalType.BUY_SETUP_B: "Buy setup B: fresh 200-day crossover",
    TradeSignalType.SELL_PARTIAL: "Sell partial: lost the 50-day",
    TradeSignalType.SELL_MAJORITY: "Sell majority: 50-day under the 150-day",
    TradeSignalType.SELL_FULL: "Sell full: lost the 200-day",
    TradeSignalType.SHORT_SETUP: "Short setup: rally into resistance",
    TradeSignalType.HOLD: "Hold",
    TradeSignalType.NO_TRADE: "No trade",
}

STRENGTH_LABELS: dict[SignalStrength, str] = {
    SignalStrength.STRONG: "strong",
    SignalStrength.MODERATE: "moderate",
    SignalStrength.WEAK: "weak",
    SignalStrength.NONE: "-",
}


def round_floats(payload: Any, ndigits: int = 2) -> Any:
    if isinstance(payload, bool):
        return payload
    if isinstance(payload, float):
        return round_safe(payload, ndigits)
    if isinstance(payload, dict):
        return {key: round_floats(value, ndigits) for key, value in payload.items()}
    if isinstance(payload, list):
        return [round_floats(item, ndigits) for item in payload]
    return payload


def format_payload(model: Any, ndigits: int = 2) -> Any:
    if isinstance(model, list):
        return [format_payload(item, ndigits) for item in model]
    return round_floats(model.model_dump(mode="json"), ndigits)


def write_signals_json(output_dir: Path, batch: BatchResult) -> Path:
    output_file = output_dir / "signals.json"
    output_file.write_text(
        json.dumps(format_payload(batch), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return output_file


def _symbol_lines(report: SymbolReport) -> list[str]:
    stop = report.volatility_stop
    lines = [
        f"### {report.symbol}",
        "",
        f"- As of: {report.as_of.isoformat()}",
        f"- Price: {report.current_price:.2f}",
        f"- ATR: {report.atr:.2f}",
        f"- Stop loss: {stop.stop_loss:.2f} ({stop.stop_loss_percentage:.2f}%)",
        f"- Recommendation: {RECOMMENDATION_LABELS[stop.recommendation]}",
    ]
    if report.trailing_stops:
        last = report.trailing_stops[-1]
        lines.append(
            f"- Trailing stop: {last.stop_loss:.2f}, trend {TREND_LABELS[last.trend]}, "
            f"signal {last.signal.value}"
        )
    if report.trend is not None:
        trend = report.trend
        lines.append(
            f"- DMA 50/150/200: {trend.mas.ma50:.2f} / {trend.mas.ma150:.2f} / {trend.mas.ma200:.2f}"
        )
        lines.append(f"- Trend: {TREND_STATE_LABELS[trend.trend_state]}")
        lines.append(f"- Signal: {SIGNAL_LABELS[trend.signal]} ({STRENGTH_LABELS[trend.strength]})")
        for reason in trend.reasons:
            lines.append(f"  - {reason}")
    lines.append("")
    return lines


def write_daily_markdown(output_dir: Path, day: date, batch: BatchResult) -> Path:
    lines: list[str] = []
    lines.append(f"# Volatility & trend report {day.isoformat()}")
    lines.append("")
    lines.append(
        f"Processed {batch.total_processed}, "
        f"succeeded {batch.total_successful}, failed {batch.total_failed}."
    )
    lines.append("")
    lines.append("## Signals")
    lines.append("")

    if not batch.results:
        lines.append("- No results")
        lines.append("")
    for report in batch.results:
        lines.extend(_symbol_lines(report))

    if batch.errors:
        lines.append("## Errors")
        lines.append("")
        for failure in batch.errors:
            lines.append(f"- {failure.symbol}: {failure.error}")

    output_file = output_dir / "daily_report.md"
    output_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return output_file


def write_reports(results_dir: str | Path, day: date, batch: BatchResult) -> tuple[Path, Path]:
    """Write ``<results_dir>/<day>/signals.json`` and ``daily_report.md``."""
    out_dir = Path(results_dir, day.isoformat())
    out_dir.mkdir(parents=True, exist_ok=True)
    return write_signals_json(out_dir, batch), write_daily_markdown(out_dir, day, batch)
