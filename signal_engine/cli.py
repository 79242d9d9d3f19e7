from __future__ import annotations

import argparse
import json
import logging
from typing import Any

from signal_engine.config import (
    AppConfig,
    load_config,
    load_price_series,
    merge_volatility,
    write_price_series,
)
from signal_engine.engine import SignalEngine
from signal_engine.reporting import format_payload
from signal_engine.sample import generate_sample_series
from signal_engine.strategy import (
    assess_trend,
    calculate_atr,
    calculate_trailing_stops,
    calculate_volatility_stop,
)


def _split_symbols(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item.strip().upper() for item in raw.split(",") if item.strip()]


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    volatility = merge_volatility(
        config.volatility,
        atr_period=getattr(args, "atr_period", None),
        atr_multiplier=getattr(args, "multiplier", None),
    )
    return config.model_copy(update={"volatility": volatility})


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def cmd_volatility(args: argparse.Namespace) -> int:
    try:
        config = _apply_overrides(load_config(args.config), args)
        series = load_price_series(args.prices)
        atr = calculate_atr(series, config.volatility.atr_period)
    except (OSError, KeyError, ValueError) as err:
        print(f"ERROR: {err}")
        return 1
    price = args.price if args.price is not None else series[-1].close
    stop = calculate_volatility_stop(price, atr, config.volatility.atr_multiplier)
    _print_json({"current_price": price, **format_payload(stop)})
    return 0


def cmd_trailing(args: argparse.Namespace) -> int:
    try:
        config = _apply_overrides(load_config(args.config), args)
        series = load_price_series(args.prices)
        points = calculate_trailing_stops(
            series,
            config.volatility.atr_period,
            config.volatility.atr_multiplier,
        )
    except (OSError, KeyError, ValueError) as err:
        print(f"ERROR: {err}")
        return 1
    if args.last:
        points = points[-args.last :]
    _print_json(format_payload(points))
    return 0


def cmd_trend(args: argparse.Namespace) -> int:
    try:
        series = load_price_series(args.prices)
        report = assess_trend(series, load_config(args.config).trend)
    except (OSError, KeyError, ValueError) as err:
        print(f"ERROR: {err}")
        return 1
    _print_json(format_payload(report))
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    try:
        config = _apply_overrides(load_config(args.config), args)
        if args.prices_dir:
            config = config.model_copy(update={"prices_dir": args.prices_dir})
        result = SignalEngine(config).run_once(symbols=_split_symbols(args.symbols))
    except (OSError, ValueError) as err:
        print(f"ERROR: {err}")
        return 1

    print(f"date={result.date.isoformat()}")
    print(f"symbols={','.join(result.symbols)}")
    print(f"successful={result.batch.total_successful}")
    print(f"failed={result.batch.total_failed}")
    print(f"json={result.output_json}")
    print(f"markdown={result.output_markdown}")
    return 0


def cmd_sample(args: argparse.Namespace) -> int:
    series = generate_sample_series(args.base_price, days=args.days, seed=args.seed)
    path = write_price_series(args.out, series)
    print(f"wrote {len(series)} rows to {path}")
    return 0


def _add_volatility_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--atr-period", type=int, default=None, help="ATR period (config default 14)")
    parser.add_argument("--multiplier", type=float, default=None, help="ATR multiplier (config default 2.0)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signal-engine", description="Volatility stop and trend signal engine")
    parser.add_argument("--config", default="config/config.yaml", help="config file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    volatility = subparsers.add_parser("volatility", help="ATR and static volatility stop")
    volatility.add_argument("--prices", required=True, help="price history CSV")
    volatility.add_argument("--price", type=float, default=None, help="current price (default last close)")
    _add_volatility_args(volatility)
    volatility.set_defaults(func=cmd_volatility)

    trailing = subparsers.add_parser("trailing", help="trailing volatility stop sequence")
    trailing.add_argument("--prices", required=True, help="price history CSV")
    trailing.add_argument("--last", type=int, default=0, help="only print the last N points")
    _add_volatility_args(trailing)
    trailing.set_defaults(func=cmd_trailing)

    trend = subparsers.add_parser("trend", help="50/150/200-day trend and trade signal")
    trend.add_argument("--prices", required=True, help="price history CSV")
    trend.set_defaults(func=cmd_trend)

    batch = subparsers.add_parser("batch", help="evaluate a watchlist and write reports")
    batch.add_argument("--symbols", default="", help="comma separated symbols")
    batch.add_argument("--prices-dir", default="", help="directory of <SYMBOL>.csv files")
    _add_volatility_args(batch)
    batch.set_defaults(func=cmd_batch)

    sample = subparsers.add_parser("sample", help="write a random-walk sample series")
    sample.add_argument("--base-price", type=float, default=100.0)
    sample.add_argument("--days", type=int, default=250)
    sample.add_argument("--seed", type=int, default=None)
    sample.add_argument("--out", required=True, help="output CSV path")
    sample.set_defaults(func=cmd_sample)

    return parser


def configure_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(load_config(args.config).logging.level, args.verbose)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
