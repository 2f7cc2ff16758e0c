# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for HR FinSight.

This module wires together the main building blocks of HR FinSight:

- configuration (base currency, conversion rates, schedules, display),
- CSV readers for engagements and attendance entries,
- query windows,
- the aggregation engine (single window or several consecutive windows),
- view helpers (summary and breakdown tables).

The CLI is intentionally thin: it does not implement any financial logic
itself. It orchestrates the underlying modules based on command-line
arguments and configuration files.


High-level pipeline
-------------------

1) Load the TOML configuration (``hr_finsight_config.toml`` by default,
   or ``--config PATH``). Without any configuration file, INR is the base
   currency and USD converts at 84.

2) Read engagements and attendance from the CSV files given by
   ``--engagements`` / ``--attendance`` or by the [inputs] section.

3) Determine the query window (``--period``, ``--from-date``/``--to-date``,
   relative to ``--reference-date`` or today).

4) Aggregate revenue, cost and profit, either for the whole window or,
   with ``--split``, for each day/week/month/year of it.

5) Render the requested ``--view`` as console tables and/or CSV files
   depending on the display mode.

Validation errors raised by the engine (negative amounts, unsupported
commission types, ...) stop the run with a readable message: the CLI never
prints partial totals.
"""

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, default_app_config, load_app_config
from .engine import CALCULATION_MODES, aggregate
from .exceptions import FinancialEngineError
from .io import read_attendance, read_engagements
from .multi_periods import compute_multi_window, pivot_rollups
from .periods import GRANULARITIES, determine_window_from_args, split_window
from .views import breakdown_table, engagements_table, summary_table

logger = logging.getLogger(__name__)

VIEWS: tuple[str, ...] = (
    "summary",
    "clients",
    "cost-objects",
    "subjects",
    "engagements",
    "all",
)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="hr-finsight",
        description=(
            "HR FinSight - Revenue & Profit Attribution for staffing SMBs. "
            "Reads engagements and attendance entries, converts compensation "
            "and billing figures into comparable hourly rates and renders "
            "revenue, cost and profit per subject, project and client."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of hr_finsight and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'hr_finsight_config.toml' in the current directory is used when present."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING).",
    )

    # Inputs
    ap.add_argument(
        "--engagements",
        dest="engagements_path",
        metavar="CSV_PATH",
        help="Engagements CSV file (overrides [inputs].engagements).",
    )
    ap.add_argument(
        "--attendance",
        dest="attendance_path",
        metavar="CSV_PATH",
        help="Attendance CSV file (overrides [inputs].attendance).",
    )

    # Window selection
    ap.add_argument(
        "--period",
        choices=["week", "month", "year", "mtd", "ytd", "last-7-days", "last-30-days"],
        help=(
            "Predefined window relative to the reference date. "
            "If not provided, the month of the reference date is used."
        ),
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom window start date (YYYY-MM-DD).",
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom window end date (YYYY-MM-DD).",
    )
    ap.add_argument(
        "--reference-date",
        dest="reference_date",
        help="Reference date for predefined windows (YYYY-MM-DD, default: today).",
    )
    ap.add_argument(
        "--split",
        choices=list(GRANULARITIES),
        help="Compute one result per day/week/month/year of the window.",
    )

    # Engine
    ap.add_argument(
        "--mode",
        choices=list(CALCULATION_MODES),
        help=(
            "Override [engine].mode: 'actual' uses approved logged hours, "
            "'accrual' prorates billing over the assignment duration."
        ),
    )

    # Rendering
    ap.add_argument(
        "--view",
        choices=list(VIEWS),
        default="summary",
        help="What to render (default: summary).",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Output directory for CSV files (overrides [display].output_dir).",
    )

    return ap


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """Parse an optional YYYY-MM-DD string or exit with a readable message."""
    if value is None:
        return None

    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        msg = f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        raise SystemExit(msg) from exc


def _load_config(config_path: Optional[str]) -> AppConfig:
    if config_path:
        return load_app_config(config_path)
    try:
        return load_app_config()
    except FileNotFoundError:
        logger.info("No hr_finsight_config.toml found, using built-in defaults")
        return default_app_config()


def _resolve_input(cli_value: Optional[str], configured: Optional[Path], what: str) -> Path:
    path = Path(cli_value) if cli_value else configured
    if path is None:
        raise SystemExit(
            f"No {what} file given. Use --{what} or set [inputs].{what} in the config."
        )
    if not path.is_file():
        raise SystemExit(f"{what.capitalize()} file not found: {path}")
    return path


def _render(tables: list[tuple[str, pd.DataFrame]], display_mode: str, output_dir: Path) -> None:
    if display_mode in {"table", "both"}:
        for title, df in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no rows)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for title, df in tables:
            slug = title.lower().replace(" ", "_").replace("/", "_")
            path = output_dir / f"{slug}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the HR FinSight CLI.

    Parses command-line arguments, loads configuration and inputs, runs the
    aggregation engine for the selected window(s) and renders the selected
    view as console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"hr_finsight version {__version__}")
        return

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    # 1) Configuration
    try:
        config = _load_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    mode = args.mode or config.mode
    display_mode = args.display_mode or config.display_mode
    output_dir = Path(args.output_dir) if args.output_dir else config.output_dir

    # 2) Inputs
    engagements_path = _resolve_input(
        args.engagements_path, config.engagements_file, "engagements"
    )
    attendance_path = _resolve_input(
        args.attendance_path, config.attendance_file, "attendance"
    )
    try:
        engagements = read_engagements(engagements_path)
        entries = read_attendance(attendance_path)
    except ValueError as exc:
        raise SystemExit(f"Input error: {exc}") from exc

    logger.info(
        "Loaded %d engagements and %d attendance entries", len(engagements), len(entries)
    )

    # 3) Window
    reference = _parse_optional_date(args.reference_date) or date.today()
    try:
        window = determine_window_from_args(args, reference)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    print(
        f"Applied window: {window.label} "
        f"({window.start.isoformat()} → {window.end.isoformat()}) | "
        f"mode: {mode} | base currency: {config.base_currency}"
    )

    # 4) Aggregation
    tables: list[tuple[str, pd.DataFrame]] = []
    try:
        if args.split:
            windows = split_window(window, args.split)
            multi = compute_multi_window(
                engagements,
                entries,
                windows,
                config.base_currency,
                config.conversion_rates,
                schedule_by_subject=config.schedule_by_subject,
                default_schedule=config.default_schedule,
                mode=mode,
            )
            for measure in ("revenue", "profit"):
                pivot = pivot_rollups(multi.rollups, level="client", measure=measure)
                tables.append(
                    (
                        f"{measure.capitalize()} by client per {args.split}",
                        pivot.round(config.decimals).reset_index(),
                    )
                )
        else:
            result = aggregate(
                engagements,
                entries,
                window,
                config.base_currency,
                config.conversion_rates,
                schedule_by_subject=config.schedule_by_subject,
                default_schedule=config.default_schedule,
                mode=mode,
            )
            want = {args.view} if args.view != "all" else set(VIEWS)
            if "summary" in want:
                tables.append(
                    (
                        "Summary",
                        summary_table(
                            result,
                            decimals=config.decimals,
                            display_currency=config.display_currency,
                            conversion_rates=config.conversion_rates,
                        ),
                    )
                )
            for view, level in (
                ("clients", "client"),
                ("cost-objects", "cost_object"),
                ("subjects", "subject"),
            ):
                if view in want:
                    tables.append(
                        (
                            f"By {level.replace('_', ' ')}",
                            breakdown_table(result, level, decimals=config.decimals),
                        )
                    )
            if "engagements" in want:
                tables.append(
                    ("Engagements", engagements_table(result, decimals=config.decimals))
                )
    except FinancialEngineError as exc:
        raise SystemExit(f"Unable to compute financials: {exc}") from exc

    # 5) Rendering
    _render(tables, display_mode, output_dir)


if __name__ == "__main__":
    main()
