# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for HR FinSight.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the CLI and by callers that want to
  feed the engine from configuration rather than from explicit parameters.

The engine itself never reads configuration: every policy (base currency,
conversion rates, working calendars, calculation mode) is passed to it
explicitly.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

from .engine import CALCULATION_MODES
from .models import Schedule

DISPLAY_MODES: tuple[str, ...] = ("table", "csv", "both")

# Static rates used when no [currency.rates] table is configured (INR base).
DEFAULT_CONVERSION_RATES: dict[str, float] = {"USD": 84.0}


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for HR FinSight.

    This aggregates:
    - the base currency and the static conversion rates,
    - the default working calendar and per-subject overrides,
    - the calculation mode ('actual' or 'accrual'),
    - input file locations (optional, resolved against the config file),
    - display options.
    """

    base_currency: str
    conversion_rates: dict[str, float]
    default_schedule: Schedule
    schedule_by_subject: dict[str, Schedule]
    mode: str
    engagements_file: Optional[Path]
    attendance_file: Optional[Path]
    display_mode: str
    decimals: int
    display_currency: Optional[str] = None
    output_dir: Path = field(default_factory=lambda: Path("data/output"))


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _parse_schedule(data: Mapping[str, Any], default: Schedule, where: str) -> Schedule:
    """
    Build a Schedule from a TOML table, inheriting missing keys from
    ``default``.

    Raises:
        ValueError: if a value is not a positive number.
    """
    try:
        days = float(data.get("working_days_per_year", default.working_days_per_year))
        hours = float(data.get("hours_per_day", default.hours_per_day))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid schedule in {where}: working_days_per_year and "
            "hours_per_day must be numbers."
        ) from exc

    if days <= 0 or hours <= 0:
        raise ValueError(
            f"Invalid schedule in {where}: values must be strictly positive."
        )

    return Schedule(working_days_per_year=days, hours_per_day=hours)


def _parse_conversion_rates(section: Mapping[str, Any]) -> dict[str, float]:
    if "rates" not in section:
        return dict(DEFAULT_CONVERSION_RATES)
    rates_section = section.get("rates") or {}
    if not isinstance(rates_section, Mapping):
        raise ValueError("[currency.rates] must be a table of CODE = rate pairs.")

    rates: dict[str, float] = {}
    for code, value in rates_section.items():
        try:
            rate = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid conversion rate for {code!r} in [currency.rates]."
            ) from exc
        if rate <= 0:
            raise ValueError(
                f"Conversion rate for {code!r} must be strictly positive."
            )
        rates[str(code).upper()] = rate
    return rates


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the HR FinSight configuration from a TOML file.

    Expected sections
    -----------------
    [currency]
        base = "INR"
        display = "USD"            (optional, secondary display currency)
        [currency.rates]
        USD = 84.0                 (base units per unit of currency)

    [schedule]
        working_days_per_year = 365
        hours_per_day = 8
        [schedule.subjects.<subject_id>]
        working_days_per_year = 252

    [engine]
        mode = "actual"            ('actual' or 'accrual')

    [inputs]
        engagements = "data/input/engagements.csv"
        attendance  = "data/input/attendance.csv"

    [display]
        mode = "table"             ('table', 'csv' or 'both')
        decimals = 2
        output_dir = "data/output"

    All paths are resolved relative to the directory of the TOML file.
    Every section is optional; defaults are INR as base currency, USD at 84
    when [currency.rates] is absent, 365 x 8 schedules, the 'actual' mode
    and the 'table' display mode.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If a value is invalid.
    """
    if config_path is None:
        config_file = Path("hr_finsight_config.toml").resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Currency
    currency_section = _section(raw, "currency")
    base_currency = str(currency_section.get("base") or "INR").upper()
    display_currency_raw = currency_section.get("display")
    display_currency = str(display_currency_raw).upper() if display_currency_raw else None
    conversion_rates = _parse_conversion_rates(currency_section)

    if display_currency and display_currency != base_currency:
        if display_currency not in conversion_rates:
            raise ValueError(
                f"Display currency {display_currency!r} has no conversion rate "
                "in [currency.rates]."
            )

    # 2) Schedules
    schedule_section = _section(raw, "schedule")
    default_schedule = _parse_schedule(schedule_section, Schedule(), "[schedule]")

    subjects_section = schedule_section.get("subjects") or {}
    if not isinstance(subjects_section, Mapping):
        subjects_section = {}

    schedule_by_subject: dict[str, Schedule] = {}
    for subject_id, data in subjects_section.items():
        if not isinstance(data, Mapping):
            raise ValueError(
                f"[schedule.subjects.{subject_id}] must be a table."
            )
        schedule_by_subject[str(subject_id)] = _parse_schedule(
            data, default_schedule, f"[schedule.subjects.{subject_id}]"
        )

    # 3) Engine
    engine_section = _section(raw, "engine")
    mode = str(engine_section.get("mode", "actual")).lower()
    if mode not in CALCULATION_MODES:
        raise ValueError(
            f"Invalid [engine].mode {mode!r}, expected 'actual' or 'accrual'."
        )

    # 4) Inputs
    inputs_section = _section(raw, "inputs")

    def _resolve_optional(rel: Optional[str]) -> Optional[Path]:
        if not rel:
            return None
        return (base_dir / str(rel)).resolve()

    engagements_file = _resolve_optional(inputs_section.get("engagements"))
    attendance_file = _resolve_optional(inputs_section.get("attendance"))

    # 5) Display
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid [display].mode {display_mode!r}, expected one of: "
            f"{', '.join(DISPLAY_MODES)}."
        )
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2
    output_dir = (base_dir / str(display_section.get("output_dir", "data/output"))).resolve()

    return AppConfig(
        base_currency=base_currency,
        conversion_rates=conversion_rates,
        default_schedule=default_schedule,
        schedule_by_subject=schedule_by_subject,
        mode=mode,
        engagements_file=engagements_file,
        attendance_file=attendance_file,
        display_mode=display_mode,
        decimals=decimals,
        display_currency=display_currency,
        output_dir=output_dir,
    )


def default_app_config() -> AppConfig:
    """Configuration used when no TOML file is available: INR base, USD at 84."""
    return AppConfig(
        base_currency="INR",
        conversion_rates=dict(DEFAULT_CONVERSION_RATES),
        default_schedule=Schedule(),
        schedule_by_subject={},
        mode="actual",
        engagements_file=None,
        attendance_file=None,
        display_mode="table",
        decimals=2,
    )
