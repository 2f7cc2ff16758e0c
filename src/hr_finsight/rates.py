# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Rate normalization for HR FinSight.

Compensation and billing figures arrive in heterogeneous shapes:

- two currencies (INR, USD), converted with a single static rate per
  currency pair supplied by the caller (no time-varying FX),
- three cadences ("period types"):
    * Hourly  : amount per hour,
    * Monthly : amount per month,
    * LPA     : amount per year ("lakhs per annum" in the source data).

This module turns any such figure into a canonical **hourly rate in the
base currency**, which the aggregation engine multiplies by attended hours.

Period conversion
-----------------
With ``days = working_days_per_year`` and ``hours = hours_per_day``:

    Hourly  -> amount
    Monthly -> amount * 12 / (days * hours)
    LPA     -> amount / (days * hours)

The working calendar is a per-subject policy (all-days 365 vs. weekdays-only
252, ...). It is passed explicitly by the caller; nothing here assumes a
single global constant beyond the documented defaults.

Unknown period types
--------------------
An unknown period type is the only silent fallback of the engine: it is
treated as LPA (annual semantics) and logged as a warning. Everything else
that is malformed raises ``InvalidRateError``.
"""

import logging
import math
import numbers
import re
from collections.abc import Mapping
from typing import Optional, Union

from .exceptions import InvalidRateError
from .models import (
    PERIOD_HOURLY,
    PERIOD_LPA,
    PERIOD_MONTHLY,
    BillingRecord,
    CompensationRecord,
    Schedule,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DAYS_PER_YEAR = 365
DEFAULT_HOURS_PER_DAY = 8

# Calendar days used to prorate annual amounts over an assignment duration.
CALENDAR_DAYS_PER_YEAR = 365

# Case-insensitive aliases accepted for period types.
_PERIOD_ALIASES: dict[str, str] = {
    "hourly": PERIOD_HOURLY,
    "hour": PERIOD_HOURLY,
    "per hour": PERIOD_HOURLY,
    "monthly": PERIOD_MONTHLY,
    "month": PERIOD_MONTHLY,
    "per month": PERIOD_MONTHLY,
    "lpa": PERIOD_LPA,
    "annual": PERIOD_LPA,
    "yearly": PERIOD_LPA,
    "per annum": PERIOD_LPA,
}

# Currency symbols used by the free-text salary notation ("$1200 Monthly").
_CURRENCY_SYMBOLS: dict[str, str] = {"$": "USD", "₹": "INR"}

Number = Union[int, float]


def _validate_amount(amount: object) -> float:
    """Return ``amount`` as a float or raise InvalidRateError."""
    if isinstance(amount, bool) or not isinstance(amount, numbers.Real):
        raise InvalidRateError(f"Amount must be a number, got {amount!r}.")
    value = float(amount)
    if math.isnan(value) or math.isinf(value):
        raise InvalidRateError(f"Amount must be finite, got {amount!r}.")
    if value < 0:
        raise InvalidRateError(f"Amount cannot be negative, got {amount!r}.")
    return value


def _validate_schedule(working_days_per_year: Number, hours_per_day: Number) -> float:
    """Return the number of working hours per year, or raise InvalidRateError."""
    try:
        days = float(working_days_per_year)
        hours = float(hours_per_day)
    except (TypeError, ValueError) as exc:
        raise InvalidRateError(
            "Schedule figures must be numbers "
            f"(working_days_per_year={working_days_per_year!r}, "
            f"hours_per_day={hours_per_day!r})."
        ) from exc
    if not (days > 0 and hours > 0) or math.isinf(days) or math.isinf(hours):
        raise InvalidRateError(
            "Schedule figures must be positive "
            f"(working_days_per_year={working_days_per_year!r}, "
            f"hours_per_day={hours_per_day!r})."
        )
    return days * hours


def normalize_period_type(raw: Optional[str]) -> str:
    """
    Return the canonical period type for ``raw``.

    Matching is case-insensitive and accepts a few aliases ('annual',
    'yearly', 'per month', ...). Unknown or missing values fall back to
    LPA, with a warning.
    """
    if raw is not None:
        key = str(raw).strip().lower()
        if key in _PERIOD_ALIASES:
            return _PERIOD_ALIASES[key]

    logger.warning("Unknown period type %r, falling back to LPA semantics", raw)
    return PERIOD_LPA


def resolve_conversion_rate(
    currency: str,
    base_currency: str,
    conversion_rates: Mapping[str, float],
) -> float:
    """
    Return the static rate converting ``currency`` into ``base_currency``.

    ``conversion_rates`` maps a currency code to the number of base
    currency units per unit of that currency (e.g. ``{"USD": 84}`` with an
    INR base). The rate is 1.0 when both currencies are identical.

    Raises:
        InvalidRateError: if no usable rate is available for the pair.
    """
    if currency == base_currency:
        return 1.0

    rate = conversion_rates.get(currency)
    if rate is None:
        raise InvalidRateError(
            f"No conversion rate from {currency!r} to {base_currency!r}."
        )
    if isinstance(rate, bool) or not isinstance(rate, numbers.Real):
        raise InvalidRateError(f"Invalid conversion rate for {currency!r}: {rate!r}.")
    rate = float(rate)
    if not rate > 0 or math.isinf(rate):
        raise InvalidRateError(
            f"Conversion rate for {currency!r} must be positive, got {rate!r}."
        )
    return rate


def convert_to_base(
    amount: Number,
    currency: str,
    base_currency: str,
    conversion_rates: Mapping[str, float],
) -> float:
    """Convert a validated amount into the base currency."""
    value = _validate_amount(amount)
    return value * resolve_conversion_rate(currency, base_currency, conversion_rates)


def to_hourly_rate(
    amount: Number,
    currency: str,
    period_type: Optional[str],
    base_currency: str,
    conversion_rate: Optional[float],
    working_days_per_year: Number = DEFAULT_WORKING_DAYS_PER_YEAR,
    hours_per_day: Number = DEFAULT_HOURS_PER_DAY,
) -> float:
    """Convert a compensation/billing figure into an hourly rate.

    Args:
        amount: Non-negative figure in ``currency`` per ``period_type``.
        currency: Currency code of ``amount``.
        period_type: 'Hourly', 'Monthly' or 'LPA'. Unknown values are
            treated as 'LPA'.
        base_currency: Currency of the returned rate.
        conversion_rate: Base currency units per unit of ``currency``.
            Ignored when ``currency == base_currency``.
        working_days_per_year: Working days in the subject's calendar.
        hours_per_day: Working hours per day.

    Returns:
        Hourly rate in ``base_currency``, unrounded.

    Raises:
        InvalidRateError: negative/non-numeric amount, missing conversion
            rate for a foreign currency, or non-positive schedule.
    """
    value = _validate_amount(amount)
    hours_per_year = _validate_schedule(working_days_per_year, hours_per_day)

    if currency != base_currency:
        if conversion_rate is None:
            raise InvalidRateError(
                f"No conversion rate from {currency!r} to {base_currency!r}."
            )
        value *= resolve_conversion_rate(
            currency, base_currency, {currency: conversion_rate}
        )

    period = normalize_period_type(period_type)
    if period == PERIOD_HOURLY:
        return value
    if period == PERIOD_MONTHLY:
        return (value * 12) / hours_per_year
    return value / hours_per_year


def to_annual_amount(
    amount: Number,
    currency: str,
    period_type: Optional[str],
    base_currency: str,
    conversion_rates: Mapping[str, float],
    working_days_per_year: Number = DEFAULT_WORKING_DAYS_PER_YEAR,
    hours_per_day: Number = DEFAULT_HOURS_PER_DAY,
) -> float:
    """
    Annualize a figure in the base currency.

    This is the inverse of ``to_hourly_rate``: Hourly amounts are multiplied
    by the working hours of the year, Monthly amounts by 12 and LPA amounts
    are left unchanged.
    """
    value = convert_to_base(amount, currency, base_currency, conversion_rates)
    hours_per_year = _validate_schedule(working_days_per_year, hours_per_day)

    period = normalize_period_type(period_type)
    if period == PERIOD_HOURLY:
        return value * hours_per_year
    if period == PERIOD_MONTHLY:
        return value * 12
    return value


def to_accrual_amount(
    amount: Number,
    currency: str,
    period_type: Optional[str],
    base_currency: str,
    conversion_rates: Mapping[str, float],
    duration_days: int,
    working_days_per_year: Number = DEFAULT_WORKING_DAYS_PER_YEAR,
    hours_per_day: Number = DEFAULT_HOURS_PER_DAY,
) -> float:
    """
    Prorate a figure over an assignment duration (accrual basis).

    The annualized amount is spread over calendar days:
    ``annual * duration_days / 365``. With the default all-days calendar
    this gives ``amount * duration_days * hours_per_day`` for Hourly figures.
    """
    if duration_days < 0:
        raise InvalidRateError(
            f"Duration cannot be negative, got {duration_days!r} days."
        )
    annual = to_annual_amount(
        amount,
        currency,
        period_type,
        base_currency,
        conversion_rates,
        working_days_per_year=working_days_per_year,
        hours_per_day=hours_per_day,
    )
    return annual * duration_days / CALENDAR_DAYS_PER_YEAR


def hourly_rate_for(
    record: Union[CompensationRecord, BillingRecord],
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule: Schedule,
) -> float:
    """Hourly rate of a compensation or billing record for a given schedule."""
    rate: Optional[float] = None
    if record.currency != base_currency:
        rate = resolve_conversion_rate(record.currency, base_currency, conversion_rates)
    return to_hourly_rate(
        record.amount,
        record.currency,
        record.period_type,
        base_currency,
        rate,
        working_days_per_year=schedule.working_days_per_year,
        hours_per_day=schedule.hours_per_day,
    )


def parse_compensation_string(
    raw: Optional[Union[str, Number]],
    subject_id: str = "",
    default_currency: str = "INR",
) -> CompensationRecord:
    """
    Parse the free-text salary notation used by the recruitment screens.

    Examples:
        "₹1200000"          -> 1200000 INR LPA
        "$1200 Monthly"     -> 1200 USD Monthly
        "45 hourly"         -> 45 INR Hourly
        1500000             -> 1500000 INR LPA

    The period token is optional and defaults to LPA. Empty values yield a
    zero amount.

    Raises:
        InvalidRateError: if the numeric part cannot be parsed.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return CompensationRecord(
            subject_id=subject_id,
            amount=0.0,
            currency=default_currency,
            period_type=PERIOD_LPA,
        )

    if not isinstance(raw, str):
        return CompensationRecord(
            subject_id=subject_id,
            amount=_validate_amount(raw),
            currency=default_currency,
            period_type=PERIOD_LPA,
        )

    text = raw.strip()
    currency = default_currency
    for symbol, code in _CURRENCY_SYMBOLS.items():
        if text.startswith(symbol):
            currency = code
            text = text[len(symbol) :].strip()
            break

    parts = text.split(maxsplit=1)
    number = re.sub(r"[,\s]", "", parts[0]) if parts else ""
    try:
        amount = float(number)
    except ValueError as exc:
        raise InvalidRateError(f"Cannot parse compensation amount from {raw!r}.") from exc

    period_type = normalize_period_type(parts[1]) if len(parts) > 1 else PERIOD_LPA

    return CompensationRecord(
        subject_id=subject_id,
        amount=_validate_amount(amount),
        currency=currency,
        period_type=period_type,
    )
