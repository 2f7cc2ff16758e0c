# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for HR FinSight.

This module reads engagements and attendance (time-log) entries from CSV
files and normalizes them into the frozen records consumed by the engine.
Column names are case-insensitive and stripped.

Engagements CSV
---------------
Required columns:
    subject_id, cost_object_id, client_id, kind, comp_amount

Optional columns:
    comp_currency, comp_period,
    billing_amount, billing_currency, billing_period,      (timesheet)
    fee_type, fee_value, fee_currency,                     (placement)
    placement_class, accrual_amount, accrual_currency, accrual_period,
    start_date, end_date                                   (YYYY-MM-DD)

Currencies default to INR and periods to LPA when the cell is empty.

Attendance CSV
--------------
Long format, one row per allocation:
    subject_id, date, cost_object_id, hours, [approved], [note]

Rows sharing (subject_id, date, approved) are grouped into a single
AttendanceEntry. A missing ``approved`` column means every row is approved.

Only the structure is checked here (columns, numbers, dates, booleans).
Business validation (negative amounts, unknown fee types, ...) is left to
the engine, which raises the domain errors.
"""

import os
from datetime import date
from typing import Optional, Union

import pandas as pd

from .models import (
    PERIOD_LPA,
    PLACEMENT_EXTERNAL,
    Allocation,
    AttendanceEntry,
    BillingRecord,
    CompensationRecord,
    Engagement,
    FeeSpec,
)

PathLike = Union[str, "os.PathLike[str]"]

ENGAGEMENT_REQUIRED = {"subject_id", "cost_object_id", "client_id", "kind", "comp_amount"}
ATTENDANCE_REQUIRED = {"subject_id", "date", "cost_object_id", "hours"}

_TRUE_VALUES = {"true", "1", "yes", "y", "approved"}
_FALSE_VALUES = {"false", "0", "no", "n", "", "pending", "rejected"}


def _read_csv(path: PathLike) -> pd.DataFrame:
    """Read a CSV as strings, with normalized (lowercase, stripped) headers."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]
    return df


def _cell(row: pd.Series, column: str) -> str:
    value = row.get(column, "")
    return "" if value is None else str(value).strip()


def _float(row: pd.Series, column: str, line: int) -> Optional[float]:
    raw = _cell(row, column)
    if raw == "":
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(
            f"Invalid numeric value {raw!r} in '{column}' column (line {line})."
        ) from exc


def _date(row: pd.Series, column: str, line: int) -> Optional[date]:
    raw = _cell(row, column)
    if raw == "":
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(
            f"Invalid date {raw!r} in '{column}' column (line {line}), "
            "expected YYYY-MM-DD."
        ) from exc


def _bool(raw: str, line: int) -> bool:
    key = raw.strip().lower()
    if key in _TRUE_VALUES:
        return True
    if key in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid value {raw!r} in 'approved' column (line {line}).")


def _check_columns(df: pd.DataFrame, required: set[str], what: str) -> None:
    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {what} structure, missing column(s): "
            f"{', '.join(sorted(missing))}. Expected at least: "
            f"{', '.join(sorted(required))} (column names are case-insensitive)."
        )


def engagements_from_frame(df: pd.DataFrame) -> list[Engagement]:
    """Build engagements from a DataFrame following the engagements CSV layout."""
    _check_columns(df, ENGAGEMENT_REQUIRED, "engagements")

    engagements: list[Engagement] = []
    for position, (_, row) in enumerate(df.iterrows()):
        line = position + 2  # header is line 1
        subject_id = _cell(row, "subject_id")
        cost_object_id = _cell(row, "cost_object_id")
        client_id = _cell(row, "client_id")

        comp_amount = _float(row, "comp_amount", line)
        if comp_amount is None:
            raise ValueError(f"Missing 'comp_amount' (line {line}).")
        compensation = CompensationRecord(
            subject_id=subject_id,
            amount=comp_amount,
            currency=_cell(row, "comp_currency").upper() or "INR",
            period_type=_cell(row, "comp_period") or PERIOD_LPA,
        )

        billing = None
        billing_amount = _float(row, "billing_amount", line)
        if billing_amount is not None:
            billing = BillingRecord(
                cost_object_id=cost_object_id,
                client_id=client_id,
                amount=billing_amount,
                currency=_cell(row, "billing_currency").upper() or "INR",
                period_type=_cell(row, "billing_period") or PERIOD_LPA,
            )

        fee_spec = None
        fee_type = _cell(row, "fee_type")
        if fee_type:
            fee_value = _float(row, "fee_value", line)
            if fee_value is None:
                raise ValueError(f"Missing 'fee_value' for fee type {fee_type!r} (line {line}).")
            fee_spec = FeeSpec(
                type=fee_type,
                value=fee_value,
                currency=_cell(row, "fee_currency").upper() or "INR",
            )

        engagements.append(
            Engagement(
                subject_id=subject_id,
                cost_object_id=cost_object_id,
                client_id=client_id,
                kind=_cell(row, "kind").lower(),
                compensation=compensation,
                billing=billing,
                fee_spec=fee_spec,
                placement_class=_cell(row, "placement_class").lower() or PLACEMENT_EXTERNAL,
                accrual_amount=_float(row, "accrual_amount", line),
                accrual_currency=_cell(row, "accrual_currency").upper() or "INR",
                accrual_period_type=_cell(row, "accrual_period") or PERIOD_LPA,
                start_date=_date(row, "start_date", line),
                end_date=_date(row, "end_date", line),
            )
        )
    return engagements


def attendance_from_frame(df: pd.DataFrame) -> list[AttendanceEntry]:
    """Group long-format attendance rows into AttendanceEntry objects.

    Entries are returned in order of first appearance; allocations keep
    their row order.
    """
    _check_columns(df, ATTENDANCE_REQUIRED, "attendance")
    has_approved = "approved" in df.columns

    grouped: dict[tuple[str, date, bool], list[Allocation]] = {}
    for position, (_, row) in enumerate(df.iterrows()):
        line = position + 2
        day = _date(row, "date", line)
        if day is None:
            raise ValueError(f"Missing date in attendance (line {line}).")
        hours = _float(row, "hours", line)
        if hours is None:
            raise ValueError(f"Missing 'hours' in attendance (line {line}).")
        approved = _bool(_cell(row, "approved"), line) if has_approved else True

        key = (_cell(row, "subject_id"), day, approved)
        grouped.setdefault(key, []).append(
            Allocation(
                cost_object_id=_cell(row, "cost_object_id"),
                hours=hours,
                note=_cell(row, "note"),
            )
        )

    return [
        AttendanceEntry(
            subject_id=subject_id,
            date=day,
            approved=approved,
            allocations=tuple(allocations),
        )
        for (subject_id, day, approved), allocations in grouped.items()
    ]


def read_engagements(path: PathLike) -> list[Engagement]:
    """
    Read engagements from a CSV file.

    Raises
    ------
    ValueError
        If required columns are missing or a number/date cannot be parsed.
    """
    return engagements_from_frame(_read_csv(path))


def read_attendance(path: PathLike) -> list[AttendanceEntry]:
    """
    Read attendance entries from a long-format CSV file.

    Raises
    ------
    ValueError
        If required columns are missing or a value cannot be parsed.
    InvalidAttendanceError
        If an allocation carries negative hours.
    """
    return attendance_from_frame(_read_csv(path))
