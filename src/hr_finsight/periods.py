# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Query windows for HR FinSight.

This module defines the Window value object (an inclusive [start, end]
calendar interval with a label) and helpers to derive windows (week,
month, year, month-to-date, year-to-date, last N days) from an explicit
reference date and from CLI arguments.

Every helper takes the reference date as a parameter: the engine never
reads the wall clock, so the window boundaries alone determine a result.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

import pandas as pd

GRANULARITIES: tuple[str, ...] = ("day", "week", "month", "year")


def as_date(value: date) -> date:
    """Drop the time part of a datetime; plain dates are returned unchanged."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class Window:
    """Inclusive calendar interval with a human-readable label."""

    start: date
    end: date
    label: str = ""

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Window end date {self.end} cannot be before start date {self.start}."
            )

    def contains(self, day: date) -> bool:
        """Return True if ``day`` falls within [start, end]."""
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days covered (inclusive)."""
        return (self.end - self.start).days + 1


def window_week(reference: date) -> Window:
    """Monday-to-Sunday week containing ``reference``."""
    start = reference - timedelta(days=reference.weekday())
    end = start + timedelta(days=6)
    return Window(start=start, end=end, label=f"Week of {start.isoformat()}")


def window_month(reference: date) -> Window:
    """Calendar month containing ``reference``."""
    start = reference.replace(day=1)
    end = reference.replace(day=monthrange(reference.year, reference.month)[1])
    return Window(start=start, end=end, label=start.strftime("%Y-%m"))


def window_year(reference: date) -> Window:
    """Calendar year containing ``reference``."""
    return Window(
        start=date(reference.year, 1, 1),
        end=date(reference.year, 12, 31),
        label=str(reference.year),
    )


def window_mtd(reference: date) -> Window:
    """Month-to-date, ending on ``reference``."""
    return Window(start=reference.replace(day=1), end=reference, label="Month to date")


def window_ytd(reference: date) -> Window:
    """Year-to-date, ending on ``reference``."""
    return Window(start=date(reference.year, 1, 1), end=reference, label="Year to date")


def window_last_days(reference: date, days: int) -> Window:
    """The ``days`` calendar days ending on ``reference`` (inclusive)."""
    if days < 1:
        raise ValueError(f"Number of days must be at least 1, got {days}.")
    return Window(
        start=reference - timedelta(days=days - 1),
        end=reference,
        label=f"Last {days} days",
    )


def split_window(window: Window, granularity: str) -> list[Window]:
    """
    Split a window into consecutive sub-windows.

    - 'day'   : one window per day, labelled 'YYYY-MM-DD',
    - 'week'  : Monday-start weeks, labelled 'Week 1', 'Week 2', ...
    - 'month' : calendar months, labelled 'YYYY-MM',
    - 'year'  : calendar years, labelled 'YYYY'.

    Sub-windows are clipped to the parent window, so their union is exactly
    the parent window and they never overlap.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(
            f"Unknown granularity: {granularity!r}. "
            f"Expected one of: {', '.join(GRANULARITIES)}."
        )

    out: list[Window] = []
    cursor = window.start
    index = 1
    while cursor <= window.end:
        if granularity == "day":
            natural = Window(cursor, cursor, cursor.isoformat())
        elif granularity == "week":
            natural = window_week(cursor)
        elif granularity == "month":
            natural = window_month(cursor)
        else:
            natural = window_year(cursor)

        end = min(natural.end, window.end)
        label = f"Week {index}" if granularity == "week" else natural.label
        out.append(Window(start=cursor, end=end, label=label))

        cursor = end + timedelta(days=1)
        index += 1

    return out


def determine_window_from_args(args, reference: date) -> Window:
    """
    Determine the query window from CLI arguments.

    Priority (highest to lowest):

        1. args.period (week, month, year, mtd, ytd, last-7-days, last-30-days)
        2. args.from_date / args.to_date (custom window)
        3. month containing the reference date by default
    """
    p: Optional[str] = getattr(args, "period", None)
    if p:
        if p == "week":
            return window_week(reference)
        if p == "month":
            return window_month(reference)
        if p == "year":
            return window_year(reference)
        if p == "mtd":
            return window_mtd(reference)
        if p == "ytd":
            return window_ytd(reference)
        if p == "last-7-days":
            return window_last_days(reference, 7)
        if p == "last-30-days":
            return window_last_days(reference, 30)
        raise ValueError(f"Unknown period: {p!r}")

    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        default = window_month(reference)
        start = date.fromisoformat(from_raw) if from_raw else default.start
        end = date.fromisoformat(to_raw) if to_raw else default.end

        if end < start:
            raise ValueError("Custom window end date cannot be before start date.")

        return Window(start=start, end=end, label=f"Custom window ({start} → {end})")

    return window_month(reference)


def filter_frame_by_window(frame: pd.DataFrame, window: Window) -> pd.DataFrame:
    """
    Keep only the rows of ``frame`` whose 'date' falls within the window.

    The 'date' column may hold ``datetime.date`` objects or datetime64
    values; bounds are inclusive.
    """
    dates = pd.to_datetime(frame["date"])
    mask = (dates >= pd.Timestamp(window.start)) & (dates <= pd.Timestamp(window.end))
    return frame.loc[mask].copy()
