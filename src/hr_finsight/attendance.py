# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Time attribution for HR FinSight.

Attendance (time-log) entries record, for one subject and one calendar
day, how the worked time was split among cost objects (projects). This
module turns those entries into worked-hour totals:

- ``hours_for()``                         : one subject on one cost object,
- ``hours_by_subject_and_cost_object()``  : every pair in a single pass,
- ``hours_by_interval()``                 : chart buckets (days of a week,
                                            weeks of a month, months of a year).

Rules
-----
- only entries with ``approved is True`` count,
- an entry counts when its date lies in [window.start, window.end]
  (inclusive),
- no matching entry yields 0.0: absence of attendance is a valid
  zero-revenue state, not a fault.

All functions are pure: they never mutate the entry list and never read
the wall clock, so repeated calls with identical arguments return
identical totals. Sums use ``math.fsum`` and are independent of the order
of the entries.
"""

import math
from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from typing import Optional

import pandas as pd

from .models import AttendanceEntry
from .periods import (
    Window,
    as_date,
    split_window,
    window_month,
    window_week,
    window_year,
)

INTERVAL_GRANULARITIES: dict[str, tuple[str, str]] = {
    # chart period -> (sub-window granularity, strftime for labels or None)
    "week": ("day", "%a"),
    "month": ("week", ""),
    "year": ("month", "%b"),
}


def _counts(entry: AttendanceEntry, window: Window) -> bool:
    return entry.approved is True and window.contains(as_date(entry.date))


def hours_for(
    subject_id: str,
    cost_object_id: str,
    entries: Iterable[AttendanceEntry],
    window: Window,
) -> float:
    """Total approved hours of a subject on a cost object within a window.

    Args:
        subject_id: Subject (employee/candidate) identifier.
        cost_object_id: Cost object (project) identifier.
        entries: Attendance entries; not modified.
        window: Inclusive query window.

    Returns:
        Total hours, 0.0 when nothing matches.
    """
    hours = [
        float(allocation.hours)
        for entry in entries
        if entry.subject_id == subject_id and _counts(entry, window)
        for allocation in entry.allocations
        if allocation.cost_object_id == cost_object_id
    ]
    return math.fsum(hours)


def hours_by_subject_and_cost_object(
    entries: Iterable[AttendanceEntry],
    window: Window,
) -> dict[tuple[str, str], float]:
    """
    Total approved hours for every (subject_id, cost_object_id) pair.

    Equivalent to calling ``hours_for`` for each pair, in one pass over the
    entries. Pairs without hours are absent from the result.
    """
    buckets: dict[tuple[str, str], list[float]] = defaultdict(list)
    for entry in entries:
        if not _counts(entry, window):
            continue
        for allocation in entry.allocations:
            buckets[(entry.subject_id, allocation.cost_object_id)].append(
                float(allocation.hours)
            )
    return {key: math.fsum(values) for key, values in sorted(buckets.items())}


def hours_by_interval(
    entries: Iterable[AttendanceEntry],
    cost_object_id: str,
    period: str,
    reference: date,
    subject_id: Optional[str] = None,
) -> pd.DataFrame:
    """
    Hours on a cost object bucketed for charting.

    - 'week'  : one bucket per day of the Monday-start week containing
                ``reference`` (labels 'Mon'..'Sun'),
    - 'month' : one bucket per Monday-start week of the month ('Week 1'..),
                clipped to the month,
    - 'year'  : one bucket per month of the year ('Jan'..'Dec').

    Args:
        entries: Attendance entries.
        cost_object_id: Cost object whose hours are counted.
        period: 'week', 'month' or 'year'.
        reference: Any date inside the requested week/month/year.
        subject_id: Optional restriction to a single subject.

    Returns:
        DataFrame with columns: label, start, end, hours.
    """
    if period not in INTERVAL_GRANULARITIES:
        raise ValueError(
            f"Unknown interval period: {period!r}. Expected 'week', 'month' or 'year'."
        )

    granularity, label_format = INTERVAL_GRANULARITIES[period]
    if period == "week":
        outer = window_week(reference)
    elif period == "month":
        outer = window_month(reference)
    else:
        outer = window_year(reference)

    entries = list(entries)
    rows = []
    for bucket in split_window(outer, granularity):
        hours = [
            float(allocation.hours)
            for entry in entries
            if (subject_id is None or entry.subject_id == subject_id)
            and _counts(entry, bucket)
            for allocation in entry.allocations
            if allocation.cost_object_id == cost_object_id
        ]
        rows.append(
            {
                "label": bucket.start.strftime(label_format)
                if label_format
                else bucket.label,
                "start": bucket.start,
                "end": bucket.end,
                "hours": math.fsum(hours),
            }
        )

    return pd.DataFrame(rows, columns=["label", "start", "end", "hours"])


def entries_to_dataframe(entries: Iterable[AttendanceEntry]) -> pd.DataFrame:
    """
    Flatten attendance entries into a long-format DataFrame.

    One row per allocation, with columns:
        subject_id, date, approved, cost_object_id, hours, note

    Entries without allocations do not produce rows.
    """
    rows = [
        {
            "subject_id": entry.subject_id,
            "date": as_date(entry.date),
            "approved": bool(entry.approved),
            "cost_object_id": allocation.cost_object_id,
            "hours": float(allocation.hours),
            "note": allocation.note,
        }
        for entry in entries
        for allocation in entry.allocations
    ]
    return pd.DataFrame(
        rows,
        columns=["subject_id", "date", "approved", "cost_object_id", "hours", "note"],
    )
