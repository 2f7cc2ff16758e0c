# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-window orchestration for revenue, cost and profit.

Dashboards chart revenue and profit over consecutive windows (weeks of a
month, months of a year, ...). ``compute_multi_window()`` runs the
aggregation engine once per window over the same input snapshot and
concatenates the per-window results into long-format DataFrames carrying a
``window_label`` column, ready for charts, BI tools and CSV exports.

``engine.py`` remains the single source of truth for how one window is
computed; this module only assembles windows. Each window is aggregated
independently, so the figures of a window never depend on its neighbours.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

import pandas as pd

from .engine import (
    FIGURE_COLUMNS,
    MODE_ACTUAL,
    aggregate,
    engagements_to_dataframe,
    result_to_dataframe,
)
from .models import AggregationResult, AttendanceEntry, Engagement, Schedule
from .periods import Window


@dataclass(frozen=True)
class FinancialsMultiWindow:
    """
    Multi-window result.

    Attributes
    ----------
    rollups :
        Long-format DataFrame, one row per (window, level, key) with
        columns: window_label, window_start, window_end, level, key,
        revenue, cost, profit, hours.
    engagements :
        Long-format DataFrame, one row per (window, engagement), with the
        columns of ``engine.engagements_to_dataframe`` prefixed by
        window_label.
    results :
        The raw AggregationResult of each window, keyed by window label.
    """

    rollups: pd.DataFrame
    engagements: pd.DataFrame
    results: dict[str, AggregationResult]


def compute_multi_window(
    engagements: Iterable[Engagement],
    entries: Iterable[AttendanceEntry],
    windows: list[Window],
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule_by_subject: Optional[Mapping[str, Schedule]] = None,
    default_schedule: Optional[Schedule] = None,
    mode: str = MODE_ACTUAL,
) -> FinancialsMultiWindow:
    """
    Aggregate the same inputs over several windows.

    Raises
    ------
    ValueError
        If no windows are provided or if two windows share a label.
    """
    if not windows:
        raise ValueError("compute_multi_window requires at least one Window.")

    labels = [w.label for w in windows]
    if len(set(labels)) != len(labels):
        raise ValueError("Window labels must be unique in a multi-window computation.")

    engagement_list = list(engagements)
    entry_snapshot = tuple(entries)

    rollup_frames: list[pd.DataFrame] = []
    engagement_frames: list[pd.DataFrame] = []
    results: dict[str, AggregationResult] = {}

    for window in windows:
        result = aggregate(
            engagement_list,
            entry_snapshot,
            window,
            base_currency,
            conversion_rates,
            schedule_by_subject=schedule_by_subject,
            default_schedule=default_schedule,
            mode=mode,
        )
        results[window.label] = result

        rollup = result_to_dataframe(result)
        rollup.insert(0, "window_end", window.end)
        rollup.insert(0, "window_start", window.start)
        rollup.insert(0, "window_label", window.label)
        rollup_frames.append(rollup)

        per_engagement = engagements_to_dataframe(result)
        per_engagement.insert(0, "window_label", window.label)
        engagement_frames.append(per_engagement)

    rollups = pd.concat(rollup_frames, ignore_index=True)
    engagements_df = pd.concat(engagement_frames, ignore_index=True)

    return FinancialsMultiWindow(
        rollups=rollups,
        engagements=engagements_df,
        results=results,
    )


def pivot_rollups(
    rollups: pd.DataFrame, level: str = "client", measure: str = "revenue"
) -> pd.DataFrame:
    """
    Pivot a multi-window roll-up frame into a key x window table.

    Windows keep their computation order as columns; missing combinations
    are filled with 0.0.
    """
    if measure not in FIGURE_COLUMNS:
        raise ValueError(
            f"Unknown measure: {measure!r}. Expected one of: {', '.join(FIGURE_COLUMNS)}."
        )

    subset = rollups[rollups["level"] == level]
    window_order = list(dict.fromkeys(rollups["window_label"]))
    table = subset.pivot_table(
        index="key",
        columns="window_label",
        values=measure,
        aggfunc="sum",
        fill_value=0.0,
    )
    return table.reindex(columns=window_order, fill_value=0.0)
