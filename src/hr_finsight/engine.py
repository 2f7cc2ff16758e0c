# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core financial aggregation engine for HR FinSight.

The ``aggregate()`` function combines rate normalization (rates.py), time
attribution (attendance.py) and the commission model (commission.py) into
revenue, cost and profit figures, rolled up per subject, per cost object,
per client and for the whole portfolio.

1. Per-engagement figures
   ----------------------
   Timesheet engagements (mode 'actual'):
       hours        = approved hours in the window (attendance.hours_for)
       billing_rate = hourly billing rate in base currency
       comp_rate    = hourly compensation rate in base currency
       revenue      = hours * billing_rate
       cost         = hours * comp_rate
       profit       = revenue - cost

   Timesheet engagements (mode 'accrual'):
       the billing and compensation figures are prorated over the days of
       the assignment that fall inside the window, regardless of logged
       hours.

   Placement engagements:
       revenue/profit come from the commission model; no cost is computed.
       A placement counts in the window containing its start date and
       contributes 0 elsewhere; a placement without start date is rejected.

2. Roll-up
   -------
       by_client[c].revenue = Σ revenue of the engagements of client c
       total.revenue        = Σ by_client[*].revenue
   and likewise for cost, profit and hours (by_subject and by_cost_object
   follow the same rule). Sums use ``math.fsum``: they are correctly
   rounded, hence independent of input order, and no rounding happens
   before the display layer (views.py).

3. Errors
   ------
   Validation errors raised by any record propagate unchanged: one
   malformed record fails the whole call instead of producing a partial,
   misleading total.

The engine holds no state: every call recomputes everything from its own
inputs, which makes repeated calls idempotent and concurrent calls safe.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Optional

import pandas as pd

from .attendance import hours_for
from .commission import placement_figures
from .exceptions import InvalidEngagementError
from .models import (
    KIND_PLACEMENT,
    KIND_TIMESHEET,
    AggregationResult,
    AttendanceEntry,
    ClientFinancialSummary,
    Engagement,
    EngagementFigures,
    Figures,
    Schedule,
)
from .periods import Window, as_date
from .rates import hourly_rate_for, to_accrual_amount

logger = logging.getLogger(__name__)

MODE_ACTUAL = "actual"
MODE_ACCRUAL = "accrual"
CALCULATION_MODES: tuple[str, ...] = (MODE_ACTUAL, MODE_ACCRUAL)

FIGURE_COLUMNS: list[str] = ["revenue", "cost", "profit", "hours"]


def _sum_figures(items: Iterable[Figures]) -> Figures:
    """Exact-rounded, order-independent sum of figures."""
    items = list(items)
    return Figures(
        revenue=math.fsum(f.revenue for f in items),
        cost=math.fsum(f.cost for f in items),
        profit=math.fsum(f.profit for f in items),
        hours=math.fsum(f.hours for f in items),
    )


def _overlap_days(
    start: Optional[date], end: Optional[date], window: Window
) -> int:
    """Inclusive number of days of [start, end] inside the window."""
    lo = max(as_date(start) if start else window.start, window.start)
    hi = min(as_date(end) if end else window.end, window.end)
    if hi < lo:
        return 0
    return (hi - lo).days + 1


def _timesheet_actual(
    engagement: Engagement,
    entries: tuple[AttendanceEntry, ...],
    window: Window,
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule: Schedule,
) -> EngagementFigures:
    billing_rate = hourly_rate_for(
        engagement.billing, base_currency, conversion_rates, schedule
    )
    comp_rate = hourly_rate_for(
        engagement.compensation, base_currency, conversion_rates, schedule
    )
    hours = hours_for(engagement.subject_id, engagement.cost_object_id, entries, window)

    if hours == 0:
        figures = Figures()
    else:
        revenue = hours * billing_rate
        cost = hours * comp_rate
        figures = Figures(revenue=revenue, cost=cost, profit=revenue - cost, hours=hours)

    return EngagementFigures(
        engagement=engagement,
        figures=figures,
        hourly_billing_rate=billing_rate,
        hourly_compensation_rate=comp_rate,
    )


def _timesheet_accrual(
    engagement: Engagement,
    window: Window,
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule: Schedule,
) -> EngagementFigures:
    days = _overlap_days(engagement.start_date, engagement.end_date, window)

    def accrue(record) -> float:
        return to_accrual_amount(
            record.amount,
            record.currency,
            record.period_type,
            base_currency,
            conversion_rates,
            duration_days=days,
            working_days_per_year=schedule.working_days_per_year,
            hours_per_day=schedule.hours_per_day,
        )

    revenue = accrue(engagement.billing)
    cost = accrue(engagement.compensation)
    figures = Figures(
        revenue=revenue,
        cost=cost,
        profit=revenue - cost,
        hours=float(days * schedule.hours_per_day),
    )
    return EngagementFigures(
        engagement=engagement,
        figures=figures,
        hourly_billing_rate=hourly_rate_for(
            engagement.billing, base_currency, conversion_rates, schedule
        ),
        hourly_compensation_rate=hourly_rate_for(
            engagement.compensation, base_currency, conversion_rates, schedule
        ),
    )


def engagement_figures(
    engagement: Engagement,
    entries: tuple[AttendanceEntry, ...],
    window: Window,
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule: Schedule,
    mode: str = MODE_ACTUAL,
) -> EngagementFigures:
    """Compute the figures of a single engagement.

    Raises:
        InvalidEngagementError: unknown kind, timesheet engagement
            without a billing record, or placement without start date.
        InvalidRateError, InvalidCommissionError,
        UnsupportedCommissionTypeError: propagated from the components.
    """
    if engagement.kind == KIND_TIMESHEET:
        if engagement.billing is None:
            raise InvalidEngagementError(
                f"Timesheet engagement of subject {engagement.subject_id!r} on "
                f"{engagement.cost_object_id!r} has no billing record."
            )
        if mode == MODE_ACCRUAL:
            return _timesheet_accrual(
                engagement, window, base_currency, conversion_rates, schedule
            )
        return _timesheet_actual(
            engagement, entries, window, base_currency, conversion_rates, schedule
        )

    if engagement.kind == KIND_PLACEMENT:
        if engagement.start_date is None:
            raise InvalidEngagementError(
                f"Placement of subject {engagement.subject_id!r} on "
                f"{engagement.cost_object_id!r} has no start date."
            )
        figures = placement_figures(engagement, base_currency, conversion_rates, schedule)
        if not window.contains(as_date(engagement.start_date)):
            figures = Figures()
        return EngagementFigures(engagement=engagement, figures=figures)

    raise InvalidEngagementError(f"Unknown engagement kind: {engagement.kind!r}.")


def aggregate(
    engagements: Iterable[Engagement],
    entries: Iterable[AttendanceEntry],
    window: Window,
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule_by_subject: Optional[Mapping[str, Schedule]] = None,
    default_schedule: Optional[Schedule] = None,
    mode: str = MODE_ACTUAL,
) -> AggregationResult:
    """Aggregate engagements into revenue/cost/profit roll-ups.

    Args:
        engagements: Timesheet and placement engagements.
        entries: Attendance entries (only approved ones in the window count).
        window: Inclusive query window.
        base_currency: Currency of every output amount.
        conversion_rates: Static rates, e.g. ``{"USD": 84}`` for an INR base.
        schedule_by_subject: Working calendar per subject id.
        default_schedule: Calendar for subjects absent from
            ``schedule_by_subject`` (365 days x 8 hours if omitted).
        mode: 'actual' (logged hours) or 'accrual' (assignment duration).

    Returns:
        An AggregationResult whose ``total`` is exactly the sum of
        ``by_client``. Dictionaries are keyed in sorted order; the
        ``by_engagement`` tuple keeps the input order for presentation.

    Raises:
        ValueError: unknown calculation mode.
        FinancialEngineError subclasses: any malformed record.
    """
    if mode not in CALCULATION_MODES:
        raise ValueError(
            f"Unknown calculation mode: {mode!r}. Expected 'actual' or 'accrual'."
        )

    schedules = schedule_by_subject or {}
    fallback = default_schedule or Schedule()
    snapshot = tuple(entries)

    computed: list[EngagementFigures] = []
    for engagement in engagements:
        schedule = schedules.get(engagement.subject_id, fallback)
        ef = engagement_figures(
            engagement,
            snapshot,
            window,
            base_currency,
            conversion_rates,
            schedule,
            mode=mode,
        )
        logger.debug(
            "Engagement %s/%s/%s (%s): %s",
            engagement.client_id,
            engagement.cost_object_id,
            engagement.subject_id,
            engagement.kind,
            ef.figures,
        )
        computed.append(ef)

    # Roll-ups
    by_subject_items: dict[str, list[Figures]] = defaultdict(list)
    by_cost_object_items: dict[str, list[Figures]] = defaultdict(list)
    by_client_items: dict[str, list[Figures]] = defaultdict(list)
    for ef in computed:
        by_subject_items[ef.engagement.subject_id].append(ef.figures)
        by_cost_object_items[ef.engagement.cost_object_id].append(ef.figures)
        by_client_items[ef.engagement.client_id].append(ef.figures)

    by_subject = {k: _sum_figures(v) for k, v in sorted(by_subject_items.items())}
    by_cost_object = {
        k: _sum_figures(v) for k, v in sorted(by_cost_object_items.items())
    }
    by_client = {k: _sum_figures(v) for k, v in sorted(by_client_items.items())}
    total = _sum_figures(by_client.values())

    logger.info(
        "Aggregated %d engagements over %s → %s (%s mode): revenue=%.2f profit=%.2f %s",
        len(computed),
        window.start.isoformat(),
        window.end.isoformat(),
        mode,
        total.revenue,
        total.profit,
        base_currency,
    )

    return AggregationResult(
        base_currency=base_currency,
        by_subject=by_subject,
        by_cost_object=by_cost_object,
        by_client=by_client,
        total=total,
        by_engagement=tuple(computed),
    )


def client_summaries(result: AggregationResult) -> list[ClientFinancialSummary]:
    """Client-level revenue/profit summaries, ordered by client id."""
    return [
        ClientFinancialSummary(
            client_id=client_id,
            total_revenue=figures.revenue,
            total_profit=figures.profit,
        )
        for client_id, figures in result.by_client.items()
    ]


def result_to_dataframe(result: AggregationResult) -> pd.DataFrame:
    """
    Flatten an AggregationResult into a long-format DataFrame.

    Columns: level, key, revenue, cost, profit, hours, where ``level`` is one
    of 'subject', 'cost_object', 'client' or 'total' (key 'TOTAL').
    Amounts are left unrounded.
    """
    rows = []
    for level, nodes in (
        ("subject", result.by_subject),
        ("cost_object", result.by_cost_object),
        ("client", result.by_client),
        ("total", {"TOTAL": result.total}),
    ):
        for key, figures in nodes.items():
            rows.append(
                {
                    "level": level,
                    "key": key,
                    "revenue": figures.revenue,
                    "cost": figures.cost,
                    "profit": figures.profit,
                    "hours": figures.hours,
                }
            )
    return pd.DataFrame(rows, columns=["level", "key", *FIGURE_COLUMNS])


def engagements_to_dataframe(result: AggregationResult) -> pd.DataFrame:
    """One row per engagement with its rates and figures (input order)."""
    rows = []
    for ef in result.by_engagement:
        e = ef.engagement
        rows.append(
            {
                "client_id": e.client_id,
                "cost_object_id": e.cost_object_id,
                "subject_id": e.subject_id,
                "kind": e.kind,
                "hourly_billing_rate": ef.hourly_billing_rate,
                "hourly_compensation_rate": ef.hourly_compensation_rate,
                "revenue": ef.figures.revenue,
                "cost": ef.figures.cost,
                "profit": ef.figures.profit,
                "hours": ef.figures.hours,
            }
        )
    return pd.DataFrame(
        rows,
        columns=[
            "client_id",
            "cost_object_id",
            "subject_id",
            "kind",
            "hourly_billing_rate",
            "hourly_compensation_rate",
            *FIGURE_COLUMNS,
        ],
    )
