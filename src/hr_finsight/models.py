# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data model for HR FinSight.

Every input record is a frozen dataclass: the engine treats inputs as
immutable snapshots supplied by the calling layer (database fetchers, CSV
readers, the CLI) and never mutates them.

Input records
-------------
- CompensationRecord : what a subject (employee / candidate) is paid.
- BillingRecord      : what the client is charged for a subject's time on
                       a cost object (project).
- Allocation         : one share of a day's worked time, attributed to a
                       cost object.
- AttendanceEntry    : one time-log day of a subject, with its allocations.
- FeeSpec            : placement fee definition (flat or percentage).
- Engagement         : link subject -> cost object -> client, either
                       timesheet-based or placement-based.
- Schedule           : working days per year and hours per day of a
                       subject, used to turn periodic amounts into hourly
                       rates.

Output records
--------------
- Figures                : revenue / cost / profit / hours of one node.
- EngagementFigures      : figures of a single engagement.
- ClientFinancialSummary : client-level revenue and profit.
- AggregationResult      : the full roll-up tree.

Output records are derived and ephemeral: they are recomputed on every
query and carry no identity of their own.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .exceptions import InvalidAttendanceError

# ---------------------------------------------------------------------------
# Enumerations (kept as plain strings, as they come from the database)
# ---------------------------------------------------------------------------

PERIOD_HOURLY = "Hourly"
PERIOD_MONTHLY = "Monthly"
PERIOD_LPA = "LPA"
PERIOD_TYPES: tuple[str, ...] = (PERIOD_HOURLY, PERIOD_MONTHLY, PERIOD_LPA)

KIND_TIMESHEET = "timesheet"
KIND_PLACEMENT = "placement"
ENGAGEMENT_KINDS: tuple[str, ...] = (KIND_TIMESHEET, KIND_PLACEMENT)

FEE_FLAT = "flat"
FEE_PERCENTAGE = "percentage"

PLACEMENT_EXTERNAL = "external"
PLACEMENT_INTERNAL = "internal"


@dataclass(frozen=True)
class CompensationRecord:
    """Amount paid to a subject, in its own currency and cadence."""

    subject_id: str
    amount: float
    currency: str = "INR"
    period_type: str = PERIOD_LPA


@dataclass(frozen=True)
class BillingRecord:
    """Amount charged to a client for a subject's time on a cost object."""

    cost_object_id: str
    client_id: str
    amount: float
    currency: str = "INR"
    period_type: str = PERIOD_LPA


@dataclass(frozen=True)
class Allocation:
    """Hours of one attendance day attributed to a single cost object."""

    cost_object_id: str
    hours: float
    note: str = ""

    def __post_init__(self) -> None:
        try:
            hours = float(self.hours)
        except (TypeError, ValueError) as exc:
            raise InvalidAttendanceError(
                f"Invalid hours value {self.hours!r} for cost object "
                f"{self.cost_object_id!r}."
            ) from exc
        if math.isnan(hours) or hours < 0:
            raise InvalidAttendanceError(
                f"Hours must be a non-negative number, got {self.hours!r} "
                f"for cost object {self.cost_object_id!r}."
            )


@dataclass(frozen=True)
class AttendanceEntry:
    """
    One time-log day of a subject.

    The sum of the allocation hours does not have to match any fixed daily
    total: it is the reported split of worked time among cost objects.
    Only approved entries count towards revenue.
    """

    subject_id: str
    date: date
    approved: bool
    allocations: tuple[Allocation, ...] = ()


@dataclass(frozen=True)
class FeeSpec:
    """Placement fee: a flat amount or a percentage of compensation."""

    type: str
    value: float
    currency: str = "INR"


@dataclass(frozen=True)
class Schedule:
    """Working calendar of a subject (e.g. 365 all-days or 252 weekdays)."""

    working_days_per_year: float = 365
    hours_per_day: float = 8


@dataclass(frozen=True)
class Engagement:
    """
    Assignment of a subject to a cost object of a client.

    Attributes
    ----------
    kind :
        'timesheet' (revenue from billed hours) or 'placement' (revenue
        from a fee).
    compensation :
        What the subject is paid.
    billing :
        Billing record, required for timesheet engagements.
    fee_spec :
        Fee definition, required for external placements.
    placement_class :
        'external' (fee-based) or 'internal' (the organization absorbs the
        compensation and bills a fixed accrual). Never inferred: the
        caller selects it explicitly.
    accrual_amount :
        Annual amount billed for internal placements, expressed in the
        same currency/cadence as ``accrual_currency``/``accrual_period_type``.
    start_date / end_date :
        Assignment boundaries, used by the accrual calculation mode.
    """

    subject_id: str
    cost_object_id: str
    client_id: str
    kind: str
    compensation: CompensationRecord
    billing: Optional[BillingRecord] = None
    fee_spec: Optional[FeeSpec] = None
    placement_class: str = PLACEMENT_EXTERNAL
    accrual_amount: Optional[float] = None
    accrual_currency: str = "INR"
    accrual_period_type: str = PERIOD_LPA
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Figures:
    """Revenue, cost and profit of one node of the roll-up tree."""

    revenue: float = 0.0
    cost: float = 0.0
    profit: float = 0.0
    hours: float = 0.0


@dataclass(frozen=True)
class EngagementFigures:
    """Figures computed for a single engagement."""

    engagement: Engagement
    figures: Figures
    hourly_billing_rate: Optional[float] = None
    hourly_compensation_rate: Optional[float] = None


@dataclass(frozen=True)
class ClientFinancialSummary:
    """Client-level totals, recomputed on demand and never persisted here."""

    client_id: str
    total_revenue: float
    total_profit: float


@dataclass(frozen=True)
class AggregationResult:
    """
    Roll-up tree produced by ``engine.aggregate``.

    ``total`` is exactly the sum of ``by_client``; every amount is in the
    base currency and unrounded.
    """

    base_currency: str
    by_subject: dict[str, Figures] = field(default_factory=dict)
    by_cost_object: dict[str, Figures] = field(default_factory=dict)
    by_client: dict[str, Figures] = field(default_factory=dict)
    total: Figures = field(default_factory=Figures)
    by_engagement: tuple[EngagementFigures, ...] = ()
