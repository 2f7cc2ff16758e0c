# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Commission model for placement (fee-based) engagements.

A placement is not billed per hour: the organization earns a one-time fee
when a candidate joins a client. Two fee types exist:

- 'flat'       : a fixed amount, converted to the base currency when the
                 fee currency differs ('fixed' is accepted as an alias),
- 'percentage' : ``compensation_in_base * value / 100``.

Internal placements are a distinct sub-case selected explicitly by the
caller (``Engagement.placement_class == 'internal'``): the organization
absorbs the compensation and bills a fixed accrual, so

    revenue = accrual_amount
    profit  = accrual_amount - compensation_amount

Unlike period types, fee types have no fallback: a wrong commission type
would materially misstate money, so it raises
``UnsupportedCommissionTypeError``.
"""

import logging
import math
import numbers
from collections.abc import Mapping
from typing import Optional

from .exceptions import (
    InvalidCommissionError,
    InvalidEngagementError,
    UnsupportedCommissionTypeError,
)
from .models import (
    FEE_FLAT,
    FEE_PERCENTAGE,
    PLACEMENT_EXTERNAL,
    PLACEMENT_INTERNAL,
    Engagement,
    FeeSpec,
    Figures,
    Schedule,
)
from .rates import resolve_conversion_rate, to_annual_amount

logger = logging.getLogger(__name__)

_FEE_TYPE_ALIASES: dict[str, str] = {
    "flat": FEE_FLAT,
    "fixed": FEE_FLAT,
    "percentage": FEE_PERCENTAGE,
}


def _fee_type(raw: object) -> str:
    key = str(raw).strip().lower() if raw is not None else ""
    if key not in _FEE_TYPE_ALIASES:
        raise UnsupportedCommissionTypeError(f"Unsupported commission type: {raw!r}.")
    return _FEE_TYPE_ALIASES[key]


def _fee_value(raw: object) -> float:
    if isinstance(raw, bool) or not isinstance(raw, numbers.Real):
        raise InvalidCommissionError(f"Commission value must be a number, got {raw!r}.")
    value = float(raw)
    if math.isnan(value) or math.isinf(value):
        raise InvalidCommissionError(f"Commission value must be finite, got {raw!r}.")
    if value < 0:
        raise InvalidCommissionError(f"Commission value cannot be negative, got {raw!r}.")
    return value


def commission(
    fee_spec: FeeSpec,
    compensation_amount_in_base: float,
    base_currency: str = "INR",
    conversion_rates: Optional[Mapping[str, float]] = None,
) -> float:
    """Return the placement fee in the base currency.

    Args:
        fee_spec: Fee definition.
        compensation_amount_in_base: Compensation the percentage applies
            to, already annualized and expressed in the base currency.
        base_currency: Currency of the result.
        conversion_rates: Static rates used to convert flat fees.

    Raises:
        InvalidCommissionError: negative or non-numeric fee value.
        UnsupportedCommissionTypeError: unknown fee type.
        InvalidRateError: flat fee in a currency without conversion rate.
    """
    fee_type = _fee_type(fee_spec.type)
    value = _fee_value(fee_spec.value)

    if fee_type == FEE_FLAT:
        rate = resolve_conversion_rate(
            fee_spec.currency, base_currency, conversion_rates or {}
        )
        return value * rate

    return (float(compensation_amount_in_base) * value) / 100


def internal_placement_figures(accrual_amount: float, compensation_amount: float) -> Figures:
    """Revenue and profit of an internal placement (both in base currency)."""
    return Figures(
        revenue=float(accrual_amount),
        cost=0.0,
        profit=float(accrual_amount) - float(compensation_amount),
    )


def placement_figures(
    engagement: Engagement,
    base_currency: str,
    conversion_rates: Mapping[str, float],
    schedule: Schedule,
) -> Figures:
    """
    Revenue and profit of a placement engagement.

    The subject's compensation is annualized in the base currency using
    ``schedule``. External placements earn the commission (revenue equals
    profit, there is no cost path); internal placements earn the annualized
    accrual amount minus the compensation.

    Raises:
        InvalidEngagementError: missing fee spec or accrual amount.
        UnsupportedCommissionTypeError: unknown placement class or fee type.
    """
    comp = engagement.compensation
    compensation_in_base = to_annual_amount(
        comp.amount,
        comp.currency,
        comp.period_type,
        base_currency,
        conversion_rates,
        working_days_per_year=schedule.working_days_per_year,
        hours_per_day=schedule.hours_per_day,
    )

    placement_class = str(engagement.placement_class or PLACEMENT_EXTERNAL).lower()

    if placement_class == PLACEMENT_INTERNAL:
        if engagement.accrual_amount is None:
            raise InvalidEngagementError(
                f"Internal placement of subject {engagement.subject_id!r} "
                "has no accrual amount."
            )
        accrual_in_base = to_annual_amount(
            engagement.accrual_amount,
            engagement.accrual_currency,
            engagement.accrual_period_type,
            base_currency,
            conversion_rates,
            working_days_per_year=schedule.working_days_per_year,
            hours_per_day=schedule.hours_per_day,
        )
        logger.debug(
            "Internal placement %s: accrual=%s compensation=%s",
            engagement.subject_id,
            accrual_in_base,
            compensation_in_base,
        )
        return internal_placement_figures(accrual_in_base, compensation_in_base)

    if placement_class != PLACEMENT_EXTERNAL:
        raise UnsupportedCommissionTypeError(
            f"Unsupported placement class: {engagement.placement_class!r}."
        )

    if engagement.fee_spec is None:
        raise InvalidEngagementError(
            f"External placement of subject {engagement.subject_id!r} has no fee spec."
        )

    fee = commission(
        engagement.fee_spec,
        compensation_in_base,
        base_currency=base_currency,
        conversion_rates=conversion_rates,
    )
    logger.debug("External placement %s: commission=%s", engagement.subject_id, fee)
    return Figures(revenue=fee, cost=0.0, profit=fee)
