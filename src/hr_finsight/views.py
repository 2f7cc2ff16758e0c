# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for HR FinSight.

This module turns an AggregationResult into display-ready tables. It is
the only place where amounts are rounded: the engine keeps full precision
so that roll-up totals stay exact, and rounding happens once, here, right
before rendering or CSV export.

The main views are:

- summary:   one row per client plus a TOTAL row (revenue, cost, profit,
             margin %),
- breakdown: one row per subject, cost object or client,
- engagements: one row per engagement with its hourly rates.

An optional display currency re-expresses base-currency amounts (e.g. INR
totals shown in USD), using the same static rates as the engine.
"""

from collections.abc import Mapping
from typing import Optional

import pandas as pd

from .engine import FIGURE_COLUMNS, engagements_to_dataframe, result_to_dataframe
from .models import AggregationResult
from .rates import resolve_conversion_rate

AMOUNT_COLUMNS: list[str] = ["revenue", "cost", "profit"]
BREAKDOWN_LEVELS: tuple[str, ...] = ("subject", "cost_object", "client")


def to_display_currency(
    amount: float,
    base_currency: str,
    display_currency: str,
    conversion_rates: Mapping[str, float],
) -> float:
    """
    Re-express a base-currency amount in ``display_currency``.

    ``conversion_rates`` has the engine convention (base units per unit of
    the foreign currency), so the amount is divided by the rate.
    """
    if display_currency == base_currency:
        return float(amount)
    rate = resolve_conversion_rate(display_currency, base_currency, conversion_rates)
    return float(amount) / rate


def _margin_pct(revenue: float, profit: float) -> Optional[float]:
    if revenue == 0:
        return None
    return profit / revenue * 100


def _round_amounts(df: pd.DataFrame, decimals: int) -> pd.DataFrame:
    out = df.copy()
    for col in AMOUNT_COLUMNS + ["hours"]:
        if col in out.columns:
            out[col] = out[col].astype(float).round(decimals)
    return out


def _add_display_currency(
    df: pd.DataFrame,
    result: AggregationResult,
    display_currency: Optional[str],
    conversion_rates: Optional[Mapping[str, float]],
    decimals: int,
) -> pd.DataFrame:
    if not display_currency or display_currency == result.base_currency:
        return df
    out = df.copy()
    for col in AMOUNT_COLUMNS:
        out[f"{col}_{display_currency.lower()}"] = [
            round(
                to_display_currency(
                    v, result.base_currency, display_currency, conversion_rates or {}
                ),
                decimals,
            )
            for v in df[col]
        ]
    return out


def summary_table(
    result: AggregationResult,
    decimals: int = 2,
    display_currency: Optional[str] = None,
    conversion_rates: Optional[Mapping[str, float]] = None,
) -> pd.DataFrame:
    """
    Client summary with a final TOTAL row.

    Columns: client_id, revenue, cost, profit, hours, margin_pct, plus
    revenue_<cur>, cost_<cur>, profit_<cur> when a display currency other
    than the base currency is requested.

    Rounding is applied to each cell independently; the TOTAL row is
    rounded from the exact total, not summed from rounded cells.
    """
    rows = []
    for client_id, f in result.by_client.items():
        rows.append(
            {
                "client_id": client_id,
                "revenue": f.revenue,
                "cost": f.cost,
                "profit": f.profit,
                "hours": f.hours,
                "margin_pct": _margin_pct(f.revenue, f.profit),
            }
        )
    t = result.total
    rows.append(
        {
            "client_id": "TOTAL",
            "revenue": t.revenue,
            "cost": t.cost,
            "profit": t.profit,
            "hours": t.hours,
            "margin_pct": _margin_pct(t.revenue, t.profit),
        }
    )

    df = pd.DataFrame(rows, columns=["client_id", *FIGURE_COLUMNS, "margin_pct"])
    df = _add_display_currency(df, result, display_currency, conversion_rates, decimals)
    df = _round_amounts(df, decimals)
    df["margin_pct"] = df["margin_pct"].astype(float).round(1)
    return df


def breakdown_table(
    result: AggregationResult, level: str, decimals: int = 2
) -> pd.DataFrame:
    """One row per node of ``level`` ('subject', 'cost_object' or 'client')."""
    if level not in BREAKDOWN_LEVELS:
        raise ValueError(
            f"Unknown breakdown level: {level!r}. "
            f"Expected one of: {', '.join(BREAKDOWN_LEVELS)}."
        )
    df = result_to_dataframe(result)
    df = df[df["level"] == level].drop(columns=["level"]).rename(columns={"key": level})
    return _round_amounts(df.reset_index(drop=True), decimals)


def engagements_table(result: AggregationResult, decimals: int = 2) -> pd.DataFrame:
    """Per-engagement table with rounded rates and figures."""
    df = engagements_to_dataframe(result)
    for col in ("hourly_billing_rate", "hourly_compensation_rate"):
        df[col] = df[col].astype(float).round(decimals)
    return _round_amounts(df, decimals)
