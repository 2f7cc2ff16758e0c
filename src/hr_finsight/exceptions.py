# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exception taxonomy for HR FinSight.

All engine errors are local, deterministic validation failures raised at
the offending record. They derive from ``ValueError`` so that callers
already guarding numeric parsing with ``except ValueError`` keep working.

The aggregation engine never catches these errors: a single malformed
record fails the whole computation rather than producing a partial total.
"""


class FinancialEngineError(ValueError):
    """Base class for every validation error raised by the engine."""


class InvalidRateError(FinancialEngineError):
    """Malformed compensation or billing figure (negative, NaN, non-numeric,
    missing conversion rate, non-positive schedule)."""


class InvalidCommissionError(FinancialEngineError):
    """Negative or non-numeric commission value."""


class UnsupportedCommissionTypeError(FinancialEngineError):
    """Unrecognized fee type or placement class."""


class InvalidAttendanceError(FinancialEngineError):
    """Negative or non-numeric hours in an attendance allocation."""


class InvalidEngagementError(FinancialEngineError):
    """Engagement whose kind does not match the data it carries."""
