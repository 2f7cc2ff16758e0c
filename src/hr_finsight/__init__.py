# HR FinSight - Revenue & Profit Attribution engine for staffing SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
HR FinSight
-----------

A Python financial attribution engine for recruitment and staffing
businesses. It converts heterogeneous compensation and billing records
(several currencies, hourly / monthly / annual cadences) plus raw
attendance entries into comparable revenue, cost and profit figures,
aggregated per employee, per project, per client and per time window.

Main capabilities:
- rate normalization into a canonical hourly rate in one base currency,
- time attribution of approved attendance hours to projects,
- revenue / cost / profit roll-ups with exact client and portfolio totals,
- commission model for placement (fee-based) engagements,
- accrual (assignment-duration) calculation mode,
- multi-window orchestration for dashboards and charts,
- a thin command-line interface with table and CSV output.

HR FinSight separates computation (engine), configuration (TOML), and
presentation (CLI / views). The engine is purely functional: every input
is passed explicitly and every result is recomputed on each call.

Version: 0.2.0

Usage:
    hr-finsight --help
"""

__all__ = ["engine", "rates", "attendance", "commission", "views", "io"]

__version__ = "0.2.0"
