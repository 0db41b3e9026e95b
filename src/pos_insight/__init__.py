# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
POS Insight
-----------

A Python-based financial analytics engine for small businesses running a
point of sale. It reads the sales ledger (sales, sale line items with
their cost snapshot, expenses) stored in SQLite and derives:

- monthly rollups of revenue, direct cost, expenses and profit,
- an income statement (DRE) with gross, operational and net margins,
- an ABC (Pareto) classification of products by revenue,
- a daily cash flow with running balance,
- a profit distribution plan (withdrawal, reinvestment, taxes, reserve)
  that can be saved per month,
- trend metrics, a margin benchmark, alerts and advisory patterns.

Every analytic is recomputed from the raw ledger on each request; only
profit distribution plans are persisted.

Version: 0.1.0

Usage:
    pos-insight --help
"""

__all__ = [
    "analytics_service",
    "abc_curve",
    "cash_flow",
    "distribution",
    "dre",
    "rollup",
    "trends",
    "views",
    "io",
]

__version__ = "0.1.0"
