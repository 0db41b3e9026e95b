# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for POS Insight.

This module turns the results of the analytics (dataclasses holding
full-precision Decimals) into pandas DataFrames ready to be printed as
console tables or exported as CSV files.

Rounding only happens here:

- money values are rounded half-up to 2 decimals,
- percentages are rounded half-up to `percent_decimals` decimals.

Values stay Decimals inside the DataFrames (object columns) so that CSV
exports show exactly the rounded amounts.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

import pandas as pd

from .abc_curve import ABCResult
from .cash_flow import DailyFlow, running_balances
from .categories import CategoryTotal
from .distribution import DistributionPlan, PlanOrUnavailable
from .dre import DREResult, percentage_of
from .rollup import MonthlyAggregate
from .trends import Alert, Pattern, Seasonality, TrendMetrics

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount half-up to 2 decimals."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_percent(value: Decimal, decimals: int = 1) -> Decimal:
    """Round a percentage half-up to `decimals` decimals."""
    return Decimal(value).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def rollup_to_dataframe(months: Sequence[MonthlyAggregate]) -> pd.DataFrame:
    """One row per month: month, revenue, direct_cost, expenses, profit."""
    columns = ["month", "revenue", "direct_cost", "expenses", "profit"]
    rows = [
        {
            "month": m.month,
            "revenue": round_money(m.revenue),
            "direct_cost": round_money(m.direct_cost),
            "expenses": round_money(m.expenses),
            "profit": round_money(m.profit),
        }
        for m in months
    ]
    return pd.DataFrame(rows, columns=columns)


def dre_to_dataframe(dre: DREResult, percent_decimals: int = 1) -> pd.DataFrame:
    """
    Render the income statement as a (line, amount, margin_pct) table.

    Margin percentages are only filled on the profit lines; revenue and
    cost lines leave it empty.
    """
    lines = [
        ("Revenue", dre.revenue, None),
        ("Direct cost", -dre.direct_cost, None),
        ("Gross profit", dre.gross_profit, dre.gross_margin),
        ("Operational expenses", -dre.operational_expenses, None),
        ("Operational profit", dre.operational_profit, dre.operational_margin),
        ("Taxes and fees", -dre.taxes_fees, None),
        ("Net profit", dre.net_profit, dre.net_margin),
    ]
    rows = [
        {
            "line": label,
            "amount": round_money(amount),
            "margin_pct": (
                round_percent(margin, percent_decimals) if margin is not None else None
            ),
        }
        for label, amount, margin in lines
    ]
    return pd.DataFrame(rows, columns=["line", "amount", "margin_pct"])


def abc_to_dataframe(result: ABCResult, percent_decimals: int = 1) -> pd.DataFrame:
    """One row per product, in rank order (class A first)."""
    columns = [
        "rank",
        "product_id",
        "name",
        "class",
        "revenue",
        "quantity_sold",
        "revenue_pct",
        "cumulative_pct",
    ]
    rows = [
        {
            "rank": rank,
            "product_id": p.product_id,
            "name": p.name,
            "class": p.class_tier,
            "revenue": round_money(p.revenue),
            "quantity_sold": p.quantity_sold,
            "revenue_pct": round_percent(p.revenue_percentage, percent_decimals),
            "cumulative_pct": round_percent(p.cumulative_percentage, percent_decimals),
        }
        for rank, p in enumerate(result.ranked, start=1)
    ]
    return pd.DataFrame(rows, columns=columns)


def cash_flow_to_dataframe(flows: Sequence[DailyFlow]) -> pd.DataFrame:
    """One row per day with the running balance carried from day to day."""
    columns = ["date", "inflow", "outflow", "daily_balance", "running_balance"]
    rows = [
        {
            "date": f.date.isoformat(),
            "inflow": round_money(f.inflow),
            "outflow": round_money(f.outflow),
            "daily_balance": round_money(f.daily_balance),
            "running_balance": round_money(balance),
        }
        for f, balance in zip(flows, running_balances(flows))
    ]
    return pd.DataFrame(rows, columns=columns)


def distribution_to_dataframe(plan: PlanOrUnavailable) -> pd.DataFrame:
    """
    Render a distribution plan as a (bucket, ratio_pct, amount) table.

    An unavailable plan yields an empty DataFrame with the same columns.
    """
    columns = ["bucket", "ratio_pct", "amount"]
    if not isinstance(plan, DistributionPlan):
        return pd.DataFrame(columns=columns)

    buckets = [
        ("Withdrawal", plan.withdrawal),
        ("Reinvestment", plan.reinvestment),
        ("Taxes", plan.taxes),
        ("Reserve", plan.reserve),
    ]
    rows = [
        {
            "bucket": name,
            "ratio_pct": round_percent(amount / plan.net_profit * 100, 0),
            "amount": round_money(amount),
        }
        for name, amount in buckets
    ]
    return pd.DataFrame(rows, columns=columns)


def metrics_to_dataframe(metrics: TrendMetrics, percent_decimals: int = 1) -> pd.DataFrame:
    """Headline figures of a trend analysis as a (metric, value) table."""
    bench = metrics.benchmark
    rows = [
        ("month", metrics.month),
        ("revenue", round_money(metrics.revenue)),
        ("direct_cost", round_money(metrics.direct_cost)),
        ("expenses", round_money(metrics.expenses)),
        ("profit", round_money(metrics.profit)),
        ("margin_pct", round_percent(metrics.margin, percent_decimals)),
        ("growth_pct", round_percent(metrics.growth, percent_decimals)),
        ("trend", metrics.trend),
        ("average_margin_pct", round_percent(bench.average_margin, percent_decimals)),
        ("benchmark", bench.status),
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def alerts_to_dataframe(
    alerts: Sequence[Alert], patterns: Sequence[Pattern] = ()
) -> pd.DataFrame:
    """
    Alerts followed by detected patterns.

    Patterns get the severity "success" (positive impact) or "info" and no
    suggested action.
    """
    columns = ["id", "severity", "title", "description", "suggested_action"]
    rows = [
        {
            "id": a.id,
            "severity": a.severity,
            "title": a.title,
            "description": a.description,
            "suggested_action": a.suggested_action,
        }
        for a in alerts
    ]
    for p in patterns:
        rows.append(
            {
                "id": p.type,
                "severity": "success" if p.impact == "positive" else "info",
                "title": p.type.replace("-", " ").capitalize(),
                "description": p.description,
                "suggested_action": "",
            }
        )
    return pd.DataFrame(rows, columns=columns)


def categories_to_dataframe(
    categories: Sequence[CategoryTotal], percent_decimals: int = 1
) -> pd.DataFrame:
    columns = ["kind", "name", "amount", "share_pct"]
    rows = [
        {
            "kind": c.kind,
            "name": c.name,
            "amount": round_money(c.amount),
            "share_pct": round_percent(c.percentage, percent_decimals),
        }
        for c in categories
    ]
    return pd.DataFrame(rows, columns=columns)


def seasonality_to_dataframe(result: Seasonality, percent_decimals: int = 1) -> pd.DataFrame:
    """
    One row per month with its revenue as a share of the best month.

    The best and worst months are flagged in the `marker` column.
    """
    columns = ["month", "revenue", "expenses", "of_best_pct", "marker"]
    best = result.best_month
    rows = []
    for m in result.months:
        if m.month == best.month:
            marker = "best"
        elif m.month == result.worst_month.month:
            marker = "worst"
        else:
            marker = ""
        rows.append(
            {
                "month": m.month,
                "revenue": round_money(m.revenue),
                "expenses": round_money(m.expenses),
                "of_best_pct": round_percent(
                    percentage_of(m.revenue, best.revenue), percent_decimals
                ),
                "marker": marker,
            }
        )
    return pd.DataFrame(rows, columns=columns)
