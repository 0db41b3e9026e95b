# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Trend, benchmark, alert and pattern detection over a monthly rollup.

The analysis compares the current (last) month of a trailing rollup with
the prior month and with the whole window:

Metrics
    margin  = current.profit / current.revenue x 100   (0 without revenue)
    growth  = (current.revenue - prior.revenue) / prior.revenue x 100
              (0 when the prior month has no revenue)
    trend   = "positive" if growth > 5, "negative" if growth < -5,
              "neutral" otherwise

Benchmark
    average margin over the months with revenue; the current margin is
    "on-average" when it is less than 2 points away from it, otherwise
    "above" or "below".

Alerts (evaluated independently, several may fire)
    overspending  critical  direct cost + expenses > revenue > 0
    profit-drop   warning   prior profit > 0 and current profit is more
                            than 15 % lower
    low-margin    warning   0 < margin < 10

Patterns (advisory)
    consistent-growth  at least 4 month-over-month revenue increases over a
                       prior month with revenue
    rising-costs       direct cost strictly increasing over the last
                       3 months

Seasonality
    best and worst month by revenue over a longer rollup (12 months in
    the service), average monthly revenue and the best-to-worst variation.

Alerts are derived on every call and never persisted.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal, Optional

from .categories import CategoryTotal
from .dre import ZERO, percentage_of
from .errors import ValidationError
from .rollup import MonthlyAggregate

TrendLabel = Literal["positive", "negative", "neutral"]
BenchmarkStatus = Literal["above", "below", "on-average"]
Severity = Literal["critical", "warning", "info", "success"]
Impact = Literal["positive", "negative", "neutral"]

TREND_THRESHOLD = Decimal("5")
BENCHMARK_TOLERANCE = Decimal("2")
PROFIT_DROP_THRESHOLD = Decimal("15")
LOW_MARGIN_THRESHOLD = Decimal("10")
CONSISTENT_GROWTH_MIN_DELTAS = 4
RISING_COSTS_MONTHS = 3


@dataclass(frozen=True)
class Benchmark:
    current_margin: Decimal
    average_margin: Decimal
    difference: Decimal
    status: BenchmarkStatus


@dataclass(frozen=True)
class TrendMetrics:
    """Headline figures of the current month."""

    month: str
    revenue: Decimal
    direct_cost: Decimal
    expenses: Decimal
    profit: Decimal
    margin: Decimal
    growth: Decimal
    trend: TrendLabel
    benchmark: Benchmark


@dataclass(frozen=True)
class Alert:
    id: str
    severity: Severity
    title: str
    description: str
    suggested_action: str


@dataclass(frozen=True)
class Pattern:
    type: str
    description: str
    impact: Impact


@dataclass(frozen=True)
class TrendAnalysis:
    metrics: TrendMetrics
    alerts: list[Alert]
    patterns: list[Pattern]
    history: list[MonthlyAggregate]
    top_categories: list[CategoryTotal] = field(default_factory=list)


def monthly_margin(month: MonthlyAggregate) -> Decimal:
    return percentage_of(month.profit, month.revenue)


def revenue_growth(current: MonthlyAggregate, prior: Optional[MonthlyAggregate]) -> Decimal:
    """Relative revenue growth in percent, 0 without prior revenue."""
    if prior is None or prior.revenue == 0:
        return ZERO
    return (current.revenue - prior.revenue) / prior.revenue * Decimal("100")


def trend_label(growth: Decimal) -> TrendLabel:
    if growth > TREND_THRESHOLD:
        return "positive"
    if growth < -TREND_THRESHOLD:
        return "negative"
    return "neutral"


def compute_benchmark(history: Sequence[MonthlyAggregate]) -> Benchmark:
    """Compare the last month's margin with the average margin of the window."""
    current_margin = monthly_margin(history[-1])
    margins = [monthly_margin(m) for m in history if m.revenue > 0]
    if margins:
        average = sum(margins, ZERO) / len(margins)
    else:
        average = ZERO

    difference = current_margin - average
    status: BenchmarkStatus
    if abs(difference) < BENCHMARK_TOLERANCE:
        status = "on-average"
    elif difference > 0:
        status = "above"
    else:
        status = "below"

    return Benchmark(
        current_margin=current_margin,
        average_margin=average,
        difference=difference,
        status=status,
    )


def detect_alerts(
    current: MonthlyAggregate, prior: Optional[MonthlyAggregate]
) -> list[Alert]:
    """Evaluate every alert rule on the current and prior month."""
    alerts: list[Alert] = []

    if current.revenue > 0 and current.total_costs > current.revenue:
        alerts.append(
            Alert(
                id="overspending",
                severity="critical",
                title="You are spending more than you sell",
                description=(
                    f"Direct costs and expenses ({current.total_costs:.2f}) exceed "
                    f"revenue ({current.revenue:.2f}) this month."
                ),
                suggested_action="Review expenses and cut unnecessary spending.",
            )
        )

    if prior is not None and prior.profit > 0:
        drop = (prior.profit - current.profit) / prior.profit * Decimal("100")
        if drop > PROFIT_DROP_THRESHOLD:
            alerts.append(
                Alert(
                    id="profit-drop",
                    severity="warning",
                    title="Profit dropped compared to last month",
                    description=f"Profit fell {drop:.0f}% compared to {prior.month}.",
                    suggested_action="Check your costs and selling prices.",
                )
            )

    margin = monthly_margin(current)
    if 0 < margin < LOW_MARGIN_THRESHOLD:
        alerts.append(
            Alert(
                id="low-margin",
                severity="warning",
                title="Low profit margin",
                description=f"Your margin is {margin:.1f}%.",
                suggested_action="Review the cost structure and reprice products.",
            )
        )

    return alerts


def detect_patterns(history: Sequence[MonthlyAggregate]) -> list[Pattern]:
    """Detect advisory patterns over the whole window."""
    patterns: list[Pattern] = []

    positive_deltas = sum(
        1 for prev, cur in zip(history, history[1:]) if revenue_growth(cur, prev) > 0
    )
    if positive_deltas >= CONSISTENT_GROWTH_MIN_DELTAS:
        patterns.append(
            Pattern(
                type="consistent-growth",
                description="Sales have grown consistently over the last months.",
                impact="positive",
            )
        )

    recent = history[-RISING_COSTS_MONTHS:]
    if len(recent) == RISING_COSTS_MONTHS and all(
        cur.direct_cost > prev.direct_cost for prev, cur in zip(recent, recent[1:])
    ):
        patterns.append(
            Pattern(
                type="rising-costs",
                description=(
                    f"Direct costs have increased over the last {RISING_COSTS_MONTHS} "
                    "months."
                ),
                impact="negative",
            )
        )

    return patterns


def analyze_trend(
    history: Sequence[MonthlyAggregate],
    top_categories: Optional[list[CategoryTotal]] = None,
) -> TrendAnalysis:
    """
    Run the full trend analysis on a rollup ordered oldest to newest.

    The last month is the current month and the one before it the prior
    month. A single-month rollup has no prior month: growth is 0 and the
    profit-drop alert cannot fire.

    Raises
    ------
    ValidationError
        If the rollup is empty.
    """
    if not history:
        raise ValidationError("Trend analysis requires at least one month.")

    current = history[-1]
    prior = history[-2] if len(history) >= 2 else None
    growth = revenue_growth(current, prior)

    metrics = TrendMetrics(
        month=current.month,
        revenue=current.revenue,
        direct_cost=current.direct_cost,
        expenses=current.expenses,
        profit=current.profit,
        margin=monthly_margin(current),
        growth=growth,
        trend=trend_label(growth),
        benchmark=compute_benchmark(history),
    )

    return TrendAnalysis(
        metrics=metrics,
        alerts=detect_alerts(current, prior),
        patterns=detect_patterns(history),
        history=list(history),
        top_categories=list(top_categories or []),
    )


@dataclass(frozen=True)
class Seasonality:
    """
    Strongest and weakest months of a rollup.

    `variation` is how much the best month's revenue exceeds the worst
    month's, in percent of the worst month (0 when the worst month has no
    revenue).
    """

    months: list[MonthlyAggregate]
    best_month: MonthlyAggregate
    worst_month: MonthlyAggregate
    average_revenue: Decimal
    variation: Decimal


def seasonality(history: Sequence[MonthlyAggregate]) -> Seasonality:
    """
    Find the best and worst months of a rollup (usually the last 12 months).

    Ties go to the earliest month. The average revenue covers every month
    of the window, months without sales included.

    Raises
    ------
    ValidationError
        If the rollup is empty.
    """
    if not history:
        raise ValidationError("Seasonality requires at least one month.")

    best = worst = history[0]
    for month in history[1:]:
        if month.revenue > best.revenue:
            best = month
        if month.revenue < worst.revenue:
            worst = month

    total = sum((m.revenue for m in history), ZERO)
    return Seasonality(
        months=list(history),
        best_month=best,
        worst_month=worst,
        average_revenue=total / len(history),
        variation=percentage_of(best.revenue - worst.revenue, worst.revenue),
    )
