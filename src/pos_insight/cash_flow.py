# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Daily cash flow.

For every calendar day of a range (no day is skipped, even without
movements):

    inflow        = sum of non-canceled sale totals dated that day
    outflow       = sum of expenses dated that day
    daily_balance = inflow - outflow

The running balance is a prefix sum over the ordered days starting from 0;
`running_balances()` computes it for callers that need it (charts, CSV
export) and `summarize_cash_flow()` gives the totals shown on top of the
report.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .dre import ZERO
from .ledger import ExpenseRecord, SaleRecord
from .periods import DateRange, iter_days


@dataclass(frozen=True)
class DailyFlow:
    date: date
    inflow: Decimal
    outflow: Decimal

    @property
    def daily_balance(self) -> Decimal:
        return self.inflow - self.outflow


@dataclass(frozen=True)
class CashFlowSummary:
    """Totals of a cash flow ledger."""

    total_inflow: Decimal
    total_outflow: Decimal
    net_balance: Decimal
    lowest_balance: Decimal
    has_negative_balance: bool


def build_cash_flow(
    date_range: DateRange,
    sales: Iterable[SaleRecord],
    expenses: Iterable[ExpenseRecord],
) -> list[DailyFlow]:
    """
    Build the ordered list of daily flows for a range.

    Records dated outside the range and canceled sales are ignored.
    """
    inflows: dict[date, Decimal] = defaultdict(lambda: ZERO)
    outflows: dict[date, Decimal] = defaultdict(lambda: ZERO)

    for sale in sales:
        if not sale.canceled:
            inflows[sale.sale_date] += sale.gross_total
    for expense in expenses:
        outflows[expense.occurred_on] += expense.amount

    return [
        DailyFlow(date=day, inflow=inflows.get(day, ZERO), outflow=outflows.get(day, ZERO))
        for day in iter_days(date_range)
    ]


def running_balances(flows: Sequence[DailyFlow]) -> list[Decimal]:
    """Cumulative balance after each day, starting from 0 before the first day."""
    balances = []
    running = ZERO
    for flow in flows:
        running += flow.daily_balance
        balances.append(running)
    return balances


def summarize_cash_flow(flows: Sequence[DailyFlow]) -> CashFlowSummary:
    """
    Summarize a cash flow ledger.

    `lowest_balance` is the minimum running balance over the range (0 for an
    empty ledger) and `has_negative_balance` tells whether the running
    balance went below zero on any day.
    """
    balances = running_balances(flows)
    total_inflow = sum((f.inflow for f in flows), ZERO)
    total_outflow = sum((f.outflow for f in flows), ZERO)
    lowest = min(balances, default=ZERO)
    return CashFlowSummary(
        total_inflow=total_inflow,
        total_outflow=total_outflow,
        net_balance=total_inflow - total_outflow,
        lowest_balance=lowest,
        has_negative_balance=lowest < 0,
    )
