# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Monthly rollup of the ledger.

The rollup turns raw sales, line items and expenses into one
MonthlyAggregate per calendar month:

    revenue     = sum of non-canceled sale totals dated in the month
    direct_cost = sum of quantity x unit_cost of the line items whose parent
                  sale is dated in the month
    expenses    = sum of expenses dated in the month
    profit      = revenue - direct_cost - expenses

Every requested month appears in the output, even when all its values are
zero, and months are ordered oldest to newest. The caller loads the ledger
once for the whole window (see analytics_service.get_monthly_rollup) and
this module only buckets records by month.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .ledger import ExpenseRecord, SaleLineItem, SaleRecord
from .periods import DateRange

ZERO = Decimal("0")


@dataclass(frozen=True)
class MonthlyAggregate:
    """Revenue, costs and profit of one calendar month."""

    month: str
    start: date
    end: date
    revenue: Decimal
    direct_cost: Decimal
    expenses: Decimal

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.direct_cost - self.expenses

    @property
    def total_costs(self) -> Decimal:
        return self.direct_cost + self.expenses


def _month_index(months: Sequence[DateRange], day: date) -> int | None:
    """Return the index of the month containing `day`, or None."""
    for i, m in enumerate(months):
        if m.contains(day):
            return i
    return None


def build_monthly_rollup(
    months: Sequence[DateRange],
    sales: Iterable[SaleRecord],
    line_items: Iterable[SaleLineItem],
    expenses: Iterable[ExpenseRecord],
) -> list[MonthlyAggregate]:
    """
    Aggregate ledger records into one MonthlyAggregate per month.

    Parameters
    ----------
    months:
        Consecutive calendar months, oldest first (see
        periods.trailing_months). Labels are reused as month labels.
    sales, line_items, expenses:
        Ledger records covering at least the months. Records outside every
        month and canceled sales are ignored.

    Returns
    -------
    list[MonthlyAggregate]
        One entry per month, in the order of `months`.
    """
    revenue = [ZERO] * len(months)
    direct_cost = [ZERO] * len(months)
    spent = [ZERO] * len(months)

    for sale in sales:
        if sale.canceled:
            continue
        i = _month_index(months, sale.sale_date)
        if i is not None:
            revenue[i] += sale.gross_total

    for item in line_items:
        i = _month_index(months, item.sale_date)
        if i is not None:
            direct_cost[i] += item.line_cost

    for expense in expenses:
        i = _month_index(months, expense.occurred_on)
        if i is not None:
            spent[i] += expense.amount

    return [
        MonthlyAggregate(
            month=m.label,
            start=m.start,
            end=m.end,
            revenue=revenue[i],
            direct_cost=direct_cost[i],
            expenses=spent[i],
        )
        for i, m in enumerate(months)
    ]
