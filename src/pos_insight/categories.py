# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Top revenue and expense categories.

Revenue is grouped by product (line totals) and expenses by their
category. Each group keeps its `limit` largest entries and expresses them
as a share of that group's listed total. Expenses without a category are
reported under "Other".
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from .dre import ZERO, percentage_of
from .ledger import ExpenseRecord, SaleLineItem

CategoryKind = Literal["revenue", "expense"]

UNCATEGORIZED = "Other"
DEFAULT_LIMIT = 5


@dataclass(frozen=True)
class CategoryTotal:
    name: str
    kind: CategoryKind
    amount: Decimal
    percentage: Decimal


def _top(
    totals: dict[str, Decimal], kind: CategoryKind, limit: int
) -> list[CategoryTotal]:
    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
    listed = sum((amount for _, amount in ordered), ZERO)
    return [
        CategoryTotal(
            name=name,
            kind=kind,
            amount=amount,
            percentage=percentage_of(amount, listed),
        )
        for name, amount in ordered
    ]


def top_revenue_products(
    line_items: Iterable[SaleLineItem], limit: int = DEFAULT_LIMIT
) -> list[CategoryTotal]:
    totals: dict[str, Decimal] = {}
    for item in line_items:
        totals[item.product_name] = totals.get(item.product_name, ZERO) + item.line_total
    return _top(totals, "revenue", limit)


def top_expense_categories(
    expenses: Iterable[ExpenseRecord], limit: int = DEFAULT_LIMIT
) -> list[CategoryTotal]:
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        name = expense.category or UNCATEGORIZED
        totals[name] = totals.get(name, ZERO) + expense.amount
    return _top(totals, "expense", limit)


def top_categories(
    line_items: Iterable[SaleLineItem],
    expenses: Iterable[ExpenseRecord],
    limit: int = DEFAULT_LIMIT,
) -> list[CategoryTotal]:
    """Top products by revenue followed by top expense categories."""
    return [
        *top_revenue_products(line_items, limit),
        *top_expense_categories(expenses, limit),
    ]
