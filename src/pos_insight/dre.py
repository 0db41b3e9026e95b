# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Income statement (DRE) for an arbitrary date range.

    revenue                 sum of non-canceled sale totals
  - direct_cost             sum of line-item quantity x unit_cost
  = gross_profit            (gross_margin)
  - operational_expenses    sum of expenses
  = operational_profit      (operational_margin)
  - taxes_fees              tax / fee schedule applied to revenue
  = net_profit              (net_margin)

Margins are expressed in percent of revenue and are 0 when revenue is 0.
All values are full-precision Decimals: rounding is left to the
presentation layer (views.py).
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .config import TaxFeeConfig
from .ledger import ExpenseRecord, SaleLineItem, SaleRecord

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def percentage_of(value: Decimal, base: Decimal) -> Decimal:
    """Return value / base x 100, or 0 when base is 0."""
    if base == 0:
        return ZERO
    return value / base * HUNDRED


@dataclass(frozen=True)
class DREResult:
    """Income statement lines and margins for one range."""

    revenue: Decimal
    direct_cost: Decimal
    gross_profit: Decimal
    gross_margin: Decimal
    operational_expenses: Decimal
    operational_profit: Decimal
    operational_margin: Decimal
    taxes_fees: Decimal
    net_profit: Decimal
    net_margin: Decimal

    @property
    def is_empty(self) -> bool:
        """True when the range holds no revenue, cost or expense at all."""
        return not (self.revenue or self.direct_cost or self.operational_expenses)


def compute_taxes_fees(
    revenue: Decimal,
    revenue_by_method: Mapping[str, Decimal],
    tax_config: Optional[TaxFeeConfig],
) -> Decimal:
    """
    Apply a tax / fee schedule to revenue.

    taxes_fees = revenue x rate / 100
               + flat
               + sum over payment methods of method revenue x fee / 100

    A missing schedule gives 0. The flat amount is only charged when the
    range has revenue.
    """
    if tax_config is None or tax_config.is_empty:
        return ZERO

    total = revenue * tax_config.rate / HUNDRED
    if revenue > 0:
        total += tax_config.flat
    for method, fee in tax_config.payment_fees.items():
        total += revenue_by_method.get(method, ZERO) * fee / HUNDRED
    return total


def compute_dre(
    sales: Iterable[SaleRecord],
    line_items: Iterable[SaleLineItem],
    expenses: Iterable[ExpenseRecord],
    tax_config: Optional[TaxFeeConfig] = None,
) -> DREResult:
    """
    Build the income statement from the ledger records of one range.

    Canceled sales are skipped. Line items are expected to belong to
    non-canceled sales only, which is what ledger.get_sale_line_items
    returns by default.
    """
    revenue = ZERO
    revenue_by_method: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for sale in sales:
        if sale.canceled:
            continue
        revenue += sale.gross_total
        if sale.payment_method:
            revenue_by_method[sale.payment_method] += sale.gross_total

    direct_cost = sum((item.line_cost for item in line_items), ZERO)
    operational_expenses = sum((e.amount for e in expenses), ZERO)

    gross_profit = revenue - direct_cost
    operational_profit = gross_profit - operational_expenses
    taxes_fees = compute_taxes_fees(revenue, revenue_by_method, tax_config)
    net_profit = operational_profit - taxes_fees

    return DREResult(
        revenue=revenue,
        direct_cost=direct_cost,
        gross_profit=gross_profit,
        gross_margin=percentage_of(gross_profit, revenue),
        operational_expenses=operational_expenses,
        operational_profit=operational_profit,
        operational_margin=percentage_of(operational_profit, revenue),
        taxes_fees=taxes_fees,
        net_profit=net_profit,
        net_margin=percentage_of(net_profit, revenue),
    )
