# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
ABC curve (Pareto classification) of products by revenue.

Algorithm
---------
1. Aggregate revenue (sum of line totals) and quantity sold per product.
2. Sort by revenue descending; ties are broken by ascending product id so
   the output is reproducible.
3. If total revenue is 0, return three empty classes.
4. Walk the sorted list accumulating revenue; each product gets
   cumulative_percentage = running revenue / total revenue x 100.
5. Tiers are boundary-inclusive:
   - A: the cumulative share before the product is below 80 %. This keeps
     products at exactly 80 % in A, and also the one product whose
     addition crosses 80 %.
   - B: same rule at 95 % for the products not in A.
   - C: everything after.

Example: revenues 800 / 150 / 50 give cumulative 80 / 95 / 100 and the
classes A=[p1], B=[p2], C=[p3].
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

from .dre import ZERO, percentage_of
from .ledger import SaleLineItem

ClassTier = Literal["A", "B", "C"]

CLASS_A_LIMIT = Decimal("80")
CLASS_B_LIMIT = Decimal("95")


@dataclass(frozen=True)
class ProductRevenueRank:
    """A product's position on the ABC curve."""

    product_id: str
    name: str
    revenue: Decimal
    quantity_sold: Decimal
    revenue_percentage: Decimal
    cumulative_percentage: Decimal
    class_tier: ClassTier


@dataclass(frozen=True)
class ABCResult:
    """Products split into A, B and C classes, each ordered by rank."""

    class_a: list[ProductRevenueRank] = field(default_factory=list)
    class_b: list[ProductRevenueRank] = field(default_factory=list)
    class_c: list[ProductRevenueRank] = field(default_factory=list)
    total_revenue: Decimal = ZERO

    @property
    def ranked(self) -> list[ProductRevenueRank]:
        """All products in rank order."""
        return [*self.class_a, *self.class_b, *self.class_c]

    def class_revenue(self, tier: ClassTier) -> Decimal:
        items = {"A": self.class_a, "B": self.class_b, "C": self.class_c}[tier]
        return sum((p.revenue for p in items), ZERO)


@dataclass
class _ProductTotals:
    name: str
    revenue: Decimal = ZERO
    quantity: Decimal = ZERO


def _tier_for(cumulative_before: Decimal) -> ClassTier:
    if cumulative_before < CLASS_A_LIMIT:
        return "A"
    if cumulative_before < CLASS_B_LIMIT:
        return "B"
    return "C"


def classify_abc(line_items: Iterable[SaleLineItem]) -> ABCResult:
    """
    Classify products into A/B/C tiers from the line items of a range.

    Parameters
    ----------
    line_items:
        Line items of non-canceled sales (ledger.get_sale_line_items).

    Returns
    -------
    ABCResult
        The three classes and the total revenue. All classes are empty when
        the total revenue is 0.
    """
    totals: dict[str, _ProductTotals] = {}
    for item in line_items:
        entry = totals.get(item.product_id)
        if entry is None:
            entry = totals[item.product_id] = _ProductTotals(name=item.product_name)
        entry.revenue += item.line_total
        entry.quantity += item.quantity

    total_revenue = sum((t.revenue for t in totals.values()), ZERO)
    if total_revenue == 0:
        return ABCResult(total_revenue=ZERO)

    ordered = sorted(totals.items(), key=lambda kv: (-kv[1].revenue, kv[0]))

    result = ABCResult(total_revenue=total_revenue)
    buckets = {"A": result.class_a, "B": result.class_b, "C": result.class_c}

    running = ZERO
    for product_id, t in ordered:
        cumulative_before = percentage_of(running, total_revenue)
        running += t.revenue
        tier = _tier_for(cumulative_before)
        buckets[tier].append(
            ProductRevenueRank(
                product_id=product_id,
                name=t.name,
                revenue=t.revenue,
                quantity_sold=t.quantity,
                revenue_percentage=percentage_of(t.revenue, total_revenue),
                cumulative_percentage=percentage_of(running, total_revenue),
                class_tier=tier,
            )
        )

    return result
