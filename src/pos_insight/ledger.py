# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger access layer for POS Insight.

Read-only accessors over sales, sale line items, expenses and products,
scoped by owner and by an inclusive DateRange. This is the only place
where the analytics read storage; every other module is a pure function
of the records returned here.

Conventions
-----------
- A sale belongs to a range when its local calendar date (the date part
  of `occurred_at`) is within [start, end], i.e. the range covers
  `start 00:00:00` to `end 23:59:59`.
- Line items are attributed to the date of their parent sale, never to
  their own creation timestamp, so revenue and direct cost always land in
  the same period.
- Canceled sales (and their line items) are excluded unless explicitly
  requested.
- An unknown owner yields empty lists, never an error.
- Results are ordered deterministically (date, then id).
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from .db import DatabaseConfig, cents_to_decimal, connect
from .errors import DataAccessError
from .periods import DateRange

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_NAME = "Product"


@dataclass(frozen=True)
class SaleRecord:
    """A sale as recorded by the point of sale."""

    id: str
    occurred_at: datetime
    gross_total: Decimal
    payment_method: str | None
    canceled: bool
    owner_id: str

    @property
    def sale_date(self) -> date:
        return self.occurred_at.date()


@dataclass(frozen=True)
class SaleLineItem:
    """
    One product line of a sale.

    `unit_cost` is the cost snapshot captured when the sale was made; it
    does not follow later changes of the product cost.
    """

    id: int
    sale_id: str
    product_id: str
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    unit_cost: Decimal
    sale_date: date

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def line_cost(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class ExpenseRecord:
    """An operating expense dated on a calendar day."""

    id: str
    occurred_on: date
    amount: Decimal
    category: str | None
    owner_id: str


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    owner_id: str


def _fetch(cfg: DatabaseConfig, query: str, params: tuple, what: str) -> list[tuple]:
    """Run a read query on a short-lived, read-only connection."""
    conn = connect(cfg, read_only=True)
    try:
        cur = conn.cursor()
        cur.execute(query, params)
        rows = cur.fetchall()
    except sqlite3.Error as exc:
        raise DataAccessError(f"Failed to load {what}: {exc}") from exc
    finally:
        conn.close()

    logger.debug("Loaded %d %s rows", len(rows), what)
    return rows


def get_sales(
    cfg: DatabaseConfig,
    owner_id: str,
    date_range: DateRange,
    include_canceled: bool = False,
) -> list[SaleRecord]:
    """
    Load the sales of an owner whose date falls within the range.

    Parameters
    ----------
    cfg:
        Database configuration.
    owner_id:
        Owner of the ledger.
    date_range:
        Inclusive calendar-date bounds.
    include_canceled:
        If False (default), canceled sales are left out.

    Raises
    ------
    DataAccessError
        If the ledger cannot be read.
    """
    query = """
        SELECT id, occurred_at, total_cents, payment_method, canceled, owner_id
          FROM sales
         WHERE owner_id = ?
           AND date(occurred_at) BETWEEN ? AND ?
    """
    if not include_canceled:
        query += " AND canceled = 0"
    query += " ORDER BY occurred_at, id;"

    rows = _fetch(
        cfg,
        query,
        (owner_id, date_range.start.isoformat(), date_range.end.isoformat()),
        "sales",
    )
    return [
        SaleRecord(
            id=sale_id,
            occurred_at=datetime.fromisoformat(occurred_at),
            gross_total=cents_to_decimal(total_cents),
            payment_method=payment_method,
            canceled=bool(canceled),
            owner_id=owner,
        )
        for (sale_id, occurred_at, total_cents, payment_method, canceled, owner) in rows
    ]


def get_sale_line_items(
    cfg: DatabaseConfig,
    owner_id: str,
    date_range: DateRange,
    include_canceled: bool = False,
) -> list[SaleLineItem]:
    """
    Load the line items of the owner's sales dated within the range.

    Line items are selected through their parent sale: ownership, date and
    cancellation are all taken from the sale. Product names come from the
    products table and fall back to a generic label when the product is
    unknown.

    Raises
    ------
    DataAccessError
        If the ledger cannot be read.
    """
    query = """
        SELECT si.id,
               si.sale_id,
               si.product_id,
               p.name,
               si.quantity,
               si.unit_price_cents,
               si.unit_cost_cents,
               date(s.occurred_at)
          FROM sale_items AS si
          JOIN sales AS s
            ON s.id = si.sale_id
          LEFT JOIN products AS p
            ON p.id = si.product_id
         WHERE s.owner_id = ?
           AND date(s.occurred_at) BETWEEN ? AND ?
    """
    if not include_canceled:
        query += " AND s.canceled = 0"
    query += " ORDER BY s.occurred_at, si.sale_id, si.id;"

    rows = _fetch(
        cfg,
        query,
        (owner_id, date_range.start.isoformat(), date_range.end.isoformat()),
        "sale_items",
    )
    return [
        SaleLineItem(
            id=item_id,
            sale_id=sale_id,
            product_id=product_id,
            product_name=name or DEFAULT_PRODUCT_NAME,
            quantity=Decimal(str(quantity)),
            unit_price=cents_to_decimal(price_cents),
            unit_cost=cents_to_decimal(cost_cents),
            sale_date=date.fromisoformat(sale_day),
        )
        for (
            item_id,
            sale_id,
            product_id,
            name,
            quantity,
            price_cents,
            cost_cents,
            sale_day,
        ) in rows
    ]


def get_expenses(
    cfg: DatabaseConfig,
    owner_id: str,
    date_range: DateRange,
) -> list[ExpenseRecord]:
    """
    Load the expenses of an owner dated within the range.

    Raises
    ------
    DataAccessError
        If the ledger cannot be read.
    """
    rows = _fetch(
        cfg,
        """
        SELECT id, occurred_on, amount_cents, category, owner_id
          FROM expenses
         WHERE owner_id = ?
           AND occurred_on BETWEEN ? AND ?
         ORDER BY occurred_on, id;
        """,
        (owner_id, date_range.start.isoformat(), date_range.end.isoformat()),
        "expenses",
    )
    return [
        ExpenseRecord(
            id=expense_id,
            occurred_on=date.fromisoformat(occurred_on),
            amount=cents_to_decimal(amount_cents),
            category=category,
            owner_id=owner,
        )
        for (expense_id, occurred_on, amount_cents, category, owner) in rows
    ]


def get_products(cfg: DatabaseConfig, owner_id: str) -> list[Product]:
    """Load the products of an owner, ordered by id."""
    rows = _fetch(
        cfg,
        "SELECT id, name, owner_id FROM products WHERE owner_id = ? ORDER BY id;",
        (owner_id,),
        "products",
    )
    return [Product(id=pid, name=name, owner_id=owner) for (pid, name, owner) in rows]
