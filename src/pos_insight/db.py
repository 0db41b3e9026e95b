# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for POS Insight.

This module owns the SQLite schema used by the point-of-sale ledger and
provides the low-level helpers shared by the rest of the application:

- Initializing the database schema (idempotent).
- Opening short-lived connections with foreign keys enabled.
- Bulk importing products, sales, sale line items and expenses from
  normalized DataFrames (see io.py).
- Persisting profit distribution plans (the only write performed by the
  analytics engine itself).

Read accessors used by the analytics (sales, line items, expenses for an
owner and a date range) live in ledger.py and build on
`connect(read_only=True)`, which never creates a missing database.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) products
   - id          TEXT PRIMARY KEY
   - owner_id    TEXT NOT NULL
   - name        TEXT NOT NULL

2) sales
   - id              TEXT PRIMARY KEY
   - owner_id        TEXT    NOT NULL
   - occurred_at     TEXT    NOT NULL  -- local ISO datetime 'YYYY-MM-DDTHH:MM:SS'
   - total_cents     INTEGER NOT NULL  -- gross total in cents
   - payment_method  TEXT
   - canceled        INTEGER NOT NULL DEFAULT 0

3) sale_items
   - id               INTEGER PRIMARY KEY AUTOINCREMENT
   - sale_id          TEXT    NOT NULL  -- foreign key to sales.id
   - product_id       TEXT    NOT NULL
   - quantity         REAL    NOT NULL
   - unit_price_cents INTEGER NOT NULL
   - unit_cost_cents  INTEGER NOT NULL  -- cost snapshot captured at sale time
   - created_at       TEXT

   A trigger rejects any UPDATE that changes `unit_cost_cents`: the cost
   snapshot is immutable once captured, even if the product cost changes.

4) expenses
   - id            TEXT PRIMARY KEY
   - owner_id      TEXT    NOT NULL
   - occurred_on   TEXT    NOT NULL  -- ISO date 'YYYY-MM-DD'
   - amount_cents  INTEGER NOT NULL
   - category      TEXT
   - description   TEXT

5) profit_distributions
   - id            INTEGER PRIMARY KEY AUTOINCREMENT
   - owner_id      TEXT NOT NULL
   - month         TEXT NOT NULL  -- 'YYYY-MM'
   - net_profit, withdrawal, reinvestment, taxes, reserve
                   TEXT NOT NULL  -- full-precision decimal strings
   - saved_at      TEXT NOT NULL  -- UTC timestamp of the last save
   - UNIQUE(owner_id, month)

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Monetary ledger amounts are stored as integer cents and converted back to
  `Decimal` with `cents_to_decimal()`, so aggregation never sees binary
  floating point rounding.
- Distribution plans hold derived amounts (e.g. 50 % of an odd cent value)
  and are stored as decimal strings to keep full precision.
- All timestamps written by the application are ISO-8601 text (UTC).
- Foreign key enforcement is explicitly enabled.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path

import pandas as pd

from .errors import DataAccessError, ValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for POS Insight.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of an import of ledger rows into one table.

    Attributes
    ----------
    table:
        Target table ("products", "sales", "sale_items" or "expenses").
    rows_inserted:
        Number of rows inserted.
    duplicates_skipped:
        Number of rows skipped because a row with the same id already exists.
    """

    table: str
    rows_inserted: int
    duplicates_skipped: int


@dataclass(frozen=True)
class DistributionRow:
    """Raw representation of a row of `profit_distributions`."""

    owner_id: str
    month: str
    net_profit: Decimal
    withdrawal: Decimal
    reinvestment: Decimal
    taxes: Decimal
    reserve: Decimal
    saved_at: datetime


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------


def to_cents(value) -> int:
    """
    Convert a monetary value (str, int, float or Decimal) to integer cents.

    The value goes through its string representation so that "19.99" and
    19.99 both give 1999. Half-cents are rounded half-up.

    Raises
    ------
    ValidationError
        If the value is not a finite number.
    """
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid monetary value: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Invalid monetary value: {value!r}")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _amount_cents(value, what: str) -> int:
    """Convert a ledger amount to cents, rejecting negative values."""
    cents = to_cents(value)
    if cents < 0:
        raise ValidationError(f"Negative {what} is not allowed: {value!r}")
    return cents


def cents_to_decimal(cents: int) -> Decimal:
    """Return the exact Decimal amount represented by integer cents."""
    return Decimal(int(cents)).scaleb(-2)


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _to_iso_datetime(value) -> str:
    """Convert a datetime-like value to a local ISO 'YYYY-MM-DDTHH:MM:SS' string."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None).isoformat(timespec="seconds")
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat(
            timespec="seconds"
        )
    try:
        parsed = pd.Timestamp(str(value))
    except ValueError as exc:
        raise ValidationError(f"Invalid datetime value: {value!r}") from exc
    return parsed.to_pydatetime().replace(tzinfo=None).isoformat(timespec="seconds")


def _to_iso_date(value) -> str:
    """Convert a date-like value to ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError as exc:
        raise ValidationError(f"Invalid date value: {value!r}") from exc


def _ensure_dataframe_columns(df: pd.DataFrame, required: set[str]) -> None:
    """Validate that the DataFrame contains the expected columns."""
    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        raise ValidationError(f"DataFrame is missing required column(s): {cols}")


def _optional_text(value) -> str | None:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Connection & schema
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValidationError(msg)


def connect(cfg: DatabaseConfig, read_only: bool = False) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    With `read_only=True` the database file must already exist: it is opened
    in SQLite's read-only mode and is never created.

    The caller is responsible for closing the connection.

    Raises
    ------
    ValidationError
        If cfg.engine is not supported.
    DataAccessError
        If the database file cannot be opened (or does not exist in
        read-only mode).
    """
    _ensure_sqlite(cfg)
    if read_only and not cfg.path.is_file():
        raise DataAccessError(
            f"Ledger database not found: {cfg.path}. Run 'import' first."
        )
    try:
        if read_only:
            uri = cfg.path.resolve().as_uri() + "?mode=ro"
            conn = sqlite3.connect(uri, uri=True)
        else:
            conn = sqlite3.connect(cfg.path)
        conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error as exc:
        raise DataAccessError(f"Cannot open database {cfg.path}: {exc}") from exc
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables, indexes and triggers if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id        TEXT PRIMARY KEY,
            owner_id  TEXT NOT NULL,
            name      TEXT NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS sales (
            id              TEXT PRIMARY KEY,
            owner_id        TEXT    NOT NULL,
            occurred_at     TEXT    NOT NULL,  -- local ISO datetime
            total_cents     INTEGER NOT NULL,
            payment_method  TEXT,
            canceled        INTEGER NOT NULL DEFAULT 0
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS sale_items (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            sale_id           TEXT    NOT NULL,
            product_id        TEXT    NOT NULL,
            quantity          REAL    NOT NULL,
            unit_price_cents  INTEGER NOT NULL,
            unit_cost_cents   INTEGER NOT NULL DEFAULT 0,
            created_at        TEXT,

            FOREIGN KEY (sale_id) REFERENCES sales(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id            TEXT PRIMARY KEY,
            owner_id      TEXT    NOT NULL,
            occurred_on   TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            amount_cents  INTEGER NOT NULL,
            category      TEXT,
            description   TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS profit_distributions (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id      TEXT NOT NULL,
            month         TEXT NOT NULL,  -- 'YYYY-MM'
            net_profit    TEXT NOT NULL,
            withdrawal    TEXT NOT NULL,
            reinvestment  TEXT NOT NULL,
            taxes         TEXT NOT NULL,
            reserve       TEXT NOT NULL,
            saved_at      TEXT NOT NULL,

            UNIQUE (owner_id, month)
        );
        """
    )

    # The cost snapshot of a line item is frozen at sale time.
    conn.execute(
        """
        CREATE TRIGGER IF NOT EXISTS trg_sale_items_unit_cost_immutable
        BEFORE UPDATE OF unit_cost_cents ON sale_items
        WHEN NEW.unit_cost_cents IS NOT OLD.unit_cost_cents
        BEGIN
            SELECT RAISE(ABORT, 'sale_items.unit_cost_cents is immutable');
        END;
        """
    )

    # Indexes
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_sales_owner_date
            ON sales(owner_id, occurred_at);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_sale_items_sale
            ON sale_items(sale_id);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_expenses_owner_date
            ON expenses(owner_id, occurred_on);
        """
    )

    conn.commit()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if missing.
    - Creates tables, indexes and triggers if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValidationError
        If cfg.engine is not supported.
    DataAccessError
        If the database folder cannot be created or schema creation fails.
    """
    _ensure_sqlite(cfg)
    try:
        cfg.path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DataAccessError(f"Cannot create database folder for {cfg.path}: {exc}") from exc

    conn = connect(cfg)
    try:
        _create_schema_if_needed(conn)
    except sqlite3.Error as exc:
        raise DataAccessError(f"Failed to initialize schema: {exc}") from exc
    finally:
        conn.close()


def import_products(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import products (columns: id, owner_id, name).

    Existing product ids are skipped and counted as duplicates.
    """
    _ensure_dataframe_columns(df, {"id", "owner_id", "name"})
    init_database(cfg)

    conn = connect(cfg)
    try:
        cur = conn.cursor()
        inserted = 0
        skipped = 0
        for _, row in df.iterrows():
            cur.execute(
                """
                INSERT OR IGNORE INTO products (id, owner_id, name)
                VALUES (?, ?, ?);
                """,
                (str(row["id"]), str(row["owner_id"]), str(row["name"])),
            )
            if cur.rowcount:
                inserted += 1
            else:
                skipped += 1
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise DataAccessError(f"Failed to import products: {exc}") from exc
    finally:
        conn.close()

    logger.info("Imported %d products (%d skipped)", inserted, skipped)
    return ImportStats(table="products", rows_inserted=inserted, duplicates_skipped=skipped)


def import_sales(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import sales.

    Parameters
    ----------
    df:
        Normalized sales with columns:
        - id (str)
        - owner_id (str)
        - occurred_at (datetime / ISO string, local time)
        - total (monetary value)
        - payment_method (str, optional value)
        - canceled (bool)

    Behavior
    --------
    - `total` is converted to integer cents.
    - Rows whose id already exists are skipped (counted as duplicates), so a
      CSV export can be re-imported safely.

    Raises
    ------
    ValidationError
        If required columns are missing or a value cannot be parsed.
    DataAccessError
        If database operations fail.
    """
    _ensure_dataframe_columns(
        df, {"id", "owner_id", "occurred_at", "total", "payment_method", "canceled"}
    )
    init_database(cfg)

    conn = connect(cfg)
    try:
        cur = conn.cursor()
        inserted = 0
        skipped = 0
        for _, row in df.iterrows():
            cur.execute(
                """
                INSERT OR IGNORE INTO sales (
                    id,
                    owner_id,
                    occurred_at,
                    total_cents,
                    payment_method,
                    canceled
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    str(row["id"]),
                    str(row["owner_id"]),
                    _to_iso_datetime(row["occurred_at"]),
                    _amount_cents(row["total"], "sale total"),
                    _optional_text(row["payment_method"]),
                    1 if bool(row["canceled"]) else 0,
                ),
            )
            if cur.rowcount:
                inserted += 1
            else:
                skipped += 1
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise DataAccessError(f"Failed to import sales: {exc}") from exc
    finally:
        conn.close()

    logger.info("Imported %d sales (%d skipped)", inserted, skipped)
    return ImportStats(table="sales", rows_inserted=inserted, duplicates_skipped=skipped)


def import_sale_items(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import sale line items.

    Parameters
    ----------
    df:
        Normalized line items with columns:
        - sale_id (str)      -- must reference an existing sale
        - product_id (str)
        - quantity (number)
        - unit_price (monetary value)
        - unit_cost (monetary value, cost snapshot at sale time)

    Raises
    ------
    ValidationError
        If required columns are missing, a value cannot be parsed, or a
        line item references an unknown sale.
    DataAccessError
        If database operations fail.
    """
    _ensure_dataframe_columns(
        df, {"sale_id", "product_id", "quantity", "unit_price", "unit_cost"}
    )
    init_database(cfg)
    created_at = _now_utc_iso()

    conn = connect(cfg)
    try:
        cur = conn.cursor()

        sale_ids = {str(v) for v in df["sale_id"]}
        known: set[str] = set()
        for sale_id in sale_ids:
            cur.execute("SELECT 1 FROM sales WHERE id = ?;", (sale_id,))
            if cur.fetchone() is not None:
                known.add(sale_id)
        unknown = sorted(sale_ids - known)
        if unknown:
            raise ValidationError(
                "Line items reference unknown sale id(s): " + ", ".join(unknown)
            )

        inserted = 0
        for _, row in df.iterrows():
            try:
                quantity = float(row["quantity"])
            except (TypeError, ValueError) as exc:
                raise ValidationError(
                    f"Invalid quantity value: {row['quantity']!r}"
                ) from exc
            if quantity < 0:
                raise ValidationError(f"Negative quantity is not allowed: {quantity}")
            cur.execute(
                """
                INSERT INTO sale_items (
                    sale_id,
                    product_id,
                    quantity,
                    unit_price_cents,
                    unit_cost_cents,
                    created_at
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    str(row["sale_id"]),
                    str(row["product_id"]),
                    quantity,
                    _amount_cents(row["unit_price"], "unit price"),
                    _amount_cents(row["unit_cost"], "unit cost"),
                    created_at,
                ),
            )
            inserted += 1
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise DataAccessError(f"Failed to import sale items: {exc}") from exc
    finally:
        conn.close()

    logger.info("Imported %d sale items", inserted)
    return ImportStats(table="sale_items", rows_inserted=inserted, duplicates_skipped=0)


def import_expenses(df: pd.DataFrame, cfg: DatabaseConfig) -> ImportStats:
    """
    Import expenses (columns: id, owner_id, occurred_on, amount, category,
    and optionally description).

    Existing expense ids are skipped and counted as duplicates.
    """
    _ensure_dataframe_columns(df, {"id", "owner_id", "occurred_on", "amount", "category"})
    init_database(cfg)
    has_description = "description" in df.columns

    conn = connect(cfg)
    try:
        cur = conn.cursor()
        inserted = 0
        skipped = 0
        for _, row in df.iterrows():
            description = _optional_text(row["description"]) if has_description else None
            cur.execute(
                """
                INSERT OR IGNORE INTO expenses (
                    id,
                    owner_id,
                    occurred_on,
                    amount_cents,
                    category,
                    description
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    str(row["id"]),
                    str(row["owner_id"]),
                    _to_iso_date(row["occurred_on"]),
                    _amount_cents(row["amount"], "expense amount"),
                    _optional_text(row["category"]),
                    description,
                ),
            )
            if cur.rowcount:
                inserted += 1
            else:
                skipped += 1
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise DataAccessError(f"Failed to import expenses: {exc}") from exc
    finally:
        conn.close()

    logger.info("Imported %d expenses (%d skipped)", inserted, skipped)
    return ImportStats(table="expenses", rows_inserted=inserted, duplicates_skipped=skipped)


def has_sales(cfg: DatabaseConfig) -> bool:
    """
    Return True if the database contains at least one sale.

    Useful to warn the user when a report is requested on an empty DB.

    Raises
    ------
    DataAccessError
        If the database file does not exist or cannot be read.
    """
    conn = connect(cfg, read_only=True)
    try:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM sales LIMIT 1;")
        return cur.fetchone() is not None
    except sqlite3.Error as exc:
        raise DataAccessError(f"Failed to query sales: {exc}") from exc
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Profit distribution persistence
# ---------------------------------------------------------------------------


def _row_to_distribution(row: tuple) -> DistributionRow:
    (
        owner_id,
        month,
        net_profit,
        withdrawal,
        reinvestment,
        taxes,
        reserve,
        saved_at,
    ) = row
    return DistributionRow(
        owner_id=owner_id,
        month=month,
        net_profit=Decimal(net_profit),
        withdrawal=Decimal(withdrawal),
        reinvestment=Decimal(reinvestment),
        taxes=Decimal(taxes),
        reserve=Decimal(reserve),
        saved_at=datetime.fromisoformat(saved_at),
    )


def upsert_distribution(
    cfg: DatabaseConfig,
    *,
    owner_id: str,
    month: str,
    net_profit: Decimal,
    withdrawal: Decimal,
    reinvestment: Decimal,
    taxes: Decimal,
    reserve: Decimal,
) -> tuple[DistributionRow, bool]:
    """
    Insert or overwrite the distribution plan stored for (owner_id, month).

    The write is a single `INSERT ... ON CONFLICT DO UPDATE` statement in its
    own transaction: concurrent saves for the same month resolve as
    last-writer-wins and never create a second row.

    Returns
    -------
    (DistributionRow, bool)
        The stored row and True when a new row was created, False when an
        existing plan was overwritten.
    """
    init_database(cfg)
    saved_at = _now_utc_iso()

    conn = connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT 1 FROM profit_distributions WHERE owner_id = ? AND month = ?;",
            (owner_id, month),
        )
        created = cur.fetchone() is None
        cur.execute(
            """
            INSERT INTO profit_distributions (
                owner_id, month,
                net_profit, withdrawal, reinvestment, taxes, reserve,
                saved_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (owner_id, month) DO UPDATE SET
                net_profit   = excluded.net_profit,
                withdrawal   = excluded.withdrawal,
                reinvestment = excluded.reinvestment,
                taxes        = excluded.taxes,
                reserve      = excluded.reserve,
                saved_at     = excluded.saved_at;
            """,
            (
                owner_id,
                month,
                str(net_profit),
                str(withdrawal),
                str(reinvestment),
                str(taxes),
                str(reserve),
                saved_at,
            ),
        )
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        raise DataAccessError(f"Failed to save distribution plan: {exc}") from exc
    finally:
        conn.close()

    row = DistributionRow(
        owner_id=owner_id,
        month=month,
        net_profit=net_profit,
        withdrawal=withdrawal,
        reinvestment=reinvestment,
        taxes=taxes,
        reserve=reserve,
        saved_at=datetime.fromisoformat(saved_at),
    )
    return row, created


def fetch_distributions(
    cfg: DatabaseConfig,
    owner_id: str,
    month: str | None = None,
) -> list[DistributionRow]:
    """
    Load stored distribution plans for an owner, newest month first.

    If `month` is given, at most one row is returned.

    Raises
    ------
    DataAccessError
        If the database file does not exist or cannot be read.
    """
    query = """
        SELECT owner_id, month,
               net_profit, withdrawal, reinvestment, taxes, reserve,
               saved_at
          FROM profit_distributions
         WHERE owner_id = ?
    """
    params: list = [owner_id]
    if month is not None:
        query += " AND month = ?"
        params.append(month)
    query += " ORDER BY month DESC;"

    conn = connect(cfg, read_only=True)
    try:
        cur = conn.cursor()
        cur.execute(query, params)
        rows = cur.fetchall()
    except sqlite3.Error as exc:
        raise DataAccessError(f"Failed to load distribution plans: {exc}") from exc
    finally:
        conn.close()

    return [_row_to_distribution(r) for r in rows]
