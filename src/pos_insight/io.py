# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for POS Insight.

This module reads ledger exports (CSV) and normalizes them into the
DataFrames expected by the import helpers of db.py. Column names are
case-insensitive and surrounding whitespace is ignored. Values are read as
text so that monetary amounts keep their exact decimal representation
until they are converted to cents.

Expected files
--------------

products.csv
    id, owner_id, name

sales.csv
    id, owner_id, occurred_at, total, [payment_method], [canceled]

    ``date`` is accepted as an alias for ``occurred_at``. ``canceled``
    accepts true/false, yes/no, 1/0 and defaults to false.

sale_items.csv
    sale_id, product_id, quantity, unit_price, [unit_cost]

    ``unit_cost`` is the cost captured at sale time and defaults to 0.

expenses.csv
    id, owner_id, occurred_on, amount, [category], [description]

    ``date`` and ``expense_date`` are accepted as aliases for
    ``occurred_on``.

If a file does not match the expected structure, a clear ValueError is
raised.
"""

import os
from typing import Union

import pandas as pd

PathLike = Union[str, "os.PathLike[str]"]

_TRUE_VALUES = {"1", "true", "yes", "y", "t"}
_FALSE_VALUES = {"0", "false", "no", "n", "f", ""}


def _read_csv(path: PathLike, aliases: dict[str, str]) -> pd.DataFrame:
    """Read a CSV as text with normalized (lowercase, aliased) column names."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().lower() for c in df.columns]
    renames = {a: target for a, target in aliases.items() if a in df.columns}
    df = df.rename(columns=renames)
    for col in df.columns:
        df[col] = df[col].str.strip()
    return df


def _require(df: pd.DataFrame, required: list[str], what: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(
            f"Unsupported {what} CSV structure: missing column(s) "
            + ", ".join(missing)
            + f". Found: {list(df.columns)}"
        )


def _check_numeric(series: pd.Series, column: str) -> None:
    parsed = pd.to_numeric(series, errors="coerce")
    if parsed.isna().any():
        raise ValueError(f"Invalid numeric values in '{column}' column.")


def _optional(value: str):
    return value or None


def _parse_bool(value: str) -> bool:
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def read_products_csv(path: PathLike) -> pd.DataFrame:
    """Read products. Returns columns: id, owner_id, name."""
    df = _read_csv(path, {"product_id": "id", "product_name": "name"})
    _require(df, ["id", "owner_id", "name"], "products")
    return df[["id", "owner_id", "name"]].reset_index(drop=True)


def read_sales_csv(path: PathLike) -> pd.DataFrame:
    """
    Read sales.

    Returns
    -------
    pandas.DataFrame
        Columns: id, owner_id, occurred_at (datetime64[ns]), total (str),
        payment_method (str or None), canceled (bool).
    """
    df = _read_csv(path, {"date": "occurred_at", "sale_id": "id"})
    _require(df, ["id", "owner_id", "occurred_at", "total"], "sales")

    try:
        occurred_at = pd.to_datetime(df["occurred_at"], format="ISO8601")
    except (ValueError, TypeError) as exc:
        raise ValueError("Invalid values in 'occurred_at' column.") from exc
    _check_numeric(df["total"], "total")

    if "payment_method" in df.columns:
        payment_method = df["payment_method"].astype(object).map(_optional)
    else:
        payment_method = pd.Series([None] * len(df), dtype=object)

    if "canceled" in df.columns:
        canceled = df["canceled"].map(_parse_bool)
    else:
        canceled = pd.Series([False] * len(df), dtype=bool)

    return pd.DataFrame(
        {
            "id": df["id"],
            "owner_id": df["owner_id"],
            "occurred_at": occurred_at,
            "total": df["total"],
            "payment_method": payment_method.values,
            "canceled": canceled.values,
        }
    )


def read_sale_items_csv(path: PathLike) -> pd.DataFrame:
    """
    Read sale line items.

    Returns columns: sale_id, product_id, quantity, unit_price, unit_cost
    (numbers kept as text).
    """
    df = _read_csv(path, {"cost": "unit_cost", "price": "unit_price"})
    _require(df, ["sale_id", "product_id", "quantity", "unit_price"], "sale items")

    if "unit_cost" not in df.columns:
        df["unit_cost"] = "0"
    df["unit_cost"] = df["unit_cost"].replace("", "0")

    for col in ("quantity", "unit_price", "unit_cost"):
        _check_numeric(df[col], col)

    return df[["sale_id", "product_id", "quantity", "unit_price", "unit_cost"]].reset_index(
        drop=True
    )


def read_expenses_csv(path: PathLike) -> pd.DataFrame:
    """
    Read expenses.

    Returns columns: id, owner_id, occurred_on (datetime64[ns]), amount (str),
    category, description.
    """
    df = _read_csv(path, {"date": "occurred_on", "expense_date": "occurred_on"})
    _require(df, ["id", "owner_id", "occurred_on", "amount"], "expenses")

    try:
        occurred_on = pd.to_datetime(df["occurred_on"], format="%Y-%m-%d")
    except (ValueError, TypeError) as exc:
        raise ValueError("Invalid values in 'occurred_on' column.") from exc
    _check_numeric(df["amount"], "amount")

    for col in ("category", "description"):
        if col not in df.columns:
            df[col] = ""

    return pd.DataFrame(
        {
            "id": df["id"],
            "owner_id": df["owner_id"],
            "occurred_on": occurred_on,
            "amount": df["amount"],
            "category": df["category"].astype(object).map(_optional).values,
            "description": df["description"].astype(object).map(_optional).values,
        }
    )
