# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for POS Insight.

This module is responsible for:
- loading the main application configuration from a TOML file,
- parsing the tax / fee schedules applied by the DRE calculator,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig

DEFAULT_CONFIG_FILE = "pos_insight_config.toml"


@dataclass(frozen=True)
class TaxFeeConfig:
    """
    Tax and fee schedule applied to revenue by the DRE calculator.

    Attributes
    ----------
    rate:
        Percentage of total revenue (e.g. Decimal("6") for 6 %).
    flat:
        Fixed amount charged once per computed range.
    payment_fees:
        Percentage charged per payment method (e.g. {"credit": 3.5}),
        applied to the revenue of sales paid with that method.
    """

    rate: Decimal = Decimal("0")
    flat: Decimal = Decimal("0")
    payment_fees: Mapping[str, Decimal] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.rate and not self.flat and not any(self.payment_fees.values())


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for POS Insight.

    This aggregates:
    - the database configuration (where the ledger is stored),
    - analytics options (trailing window, default owner),
    - the default tax / fee schedule and per-owner overrides,
    - display options for tables and CSV exports,
    - the logging level used by the CLI.
    """

    database: DatabaseConfig
    trailing_months: int = 6
    default_owner: Optional[str] = None
    taxes: Optional[TaxFeeConfig] = None
    owner_taxes: Mapping[str, TaxFeeConfig] = field(default_factory=dict)
    display_mode: str = "table"
    percent_decimals: int = 1
    log_level: str = "WARNING"

    def tax_config_for(self, owner_id: str) -> Optional[TaxFeeConfig]:
        """Return the tax / fee schedule of an owner, falling back to the default."""
        return self.owner_taxes.get(owner_id, self.taxes)


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _to_decimal(value: Any, key: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value for '{key}': {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value for '{key}': {value!r}")
    return result


def _parse_tax_fee_config(raw: Mapping[str, Any], prefix: str) -> TaxFeeConfig:
    """
    Build a TaxFeeConfig from a TOML table.

    Expected keys (all optional):
        rate = 6.0                  # percent of revenue
        flat = 120.0                # amount per computed range
        [payment_fees]
        credit = 3.5                # percent per payment method
    """
    rate = _to_decimal(raw.get("rate", 0), f"{prefix}.rate")
    flat = _to_decimal(raw.get("flat", 0), f"{prefix}.flat")
    if rate < 0 or flat < 0:
        raise ValueError(f"'{prefix}' rate and flat values cannot be negative.")

    fees: dict[str, Decimal] = {}
    for method, value in _section(raw, "payment_fees").items():
        fee = _to_decimal(value, f"{prefix}.payment_fees.{method}")
        if fee < 0:
            raise ValueError(f"'{prefix}.payment_fees.{method}' cannot be negative.")
        fees[str(method)] = fee

    return TaxFeeConfig(rate=rate, flat=flat, payment_fees=fees)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the POS Insight application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [database]
        engine ("sqlite") and path of the SQLite file.

    [analytics]
        trailing_months (default 6) used by trend analysis and the
        default size of the monthly rollup, and default_owner used by the
        CLI when --owner is not given.

    [taxes]
        Default tax / fee schedule: rate, flat and [taxes.payment_fees].
        Per-owner overrides live in [taxes.owners."<owner_id>"] with the
        same keys. Without a [taxes] section, taxes and fees are 0.

    [display]
        mode ("table", "csv" or "both") and percent_decimals.

    [logging]
        level (e.g. "INFO", "DEBUG").

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of the
    TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``pos_insight_config.toml`` in the current working directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/pos_insight.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 2) Analytics options
    analytics_section = _section(raw, "analytics")
    try:
        trailing_months = int(analytics_section.get("trailing_months", 6))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'analytics.trailing_months'. Expected an integer."
        ) from exc
    if trailing_months < 2:
        raise ValueError("'analytics.trailing_months' must be at least 2.")

    raw_owner = analytics_section.get("default_owner")
    default_owner = str(raw_owner) if raw_owner else None

    # 3) Taxes and fees
    taxes_section = _section(raw, "taxes")
    taxes: Optional[TaxFeeConfig] = None
    owner_taxes: dict[str, TaxFeeConfig] = {}
    if taxes_section:
        taxes = _parse_tax_fee_config(taxes_section, "taxes")
        for owner_id, owner_raw in _section(taxes_section, "owners").items():
            if not isinstance(owner_raw, Mapping):
                continue
            owner_taxes[str(owner_id)] = _parse_tax_fee_config(
                owner_raw, f"taxes.owners.{owner_id}"
            )

    # 4) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in {"table", "csv", "both"}:
        raise ValueError(
            f"Invalid display mode {display_mode!r}, expected table, csv or both."
        )
    try:
        percent_decimals = int(display_section.get("percent_decimals", 1))
    except (TypeError, ValueError):
        percent_decimals = 1

    # 5) Logging
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", "WARNING")).upper()

    return AppConfig(
        database=database_config,
        trailing_months=trailing_months,
        default_owner=default_owner,
        taxes=taxes,
        owner_taxes=owner_taxes,
        display_mode=display_mode,
        percent_decimals=percent_decimals,
        log_level=log_level,
    )
