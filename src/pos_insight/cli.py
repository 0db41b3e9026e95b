# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for POS Insight.

This module wires together the main building blocks of POS Insight:

- global configuration (database, analytics options, taxes, display),
- CSV import of products, sales, sale line items and expenses,
- the analytics services (rollup, DRE, ABC curve, cash flow, profit
  distribution, trends & alerts),
- view helpers (tabular rendering).

The CLI is intentionally thin: it does not implement any financial logic
itself. It resolves the owner and the reporting period from the
command-line arguments and the configuration, calls the matching service
of `analytics_service` and renders the result.


Subcommands
-----------

``import``
    Load CSV exports into the database. Any combination of
    ``--products``, ``--sales``, ``--items`` and ``--expenses`` can be
    given; files are imported in that order so that line items always
    find their parent sale.

``rollup [--months N]``
    Revenue, direct cost, expenses and profit for the trailing N calendar
    months (``analytics.trailing_months`` by default).

``dre``, ``abc``, ``cash-flow``
    Income statement, ABC curve and daily cash flow for a reporting
    period (see below).

``distribution [--save]``
    Split of the current month's net profit into withdrawal,
    reinvestment, taxes and reserve. ``--save`` stores the plan, replacing
    any plan saved earlier for the same month.

``trends``
    Current month metrics, benchmark, alerts, patterns and top categories.

``seasonality``
    Best and worst months by revenue over the last 12 calendar months,
    average monthly revenue and the best-to-worst variation.


Period selection
----------------

Predefined periods (``--period``): ``last-30-days`` (default), ``mtd``,
``last-month`` and ``ytd``. Custom periods use ``--from-date`` and / or
``--to-date`` (YYYY-MM-DD) and take precedence over ``--period``.


Display modes
-------------

``table`` prints DataFrames to stdout, ``csv`` writes timestamped CSV
files to the output directory (``data/output`` by default) and ``both``
does both. The mode comes from ``[display].mode`` and can be overridden
with ``--display-mode``.


Examples
--------

    pos-insight --owner shop-1 import --sales sales.csv --items items.csv
    pos-insight --owner shop-1 dre --period last-month
    pos-insight --owner shop-1 cash-flow --from-date 2025-01-01 --to-date 2025-01-31
    pos-insight --owner shop-1 --display-mode both trends
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .analytics_service import (
    get_abc_curve,
    get_cash_flow,
    get_dre,
    get_monthly_rollup,
    get_profit_distribution,
    get_seasonality,
    get_trend_analysis,
    get_unsold_products,
    save_profit_distribution,
)
from .cash_flow import summarize_cash_flow
from .config import AppConfig, load_app_config
from .db import (
    has_sales,
    import_expenses,
    import_products,
    import_sale_items,
    import_sales,
    init_database,
)
from .distribution import DistributionPlan
from .errors import AnalyticsError
from .io import read_expenses_csv, read_products_csv, read_sale_items_csv, read_sales_csv
from .periods import determine_period_from_args
from .views import (
    abc_to_dataframe,
    alerts_to_dataframe,
    cash_flow_to_dataframe,
    categories_to_dataframe,
    distribution_to_dataframe,
    dre_to_dataframe,
    metrics_to_dataframe,
    rollup_to_dataframe,
    round_money,
    round_percent,
    seasonality_to_dataframe,
)

logger = logging.getLogger(__name__)


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--period",
        choices=["last-30-days", "mtd", "last-month", "ytd"],
        help="Predefined reporting period (default: last-30-days).",
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help=(
            "Custom period start date (YYYY-MM-DD). If provided without "
            "--to-date, the period ends today."
        ),
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help=(
            "Custom period end date (YYYY-MM-DD). If provided without "
            "--from-date, the period covers the 30 days ending on that date."
        ),
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="pos-insight",
        description=(
            "POS Insight - Financial analytics engine for small-business point "
            "of sale. Reads the sales ledger and renders monthly rollups, "
            "income statements, ABC curves, cash flow, profit distribution "
            "plans and trend alerts."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of pos_insight and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'pos_insight_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--owner",
        dest="owner_id",
        help="Owner whose ledger is analyzed (default: analytics.default_owner).",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the logging.level setting from the configuration file.",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output-dir",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. If omitted, 'data/output' is used."
        ),
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    import_parser = subparsers.add_parser(
        "import", help="Import ledger CSV exports into the database."
    )
    import_parser.add_argument("--products", metavar="CSV_PATH", help="Products CSV.")
    import_parser.add_argument("--sales", metavar="CSV_PATH", help="Sales CSV.")
    import_parser.add_argument(
        "--items", metavar="CSV_PATH", help="Sale line items CSV."
    )
    import_parser.add_argument("--expenses", metavar="CSV_PATH", help="Expenses CSV.")

    rollup_parser = subparsers.add_parser(
        "rollup", help="Monthly revenue, costs and profit."
    )
    rollup_parser.add_argument(
        "--months",
        type=int,
        help="Number of trailing calendar months (default: analytics.trailing_months).",
    )

    dre_parser = subparsers.add_parser("dre", help="Income statement for a period.")
    _add_period_arguments(dre_parser)

    abc_parser = subparsers.add_parser("abc", help="ABC curve of products by revenue.")
    _add_period_arguments(abc_parser)

    cash_flow_parser = subparsers.add_parser(
        "cash-flow", help="Daily inflows, outflows and running balance."
    )
    _add_period_arguments(cash_flow_parser)

    distribution_parser = subparsers.add_parser(
        "distribution", help="Profit distribution plan for the current month."
    )
    distribution_parser.add_argument(
        "--save",
        action="store_true",
        help="Save the plan (overwrites a plan saved earlier for the same month).",
    )

    subparsers.add_parser("trends", help="Trend analysis, alerts and patterns.")
    subparsers.add_parser(
        "seasonality", help="Best and worst months over the last 12 months."
    )

    return ap


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_owner(args: argparse.Namespace, config: AppConfig) -> str:
    owner_id = args.owner_id or config.default_owner
    if not owner_id:
        raise SystemExit(
            "No owner specified. Use --owner or set analytics.default_owner "
            "in the configuration file."
        )
    return owner_id


class _Renderer:
    """Print DataFrames and/or write them as timestamped CSV files."""

    def __init__(self, display_mode: str, output_dir: Optional[str]):
        self.display_mode = display_mode
        self.output_dir = Path(output_dir) if output_dir else Path("data/output")
        self.timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

    def render(self, name: str, title: str, df: pd.DataFrame) -> None:
        if self.display_mode in {"table", "both"}:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(no data)")
            else:
                print(df.to_string(index=False))

        if self.display_mode in {"csv", "both"}:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"{name}_{self.timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    """Import the given CSV files, parents before children."""
    steps = [
        ("products", args.products, read_products_csv, import_products),
        ("sales", args.sales, read_sales_csv, import_sales),
        ("sale items", args.items, read_sale_items_csv, import_sale_items),
        ("expenses", args.expenses, read_expenses_csv, import_expenses),
    ]
    if not any(path for _, path, _, _ in steps):
        raise SystemExit(
            "Nothing to import. Use --products, --sales, --items and/or --expenses."
        )

    for what, path, reader, importer in steps:
        if not path:
            continue
        csv_path = Path(path)
        if not csv_path.is_file():
            raise SystemExit(f"CSV file for {what} not found: {csv_path}")

        print(f"Importing {what} from {csv_path}...")
        stats = importer(reader(csv_path), config.database)
        print(
            f"  {stats.rows_inserted} rows inserted, "
            f"{stats.duplicates_skipped} duplicates skipped."
        )


def _handle_rollup(args, config: AppConfig, owner_id: str, renderer: _Renderer) -> None:
    months = args.months if args.months is not None else config.trailing_months
    rollup = get_monthly_rollup(config, owner_id, months)
    renderer.render("rollup", f"Monthly rollup ({months} months)", rollup_to_dataframe(rollup))


def _handle_dre(args, config: AppConfig, owner_id: str, renderer: _Renderer) -> None:
    period = determine_period_from_args(args)
    print(f"Applied period: {period.label} ({period.start} → {period.end})")
    dre = get_dre(config, owner_id, period)
    if dre.is_empty:
        print("No sales or expenses found for the selected period.")
    renderer.render(
        "dre", "Income statement (DRE)", dre_to_dataframe(dre, config.percent_decimals)
    )


def _handle_abc(args, config: AppConfig, owner_id: str, renderer: _Renderer) -> None:
    period = determine_period_from_args(args)
    print(f"Applied period: {period.label} ({period.start} → {period.end})")
    result = get_abc_curve(config, owner_id, period)
    tiers = " | ".join(
        f"{tier}: {len(products)} ({round_money(result.class_revenue(tier))})"
        for tier, products in (
            ("A", result.class_a),
            ("B", result.class_b),
            ("C", result.class_c),
        )
    )
    print(f"Total revenue: {round_money(result.total_revenue)} | {tiers}")
    renderer.render("abc_curve", "ABC curve", abc_to_dataframe(result, config.percent_decimals))

    unsold = get_unsold_products(config, owner_id, period)
    if unsold:
        names = ", ".join(p.name for p in unsold)
        print(f"Products without sales in the period: {names}")


def _handle_cash_flow(args, config: AppConfig, owner_id: str, renderer: _Renderer) -> None:
    period = determine_period_from_args(args)
    print(f"Applied period: {period.label} ({period.start} → {period.end})")
    flows = get_cash_flow(config, owner_id, period)
    summary = summarize_cash_flow(flows)
    print(
        f"Inflow: {round_money(summary.total_inflow)} | "
        f"Outflow: {round_money(summary.total_outflow)} | "
        f"Net: {round_money(summary.net_balance)}"
    )
    if summary.has_negative_balance:
        print(
            "Warning: the running balance goes negative during the period "
            f"(lowest: {round_money(summary.lowest_balance)})."
        )
    renderer.render("cash_flow", "Daily cash flow", cash_flow_to_dataframe(flows))


def _handle_distribution(
    args, config: AppConfig, owner_id: str, renderer: _Renderer
) -> None:
    plan = get_profit_distribution(config, owner_id)
    if not isinstance(plan, DistributionPlan):
        print("No profit to distribute this month (net profit is zero or negative).")
        if args.save:
            print("Nothing was saved.")
        return

    print(f"Month: {plan.month} | Net profit: {round_money(plan.net_profit)}")
    renderer.render(
        "distribution", "Profit distribution", distribution_to_dataframe(plan)
    )

    if args.save:
        ack = save_profit_distribution(config, owner_id, plan.month, plan)
        action = "Saved" if ack.created else "Updated"
        print(f"{action} distribution plan for {ack.month} at {ack.saved_at.isoformat()}.")


def _handle_trends(args, config: AppConfig, owner_id: str, renderer: _Renderer) -> None:
    analysis = get_trend_analysis(config, owner_id)
    decimals = config.percent_decimals
    renderer.render(
        "trend_metrics",
        f"Trend metrics ({analysis.metrics.month})",
        metrics_to_dataframe(analysis.metrics, decimals),
    )
    renderer.render(
        "trend_history", "Monthly history", rollup_to_dataframe(analysis.history)
    )
    renderer.render(
        "alerts",
        "Alerts & patterns",
        alerts_to_dataframe(analysis.alerts, analysis.patterns),
    )
    renderer.render(
        "top_categories",
        "Top categories (current month)",
        categories_to_dataframe(analysis.top_categories, decimals),
    )


def _handle_seasonality(
    args, config: AppConfig, owner_id: str, renderer: _Renderer
) -> None:
    result = get_seasonality(config, owner_id)
    print(
        f"Best month: {result.best_month.month} ({round_money(result.best_month.revenue)}) | "
        f"Worst month: {result.worst_month.month} ({round_money(result.worst_month.revenue)}) | "
        f"Average revenue: {round_money(result.average_revenue)}"
    )
    print(
        "Variation between best and worst month: "
        f"{round_percent(result.variation, config.percent_decimals)}%"
    )
    renderer.render(
        "seasonality",
        "Seasonality (last 12 months)",
        seasonality_to_dataframe(result, config.percent_decimals),
    )


_HANDLERS = {
    "rollup": _handle_rollup,
    "dre": _handle_dre,
    "abc": _handle_abc,
    "cash-flow": _handle_cash_flow,
    "distribution": _handle_distribution,
    "trends": _handle_trends,
    "seasonality": _handle_seasonality,
}


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the POS Insight CLI.

    This function parses command-line arguments, loads the application
    configuration, sets up logging, initializes the database and either
    imports CSV files or runs one of the analytics and renders its result
    as console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"pos_insight version {__version__}")
        return

    if args.command is None:
        parser.print_help()
        return

    # 1) Load application configuration and set up logging.
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc
    _configure_logging(args.log_level or config.log_level)

    try:
        # 2) Imports create the database; analytics only read an existing one.
        if args.command == "import":
            init_database(config.database)
            _handle_import(args, config)
            return

        owner_id = _resolve_owner(args, config)
        if not has_sales(config.database):
            print("Warning: database is empty, use 'import' to load the sales ledger.")

        # 3) Run the requested analytic and render it.
        renderer = _Renderer(args.display_mode or config.display_mode, args.output_dir)
        _HANDLERS[args.command](args, config, owner_id, renderer)
    except (AnalyticsError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
