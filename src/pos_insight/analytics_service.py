# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level analytics services.

This module sits between:
- the ledger accessors in `ledger.py` (the only reads of storage), and
- user-facing layers such as the CLI, exports or a Web UI.

Each function is an independent request: it validates its inputs, reads
the ledger for the range it needs, and hands the records to a pure
computation module:

    get_monthly_rollup        -> rollup.build_monthly_rollup
    get_dre                   -> dre.compute_dre
    get_abc_curve             -> abc_curve.classify_abc
    get_cash_flow             -> cash_flow.build_cash_flow
    get_profit_distribution   -> dre.compute_dre + distribution.plan_distribution
    save_profit_distribution  -> distribution.save_distribution
    get_trend_analysis        -> rollup + trends.analyze_trend
    get_seasonality           -> rollup + trends.seasonality
    get_unsold_products       -> ledger.get_products minus sold products

Design notes
------------
- Nothing is cached: every call recomputes from raw records, so results
  always reflect the current ledger.
- Analytics do not share state. A DataAccessError aborts only the request
  that raised it.
- Invalid inputs raise ValidationError before any ledger read.
"""

import logging
from datetime import date
from typing import Optional

from . import periods
from .abc_curve import ABCResult, classify_abc
from .cash_flow import DailyFlow, build_cash_flow
from .categories import top_categories
from .config import AppConfig
from .distribution import (
    DistributionPlan,
    PlanOrUnavailable,
    SaveAck,
    plan_distribution,
    save_distribution,
)
from .dre import DREResult, compute_dre
from .errors import ValidationError
from .ledger import Product, get_expenses, get_products, get_sale_line_items, get_sales
from .periods import DateRange, period_current_month, trailing_months
from .rollup import MonthlyAggregate, build_monthly_rollup
from .trends import Seasonality, TrendAnalysis, analyze_trend, seasonality

logger = logging.getLogger(__name__)

SEASONALITY_MONTHS = 12


def _check_owner(owner_id: str) -> None:
    if not owner_id or not str(owner_id).strip():
        raise ValidationError("An owner id is required.")


def get_monthly_rollup(
    app_config: AppConfig,
    owner_id: str,
    month_count: int,
    today: Optional[date] = None,
) -> list[MonthlyAggregate]:
    """
    Compute revenue, direct cost, expenses and profit for the trailing
    `month_count` calendar months (the current month included).

    The ledger is read once for the whole window and bucketed per month.

    Returns
    -------
    list[MonthlyAggregate]
        Exactly `month_count` entries, oldest first.

    Raises
    ------
    ValidationError
        If month_count < 1 or the owner id is empty.
    DataAccessError
        If the ledger cannot be read.
    """
    _check_owner(owner_id)
    months = trailing_months(month_count, today)
    window = DateRange(start=months[0].start, end=months[-1].end)

    cfg = app_config.database
    sales = get_sales(cfg, owner_id, window)
    line_items = get_sale_line_items(cfg, owner_id, window)
    expenses = get_expenses(cfg, owner_id, window)

    return build_monthly_rollup(months, sales, line_items, expenses)


def get_dre(app_config: AppConfig, owner_id: str, date_range: DateRange) -> DREResult:
    """
    Compute the income statement of an owner for a range.

    The owner's tax / fee schedule (or the default one) is applied; without
    any schedule taxes and fees are 0.
    """
    _check_owner(owner_id)
    cfg = app_config.database
    return compute_dre(
        get_sales(cfg, owner_id, date_range),
        get_sale_line_items(cfg, owner_id, date_range),
        get_expenses(cfg, owner_id, date_range),
        app_config.tax_config_for(owner_id),
    )


def get_abc_curve(
    app_config: AppConfig, owner_id: str, date_range: DateRange
) -> ABCResult:
    """Classify the owner's products into A/B/C tiers for a range."""
    _check_owner(owner_id)
    return classify_abc(get_sale_line_items(app_config.database, owner_id, date_range))


def get_cash_flow(
    app_config: AppConfig, owner_id: str, date_range: DateRange
) -> list[DailyFlow]:
    """Return one DailyFlow per day of the range, in date order."""
    _check_owner(owner_id)
    cfg = app_config.database
    return build_cash_flow(
        date_range,
        get_sales(cfg, owner_id, date_range),
        get_expenses(cfg, owner_id, date_range),
    )


def get_profit_distribution(
    app_config: AppConfig,
    owner_id: str,
    today: Optional[date] = None,
) -> PlanOrUnavailable:
    """
    Plan the distribution of the current calendar month's net profit.

    Returns
    -------
    DistributionPlan or UNAVAILABLE
        UNAVAILABLE when the month's net profit is zero or negative.
    """
    month = period_current_month(today)
    dre = get_dre(app_config, owner_id, month)
    return plan_distribution(month.label, dre.net_profit)


def save_profit_distribution(
    app_config: AppConfig,
    owner_id: str,
    month: str,
    plan: DistributionPlan,
) -> SaveAck:
    """Save (or overwrite) the distribution plan of an owner for a month."""
    _check_owner(owner_id)
    return save_distribution(app_config.database, owner_id, month, plan)


def get_trend_analysis(
    app_config: AppConfig,
    owner_id: str,
    today: Optional[date] = None,
) -> TrendAnalysis:
    """
    Analyze trends, alerts and patterns over the trailing rollup
    (`analytics.trailing_months`, 6 by default).

    The analysis also lists the top products and expense categories of the
    current month.
    """
    if today is None:
        today = periods._today()
    history = get_monthly_rollup(
        app_config, owner_id, app_config.trailing_months, today
    )

    current = period_current_month(today)
    cfg = app_config.database
    categories = top_categories(
        get_sale_line_items(cfg, owner_id, current),
        get_expenses(cfg, owner_id, current),
    )

    analysis = analyze_trend(history, categories)
    logger.debug(
        "Trend analysis for owner %s: %d alert(s), %d pattern(s)",
        owner_id,
        len(analysis.alerts),
        len(analysis.patterns),
    )
    return analysis


def get_seasonality(
    app_config: AppConfig,
    owner_id: str,
    today: Optional[date] = None,
) -> Seasonality:
    """Best and worst months of the owner over the last 12 calendar months."""
    history = get_monthly_rollup(app_config, owner_id, SEASONALITY_MONTHS, today)
    return seasonality(history)


def get_unsold_products(
    app_config: AppConfig, owner_id: str, date_range: DateRange
) -> list[Product]:
    """Products of the owner without any (non-canceled) sale in the range."""
    _check_owner(owner_id)
    cfg = app_config.database
    sold = {item.product_id for item in get_sale_line_items(cfg, owner_id, date_range)}
    return [p for p in get_products(cfg, owner_id) if p.id not in sold]
