from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

import pos_insight.periods as periods
from pos_insight.analytics_service import (
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
from pos_insight.config import AppConfig, TaxFeeConfig
from pos_insight.db import (
    DatabaseConfig,
    import_expenses,
    import_products,
    import_sale_items,
    import_sales,
)
from pos_insight.distribution import UNAVAILABLE, get_saved_distribution
from pos_insight.errors import DataAccessError, ValidationError
from pos_insight.periods import DateRange

D = Decimal
TODAY = date(2025, 3, 20)
MARCH = DateRange(start=date(2025, 3, 1), end=date(2025, 3, 31), label="2025-03")

SALES_COLUMNS = ["id", "owner_id", "occurred_at", "total", "payment_method", "canceled"]
ITEM_COLUMNS = ["sale_id", "product_id", "quantity", "unit_price", "unit_cost"]
EXPENSE_COLUMNS = ["id", "owner_id", "occurred_on", "amount", "category"]


def make_app_config(tmp_path, **kwargs) -> AppConfig:
    """AppConfig pointing to a temporary SQLite file."""
    db = DatabaseConfig(engine="sqlite", path=tmp_path / "pos.sqlite")
    return AppConfig(database=db, **kwargs)


def seed_ledger(cfg: DatabaseConfig) -> None:
    """
    Ledger of shop-1:

    - February: revenue 1000, direct cost 400, expenses 300 (profit 300)
    - March:    revenue 10000, direct cost 4000, expenses 2000 (profit 4000)
                plus a canceled sale of 5000
    """
    import_products(
        pd.DataFrame(
            [
                {"id": "p1", "owner_id": "shop-1", "name": "Coffee"},
                {"id": "p2", "owner_id": "shop-1", "name": "Cake"},
                {"id": "p3", "owner_id": "shop-1", "name": "Tea"},
            ]
        ),
        cfg,
    )
    import_sales(
        pd.DataFrame(
            [
                ["f1", "shop-1", "2025-02-10T10:00:00", "1000", "cash", False],
                ["m1", "shop-1", "2025-03-02T09:00:00", "8000", "credit", False],
                ["m2", "shop-1", "2025-03-05T15:30:00", "2000", "cash", False],
                ["mx", "shop-1", "2025-03-06T11:00:00", "5000", "cash", True],
            ],
            columns=SALES_COLUMNS,
        ),
        cfg,
    )
    import_sale_items(
        pd.DataFrame(
            [
                ["f1", "p1", "100", "10", "4"],
                ["m1", "p1", "800", "10", "4"],
                ["m2", "p2", "75", "20", "8"],
                ["m2", "p3", "10", "50", "20"],
                ["mx", "p3", "100", "50", "20"],
            ],
            columns=ITEM_COLUMNS,
        ),
        cfg,
    )
    import_expenses(
        pd.DataFrame(
            [
                ["e1", "shop-1", "2025-02-01", "300", "rent"],
                ["e2", "shop-1", "2025-03-01", "1500", "rent"],
                ["e3", "shop-1", "2025-03-04", "500", "energy"],
            ],
            columns=EXPENSE_COLUMNS,
        ),
        cfg,
    )


def test_monthly_rollup_over_trailing_months(tmp_path):
    app = make_app_config(tmp_path)
    seed_ledger(app.database)

    rollup = get_monthly_rollup(app, "shop-1", 3, today=TODAY)

    assert [m.month for m in rollup] == ["2025-01", "2025-02", "2025-03"]
    assert [m.revenue for m in rollup] == [D("0"), D("1000"), D("10000")]
    assert [m.direct_cost for m in rollup] == [D("0"), D("400"), D("4000")]
    assert [m.profit for m in rollup] == [D("0"), D("300"), D("4000")]


def test_rollup_rejects_invalid_inputs(tmp_path):
    app = make_app_config(tmp_path)
    with pytest.raises(ValidationError):
        get_monthly_rollup(app, "shop-1", 0, today=TODAY)
    with pytest.raises(ValidationError):
        get_monthly_rollup(app, "  ", 3, today=TODAY)


def test_dre_applies_owner_tax_schedule(tmp_path):
    app = make_app_config(
        tmp_path,
        taxes=TaxFeeConfig(rate=D("10")),
        owner_taxes={"shop-1": TaxFeeConfig(rate=D("2"), payment_fees={"credit": D("3")})},
    )
    seed_ledger(app.database)

    dre = get_dre(app, "shop-1", MARCH)

    assert dre.revenue == D("10000")
    assert dre.direct_cost == D("4000")
    assert dre.operational_expenses == D("2000")
    # 2 % of 10000 + 3 % of the 8000 paid by credit card
    assert dre.taxes_fees == D("440")
    assert dre.net_profit == D("3560")


def test_abc_curve_and_cash_flow_for_a_range(tmp_path):
    app = make_app_config(tmp_path)
    seed_ledger(app.database)

    abc = get_abc_curve(app, "shop-1", MARCH)
    assert [p.product_id for p in abc.class_a] == ["p1"]
    assert [p.product_id for p in abc.class_b] == ["p2"]
    assert [p.product_id for p in abc.class_c] == ["p3"]

    flows = get_cash_flow(app, "shop-1", MARCH)
    assert len(flows) == 31
    by_day = {f.date: f for f in flows}
    assert by_day[date(2025, 3, 1)].daily_balance == D("-1500")
    assert by_day[date(2025, 3, 2)].inflow == D("8000")
    assert by_day[date(2025, 3, 6)].inflow == 0


def test_profit_distribution_and_save(tmp_path, monkeypatch):
    monkeypatch.setattr(periods, "_today", lambda: TODAY)
    app = make_app_config(tmp_path)
    seed_ledger(app.database)

    plan = get_profit_distribution(app, "shop-1")
    assert plan.month == "2025-03"
    assert plan.net_profit == D("4000")
    assert plan.withdrawal == D("2000")

    ack = save_profit_distribution(app, "shop-1", plan.month, plan)
    assert ack.created is True
    assert get_saved_distribution(app.database, "shop-1", "2025-03") == plan


def test_profit_distribution_unavailable_without_profit(tmp_path):
    app = make_app_config(tmp_path)
    seed_ledger(app.database)

    assert get_profit_distribution(app, "shop-1", today=date(2025, 1, 10)) is UNAVAILABLE
    assert get_profit_distribution(app, "nobody", today=TODAY) is UNAVAILABLE


def test_trend_analysis_uses_trailing_window(tmp_path, monkeypatch):
    monkeypatch.setattr(periods, "_today", lambda: TODAY)
    app = make_app_config(tmp_path, trailing_months=3)
    seed_ledger(app.database)

    analysis = get_trend_analysis(app, "shop-1")

    assert [m.month for m in analysis.history] == ["2025-01", "2025-02", "2025-03"]
    assert analysis.metrics.month == "2025-03"
    assert analysis.metrics.growth == D("900")
    assert analysis.metrics.trend == "positive"
    assert analysis.metrics.margin == D("40")
    assert analysis.alerts == []
    assert [c.name for c in analysis.top_categories] == ["Coffee", "Cake", "Tea", "rent", "energy"]


def test_unknown_owner_gets_empty_analytics(tmp_path):
    app = make_app_config(tmp_path)
    seed_ledger(app.database)

    dre = get_dre(app, "nobody", MARCH)
    assert dre.is_empty
    assert get_abc_curve(app, "nobody", MARCH).ranked == []
    assert all(f.inflow == 0 for f in get_cash_flow(app, "nobody", MARCH))


def test_seasonality_over_the_last_twelve_months(tmp_path):
    app = make_app_config(tmp_path)
    seed_ledger(app.database)

    result = get_seasonality(app, "shop-1", today=TODAY)

    assert len(result.months) == 12
    assert result.months[0].month == "2024-04"
    assert result.best_month.month == "2025-03"
    # Months without sales tie at 0: the earliest one is the worst
    assert result.worst_month.month == "2024-04"
    assert result.average_revenue == D("11000") / 12
    assert result.variation == 0


def test_unsold_products_for_a_range(tmp_path):
    app = make_app_config(tmp_path)
    seed_ledger(app.database)
    february = DateRange(start=date(2025, 2, 1), end=date(2025, 2, 28))

    assert [p.name for p in get_unsold_products(app, "shop-1", february)] == ["Cake", "Tea"]
    assert get_unsold_products(app, "shop-1", MARCH) == []


def test_analytics_require_an_existing_ledger(tmp_path):
    app = make_app_config(tmp_path)

    with pytest.raises(DataAccessError):
        get_dre(app, "shop-1", MARCH)
    assert not app.database.path.exists()
