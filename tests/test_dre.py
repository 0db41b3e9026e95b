from datetime import date, datetime
from decimal import Decimal

from pos_insight.config import TaxFeeConfig
from pos_insight.dre import compute_dre, compute_taxes_fees, percentage_of
from pos_insight.ledger import ExpenseRecord, SaleLineItem, SaleRecord

D = Decimal


def _sale(sale_id, total, method=None, canceled=False, day=date(2025, 3, 10)):
    return SaleRecord(
        id=sale_id,
        occurred_at=datetime(day.year, day.month, day.day, 12, 0),
        gross_total=D(total),
        payment_method=method,
        canceled=canceled,
        owner_id="shop-1",
    )


def _item(sale_id, quantity, price, cost, day=date(2025, 3, 10)):
    return SaleLineItem(
        id=1,
        sale_id=sale_id,
        product_id="p1",
        product_name="Coffee",
        quantity=D(quantity),
        unit_price=D(price),
        unit_cost=D(cost),
        sale_date=day,
    )


def _expense(amount, category="rent"):
    return ExpenseRecord(
        id="e1",
        occurred_on=date(2025, 3, 5),
        amount=D(amount),
        category=category,
        owner_id="shop-1",
    )


def test_income_statement_lines_and_margins():
    """Revenue 10000, cost 4000, expenses 2000 and 5 % taxes give 35 % net margin."""
    result = compute_dre(
        sales=[_sale("s1", "6000"), _sale("s2", "4000")],
        line_items=[_item("s1", "40", "150", "100")],
        expenses=[_expense("2000")],
        tax_config=TaxFeeConfig(rate=D("5")),
    )

    assert result.revenue == D("10000")
    assert result.direct_cost == D("4000")
    assert result.gross_profit == D("6000")
    assert result.gross_margin == D("60")
    assert result.operational_expenses == D("2000")
    assert result.operational_profit == D("4000")
    assert result.operational_margin == D("40")
    assert result.taxes_fees == D("500")
    assert result.net_profit == D("3500")
    assert result.net_margin == D("35")


def test_zero_revenue_gives_zero_margins_and_negative_profit():
    """Without revenue all margins are 0 and profits carry the costs as negatives."""
    result = compute_dre(sales=[], line_items=[], expenses=[_expense("300")])

    assert result.revenue == 0
    assert result.gross_margin == 0
    assert result.operational_margin == 0
    assert result.net_margin == 0
    assert result.operational_profit == D("-300")
    assert result.net_profit == D("-300")
    assert not result.is_empty


def test_empty_range_is_flagged_empty():
    result = compute_dre(sales=[], line_items=[], expenses=[])
    assert result.is_empty
    assert result.net_profit == 0


def test_canceled_sales_do_not_count_as_revenue():
    result = compute_dre(
        sales=[_sale("s1", "100"), _sale("s2", "900", canceled=True)],
        line_items=[],
        expenses=[],
    )
    assert result.revenue == D("100")


def test_no_tax_schedule_means_no_taxes():
    result = compute_dre(sales=[_sale("s1", "1000")], line_items=[], expenses=[])
    assert result.taxes_fees == 0
    assert result.net_profit == result.operational_profit


def test_payment_method_fees_apply_to_method_revenue():
    """Card fees only apply to the revenue paid with that method."""
    schedule = TaxFeeConfig(
        rate=D("2"),
        flat=D("10"),
        payment_fees={"credit": D("3.5")},
    )
    revenue_by_method = {"credit": D("200"), "cash": D("800")}

    taxes = compute_taxes_fees(D("1000"), revenue_by_method, schedule)

    # 2 % of 1000 + 10 flat + 3.5 % of 200
    assert taxes == D("37")


def test_flat_fee_is_not_charged_without_revenue():
    schedule = TaxFeeConfig(flat=D("50"))
    assert compute_taxes_fees(D("0"), {}, schedule) == 0


def test_percentage_of_guards_zero_base():
    assert percentage_of(D("10"), D("0")) == 0
    assert percentage_of(D("25"), D("200")) == D("12.5")


def test_empty_schedule_behaves_like_no_schedule():
    assert TaxFeeConfig().is_empty
    assert compute_taxes_fees(D("1000"), {"cash": D("1000")}, TaxFeeConfig()) == 0
