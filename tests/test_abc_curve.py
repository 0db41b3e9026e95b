from datetime import date
from decimal import Decimal

from pos_insight.abc_curve import classify_abc
from pos_insight.ledger import SaleLineItem

D = Decimal


def _item(product_id, revenue, quantity="1", name=None, item_id=1):
    quantity = D(quantity)
    return SaleLineItem(
        id=item_id,
        sale_id=f"s-{product_id}-{item_id}",
        product_id=product_id,
        product_name=name or product_id.upper(),
        quantity=quantity,
        unit_price=D(revenue) / quantity,
        unit_cost=D("0"),
        sale_date=date(2025, 3, 1),
    )


def test_boundary_products_fall_in_the_lower_class():
    """800 / 150 / 50: cumulative 80 / 95 / 100 gives A=[p1], B=[p2], C=[p3]."""
    result = classify_abc([_item("p1", "800"), _item("p2", "150"), _item("p3", "50")])

    assert [p.product_id for p in result.class_a] == ["p1"]
    assert [p.product_id for p in result.class_b] == ["p2"]
    assert [p.product_id for p in result.class_c] == ["p3"]
    assert [p.cumulative_percentage for p in result.ranked] == [
        D("80"),
        D("95"),
        D("100"),
    ]
    assert result.total_revenue == D("1000")


def test_revenue_and_quantity_are_aggregated_per_product():
    items = [
        _item("p1", "30", quantity="3", item_id=1),
        _item("p1", "20", quantity="2", item_id=2),
        _item("p2", "50", quantity="1", item_id=3),
    ]
    result = classify_abc(items)

    by_id = {p.product_id: p for p in result.ranked}
    assert by_id["p1"].revenue == D("50")
    assert by_id["p1"].quantity_sold == D("5")
    assert by_id["p1"].revenue_percentage == D("50")


def test_ties_are_broken_by_product_id():
    result = classify_abc([_item("b", "100"), _item("a", "100"), _item("c", "100")])
    assert [p.product_id for p in result.ranked] == ["a", "b", "c"]


def test_no_revenue_gives_empty_classes():
    result = classify_abc([_item("p1", "0")])
    assert result.class_a == []
    assert result.class_b == []
    assert result.class_c == []
    assert result.total_revenue == 0

    assert classify_abc([]).ranked == []


def test_revenue_percentages_sum_to_one_hundred():
    items = [_item(f"p{i}", str(rev)) for i, rev in enumerate([37, 23, 19, 11, 7, 3])]
    result = classify_abc(items)

    total_pct = sum(p.revenue_percentage for p in result.ranked)
    assert abs(total_pct - D("100")) < D("0.000001")
    assert result.ranked[-1].cumulative_percentage == D("100")
    assert sum(result.class_revenue(t) for t in "ABC") == result.total_revenue


def test_single_dominant_product_is_class_a_alone():
    result = classify_abc([_item("big", "990"), _item("small", "10")])
    assert [p.product_id for p in result.class_a] == ["big"]
    assert [p.product_id for p in result.class_c] == ["small"]
    assert all(p.class_tier == "A" for p in result.class_a)


def test_products_crossing_a_threshold_stay_in_the_upper_class():
    """70 / 20 / 6 / 4: p2 crosses 80 % and p3 crosses 95 % from below."""
    result = classify_abc(
        [_item("p1", "70"), _item("p2", "20"), _item("p3", "6"), _item("p4", "4")]
    )

    assert [p.product_id for p in result.class_a] == ["p1", "p2"]
    assert [p.product_id for p in result.class_b] == ["p3"]
    assert [p.product_id for p in result.class_c] == ["p4"]
    assert [p.cumulative_percentage for p in result.ranked] == [
        D("70"),
        D("90"),
        D("96"),
        D("100"),
    ]
    assert result.class_revenue("A") == D("90")
    assert result.class_revenue("C") == D("4")
