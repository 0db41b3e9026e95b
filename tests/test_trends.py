from datetime import date
from decimal import Decimal

import pytest

from pos_insight.errors import ValidationError
from pos_insight.rollup import MonthlyAggregate
from pos_insight.trends import (
    analyze_trend,
    compute_benchmark,
    detect_alerts,
    detect_patterns,
    revenue_growth,
    seasonality,
    trend_label,
)

D = Decimal


def _month(label, revenue, direct_cost="0", expenses="0"):
    year, month = (int(x) for x in label.split("-"))
    return MonthlyAggregate(
        month=label,
        start=date(year, month, 1),
        end=date(year, month, 28),
        revenue=D(revenue),
        direct_cost=D(direct_cost),
        expenses=D(expenses),
    )


def _alert_ids(alerts):
    return [a.id for a in alerts]


def test_growth_is_zero_when_prior_month_has_no_revenue():
    """Prior revenue 0 and current 5000: growth is guarded to 0, trend neutral."""
    history = [_month("2025-02", "0"), _month("2025-03", "5000", "1000", "500")]
    analysis = analyze_trend(history)

    assert analysis.metrics.growth == 0
    assert analysis.metrics.trend == "neutral"


def test_overspending_fires_when_costs_exceed_revenue():
    """Revenue 1000 against 600 direct cost + 500 expenses is critical."""
    current = _month("2025-03", "1000", "600", "500")
    alerts = detect_alerts(current, None)

    overspending = [a for a in alerts if a.id == "overspending"]
    assert len(overspending) == 1
    assert overspending[0].severity == "critical"
    assert overspending[0].suggested_action


def test_overspending_needs_revenue():
    assert "overspending" not in _alert_ids(detect_alerts(_month("2025-03", "0", "0", "50"), None))


def test_profit_drop_fires_above_fifteen_percent():
    prior = _month("2025-02", "1000", "200", "300")  # profit 500
    dropped = _month("2025-03", "1000", "200", "380")  # profit 420, -16 %
    steady = _month("2025-03", "1000", "200", "370")  # profit 430, -14 %

    assert "profit-drop" in _alert_ids(detect_alerts(dropped, prior))
    assert "profit-drop" not in _alert_ids(detect_alerts(steady, prior))


def test_profit_drop_ignores_non_positive_prior_profit():
    prior = _month("2025-02", "100", "100", "50")  # loss
    current = _month("2025-03", "100", "100", "90")
    assert "profit-drop" not in _alert_ids(detect_alerts(current, prior))


def test_low_margin_fires_between_zero_and_ten_percent():
    low = _month("2025-03", "1000", "500", "450")  # 5 %
    healthy = _month("2025-03", "1000", "500", "300")  # 20 %
    loss = _month("2025-03", "1000", "800", "300")  # negative

    assert "low-margin" in _alert_ids(detect_alerts(low, None))
    assert "low-margin" not in _alert_ids(detect_alerts(healthy, None))
    assert "low-margin" not in _alert_ids(detect_alerts(loss, None))


def test_several_alerts_can_fire_together():
    prior = _month("2025-02", "1000", "100", "100")
    current = _month("2025-03", "1000", "700", "400")
    ids = _alert_ids(detect_alerts(current, prior))
    assert ids == ["overspending", "profit-drop"]


@pytest.mark.parametrize(
    ("growth", "label"),
    [("5.01", "positive"), ("5", "neutral"), ("-5", "neutral"), ("-5.01", "negative")],
)
def test_trend_label_thresholds(growth, label):
    assert trend_label(D(growth)) == label


def test_revenue_growth_in_percent():
    assert revenue_growth(_month("2025-03", "1200"), _month("2025-02", "1000")) == D("20")
    assert revenue_growth(_month("2025-03", "1200"), None) == 0


def test_benchmark_compares_with_average_margin_of_months_with_revenue():
    history = [
        _month("2025-01", "0"),
        _month("2025-02", "1000", "800"),  # 20 %
        _month("2025-03", "1000", "600"),  # 40 %
    ]
    bench = compute_benchmark(history)

    assert bench.current_margin == D("40")
    assert bench.average_margin == D("30")
    assert bench.difference == D("10")
    assert bench.status == "above"


def test_benchmark_on_average_within_two_points():
    history = [_month("2025-02", "1000", "700"), _month("2025-03", "1000", "690")]
    assert compute_benchmark(history).status == "on-average"


def test_consistent_growth_pattern_needs_four_positive_deltas():
    growing = [_month(f"2025-0{i}", str(1000 + i * 100)) for i in range(1, 6)]
    assert [p.type for p in detect_patterns(growing)] == ["consistent-growth"]

    short = growing[1:]
    assert detect_patterns(short) == []


def test_consistent_growth_ignores_increases_from_an_empty_month():
    """Going from zero revenue to some revenue is not growth."""
    revenues = ["100", "0", "100", "200", "300", "400"]
    history = [_month(f"2025-0{i}", r) for i, r in enumerate(revenues, start=1)]
    assert detect_patterns(history) == []

    history.append(_month("2025-07", "500"))
    assert [p.type for p in detect_patterns(history)] == ["consistent-growth"]


def test_rising_costs_pattern_over_last_three_months():
    history = [
        _month("2025-01", "1000", "500"),
        _month("2025-02", "1000", "100"),
        _month("2025-03", "1000", "200"),
        _month("2025-04", "1000", "300"),
    ]
    patterns = detect_patterns(history)
    assert [p.type for p in patterns] == ["rising-costs"]
    assert patterns[0].impact == "negative"

    flat = history[:3] + [_month("2025-04", "1000", "200")]
    assert detect_patterns(flat) == []


def test_single_month_history_has_no_prior():
    analysis = analyze_trend([_month("2025-03", "1000", "100", "100")])
    assert analysis.metrics.growth == 0
    assert analysis.metrics.margin == D("80")
    assert analysis.alerts == []
    assert analysis.history[0].month == "2025-03"


def test_empty_history_is_rejected():
    with pytest.raises(ValidationError):
        analyze_trend([])


def test_seasonality_finds_best_and_worst_months():
    history = [
        _month("2025-01", "800"),
        _month("2025-02", "1200"),
        _month("2025-03", "400"),
        _month("2025-04", "1200"),
    ]
    result = seasonality(history)

    # Ties go to the earliest month
    assert result.best_month.month == "2025-02"
    assert result.worst_month.month == "2025-03"
    assert result.average_revenue == D("900")
    assert result.variation == D("200")


def test_seasonality_variation_is_zero_when_worst_month_is_empty():
    result = seasonality([_month("2025-01", "0"), _month("2025-02", "500")])
    assert result.worst_month.month == "2025-01"
    assert result.variation == 0

    with pytest.raises(ValidationError):
        seasonality([])
