from datetime import date

import pytest

from mktdash.services.aggregator import (
    aggregate,
    by_person,
    by_product_market,
    by_team_person,
    compute_totals,
    daily_breakdown,
    derive_ratios,
    kpi_band,
    market_group,
    product_chart_series,
    sort_rows,
    split_by_market_group,
    Measures,
)
from mktdash.services.criteria_filter import apply_criteria
from mktdash.services.records import MEASURE_FIELDS, FilterCriteria, ReportRecord

A = ReportRecord(person_name="X", team="T1", date=date(2024, 5, 1), message_count=10, order_count=2, revenue=1000)
B = ReportRecord(person_name="X", team="T1", date=date(2024, 5, 2), message_count=5, order_count=1, revenue=500)
C = ReportRecord(person_name="Y", team="T2", date=date(2024, 5, 1), message_count=8, order_count=4, revenue=800)


def _by_name(rows):
    return {row.key[0]: row for row in rows}


def test_grouping_by_person_sums_and_derives_closing_rate():
    rows = _by_name(aggregate([A, B, C], by_person))
    assert rows["X"].measures.message_count == 15
    assert rows["X"].measures.order_count == 3
    assert rows["X"].measures.revenue == 1500
    assert rows["X"].ratios.closing_rate == pytest.approx(0.2)
    assert rows["Y"].measures.message_count == 8
    assert rows["Y"].measures.order_count == 4
    assert rows["Y"].measures.revenue == 800
    assert rows["Y"].ratios.closing_rate == pytest.approx(0.5)


def test_team_filter_before_grouping_keeps_only_that_team():
    rows = aggregate(apply_criteria([A, B, C], FilterCriteria.build(teams=["T1"])), by_person)
    assert len(rows) == 1
    assert rows[0].key == ("X",)
    assert rows[0].measures.revenue == 1500
    assert rows[0].ratios.closing_rate == pytest.approx(0.2)


def test_single_day_range_before_grouping():
    filtered = apply_criteria([A, B, C], FilterCriteria.build(start=date(2024, 5, 1), end=date(2024, 5, 1)))
    assert filtered == [A, C]
    rows = _by_name(aggregate(filtered, by_person))
    assert (rows["X"].measures.message_count, rows["X"].measures.order_count, rows["X"].measures.revenue) == (10, 2, 1000)
    assert (rows["Y"].measures.message_count, rows["Y"].measures.order_count, rows["Y"].measures.revenue) == (8, 4, 800)


def test_group_sums_equal_grand_totals():
    records = [A, B, C, ReportRecord(person_name="Z", team="T2", ad_spend=12.5, revenue=0.1)]
    rows = aggregate(records, by_team_person)
    totals = compute_totals(records)
    for name in MEASURE_FIELDS:
        assert sum(getattr(r.measures, name) for r in rows) == pytest.approx(getattr(totals.measures, name))
    assert totals.measures.record_count == 4


def test_ratios_from_sums_not_row_averages():
    # 5 orders over 10 messages; averaging per-row rates would give 0.1
    r1 = ReportRecord(person_name="X", message_count=10, order_count=2)
    r2 = ReportRecord(person_name="X", message_count=0, order_count=3)
    row = aggregate([r1, r2], by_person)[0]
    assert row.ratios.closing_rate == pytest.approx(0.5)


def test_zero_denominators_yield_zero():
    ratios = derive_ratios(Measures())
    assert ratios.closing_rate == 0.0
    assert ratios.cost_per_order == 0.0
    assert ratios.kpi_attainment == 0.0
    assert ratios.spend_to_revenue == 0.0


def test_tuple_keys_never_collide():
    r1 = ReportRecord(person_name="B", team="A_")
    r2 = ReportRecord(person_name="_B", team="A")
    assert len(aggregate([r1, r2], by_team_person)) == 2


def test_first_seen_order_and_labels():
    rows = aggregate([C, A, B], by_team_person)
    assert [r.key for r in rows] == [("T2", "Y"), ("T1", "X")]
    assert rows[1].labels == {"team": "T1", "person_name": "X", "person_email": ""}


def test_product_rows_carry_only_their_own_labels():
    r1 = ReportRecord(person_name="X", person_email="x@acme.io", team="T1", product="P", market="Nhật Bản")
    r2 = ReportRecord(person_name="Y", person_email="y@acme.io", team="T2", product="P", market="Nhật Bản")
    rows = aggregate([r1, r2], by_product_market)
    assert len(rows) == 1
    assert rows[0].labels == {"product": "P", "market": "Nhật Bản"}


def test_sort_rows_by_measure_and_ratio():
    rows = aggregate([A, B, C], by_person)
    assert [r.key[0] for r in sort_rows(rows, "revenue")] == ["X", "Y"]
    assert [r.key[0] for r in sort_rows(rows, "closing_rate")] == ["Y", "X"]
    assert [r.key[0] for r in sort_rows(rows, "revenue", descending=False)] == ["Y", "X"]
    with pytest.raises(ValueError):
        sort_rows(rows, "happiness")


def test_kpi_band_thresholds():
    assert kpi_band(1.0) == "achieved"
    assert kpi_band(0.85) == "near"
    assert kpi_band(0.8) == "near"
    assert kpi_band(0.5) == "below"


def test_kpi_attainment_on_rows():
    rec = ReportRecord(person_name="K", post_shipping_revenue=900, kpi_target=1000)
    row = aggregate([rec], by_person)[0]
    assert row.ratios.kpi_attainment == pytest.approx(0.9)
    assert row.kpi_band == "near"


def test_market_grouping():
    assert market_group("Nhật Bản") == "asia"
    assert market_group("korea north") == "asia"
    assert market_group("Canada") == "non_asia"
    assert market_group("Brazil") == "other"
    assert market_group("") == "other"
    rows = aggregate([
        ReportRecord(person_name="A", product="P", market="Hàn Quốc"),
        ReportRecord(person_name="A", product="P", market="Canada"),
        ReportRecord(person_name="A", product="P", market="Brazil"),
    ], by_product_market)
    groups = split_by_market_group(rows)
    assert [len(groups[g]) for g in ("asia", "non_asia", "other")] == [1, 1, 1]


def test_product_chart_series():
    records = [
        ReportRecord(person_name="A", product="P1", ad_spend=100, message_count=10, order_count=2, revenue=300),
        ReportRecord(person_name="B", product="P2", ad_spend=50, message_count=4, order_count=1, revenue=900),
    ]
    series = product_chart_series(records)
    assert [p["product"] for p in series] == ["P2", "P1"]
    assert series[1]["cost_per_order"] == pytest.approx(50.0)
    assert series[1]["closing_rate_pct"] == pytest.approx(20.0)


def test_daily_breakdown_newest_first_skips_undated():
    undated = ReportRecord(person_name="Z")
    buckets = daily_breakdown([A, B, C, undated])
    assert [b.day for b in buckets] == [date(2024, 5, 2), date(2024, 5, 1)]
    assert buckets[1].totals.measures.revenue == 1800
    assert len(buckets[1].rows) == 2
    assert len(daily_breakdown([A, B, C], limit=1)) == 1
