"""Grouping, summation and ratio derivation.

Ratios are always derived from summed measures, never averaged across rows,
so a group's closing rate is total orders over total messages. Group keys are
tuples of dimension values; no string joining, so a name containing a
separator can never collide with another group.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Callable

from mktdash.config import KPI_BANDS, MARKET_GROUPS, PAGINATION_SETTINGS
from mktdash.services.records import MEASURE_FIELDS, ReportRecord
from mktdash.utils.metrics import as_percent, safe_div

GroupKey = tuple


@dataclass
class Measures:
    ad_spend: float = 0.0
    message_count: float = 0.0
    order_count: float = 0.0
    revenue: float = 0.0
    actual_orders: float = 0.0
    actual_revenue: float = 0.0
    cancelled_orders: float = 0.0
    actual_cancelled_orders: float = 0.0
    cancelled_revenue: float = 0.0
    actual_cancelled_revenue: float = 0.0
    post_cancel_revenue: float = 0.0
    actual_post_cancel_revenue: float = 0.0
    post_shipping_revenue: float = 0.0
    delivered_revenue: float = 0.0
    actual_delivered_revenue: float = 0.0
    kpi_target: float = 0.0
    record_count: int = 0

    def add(self, record: ReportRecord) -> None:
        for name in MEASURE_FIELDS:
            setattr(self, name, getattr(self, name) + getattr(record, name))
        self.record_count += 1


@dataclass(frozen=True)
class Ratios:
    closing_rate: float = 0.0
    actual_closing_rate: float = 0.0
    cost_per_message: float = 0.0
    cost_per_order: float = 0.0
    spend_to_revenue: float = 0.0
    average_order_value: float = 0.0
    kpi_attainment: float = 0.0


@dataclass
class SummaryRow:
    key: GroupKey
    labels: dict[str, Any]
    measures: Measures = field(default_factory=Measures)
    ratios: Ratios = field(default_factory=Ratios)

    @property
    def kpi_band(self) -> str:
        return kpi_band(self.ratios.kpi_attainment)


@dataclass
class Totals:
    measures: Measures
    ratios: Ratios


@dataclass
class DailyBucket:
    day: date
    rows: list[SummaryRow]
    totals: Totals


@dataclass(frozen=True)
class GroupBy:
    """Key function over named record fields; the names label each summary row."""

    fields: tuple[str, ...]

    def __call__(self, record: ReportRecord) -> GroupKey:
        return tuple(getattr(record, name) for name in self.fields)


by_person = GroupBy(("person_name",))
by_team_person = GroupBy(("team", "person_name"))
by_product_market = GroupBy(("product", "market"))
by_product = GroupBy(("product",))


def derive_ratios(measures: Measures) -> Ratios:
    return Ratios(
        closing_rate=safe_div(measures.order_count, measures.message_count),
        actual_closing_rate=safe_div(measures.actual_orders, measures.message_count),
        cost_per_message=safe_div(measures.ad_spend, measures.message_count),
        cost_per_order=safe_div(measures.ad_spend, measures.order_count),
        spend_to_revenue=safe_div(measures.ad_spend, measures.revenue),
        average_order_value=safe_div(measures.revenue, measures.order_count),
        kpi_attainment=safe_div(measures.post_shipping_revenue, measures.kpi_target),
    )


def aggregate(records: Iterable[ReportRecord], key_fn: Callable[[ReportRecord], GroupKey]) -> list[SummaryRow]:
    """One SummaryRow per distinct key, in order of first appearance."""
    names: Sequence[str] = getattr(key_fn, "fields", ())
    groups: dict[GroupKey, SummaryRow] = {}
    for record in records:
        key = key_fn(record)
        row = groups.get(key)
        if row is None:
            labels = dict(zip(names, key))
            # first-seen identity details, person rows only
            if "person_name" in names:
                labels.setdefault("person_email", record.person_email)
                labels.setdefault("team", record.team)
            row = SummaryRow(key=key, labels=labels)
            groups[key] = row
        row.measures.add(record)
    rows = list(groups.values())
    for row in rows:
        row.ratios = derive_ratios(row.measures)
    return rows


def compute_totals(records: Iterable[ReportRecord]) -> Totals:
    measures = Measures()
    for record in records:
        measures.add(record)
    return Totals(measures=measures, ratios=derive_ratios(measures))


def _sort_value(row: SummaryRow, name: str) -> float:
    if hasattr(row.ratios, name):
        return getattr(row.ratios, name)
    return getattr(row.measures, name)


def sort_rows(rows: Iterable[SummaryRow], measure: str = "revenue", descending: bool = True) -> list[SummaryRow]:
    """Order rows by a measure or ratio name; ties keep their first-seen order."""
    valid = {f.name for f in fields(Measures)} | {f.name for f in fields(Ratios)}
    if measure not in valid:
        raise ValueError(f"Unknown measure: {measure}")
    return sorted(rows, key=lambda r: _sort_value(r, measure), reverse=descending)


def kpi_band(attainment: float) -> str:
    for band, lower_bound in KPI_BANDS:
        if attainment >= lower_bound:
            return band
    return "below"


def market_group(market: str | None) -> str:
    """asia / non_asia / other by case-insensitive substring of the configured market names."""
    text = (market or "").lower()
    if not text:
        return "other"
    for group, names in MARKET_GROUPS.items():
        if any(name.lower() in text for name in names):
            return group
    return "other"


def split_by_market_group(rows: Iterable[SummaryRow]) -> dict[str, list[SummaryRow]]:
    groups: dict[str, list[SummaryRow]] = {name: [] for name in MARKET_GROUPS}
    groups.setdefault("other", [])
    for row in rows:
        groups[market_group(row.labels.get("market"))].append(row)
    return groups


def product_chart_series(records: Iterable[ReportRecord]) -> list[dict[str, Any]]:
    """Per-product revenue, spend, cost per order and closing rate (%), best sellers first."""
    series = []
    for row in sort_rows(aggregate(records, by_product), "revenue"):
        series.append({
            "product": row.key[0],
            "revenue": row.measures.revenue,
            "ad_spend": row.measures.ad_spend,
            "cost_per_order": row.ratios.cost_per_order,
            "closing_rate_pct": as_percent(row.ratios.closing_rate),
        })
    return series


def daily_breakdown(records: Iterable[ReportRecord], limit: int | None = None) -> list[DailyBucket]:
    """Newest-first per-day summaries; records without a date are left out."""
    limit = PAGINATION_SETTINGS["daily_tables"] if limit is None else limit
    by_day: dict[date, list[ReportRecord]] = {}
    for record in records:
        if record.date is not None:
            by_day.setdefault(record.date, []).append(record)
    buckets = []
    for day in sorted(by_day, reverse=True)[:max(limit, 0)]:
        day_records = by_day[day]
        buckets.append(DailyBucket(
            day=day,
            rows=aggregate(day_records, by_team_person),
            totals=compute_totals(day_records),
        ))
    return buckets


__all__ = [
    "GroupKey",
    "Measures",
    "Ratios",
    "SummaryRow",
    "Totals",
    "DailyBucket",
    "GroupBy",
    "by_person",
    "by_team_person",
    "by_product_market",
    "by_product",
    "derive_ratios",
    "aggregate",
    "compute_totals",
    "sort_rows",
    "kpi_band",
    "market_group",
    "split_by_market_group",
    "product_chart_series",
    "daily_breakdown",
]
