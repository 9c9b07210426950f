"""Dashboard view pipeline.

Every view runs the same chain over already normalised records:

    scope (role)  ->  criteria (user filters)  ->  aggregate / paginate

Normalisation happens once per source refresh (see `FeedCache`), never per
view, and all inputs a view depends on travel in an explicit `DashboardState`.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any

from mktdash.models.db.orders import OrderRecord
from mktdash.models.db.reports import SubmittedReport
from mktdash.services.access_scope import can_view_orders, scope
from mktdash.services.aggregator import (
    DailyBucket,
    SummaryRow,
    Totals,
    aggregate,
    by_person,
    by_product_market,
    by_team_person,
    compute_totals,
    daily_breakdown,
    product_chart_series,
    sort_rows,
    split_by_market_group,
)
from mktdash.services.criteria_filter import (
    DETAIL_SEARCH_FIELDS,
    ORDER_SEARCH_FIELDS,
    SUBMITTED_SEARCH_FIELDS,
    apply_criteria,
)
from mktdash.services.normalizer import normalize_store_row, to_number
from mktdash.services.pagination import Page, paginate
from mktdash.services.records import DashboardState, OrderRow, ReportRecord


@dataclass
class DetailView:
    summary: list[SummaryRow]
    totals: Totals
    page: Page[ReportRecord]
    daily: list[DailyBucket]


@dataclass
class KpiView:
    rows: list[SummaryRow]
    totals: Totals


@dataclass
class MarketView:
    groups: dict[str, list[SummaryRow]]
    totals: Totals
    chart: list[dict[str, Any]]


def report_to_store_row(report: SubmittedReport) -> dict[str, Any]:
    """Flatten a stored report into the store-source row shape."""
    return {
        "id": str(report.id) if report.id is not None else "",
        "name": report.name,
        "email": report.email,
        "team": report.team,
        "date": report.date,
        "shift": report.shift,
        "product": report.product,
        "market": report.market,
        "ad_account": report.ad_account,
        "ad_spend": report.ad_spend,
        "message_count": report.message_count,
        "order_count": report.order_count,
        "revenue": report.revenue,
    }


def order_to_row(order: OrderRecord) -> OrderRow:
    day = order.order_date or (order.order_time.date() if order.order_time else None)
    return OrderRow(
        id=order.id,
        order_code=order.order_code or "",
        customer_name=order.customer_name or "",
        marketing_staff=order.marketing_staff or "",
        sales_staff=order.sales_staff or "",
        team=order.team or "",
        shift=order.shift or "",
        product=order.product or "",
        market=order.market or "",
        amount=to_number(order.amount),
        date=day,
    )


def _order_moment(order: OrderRecord) -> datetime:
    if order.order_time is not None:
        return order.order_time.replace(tzinfo=None)
    if order.order_date is not None:
        return datetime.combine(order.order_date, datetime.min.time())
    return datetime.min


class DashboardService:
    """Builds the role-scoped, filtered dashboard views."""

    def visible(
        self,
        records: Iterable[ReportRecord],
        state: DashboardState,
        search_fields: Sequence[str] = DETAIL_SEARCH_FIELDS,
    ) -> list[ReportRecord]:
        scoped = scope(records, state.role, state.actor_team, state.actor_email)
        return apply_criteria(scoped, state.criteria, search_fields)

    def detail_view(self, records: Iterable[ReportRecord], state: DashboardState) -> DetailView:
        rows = self.visible(records, state)
        return DetailView(
            summary=aggregate(rows, by_team_person),
            totals=compute_totals(rows),
            page=paginate(rows, state.page, state.page_size),
            daily=daily_breakdown(rows),
        )

    def kpi_view(self, records: Iterable[ReportRecord], state: DashboardState) -> KpiView:
        rows = self.visible(records, state)
        return KpiView(
            rows=sort_rows(aggregate(rows, by_person), "kpi_attainment"),
            totals=compute_totals(rows),
        )

    def market_view(self, records: Iterable[ReportRecord], state: DashboardState) -> MarketView:
        rows = self.visible(records, state)
        summary = sort_rows(aggregate(rows, by_product_market), "revenue")
        return MarketView(
            groups=split_by_market_group(summary),
            totals=compute_totals(rows),
            chart=product_chart_series(rows),
        )

    def submitted_view(self, reports: Iterable[SubmittedReport], state: DashboardState) -> Page[SubmittedReport]:
        """Stored reports visible to the actor, newest report date first."""
        by_id: dict[str, SubmittedReport] = {}
        records: list[ReportRecord] = []
        for report in reports:
            record = normalize_store_row(report_to_store_row(report))
            if record is None:
                continue
            by_id[record.id] = report
            records.append(record)
        visible = self.visible(records, state, SUBMITTED_SEARCH_FIELDS)
        visible.sort(key=lambda r: r.date or date.min, reverse=True)
        return paginate([by_id[r.id] for r in visible], state.page, state.page_size)

    def orders_view(self, orders: Iterable[OrderRecord], state: DashboardState) -> Page[OrderRow]:
        """Order rows for admin and leader, newest first. Everyone else gets an empty page."""
        if not can_view_orders(state.role):
            return paginate([], 1, state.page_size)
        ordered = sorted(orders, key=_order_moment, reverse=True)
        # orders carry no product/market selection in the order view
        criteria = replace(state.criteria, products=frozenset(), markets=frozenset())
        visible = apply_criteria([order_to_row(o) for o in ordered], criteria, ORDER_SEARCH_FIELDS)
        return paginate(visible, state.page, state.page_size)


__all__ = [
    "DetailView",
    "KpiView",
    "MarketView",
    "report_to_store_row",
    "order_to_row",
    "DashboardService",
]
