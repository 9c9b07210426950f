"""In-memory value types shared by the dashboard engine.

`ReportRecord` is the canonical, source-independent shape every report row is
normalised into. `OrderRow` is the read-only projection of an `OrderRecord`
used by the orders view. Both expose `date`, `shift`, `team`, `product` and
`market` attributes so the same criteria filter runs over either.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from typing import Any

from mktdash.config import PAGINATION_SETTINGS

# Summed measures carried by every record, in display order.
MEASURE_FIELDS: tuple[str, ...] = (
    "ad_spend",
    "message_count",
    "order_count",
    "revenue",
    "actual_orders",
    "actual_revenue",
    "cancelled_orders",
    "actual_cancelled_orders",
    "cancelled_revenue",
    "actual_cancelled_revenue",
    "post_cancel_revenue",
    "actual_post_cancel_revenue",
    "post_shipping_revenue",
    "delivered_revenue",
    "actual_delivered_revenue",
    "kpi_target",
)


@dataclass(frozen=True)
class ReportRecord:
    person_name: str
    person_email: str = ""
    team: str = ""
    date: dt.date | None = None
    shift: str = ""
    product: str = ""
    market: str = ""
    ad_account: str = ""
    id: str = ""
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
    # "feed" or "store"
    source: str = "feed"


@dataclass(frozen=True)
class OrderRow:
    id: int
    order_code: str
    customer_name: str
    marketing_staff: str
    sales_staff: str
    team: str
    shift: str
    product: str
    market: str
    amount: float
    # order_date, falling back to the date part of order_time
    date: dt.date | dt.datetime | None = None


@dataclass(frozen=True)
class FilterCriteria:
    """User-selected restrictions. Empty collections and None bounds mean "no restriction"."""

    start: dt.date | None = None
    end: dt.date | None = None
    products: frozenset[str] = field(default_factory=frozenset)
    shifts: frozenset[str] = field(default_factory=frozenset)
    markets: frozenset[str] = field(default_factory=frozenset)
    teams: frozenset[str] = field(default_factory=frozenset)
    search: str = ""

    @classmethod
    def build(
        cls,
        start: dt.date | None = None,
        end: dt.date | None = None,
        products: Any = None,
        shifts: Any = None,
        markets: Any = None,
        teams: Any = None,
        search: str | None = None,
    ) -> "FilterCriteria":
        def _set(values: Any) -> frozenset[str]:
            return frozenset(str(v) for v in (values or ()) if str(v).strip())

        return cls(
            start=start,
            end=end,
            products=_set(products),
            shifts=_set(shifts),
            markets=_set(markets),
            teams=_set(teams),
            search=(search or "").strip(),
        )


@dataclass(frozen=True)
class DashboardState:
    """Everything a dashboard view depends on, passed explicitly per request."""

    role: str
    actor_team: str = ""
    actor_email: str = ""
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    page: int = 1
    page_size: int = PAGINATION_SETTINGS["default_page_size"]

    def with_criteria(self, criteria: FilterCriteria) -> "DashboardState":
        # A changed filter always lands back on the first page
        return replace(self, criteria=criteria, page=1)

    def with_page(self, page: int) -> "DashboardState":
        return replace(self, page=page)


__all__ = [
    "MEASURE_FIELDS",
    "ReportRecord",
    "OrderRow",
    "FilterCriteria",
    "DashboardState",
]
