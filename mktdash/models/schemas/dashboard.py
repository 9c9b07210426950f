"""
Response schemas for the dashboard views.

All of them are built from the engine's dataclasses with ``from_attributes``.
"""
import datetime as dt
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict

from .base import PageMeta


class MeasuresRead(BaseModel):
    ad_spend: float
    message_count: float
    order_count: float
    revenue: float
    actual_orders: float
    actual_revenue: float
    cancelled_orders: float
    actual_cancelled_orders: float
    cancelled_revenue: float
    actual_cancelled_revenue: float
    post_cancel_revenue: float
    actual_post_cancel_revenue: float
    post_shipping_revenue: float
    delivered_revenue: float
    actual_delivered_revenue: float
    kpi_target: float
    record_count: int

    model_config = ConfigDict(from_attributes=True)


class RatiosRead(BaseModel):
    closing_rate: float
    actual_closing_rate: float
    cost_per_message: float
    cost_per_order: float
    spend_to_revenue: float
    average_order_value: float
    kpi_attainment: float

    model_config = ConfigDict(from_attributes=True)


class SummaryRowRead(BaseModel):
    key: List[Any]
    labels: Dict[str, Any]
    measures: MeasuresRead
    ratios: RatiosRead
    kpi_band: str

    model_config = ConfigDict(from_attributes=True)


class TotalsRead(BaseModel):
    measures: MeasuresRead
    ratios: RatiosRead

    model_config = ConfigDict(from_attributes=True)


class ReportRecordRead(BaseModel):
    id: str
    person_name: str
    person_email: str
    team: str
    date: Optional[dt.date] = None
    shift: str
    product: str
    market: str
    ad_account: str
    ad_spend: float
    message_count: float
    order_count: float
    revenue: float
    actual_orders: float
    actual_revenue: float
    cancelled_orders: float
    cancelled_revenue: float
    post_shipping_revenue: float
    delivered_revenue: float
    kpi_target: float
    source: str

    model_config = ConfigDict(from_attributes=True)


class DailyBucketRead(BaseModel):
    day: dt.date
    rows: List[SummaryRowRead]
    totals: TotalsRead

    model_config = ConfigDict(from_attributes=True)


class RecordPage(PageMeta):
    items: List[ReportRecordRead]


class DetailViewRead(BaseModel):
    summary: List[SummaryRowRead]
    totals: TotalsRead
    page: RecordPage
    daily: List[DailyBucketRead]

    model_config = ConfigDict(from_attributes=True)


class KpiViewRead(BaseModel):
    rows: List[SummaryRowRead]
    totals: TotalsRead

    model_config = ConfigDict(from_attributes=True)


class ChartPoint(BaseModel):
    product: str
    revenue: float
    ad_spend: float
    cost_per_order: float
    closing_rate_pct: float


class MarketViewRead(BaseModel):
    groups: Dict[str, List[SummaryRowRead]]
    totals: TotalsRead
    chart: List[ChartPoint]

    model_config = ConfigDict(from_attributes=True)


class FilterOptions(BaseModel):
    products: List[str]
    markets: List[str]
    teams: List[str]
    shifts: List[str]


class FeedStatus(BaseModel):
    loaded: bool
    records: int
    raw_rows: int
    fetched_at: Optional[dt.datetime] = None
    last_error: Optional[str] = None
