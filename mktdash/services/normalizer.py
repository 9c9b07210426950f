"""Record normalisation for the two report sources.

The analytics feed returns rows keyed by Vietnamese column titles while the
operational store uses snake_case keys. Both are mapped onto `ReportRecord`
through explicit field maps. Normalisation is total: bad numbers become 0,
bad dates become None and missing labels become `UNKNOWN_LABEL`. Only rows
without a person name are dropped.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from mktdash.config import SHIFT_LABELS, UNKNOWN_LABEL
from mktdash.services.records import ReportRecord
from mktdash.utils import get_logger

logger = get_logger(__name__)

SOURCE_FEED = "feed"
SOURCE_STORE = "store"

# canonical field -> candidate source keys, first present wins
FEED_FIELD_MAP: dict[str, tuple[str, ...]] = {
    "id": ("id_NS",),
    "person_name": ("Tên",),
    "person_email": ("Email",),
    "team": ("Team",),
    "date": ("Ngày",),
    "shift": ("ca",),
    "product": ("Sản_phẩm",),
    "market": ("Thị_trường",),
    "ad_account": ("TKQC",),
    "ad_spend": ("CPQC",),
    "message_count": ("Số_Mess_Cmt",),
    "order_count": ("Số đơn",),
    "revenue": ("Doanh số",),
    "actual_orders": ("Số đơn thực tế",),
    "actual_revenue": ("Doanh thu chốt thực tế",),
    "cancelled_orders": ("Số đơn hoàn hủy",),
    "actual_cancelled_orders": ("Số đơn hoàn hủy thực tế",),
    "actual_cancelled_revenue": ("Doanh số hoàn hủy thực tế",),
    "post_cancel_revenue": ("DS sau hoàn hủy",),
    "actual_post_cancel_revenue": ("Doanh số sau hoàn hủy thực tế",),
    "post_shipping_revenue": ("Doanh số sau ship",),
    "delivered_revenue": ("Doanh số TC",),
    "actual_delivered_revenue": ("Doanh số đi thực tế",),
    "kpi_target": ("KPIs",),
}

STORE_FIELD_MAP: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "person_name": ("name",),
    "person_email": ("email",),
    "team": ("team",),
    "date": ("date",),
    "shift": ("shift",),
    "product": ("product",),
    "market": ("market",),
    "ad_account": ("ad_account", "tkqc"),
    "ad_spend": ("ad_spend", "cpqc"),
    "message_count": ("message_count", "mess_cmt"),
    "order_count": ("order_count", "orders"),
    "revenue": ("revenue",),
}

_LABEL_FIELDS = ("team", "product", "market")
_TEXT_FIELDS = ("id", "person_name", "person_email", "ad_account")
_NUMERIC_FIELDS = (
    "ad_spend",
    "message_count",
    "order_count",
    "revenue",
    "actual_orders",
    "actual_revenue",
    "cancelled_orders",
    "actual_cancelled_orders",
    "actual_cancelled_revenue",
    "post_cancel_revenue",
    "actual_post_cancel_revenue",
    "post_shipping_revenue",
    "delivered_revenue",
    "actual_delivered_revenue",
    "kpi_target",
)

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y")


def to_number(value: Any) -> float:
    """Coerce anything to a finite float; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_date(value: Any) -> date | None:
    """Parse the date shapes the sources emit. Returns None when nothing fits."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        # epoch milliseconds
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def normalize_shift(value: Any) -> str:
    text = _clean(value)
    if not text:
        return UNKNOWN_LABEL
    return SHIFT_LABELS.get(text.lower(), text)


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and not math.isfinite(value):
        return ""
    return str(value).strip()


def _pick(row: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


def _normalize(row: Mapping[str, Any], field_map: dict[str, tuple[str, ...]], source: str) -> ReportRecord | None:
    values: dict[str, Any] = {}
    for canonical, keys in field_map.items():
        values[canonical] = _pick(row, keys)

    name = _clean(values.get("person_name"))
    if not name:
        return None

    fields: dict[str, Any] = {"person_name": name, "source": source}
    for key in _TEXT_FIELDS:
        if key != "person_name":
            fields[key] = _clean(values.get(key))
    for key in _LABEL_FIELDS:
        fields[key] = _clean(values.get(key)) or UNKNOWN_LABEL
    fields["shift"] = normalize_shift(values.get("shift"))
    fields["date"] = parse_date(values.get("date"))
    for key in _NUMERIC_FIELDS:
        fields[key] = to_number(values.get(key))
    # Cancelled revenue is not a feed column; it is what the cancellations took off
    fields["cancelled_revenue"] = (
        fields["revenue"] - fields["post_cancel_revenue"] if source == SOURCE_FEED else 0.0
    )
    return ReportRecord(**fields)


def normalize_feed_row(row: Mapping[str, Any]) -> ReportRecord | None:
    return _normalize(row, FEED_FIELD_MAP, SOURCE_FEED)


def normalize_store_row(row: Mapping[str, Any]) -> ReportRecord | None:
    return _normalize(row, STORE_FIELD_MAP, SOURCE_STORE)


def normalize_rows(rows: Iterable[Any] | None, source: str = SOURCE_FEED) -> list[ReportRecord]:
    """Normalise a batch, skipping non-mapping rows and rows without a name."""
    if source == SOURCE_FEED:
        normalize = normalize_feed_row
    elif source == SOURCE_STORE:
        normalize = normalize_store_row
    else:
        raise ValueError(f"Unknown report source: {source}")

    records: list[ReportRecord] = []
    skipped = 0
    for row in rows or ():
        if not isinstance(row, Mapping):
            skipped += 1
            continue
        record = normalize(row)
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug("Skipped unusable report rows", source=source, skipped=skipped, kept=len(records))
    return records


__all__ = [
    "SOURCE_FEED",
    "SOURCE_STORE",
    "FEED_FIELD_MAP",
    "STORE_FIELD_MAP",
    "to_number",
    "parse_date",
    "normalize_shift",
    "normalize_feed_row",
    "normalize_store_row",
    "normalize_rows",
]
