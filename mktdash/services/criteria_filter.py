"""User-selected filtering over scoped rows.

Dimensions combine with AND, values within a multi-select combine with OR,
and an empty selection does not restrict. The date range is inclusive on both
ends. Rows whose date could not be parsed are never excluded by the range.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any, TypeVar

from mktdash.models.db.enums import Shift
from mktdash.services.records import FilterCriteria
from mktdash.utils.time import end_of_day, start_of_day

T = TypeVar("T")

DETAIL_SEARCH_FIELDS: tuple[str, ...] = ("person_name", "person_email")
SUBMITTED_SEARCH_FIELDS: tuple[str, ...] = ("person_name", "person_email", "ad_account")
ORDER_SEARCH_FIELDS: tuple[str, ...] = (
    "customer_name",
    "marketing_staff",
    "sales_staff",
    "order_code",
    "team",
)


def get_attr(item: Any, name: str) -> Any:
    """Field access that works for dataclasses, ORM rows and plain dicts."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return start_of_day(value)
    return None


def in_date_range(value: Any, start: date | None, end: date | None) -> bool:
    moment = _as_datetime(value)
    if moment is None:
        return True
    if start is not None and moment < start_of_day(start):
        return False
    if end is not None and moment > end_of_day(end):
        return False
    return True


def matches_search(item: Any, term: str, fields: Sequence[str]) -> bool:
    needle = term.strip().lower()
    if not needle:
        return True
    for name in fields:
        value = get_attr(item, name)
        if value and needle in str(value).lower():
            return True
    return False


def matches(item: Any, criteria: FilterCriteria, search_fields: Sequence[str] = DETAIL_SEARCH_FIELDS) -> bool:
    if not in_date_range(get_attr(item, "date"), criteria.start, criteria.end):
        return False
    if criteria.products and get_attr(item, "product") not in criteria.products:
        return False
    if criteria.shifts and get_attr(item, "shift") not in criteria.shifts:
        return False
    if criteria.markets and get_attr(item, "market") not in criteria.markets:
        return False
    if criteria.teams and get_attr(item, "team") not in criteria.teams:
        return False
    return matches_search(item, criteria.search, search_fields)


def apply_criteria(
    records: Iterable[T],
    criteria: FilterCriteria | None,
    search_fields: Sequence[str] = DETAIL_SEARCH_FIELDS,
) -> list[T]:
    """Keep the records matching every criterion, in input order."""
    if criteria is None:
        return list(records)
    return [r for r in records if matches(r, criteria, search_fields)]


def available_options(records: Iterable[Any]) -> dict[str, list[str]]:
    """Distinct values for the filter dropdowns."""
    products: set[str] = set()
    markets: set[str] = set()
    teams: set[str] = set()
    for record in records:
        for bucket, name in ((products, "product"), (markets, "market"), (teams, "team")):
            value = get_attr(record, name)
            if value:
                bucket.add(str(value))
    return {
        "products": sorted(products),
        "markets": sorted(markets),
        "teams": sorted(teams),
        "shifts": [s.value for s in Shift],
    }


__all__ = [
    "DETAIL_SEARCH_FIELDS",
    "SUBMITTED_SEARCH_FIELDS",
    "ORDER_SEARCH_FIELDS",
    "get_attr",
    "in_date_range",
    "matches_search",
    "matches",
    "apply_criteria",
    "available_options",
]
