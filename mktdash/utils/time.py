"""Time utilities (UTC now, day boundaries, display formatting)."""
from __future__ import annotations
from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """23:59:59.999999 on ``day`` so a date-range end bound is inclusive."""
    return datetime.combine(day, time.max)


def format_day(day: date | None) -> str:
    """DD/MM/YYYY, the format the spreadsheet mirror and tables use."""
    if day is None:
        return ""
    return day.strftime("%d/%m/%Y")


__all__ = ["utc_now", "start_of_day", "end_of_day", "format_day"]
