"""
Pydantic schemas for submitted daily reports.
"""
import datetime as dt
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator

from mktdash.config import SHIFT_LABELS
from ..db.enums import ReportStatus, Shift
from .base import PageMeta


def _shift_label(v):
    if isinstance(v, str):
        return SHIFT_LABELS.get(v.strip().lower(), v.strip())
    return v


class ReportCreate(BaseModel):
    # name/email/team default to the submitting account
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    team: Optional[str] = Field(None, max_length=200)
    date: dt.date
    shift: Shift
    product: str = Field(min_length=1, max_length=200)
    market: str = Field(min_length=1, max_length=200)
    ad_account: str = Field(default="", max_length=200)
    ad_spend: Decimal = Field(default=Decimal("0"), ge=0)
    message_count: int = Field(default=0, ge=0)
    order_count: int = Field(default=0, ge=0)
    revenue: Decimal = Field(default=Decimal("0"), ge=0)

    _normalize_shift = field_validator("shift", mode="before")(_shift_label)

    @field_validator("product", "market")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "date": "2025-03-14",
            "shift": "mid-shift",
            "product": "Serum A",
            "market": "Nhật Bản",
            "ad_account": "TK-0192",
            "ad_spend": "1500000",
            "message_count": 120,
            "order_count": 18,
            "revenue": "9800000",
        }
    })


class ReportUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    team: Optional[str] = Field(None, max_length=200)
    date: Optional[dt.date] = None
    shift: Optional[Shift] = None
    product: Optional[str] = Field(None, min_length=1, max_length=200)
    market: Optional[str] = Field(None, min_length=1, max_length=200)
    ad_account: Optional[str] = Field(None, max_length=200)
    ad_spend: Optional[Decimal] = Field(None, ge=0)
    message_count: Optional[int] = Field(None, ge=0)
    order_count: Optional[int] = Field(None, ge=0)
    revenue: Optional[Decimal] = Field(None, ge=0)

    _normalize_shift = field_validator("shift", mode="before")(_shift_label)


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    sync_error: Optional[str] = None


class ReportRead(BaseModel):
    id: int
    name: str
    email: str
    team: str
    date: dt.date
    shift: str
    product: str
    market: str
    ad_account: str
    ad_spend: Decimal
    message_count: int
    order_count: int
    revenue: Decimal
    status: ReportStatus
    sync_target: Optional[str] = None
    sync_error: Optional[str] = None
    sync_attempts: int
    synced_at: Optional[dt.datetime] = None
    created_by_id: Optional[int] = None
    created_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportPage(PageMeta):
    items: List[ReportRead]


class SyncResult(BaseModel):
    report_id: int
    success: bool
    status: ReportStatus
    sync_target: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0

    model_config = ConfigDict(from_attributes=True)
