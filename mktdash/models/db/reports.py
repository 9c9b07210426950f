from __future__ import annotations
"""SQLAlchemy model for user-submitted daily marketing reports."""
import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, Date, DateTime, Enum, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .users import UserAccount
from sqlalchemy.sql import func
from mktdash.database import Base
from .enums import ReportStatus

class SubmittedReport(Base):
    __tablename__ = "reports"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    team: Mapped[str] = mapped_column(String, default="", index=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    shift: Mapped[str] = mapped_column(String, nullable=False)
    product: Mapped[str] = mapped_column(String, nullable=False)
    market: Mapped[str] = mapped_column(String, nullable=False)
    # Ad account identifier (TKQC)
    ad_account: Mapped[str] = mapped_column(String, default="")

    ad_spend: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    message_count: Mapped[int] = mapped_column(Integer, default=0)
    order_count: Mapped[int] = mapped_column(Integer, default=0)
    revenue: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)

    status: Mapped[ReportStatus] = mapped_column(Enum(ReportStatus), default=ReportStatus.PENDING, index=True)
    # Spreadsheet range the row was appended to (e.g. "Sheet1!A12:L12")
    sync_target: Mapped[str | None] = mapped_column(String, nullable=True)
    sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sync_attempts: Mapped[int] = mapped_column(Integer, default=0)
    synced_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    created_by_user: Mapped["UserAccount | None"] = relationship("UserAccount", back_populates="reports")
