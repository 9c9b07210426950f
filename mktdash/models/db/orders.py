from __future__ import annotations
"""SQLAlchemy model for order records loaded from the sales pipeline."""
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Date, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from mktdash.database import Base

class OrderRecord(Base):
    __tablename__ = "order_records"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    order_code: Mapped[str] = mapped_column(String, default="", index=True)
    customer_name: Mapped[str] = mapped_column(String, default="")
    marketing_staff: Mapped[str] = mapped_column(String, default="")
    sales_staff: Mapped[str] = mapped_column(String, default="")
    team: Mapped[str] = mapped_column(String, default="", index=True)
    shift: Mapped[str] = mapped_column(String, default="")
    product: Mapped[str] = mapped_column(String, default="")
    market: Mapped[str] = mapped_column(String, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    order_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    order_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
