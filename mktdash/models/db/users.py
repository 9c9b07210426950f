from __future__ import annotations
"""SQLAlchemy model for user accounts (login identity + role)."""
from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Boolean, Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .reports import SubmittedReport
from sqlalchemy.sql import func
from mktdash.database import Base
from .enums import UserRole

class UserAccount(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # username is never updated after creation
    username: Mapped[str] = mapped_column(String, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String, default="")
    team: Mapped[str] = mapped_column(String, default="", index=True)
    branch: Mapped[str] = mapped_column(String, default="")
    position: Mapped[str] = mapped_column(String, default="")
    department: Mapped[str] = mapped_column(String, default="")
    shift: Mapped[str] = mapped_column(String, default="")
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.USER, index=True)
    # Roster id the account was provisioned from, if any
    roster_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    api_key: Mapped[str | None] = mapped_column(String, unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    created_by: Mapped[str] = mapped_column(String, default="self-register")

    reports: Mapped[list["SubmittedReport"]] = relationship("SubmittedReport", back_populates="created_by_user")
