from __future__ import annotations
"""SQLAlchemy model for HR roster entries (real personnel)."""
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mktdash.database import Base

class RosterEntry(Base):
    __tablename__ = "roster_entries"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Matched to UserAccount.email case-insensitively; not a foreign key
    email: Mapped[str] = mapped_column(String, default="", index=True)
    team: Mapped[str] = mapped_column(String, default="", index=True)
    department: Mapped[str] = mapped_column(String, default="")
    position: Mapped[str] = mapped_column(String, default="")
    branch: Mapped[str] = mapped_column(String, default="")
    shift: Mapped[str] = mapped_column(String, default="")
    employee_code: Mapped[str] = mapped_column(String, default="")
