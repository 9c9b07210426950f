"""Central Enum definitions for core domain states.

These replace scattered string literals so DB models, schemas and the
dashboard engine agree on the same values.
"""
from __future__ import annotations
import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    LEADER = "leader"
    MANAGER = "manager"
    USER = "user"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    SYNCED = "synced"
    ERROR = "error"


class Shift(str, enum.Enum):
    MID = "mid-shift"
    END = "end-shift"


__all__ = [
    "UserRole",
    "ReportStatus",
    "Shift",
]
