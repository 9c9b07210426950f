"""Spreadsheet sync job payload."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class SheetSyncJob:
    report_id: int
    attempt: int = 1
    priority: str = "normal"
    correlation_id: Optional[str] = None

    def key(self) -> str:
        return f"sync:{self.report_id}"

    def next_attempt(self) -> "SheetSyncJob":
        return SheetSyncJob(
            report_id=self.report_id,
            attempt=self.attempt + 1,
            priority="low",
            correlation_id=self.correlation_id,
        )


__all__ = ["SheetSyncJob"]
