"""Mirror submitted reports into the spreadsheet.

`sync_report(session, report_id, client)`:
1. Loads the SubmittedReport (ReportNotFoundError if missing).
2. Checks the "sheets" circuit breaker.
3. Appends the formatted row (USER_ENTERED) to the configured range.
4. Success: status=synced, sync_target=<updated range>, synced_at=now.
   Failure: status=error, sync_error=<message>.
5. Commits and returns a SyncOutcome.

The stored report row is never rolled back because of a spreadsheet failure.
Re-syncing appends again; the mirror is not deduplicated.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from mktdash.config import SHEET_SETTINGS
from mktdash.models.db.enums import ReportStatus
from mktdash.models.db.reports import SubmittedReport
from mktdash.services.normalizer import to_number
from mktdash.services.sheets_client import SheetsClient
from mktdash.utils import get_logger, log_business_event
from mktdash.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER
from mktdash.utils.time import format_day, utc_now

logger = get_logger(__name__)

SHEETS_SERVICE = "sheets"

SHEET_COLUMNS: list[str] = [
    "Name",
    "Email",
    "Date",
    "Shift",
    "Product",
    "Market",
    "Ad Account",
    "Ad Spend",
    "Messages",
    "Orders",
    "Revenue",
    "Timestamp",
]


class ReportNotFoundError(LookupError):
    pass


class SheetSyncError(Exception):
    """Spreadsheet operation failed."""


@dataclass
class SyncOutcome:
    report_id: int
    success: bool
    status: ReportStatus
    sync_target: str | None = None
    error_message: str | None = None
    attempts: int = 0
    circuit_open: bool = False


def report_to_row(report: SubmittedReport, timestamp: datetime | None = None) -> list[Any]:
    """One spreadsheet row in SHEET_COLUMNS order."""
    moment = timestamp or report.created_at or utc_now()
    return [
        report.name,
        report.email,
        format_day(report.date),
        report.shift,
        report.product,
        report.market,
        report.ad_account or "",
        to_number(report.ad_spend),
        int(report.message_count or 0),
        int(report.order_count or 0),
        to_number(report.revenue),
        moment.isoformat(),
    ]


def _mark_error(report: SubmittedReport, message: str) -> None:
    report.status = ReportStatus.ERROR
    report.sync_error = message


def sync_report(session: Session, report_id: int, client: SheetsClient | None) -> SyncOutcome:
    report = session.get(SubmittedReport, report_id)
    if report is None:
        raise ReportNotFoundError(f"Report {report_id} not found")

    report.sync_attempts = (report.sync_attempts or 0) + 1
    outcome = SyncOutcome(report_id=report.id, success=False, status=ReportStatus.ERROR, attempts=report.sync_attempts)

    if client is None:
        outcome.error_message = "Spreadsheet mirror is not configured"
        _mark_error(report, outcome.error_message)
        session.commit()
        logger.warning("Report sync skipped", report_id=report.id, reason="not_configured")
        return outcome

    allowed, reason = GLOBAL_CIRCUIT_BREAKER.allow_call(SHEETS_SERVICE)
    if not allowed:
        outcome.error_message = f"Spreadsheet sync temporarily disabled ({reason})"
        outcome.circuit_open = True
        _mark_error(report, outcome.error_message)
        session.commit()
        logger.warning("Report sync blocked by circuit breaker", report_id=report.id, reason=reason)
        return outcome

    try:
        updated_range = client.append_row(str(SHEET_SETTINGS["append_range"]), report_to_row(report))
    except Exception as exc:  # any client failure is recorded on the report
        GLOBAL_CIRCUIT_BREAKER.record_failure(SHEETS_SERVICE)
        outcome.error_message = str(exc) or exc.__class__.__name__
        _mark_error(report, outcome.error_message)
        session.commit()
        logger.error(
            "Report sync failed",
            report_id=report.id,
            attempt=report.sync_attempts,
            error=outcome.error_message,
            exc_info=True,
        )
        return outcome

    GLOBAL_CIRCUIT_BREAKER.record_success(SHEETS_SERVICE)
    report.status = ReportStatus.SYNCED
    report.sync_target = updated_range
    report.sync_error = None
    report.synced_at = utc_now()
    session.commit()

    outcome.success = True
    outcome.status = ReportStatus.SYNCED
    outcome.sync_target = updated_range
    log_business_event(
        "report_synced",
        {"report_id": report.id, "sync_target": updated_range, "attempt": report.sync_attempts},
    )
    return outcome


def initialize_sheet(client: SheetsClient | None) -> bool:
    """Write and format the header row if the sheet has none. True when headers were written."""
    if client is None:
        raise SheetSyncError("Spreadsheet mirror is not configured")
    header_range = str(SHEET_SETTINGS["header_range"])
    try:
        existing = client.get_values(header_range)
        if existing:
            logger.info("Spreadsheet headers already present", range=header_range)
            return False
        client.update_values(header_range, [list(SHEET_COLUMNS)])
        client.format_header()
    except Exception as exc:
        logger.error("Spreadsheet initialisation failed", error=str(exc), exc_info=True)
        raise SheetSyncError(str(exc)) from exc
    log_business_event("sheet_initialized", {"range": header_range})
    return True


__all__ = [
    "SHEETS_SERVICE",
    "SHEET_COLUMNS",
    "ReportNotFoundError",
    "SheetSyncError",
    "SyncOutcome",
    "report_to_row",
    "sync_report",
    "initialize_sheet",
]
