from datetime import date, datetime, timezone

import pytest

import mktdash.jobs.worker_sync as worker_mod
from mktdash.jobs.sync_job import SheetSyncJob
from mktdash.jobs.worker_sync import SheetSyncWorker
from mktdash.models.db import SubmittedReport
from mktdash.models.db.enums import ReportStatus
from mktdash.services.sheets_sync import (
    SHEET_COLUMNS,
    ReportNotFoundError,
    SheetSyncError,
    initialize_sheet,
    report_to_row,
    sync_report,
)
from mktdash.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER


def _reload(db_session, report_id):
    db_session.expire_all()
    return db_session.get(SubmittedReport, report_id)


def test_report_to_row_column_order(report_factory):
    report = report_factory(date=date(2024, 5, 1))
    row = report_to_row(report, timestamp=datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc))
    assert len(row) == len(SHEET_COLUMNS)
    assert row[0] == report.name
    assert row[2] == "01/05/2024"
    assert row[7] == 100.0
    assert row[8] == 10
    assert row[10] == 1000.0
    assert row[11] == "2024-05-01T08:00:00+00:00"


def test_sync_success_marks_synced(db_session, report_factory, sheets_client):
    report = report_factory()
    outcome = sync_report(db_session, report.id, sheets_client)
    assert outcome.success
    assert outcome.sync_target == "Sheet1!A2:L2"
    refreshed = _reload(db_session, report.id)
    assert refreshed.status == ReportStatus.SYNCED
    assert refreshed.sync_target == "Sheet1!A2:L2"
    assert refreshed.synced_at is not None
    assert refreshed.sync_attempts == 1
    assert len(sheets_client.rows) == 1


def test_sync_failure_keeps_report_and_marks_error(db_session, report_factory, sheets_client):
    report = report_factory()
    sheets_client.fail_with = RuntimeError("quota exceeded")
    outcome = sync_report(db_session, report.id, sheets_client)
    assert not outcome.success
    refreshed = _reload(db_session, report.id)
    assert refreshed is not None
    assert refreshed.status == ReportStatus.ERROR
    assert refreshed.sync_error == "quota exceeded"
    assert GLOBAL_CIRCUIT_BREAKER.snapshot()["sheets"]["failures"] == 1


def test_sync_without_client(db_session, report_factory):
    report = report_factory()
    outcome = sync_report(db_session, report.id, None)
    assert not outcome.success
    assert _reload(db_session, report.id).status == ReportStatus.ERROR


def test_sync_blocked_when_circuit_open(db_session, report_factory, sheets_client):
    report = report_factory()
    for _ in range(5):
        GLOBAL_CIRCUIT_BREAKER.record_failure("sheets")
    outcome = sync_report(db_session, report.id, sheets_client)
    assert outcome.circuit_open
    assert sheets_client.rows == []


def test_resync_appends_again(db_session, report_factory, sheets_client):
    report = report_factory()
    sync_report(db_session, report.id, sheets_client)
    outcome = sync_report(db_session, report.id, sheets_client)
    assert outcome.attempts == 2
    assert len(sheets_client.rows) == 2


def test_sync_missing_report(db_session, sheets_client):
    with pytest.raises(ReportNotFoundError):
        sync_report(db_session, 999999, sheets_client)


def test_initialize_sheet_writes_headers_once(sheets_client):
    assert initialize_sheet(sheets_client) is True
    assert sheets_client.header == [SHEET_COLUMNS]
    assert sheets_client.header_formatted == 1
    assert initialize_sheet(sheets_client) is False
    assert sheets_client.header_formatted == 1


def test_initialize_sheet_errors(sheets_client):
    with pytest.raises(SheetSyncError):
        initialize_sheet(None)
    sheets_client.fail_with = RuntimeError("forbidden")
    with pytest.raises(SheetSyncError):
        initialize_sheet(sheets_client)


def test_worker_success(db_session, report_factory, sheets_client, sync_queue):
    report = report_factory()
    worker = SheetSyncWorker(sync_queue, lambda: sheets_client)
    outcome = worker.process(SheetSyncJob(report_id=report.id))
    assert outcome.success
    assert len(sync_queue) == 0


def test_worker_schedules_retry_with_backoff(db_session, report_factory, sheets_client, sync_queue):
    report = report_factory()
    sheets_client.fail_with = RuntimeError("timeout")
    worker = SheetSyncWorker(sync_queue, lambda: sheets_client)
    outcome = worker.process(SheetSyncJob(report_id=report.id))
    assert not outcome.success
    snap = sync_queue.snapshot()
    assert snap["scheduled"] == 1
    assert sync_queue.is_queued(f"sync:{report.id}")


def test_worker_stops_after_max_attempts(db_session, report_factory, sheets_client, sync_queue, monkeypatch):
    monkeypatch.setitem(worker_mod.SYNC_RETRY_POLICY, "max_attempts", 3)
    report = report_factory()
    sheets_client.fail_with = RuntimeError("timeout")
    worker = SheetSyncWorker(sync_queue, lambda: sheets_client)
    worker.process(SheetSyncJob(report_id=report.id, attempt=3))
    assert len(sync_queue) == 0


def test_worker_drops_job_for_deleted_report(sheets_client, sync_queue):
    worker = SheetSyncWorker(sync_queue, lambda: sheets_client)
    assert worker.process(SheetSyncJob(report_id=424242)) is None
    assert len(sync_queue) == 0


def test_mirror_disabled_without_configuration(monkeypatch):
    import mktdash.services.sheets_client as sheets_client_mod
    monkeypatch.setattr(sheets_client_mod, "GOOGLE_SHEETS_ID", None)
    assert sheets_client_mod.build_sheets_client() is None
    monkeypatch.setattr(sheets_client_mod, "GOOGLE_SHEETS_ID", "sheet-id")
    monkeypatch.setattr(sheets_client_mod, "GOOGLE_SERVICE_ACCOUNT_KEY", None)
    monkeypatch.setattr(sheets_client_mod, "GOOGLE_SERVICE_ACCOUNT_FILE", None)
    assert sheets_client_mod.build_sheets_client() is None
