"""
Submitted report endpoints.

Submission stores the report as ``pending`` and queues a spreadsheet sync.
Listing goes through the same scope -> criteria -> pagination pipeline as the
dashboards. Edits, status overrides, deletion and manual resync are reserved
for admin and leader, and a leader can only act on reports of their own team.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import time
from mktdash.api.deps import (
    get_db,
    get_current_user,
    get_dashboard_state,
    get_sheets_client,
    require_manager,
)
from mktdash.config import SYNC_RETRY_POLICY
from mktdash.jobs.sync_job import SheetSyncJob
from mktdash.models.db import SubmittedReport, UserAccount
from mktdash.models.db.enums import ReportStatus
from mktdash.models.schemas.base import ResponseBase
from mktdash.models.schemas.reports import (
    ReportCreate, ReportUpdate, ReportStatusUpdate, ReportRead, ReportPage, SyncResult
)
from mktdash.services.access_scope import can_manage_reports, scope
from mktdash.services.dashboard_service import DashboardService
from mktdash.services.records import DashboardState
from mktdash.services.sheets_client import SheetsClient
from mktdash.services.sheets_sync import ReportNotFoundError, sync_report
from mktdash.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)


def _get_report_for_manager(db: Session, report_id: int, user: UserAccount) -> SubmittedReport:
    report = db.get(SubmittedReport, report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report {report_id} not found")
    visible = scope([report], user.role, user.team, user.email, email_of=lambda r: r.email)
    if not visible:
        logger.warning(
            "Report action denied: outside actor scope",
            user_id=user.id,
            report_id=report_id,
            report_team=report.team
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Report is outside your team")
    return report


def _enqueue_sync(request: Request, report_id: int, request_id: str) -> bool:
    queue = getattr(request.app.state, "sync_queue", None)
    if queue is None or not SYNC_RETRY_POLICY["auto_sync_on_submit"]:
        return False
    try:
        queue.enqueue(SheetSyncJob(report_id=report_id, correlation_id=request_id), priority="normal")
    except (OverflowError, RuntimeError) as e:
        # The report stays pending and can be resynced manually
        logger.warning("Sync job not enqueued", report_id=report_id, error=str(e), request_id=request_id)
        return False
    return True


@router.post(
    "/",
    response_model=ReportRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a daily report",
    description="Store a report as pending and queue its spreadsheet sync"
)
async def submit_report(
    payload: ReportCreate,
    request: Request,
    current_user: UserAccount = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ReportRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    # Regular users always report as themselves
    if can_manage_reports(current_user.role):
        name = (payload.name or "").strip() or current_user.display_name or current_user.username
        email = payload.email or current_user.email
        team = (payload.team if payload.team is not None else current_user.team) or ""
    else:
        name = current_user.display_name or current_user.username
        email = current_user.email
        team = current_user.team or ""

    logger.info(
        "Report submission started",
        user_id=current_user.id,
        report_date=payload.date.isoformat(),
        product=payload.product,
        market=payload.market,
        request_id=request_id
    )

    try:
        report = SubmittedReport(
            name=name,
            email=email,
            team=team.strip(),
            date=payload.date,
            shift=payload.shift.value,
            product=payload.product,
            market=payload.market,
            ad_account=payload.ad_account.strip(),
            ad_spend=payload.ad_spend,
            message_count=payload.message_count,
            order_count=payload.order_count,
            revenue=payload.revenue,
            status=ReportStatus.PENDING,
            created_by_id=current_user.id,
        )
        db.add(report)
        db.commit()
        db.refresh(report)
    except IntegrityError as e:
        db.rollback()
        logger.error("Report submission failed: integrity error", error=str(e), request_id=request_id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Report conflicts with existing data")

    queued = _enqueue_sync(request, report.id, request_id)

    log_business_event(
        event_type="report_submitted",
        details={
            "report_id": report.id,
            "email": report.email,
            "team": report.team,
            "report_date": report.date.isoformat(),
            "sync_queued": queued,
        },
        actor_id=current_user.id,
        request_id=request_id
    )
    log_performance(
        operation="submit_report",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"report_id": report.id}
    )
    return ReportRead.model_validate(report)


@router.get(
    "/",
    response_model=ReportPage,
    summary="List submitted reports",
    description="Reports visible to the caller, filtered and paginated, newest report date first"
)
async def list_reports(
    state: DashboardState = Depends(get_dashboard_state),
    db: Session = Depends(get_db)
) -> ReportPage:
    reports = db.query(SubmittedReport).order_by(SubmittedReport.id).all()
    page = DashboardService().submitted_view(reports, state)
    return ReportPage(
        items=[ReportRead.model_validate(r) for r in page.items],
        page=page.page,
        page_size=page.page_size,
        total_items=page.total_items,
        total_pages=page.total_pages,
    )


@router.get(
    "/{report_id}",
    response_model=ReportRead,
    summary="Get a submitted report"
)
async def get_report(
    report_id: int,
    current_user: UserAccount = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ReportRead:
    report = db.get(SubmittedReport, report_id)
    if report is None or not scope([report], current_user.role, current_user.team, current_user.email, email_of=lambda r: r.email):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report {report_id} not found")
    return ReportRead.model_validate(report)


@router.patch(
    "/{report_id}",
    response_model=ReportRead,
    summary="Edit a submitted report",
    description="Change report fields (admin, leader). The mirrored row is not rewritten."
)
async def update_report(
    report_id: int,
    update: ReportUpdate,
    request: Request,
    current_user: UserAccount = Depends(require_manager),
    db: Session = Depends(get_db)
) -> ReportRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    report = _get_report_for_manager(db, report_id, current_user)

    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        if field == "shift":
            value = value.value
        setattr(report, field, value)
    db.commit()
    db.refresh(report)

    log_business_event(
        event_type="report_updated",
        details={"report_id": report.id, "fields": sorted(changes)},
        actor_id=current_user.id,
        request_id=request_id
    )
    return ReportRead.model_validate(report)


@router.patch(
    "/{report_id}/status",
    response_model=ReportRead,
    summary="Override sync status",
    description="Set pending/synced/error by hand (admin, leader)"
)
async def update_report_status(
    report_id: int,
    update: ReportStatusUpdate,
    request: Request,
    current_user: UserAccount = Depends(require_manager),
    db: Session = Depends(get_db)
) -> ReportRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    report = _get_report_for_manager(db, report_id, current_user)

    previous = report.status
    report.status = update.status
    report.sync_error = update.sync_error if update.status == ReportStatus.ERROR else None
    db.commit()
    db.refresh(report)

    log_business_event(
        event_type="report_status_overridden",
        details={"report_id": report.id, "from": previous.value, "to": report.status.value},
        actor_id=current_user.id,
        request_id=request_id
    )
    return ReportRead.model_validate(report)


@router.delete(
    "/{report_id}",
    response_model=ResponseBase,
    summary="Delete a submitted report",
    description="Remove the stored report (admin, leader). The mirrored row stays in the spreadsheet."
)
async def delete_report(
    report_id: int,
    request: Request,
    current_user: UserAccount = Depends(require_manager),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    report = _get_report_for_manager(db, report_id, current_user)

    db.delete(report)
    db.commit()

    log_business_event(
        event_type="report_deleted",
        details={"report_id": report_id},
        actor_id=current_user.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message=f"Report {report_id} deleted", data={"report_id": report_id})


@router.post(
    "/{report_id}/sync",
    response_model=SyncResult,
    summary="Resync a report",
    description="Append the report to the spreadsheet again and record the outcome (admin, leader)"
)
# Sheets calls block; a plain def runs in the threadpool
def resync_report(
    report_id: int,
    request: Request,
    current_user: UserAccount = Depends(require_manager),
    client: SheetsClient | None = Depends(get_sheets_client),
    db: Session = Depends(get_db)
) -> SyncResult:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")
    _get_report_for_manager(db, report_id, current_user)

    try:
        outcome = sync_report(db, report_id, client)
    except ReportNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report {report_id} not found")

    logger.info(
        "Manual resync finished",
        report_id=report_id,
        success=outcome.success,
        error=outcome.error_message,
        request_id=request_id
    )
    log_performance(
        operation="resync_report",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"report_id": report_id, "success": outcome.success}
    )
    return SyncResult.model_validate(outcome)
