"""
Spreadsheet mirror administration.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from mktdash.api.deps import get_sheets_client, require_admin
from mktdash.jobs.worker_sync import LAST_EXCEPTIONS
from mktdash.models.db import UserAccount
from mktdash.models.schemas.base import ResponseBase
from mktdash.services.sheets_client import SheetsClient
from mktdash.services.sheets_sync import SHEET_COLUMNS, SheetSyncError, initialize_sheet
from mktdash.utils import get_logger
from mktdash.utils.circuit_breaker import GLOBAL_CIRCUIT_BREAKER

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/initialize",
    response_model=ResponseBase,
    summary="Initialise spreadsheet headers",
    description="Write and format the header row when the sheet has none (admin only)"
)
# Sheets calls block; a plain def runs in the threadpool
def initialize(
    request: Request,
    admin: UserAccount = Depends(require_admin),
    client: SheetsClient | None = Depends(get_sheets_client)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    try:
        written = initialize_sheet(client)
    except SheetSyncError as e:
        logger.error("Sheet initialisation failed", error=str(e), admin_id=admin.id, request_id=request_id)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Spreadsheet initialisation failed: {e}")

    message = "Sheet initialized with headers" if written else "Headers already exist"
    return ResponseBase(success=True, message=message, data={"written": written, "columns": SHEET_COLUMNS})


@router.get(
    "/status",
    response_model=ResponseBase,
    summary="Spreadsheet mirror status (admin only)"
)
async def sheets_status(
    request: Request,
    admin: UserAccount = Depends(require_admin),
    client: SheetsClient | None = Depends(get_sheets_client)
) -> ResponseBase:
    queue = getattr(request.app.state, "sync_queue", None)
    return ResponseBase(
        success=True,
        data={
            "configured": client is not None,
            "circuit_breaker": GLOBAL_CIRCUIT_BREAKER.snapshot(),
            "queue": queue.snapshot() if queue is not None else None,
            "recent_failures": LAST_EXCEPTIONS[-5:],
        },
    )
