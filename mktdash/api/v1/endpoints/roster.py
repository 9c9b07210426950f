"""
HR roster endpoints.

Admin sees and edits the whole roster; a leader sees their own team only.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from mktdash.api.deps import get_db, get_current_user, require_admin, require_manager
from mktdash.models.db import RosterEntry, UserAccount
from mktdash.models.schemas.base import ResponseBase
from mktdash.models.schemas.roster import RosterCreate, RosterUpdate, RosterRead, RosterOptions
from mktdash.services.access_scope import scope
from mktdash.services.criteria_filter import matches_search
from mktdash.utils import get_logger, log_business_event

router = APIRouter()
logger = get_logger(__name__)

ROSTER_SEARCH_FIELDS = ("name", "email", "employee_code")


def _get_entry(db: Session, entry_id: int) -> RosterEntry:
    entry = db.get(RosterEntry, entry_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Roster entry {entry_id} not found")
    return entry


@router.get(
    "/",
    response_model=List[RosterRead],
    summary="List roster entries",
    description="Admin: everyone. Leader: own team only."
)
async def list_roster(
    team: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    current_user: UserAccount = Depends(require_manager),
    db: Session = Depends(get_db)
) -> List[RosterRead]:
    entries = db.query(RosterEntry).order_by(RosterEntry.name, RosterEntry.id).all()
    visible = scope(entries, current_user.role, current_user.team, current_user.email, email_of=lambda e: e.email)
    if team:
        visible = [e for e in visible if e.team == team]
    if search:
        visible = [e for e in visible if matches_search(e, search, ROSTER_SEARCH_FIELDS)]
    return [RosterRead.model_validate(e) for e in visible]


@router.get(
    "/options",
    response_model=RosterOptions,
    summary="Roster dropdown options"
)
async def roster_options(
    current_user: UserAccount = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> RosterOptions:
    entries = db.query(RosterEntry).all()
    return RosterOptions(
        teams=sorted({e.team for e in entries if e.team}),
        departments=sorted({e.department for e in entries if e.department}),
        positions=sorted({e.position for e in entries if e.position}),
    )


@router.post(
    "/",
    response_model=RosterRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a roster entry (admin only)"
)
async def create_roster_entry(
    payload: RosterCreate,
    request: Request,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db)
) -> RosterRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    data = {k: v.strip() for k, v in payload.model_dump().items()}
    entry = RosterEntry(**data)
    db.add(entry)
    db.commit()
    db.refresh(entry)

    log_business_event(
        event_type="roster_entry_created",
        details={"roster_id": entry.id, "team": entry.team},
        actor_id=admin.id,
        request_id=request_id
    )
    return RosterRead.model_validate(entry)


@router.patch(
    "/{entry_id}",
    response_model=RosterRead,
    summary="Edit a roster entry (admin only)"
)
async def update_roster_entry(
    entry_id: int,
    update: RosterUpdate,
    request: Request,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db)
) -> RosterRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    entry = _get_entry(db, entry_id)
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(entry, field, value.strip())
    db.commit()
    db.refresh(entry)

    log_business_event(
        event_type="roster_entry_updated",
        details={"roster_id": entry.id, "fields": sorted(changes)},
        actor_id=admin.id,
        request_id=request_id
    )
    return RosterRead.model_validate(entry)


@router.delete(
    "/{entry_id}",
    response_model=ResponseBase,
    summary="Remove a roster entry (admin only)",
    description="Accounts provisioned from the entry are left untouched"
)
async def delete_roster_entry(
    entry_id: int,
    request: Request,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    entry = _get_entry(db, entry_id)
    db.delete(entry)
    db.commit()

    log_business_event(
        event_type="roster_entry_deleted",
        details={"roster_id": entry_id},
        actor_id=admin.id,
        request_id=request_id
    )
    return ResponseBase(success=True, message=f"Roster entry {entry_id} deleted", data={"roster_id": entry_id})
