"""
Account endpoints: own profile, account listing and roster provisioning.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import time
from mktdash.api.deps import get_db, get_current_user, require_admin
from mktdash.models.db import UserAccount
from mktdash.models.db.enums import UserRole
from mktdash.models.schemas.users import (
    UserRead, ProfileRead, ProfileUpdate, AccountUpdate, ProvisionSummary
)
from mktdash.services.provisioning import find_roster_entry, provision_accounts
from mktdash.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)


def _profile(db: Session, account: UserAccount) -> ProfileRead:
    profile = ProfileRead.model_validate(account)
    roster = find_roster_entry(db, account.email)
    if roster is not None:
        # Roster data is authoritative for HR fields; account fields fill the gaps
        profile.roster_id = roster.id
        profile.employee_code = roster.employee_code or None
        profile.team = roster.team or profile.team
        profile.branch = roster.branch or profile.branch
        profile.position = roster.position or profile.position
        profile.department = roster.department or profile.department
        profile.shift = roster.shift or profile.shift
    return profile


@router.get(
    "/me",
    response_model=ProfileRead,
    summary="Current profile",
    description="The authenticated account, enriched with its roster entry when one shares the email"
)
async def read_me(
    current_user: UserAccount = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ProfileRead:
    return _profile(db, current_user)


@router.patch(
    "/me",
    response_model=ProfileRead,
    summary="Update own profile",
    description="Only the display name can be changed; email and team are set by an admin"
)
async def update_me(
    update: ProfileUpdate,
    request: Request,
    current_user: UserAccount = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> ProfileRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    changes = update.model_dump(exclude_unset=True, exclude_none=True)

    if not changes:
        return _profile(db, current_user)

    current_user.display_name = changes["display_name"].strip()
    db.commit()
    db.refresh(current_user)

    log_business_event(
        event_type="profile_updated",
        details={"fields": sorted(changes)},
        actor_id=current_user.id,
        request_id=request_id
    )
    return _profile(db, current_user)


@router.get(
    "/",
    response_model=List[UserRead],
    summary="List accounts",
    description="All accounts, optionally filtered by role or team (admin only)"
)
async def list_users(
    role: Optional[UserRole] = Query(None),
    team: Optional[str] = Query(None),
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db)
) -> List[UserRead]:
    query = db.query(UserAccount)
    if role is not None:
        query = query.filter(UserAccount.role == role)
    if team:
        query = query.filter(UserAccount.team == team)
    return [UserRead.model_validate(u) for u in query.order_by(UserAccount.id).all()]


@router.patch(
    "/{user_id}",
    response_model=UserRead,
    summary="Update an account",
    description="Change name, email, team, role or active flag of an account (admin only)"
)
async def update_user(
    user_id: int,
    update: AccountUpdate,
    request: Request,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db)
) -> UserRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    account = db.get(UserAccount, user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")

    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        for field, value in changes.items():
            if field in ("display_name", "email", "team"):
                value = value.strip()
            setattr(account, field, value)
        db.commit()
        db.refresh(account)
    except IntegrityError as e:
        db.rollback()
        logger.warning(
            "Account update failed: integrity error",
            user_id=user_id,
            error=str(e),
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email is already used by another account"
        )

    log_business_event(
        event_type="account_updated",
        details={"user_id": account.id, "fields": sorted(changes)},
        actor_id=admin.id,
        request_id=request_id
    )
    return UserRead.model_validate(account)


@router.post(
    "/provision",
    response_model=ProvisionSummary,
    summary="Provision accounts from roster",
    description="Create accounts for roster entries with an email and no existing account (admin only)"
)
async def provision_from_roster(
    request: Request,
    admin: UserAccount = Depends(require_admin),
    db: Session = Depends(get_db)
) -> ProvisionSummary:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info("Roster provisioning started", admin_id=admin.id, request_id=request_id)
    try:
        result = provision_accounts(db, actor_id=admin.id)
    except IntegrityError as e:
        db.rollback()
        logger.error(
            "Roster provisioning failed: integrity error",
            error=str(e),
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Provisioning conflicted with existing accounts; no accounts were created"
        )

    log_performance(
        operation="provision_accounts",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"created": result.created, "skipped": result.skipped}
    )
    return ProvisionSummary.model_validate(result)
