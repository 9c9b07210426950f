"""
Self-registration and login.

Registration always creates a ``user`` role account; elevated roles only come
from roster provisioning or an admin. Login exchanges username + password for
the account's API key, used afterwards as a Bearer token.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import time
from mktdash.api.deps import get_db
from mktdash.models.db import UserAccount
from mktdash.models.db.enums import UserRole
from mktdash.models.schemas.users import UserRegister, LoginRequest, UserWithKey
from mktdash.services.provisioning import find_roster_entry
from mktdash.utils import get_logger, log_business_event, log_performance
from mktdash.utils.security import generate_api_key, hash_password, verify_password

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/register",
    response_model=UserWithKey,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="Create a regular user account; the response carries the API key"
)
async def register(
    payload: UserRegister,
    request: Request,
    db: Session = Depends(get_db)
) -> UserWithKey:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")

    logger.info(
        "Registration started",
        username=payload.username,
        email=payload.email,
        request_id=request_id
    )

    try:
        existing = db.query(UserAccount).filter(UserAccount.username == payload.username).first()
        if existing:
            logger.warning(
                "Registration failed: username taken",
                username=payload.username,
                request_id=request_id
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Username '{payload.username}' already exists"
            )

        account = UserAccount(
            username=payload.username,
            password_hash=hash_password(payload.password),
            email=payload.email,
            display_name=payload.name,
            team=payload.team.strip(),
            role=UserRole.USER,
            api_key=generate_api_key(),
            created_by="self-register",
        )
        # Fill profile gaps from the roster entry sharing this email
        roster = find_roster_entry(db, payload.email)
        if roster is not None:
            account.team = account.team or roster.team or ""
            account.branch = roster.branch or ""
            account.position = roster.position or ""
            account.department = roster.department or ""
            account.shift = roster.shift or ""
            account.roster_ref = str(roster.id)

        db.add(account)
        db.commit()
        db.refresh(account)

        log_business_event(
            event_type="account_registered",
            details={"username": account.username, "email": account.email, "roster_linked": roster is not None},
            actor_id=account.id,
            request_id=request_id
        )
        log_performance(
            operation="register",
            duration_ms=(time.time() - start_time) * 1000,
            additional_data={"user_id": account.id}
        )
        return UserWithKey.model_validate(account)

    except HTTPException:
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(
            "Registration failed: integrity error",
            error=str(e),
            username=payload.username,
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this username or email already exists"
        )
    except Exception as e:
        logger.error(
            "Registration failed with unexpected error",
            error=str(e),
            username=payload.username,
            request_id=request_id,
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to register account"
        )


@router.post(
    "/login",
    response_model=UserWithKey,
    summary="Log in",
    description="Verify username and password and return the account with its API key"
)
async def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
) -> UserWithKey:
    request_id = request.headers.get("X-Request-ID", "unknown")

    account = db.query(UserAccount).filter(UserAccount.username == payload.username.strip()).first()
    if account is None or not account.is_active or not verify_password(payload.password, account.password_hash):
        logger.warning(
            "Login failed",
            username=payload.username,
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not account.api_key:
        account.api_key = generate_api_key()
        db.commit()
        db.refresh(account)

    logger.info(
        "Login succeeded",
        user_id=account.id,
        username=account.username,
        user_role=account.role.value,
        request_id=request_id
    )
    return UserWithKey.model_validate(account)
