"""
Dependencies for authentication, database sessions, role guards and filter parameters.
"""
from datetime import date
from typing import Generator, List, Optional
from fastapi import Depends, HTTPException, status, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from mktdash.config import PAGINATION_SETTINGS
from mktdash.database import SessionLocal
from mktdash.models.db import UserAccount
from mktdash.models.db.enums import UserRole
from mktdash.services.analytics_feed import FeedCache
from mktdash.services.records import DashboardState, FilterCriteria
from mktdash.services.sheets_client import SheetsClient
from mktdash.utils import get_logger

logger = get_logger(__name__)
security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Rolls back on any error raised while the request uses the session.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()


def _key_prefix(api_key: str) -> str:
    return api_key[:6] + "..." if len(api_key) > 6 else api_key


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> UserAccount:
    """
    Resolve the account owning the Bearer API key.

    Raises:
        HTTPException: 401 if the key is unknown or the account is inactive
    """
    api_key = credentials.credentials

    user = db.query(UserAccount).filter(
        UserAccount.api_key == api_key,
        UserAccount.is_active == True  # noqa: E712
    ).first()

    if not user:
        logger.warning(
            "Authentication failed: invalid or inactive API key",
            api_key_prefix=_key_prefix(api_key)
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or inactive API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug(
        "User authenticated",
        user_id=user.id,
        username=user.username,
        user_role=user.role.value
    )
    return user


def require_role(allowed_roles: List[UserRole]):
    """
    Factory for a dependency that only lets the given roles through (403 otherwise).
    """
    def role_dependency(
        current_user: UserAccount = Depends(get_current_user)
    ) -> UserAccount:
        if current_user.role not in allowed_roles:
            logger.warning(
                "Access denied: insufficient role",
                user_id=current_user.id,
                user_role=current_user.role.value,
                required_roles=[role.value for role in allowed_roles]
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user

    return role_dependency


def require_admin(
    current_user: UserAccount = Depends(get_current_user)
) -> UserAccount:
    if current_user.role != UserRole.ADMIN:
        logger.warning(
            "Access denied: admin required",
            user_id=current_user.id,
            user_role=current_user.role.value
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


# admin + leader: report management, roster listing, orders
require_manager = require_role([UserRole.ADMIN, UserRole.LEADER])


def get_pagination_params(
    page: int = Query(1, description="1-based page number; out-of-range pages are clamped"),
    page_size: int = Query(PAGINATION_SETTINGS["default_page_size"], description="Rows per page"),
) -> dict:
    """
    Validate and return pagination parameters.

    Raises:
        HTTPException: 400 if page_size is outside 1..max_page_size
    """
    max_size = PAGINATION_SETTINGS["max_page_size"]
    if page_size < 1 or page_size > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"page_size must be between 1 and {max_size}"
        )
    return {"page": page, "page_size": page_size}


def get_filter_criteria(
    start_date: Optional[date] = Query(None, description="Inclusive start date"),
    end_date: Optional[date] = Query(None, description="Inclusive end date"),
    products: Optional[List[str]] = Query(None),
    shifts: Optional[List[str]] = Query(None),
    markets: Optional[List[str]] = Query(None),
    teams: Optional[List[str]] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
) -> FilterCriteria:
    return FilterCriteria.build(
        start=start_date,
        end=end_date,
        products=products,
        shifts=shifts,
        markets=markets,
        teams=teams,
        search=search,
    )


def get_dashboard_state(
    current_user: UserAccount = Depends(get_current_user),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    pagination: dict = Depends(get_pagination_params),
) -> DashboardState:
    """Explicit per-request view state built from the actor and the query string."""
    return DashboardState(
        role=current_user.role.value,
        actor_team=current_user.team or "",
        actor_email=current_user.email or "",
        criteria=criteria,
        page=pagination["page"],
        page_size=pagination["page_size"],
    )


def get_feed_cache(request: Request) -> FeedCache:
    return request.app.state.feed_cache


def get_sheets_client(request: Request) -> Optional[SheetsClient]:
    return getattr(request.app.state, "sheets_client", None)
