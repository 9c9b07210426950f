"""
Dashboard endpoints backed by the analytics feed.

The feed is normalised once per refresh and cached on the app; each request
only runs scope -> criteria -> aggregate over the cached records. When the
feed cannot be read and nothing is cached yet the views answer 503 with a
Retry-After hint.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
import time
from mktdash.api.deps import get_current_user, get_dashboard_state, get_feed_cache
from mktdash.models.db import UserAccount
from mktdash.models.schemas.base import ResponseBase
from mktdash.models.schemas.dashboard import (
    DetailViewRead, KpiViewRead, MarketViewRead, FilterOptions, FeedStatus
)
from mktdash.services.access_scope import scope
from mktdash.services.analytics_feed import FeedCache, FeedUnavailableError
from mktdash.services.criteria_filter import available_options
from mktdash.services.dashboard_service import DashboardService
from mktdash.services.records import DashboardState, ReportRecord
from mktdash.utils import get_logger, log_performance

router = APIRouter()
logger = get_logger(__name__)

RETRY_AFTER_SECONDS = 30


async def _records(cache: FeedCache, request_id: str) -> list[ReportRecord]:
    try:
        return await cache.get_records()
    except FeedUnavailableError as e:
        logger.warning("Dashboard feed unavailable", error=str(e), request_id=request_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Analytics feed unavailable: {e}. Retry shortly.",
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )


def _feed_status(cache: FeedCache) -> FeedStatus:
    snapshot = cache.snapshot
    return FeedStatus(
        loaded=cache.loaded,
        records=len(snapshot.records),
        raw_rows=snapshot.raw_count,
        fetched_at=snapshot.fetched_at,
        last_error=cache.last_error,
    )


@router.get(
    "/options",
    response_model=FilterOptions,
    summary="Filter dropdown options",
    description="Distinct products, markets and teams among the records visible to the caller"
)
async def get_options(
    request: Request,
    current_user: UserAccount = Depends(get_current_user),
    cache: FeedCache = Depends(get_feed_cache)
) -> FilterOptions:
    request_id = request.headers.get("X-Request-ID", "unknown")
    records = await _records(cache, request_id)
    visible = scope(records, current_user.role, current_user.team, current_user.email)
    return FilterOptions(**available_options(visible))


@router.get(
    "/detail",
    response_model=DetailViewRead,
    summary="Detailed report view",
    description="Per team/person summary, totals, paginated rows and the latest daily tables"
)
async def get_detail_view(
    request: Request,
    state: DashboardState = Depends(get_dashboard_state),
    cache: FeedCache = Depends(get_feed_cache)
) -> DetailViewRead:
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", "unknown")
    records = await _records(cache, request_id)

    view = DashboardService().detail_view(records, state)

    log_performance(
        operation="dashboard_detail",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"records": len(records), "visible": view.page.total_items}
    )
    return DetailViewRead.model_validate(view, from_attributes=True)


@router.get(
    "/kpi",
    response_model=KpiViewRead,
    summary="KPI attainment view",
    description="Per person KPI attainment (post-shipping revenue over target) with colour band"
)
async def get_kpi_view(
    request: Request,
    state: DashboardState = Depends(get_dashboard_state),
    cache: FeedCache = Depends(get_feed_cache)
) -> KpiViewRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    records = await _records(cache, request_id)
    view = DashboardService().kpi_view(records, state)
    return KpiViewRead.model_validate(view, from_attributes=True)


@router.get(
    "/markets",
    response_model=MarketViewRead,
    summary="Market performance view",
    description="Product x market summaries split into Asia / non-Asia plus the product chart series"
)
async def get_market_view(
    request: Request,
    state: DashboardState = Depends(get_dashboard_state),
    cache: FeedCache = Depends(get_feed_cache)
) -> MarketViewRead:
    request_id = request.headers.get("X-Request-ID", "unknown")
    records = await _records(cache, request_id)
    view = DashboardService().market_view(records, state)
    return MarketViewRead.model_validate(view, from_attributes=True)


@router.post(
    "/refresh",
    response_model=ResponseBase,
    summary="Refresh the analytics feed",
    description="Refetch and renormalise the feed; the previous snapshot is kept if this fails"
)
async def refresh_feed(
    request: Request,
    current_user: UserAccount = Depends(get_current_user),
    cache: FeedCache = Depends(get_feed_cache)
) -> ResponseBase:
    request_id = request.headers.get("X-Request-ID", "unknown")
    try:
        await cache.refresh()
    except FeedUnavailableError as e:
        logger.warning("Feed refresh failed", error=str(e), user_id=current_user.id, request_id=request_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Analytics feed unavailable: {e}. Previous data is still served.",
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )
    return ResponseBase(
        success=True,
        message="Analytics feed refreshed",
        data=_feed_status(cache).model_dump(mode="json"),
    )


@router.get(
    "/status",
    response_model=FeedStatus,
    summary="Feed snapshot status"
)
async def get_feed_status(
    current_user: UserAccount = Depends(get_current_user),
    cache: FeedCache = Depends(get_feed_cache)
) -> FeedStatus:
    return _feed_status(cache)
