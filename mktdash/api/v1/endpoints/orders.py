"""
Order view (admin and leader only).
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from mktdash.api.deps import get_db, get_dashboard_state, require_manager
from mktdash.models.db import OrderRecord, UserAccount
from mktdash.models.schemas.orders import OrderPage, OrderRowRead
from mktdash.services.dashboard_service import DashboardService
from mktdash.services.records import DashboardState

router = APIRouter()


@router.get(
    "/",
    response_model=OrderPage,
    summary="List orders",
    description="Orders newest first, filtered by search text, date range, shift and team"
)
async def list_orders(
    current_user: UserAccount = Depends(require_manager),
    state: DashboardState = Depends(get_dashboard_state),
    db: Session = Depends(get_db)
) -> OrderPage:
    page = DashboardService().orders_view(db.query(OrderRecord).all(), state)
    return OrderPage(
        items=[OrderRowRead.model_validate(row) for row in page.items],
        page=page.page,
        page_size=page.page_size,
        total_items=page.total_items,
        total_pages=page.total_pages,
    )
