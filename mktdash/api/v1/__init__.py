"""
API v1 router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import auth, users, reports, dashboard, roster, orders, sheets

api_router = APIRouter()

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"]
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    reports.router,
    prefix="/reports",
    tags=["reports"]
)

api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["dashboard"]
)

api_router.include_router(
    roster.router,
    prefix="/roster",
    tags=["roster"]
)

api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["orders"]
)

api_router.include_router(
    sheets.router,
    prefix="/sheets",
    tags=["sheets"]
)
