from .base import ResponseBase, PageMeta
from .users import (
    UserRegister, LoginRequest, UserRead, UserWithKey,
    ProfileRead, ProfileUpdate, AccountUpdate, ProvisionSummary,
)
from .reports import (
    ReportCreate, ReportUpdate, ReportStatusUpdate, ReportRead, ReportPage, SyncResult,
)
from .roster import RosterCreate, RosterUpdate, RosterRead, RosterOptions
from .dashboard import (
    MeasuresRead,
    RatiosRead,
    SummaryRowRead,
    TotalsRead,
    ReportRecordRead,
    DailyBucketRead,
    RecordPage,
    DetailViewRead,
    KpiViewRead,
    ChartPoint,
    MarketViewRead,
    FilterOptions,
    FeedStatus,
)
from .orders import OrderRowRead, OrderPage

__all__ = [
    # Base
    "ResponseBase",
    "PageMeta",

    # Users
    "UserRegister",
    "LoginRequest",
    "UserRead",
    "UserWithKey",
    "ProfileRead",
    "ProfileUpdate",
    "AccountUpdate",
    "ProvisionSummary",

    # Reports
    "ReportCreate",
    "ReportUpdate",
    "ReportStatusUpdate",
    "ReportRead",
    "ReportPage",
    "SyncResult",

    # Roster
    "RosterCreate",
    "RosterUpdate",
    "RosterRead",
    "RosterOptions",

    # Dashboard
    "MeasuresRead",
    "RatiosRead",
    "SummaryRowRead",
    "TotalsRead",
    "ReportRecordRead",
    "DailyBucketRead",
    "RecordPage",
    "DetailViewRead",
    "KpiViewRead",
    "ChartPoint",
    "MarketViewRead",
    "FilterOptions",
    "FeedStatus",

    # Orders
    "OrderRowRead",
    "OrderPage",
]
