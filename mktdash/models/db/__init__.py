from .users import UserAccount
from .reports import SubmittedReport
from .roster import RosterEntry
from .orders import OrderRecord
from .enums import UserRole, ReportStatus, Shift

__all__ = [
    "UserAccount",
    "SubmittedReport",
    "RosterEntry",
    "OrderRecord",
    "UserRole",
    "ReportStatus",
    "Shift",
]
