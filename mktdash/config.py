"""Core application configuration & tunable reporting rules.

Everything that may be tuned per deployment (feed location, spreadsheet
target, retry/backoff thresholds, queue priorities, role keywords, market
grouping, KPI colour bands) is centralised here as module constants so tests
can monkeypatch values without touching service logic.
"""
from __future__ import annotations

import os

# ------------------------------- Database --------------------------------- #
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+pysqlite:///./mktdash.db")

# ---------------------------- Analytics feed ------------------------------ #
ANALYTICS_FEED_URL: str = os.getenv(
	"ANALYTICS_FEED_URL",
	"https://n-api-gamma.vercel.app/report/generate?tableName=B%C3%A1o%20c%C3%A1o%20MKT",
)
FEED_TIMEOUT_SECONDS: float = float(os.getenv("FEED_TIMEOUT_SECONDS", "30"))

# ---------------------------- Spreadsheet mirror -------------------------- #
GOOGLE_SHEETS_ID: str | None = os.getenv("GOOGLE_SHEETS_ID") or None
# Either the JSON content of a service account key or a path to the key file.
GOOGLE_SERVICE_ACCOUNT_KEY: str | None = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY") or None
GOOGLE_SERVICE_ACCOUNT_FILE: str | None = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE") or None
SHEETS_SCOPES: list[str] = ["https://www.googleapis.com/auth/spreadsheets"]

SHEET_SETTINGS: dict[str, str | int] = {
	"append_range": os.getenv("SHEET_APPEND_RANGE", "Sheet1!A:L"),
	"header_range": os.getenv("SHEET_HEADER_RANGE", "Sheet1!A1:L1"),
	"sheet_gid": int(os.getenv("SHEET_GID", "0")),
}

# ------------------------------ Pagination -------------------------------- #
PAGINATION_SETTINGS: dict[str, int] = {
	"default_page_size": 50,
	"max_page_size": 500,
	"daily_tables": 7,  # Number of per-day tables in the detail view
}

# --------------------------------- Backoff -------------------------------- #
BACKOFF_POLICY: dict[str, int | float] = {
	"base_seconds": 1,
	"factor": 2,          # Exponential factor
	"max_seconds": 60,
	"jitter_pct": 0.10,   # +/-10% jitter
}

# ---------------------------- Sync retry policy --------------------------- #
SYNC_RETRY_POLICY: dict[str, int | bool] = {
	"max_attempts": 5,        # Background attempts per report before giving up
	"auto_sync_on_submit": True,
}

# ----------------------------- Circuit Breaker ---------------------------- #
CIRCUIT_BREAKER: dict[str, int | float] = {
	"failure_threshold": 5,          # Consecutive failures before OPEN
	"open_cooldown_seconds": 300,    # Stay OPEN for 5 minutes
	"half_open_probe_count": 3,      # Probes allowed in HALF_OPEN
}

# --------------------------------- Queue ---------------------------------- #
QUEUE_SETTINGS: dict[str, dict[str, int] | int] = {
	"priorities": {  # Lower number = higher priority
		"high": 0,
		"normal": 5,
		"low": 10,
	},
	"warn_depth": 1000,
	"max_in_memory": 5000,
}

# ------------------------------ Accounts ---------------------------------- #
# Password handed out to accounts created by roster provisioning.
DEFAULT_PROVISION_PASSWORD: str = os.getenv("DEFAULT_PROVISION_PASSWORD", "123456")
MIN_USERNAME_LENGTH: int = 4
MIN_PASSWORD_LENGTH: int = 6

# Position keyword -> role. Checked in order; first hit wins, default "user".
ROLE_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
	("leader", ("leader", "trưởng nhóm")),
	("admin", ("admin", "quản trị")),
	("manager", ("manager", "quản lý")),
]

# --------------------------- Report semantics ----------------------------- #
# Single placeholder for absent categorical values after normalisation.
UNKNOWN_LABEL: str = "Unknown"

SHIFT_LABELS: dict[str, str] = {
	"mid-shift": "mid-shift",
	"mid": "mid-shift",
	"giữa ca": "mid-shift",
	"end-shift": "end-shift",
	"end": "end-shift",
	"hết ca": "end-shift",
}

MARKET_GROUPS: dict[str, list[str]] = {
	"asia": ["Hàn Quốc", "Nhật Bản", "VN", "Korea", "Japan", "Vietnam"],
	"non_asia": ["Úc", "US", "Canada", "Australia"],
}

# KPI attainment colour bands (lower bound inclusive), highest first.
KPI_BANDS: list[tuple[str, float]] = [
	("achieved", 1.0),
	("near", 0.8),
]

__all__ = [
	"DATABASE_URL",
	"ANALYTICS_FEED_URL",
	"FEED_TIMEOUT_SECONDS",
	"GOOGLE_SHEETS_ID",
	"GOOGLE_SERVICE_ACCOUNT_KEY",
	"GOOGLE_SERVICE_ACCOUNT_FILE",
	"SHEETS_SCOPES",
	# Rule groups
	"SHEET_SETTINGS",
	"PAGINATION_SETTINGS",
	"BACKOFF_POLICY",
	"SYNC_RETRY_POLICY",
	"CIRCUIT_BREAKER",
	"QUEUE_SETTINGS",
	"DEFAULT_PROVISION_PASSWORD",
	"MIN_USERNAME_LENGTH",
	"MIN_PASSWORD_LENGTH",
	"ROLE_KEYWORDS",
	"UNKNOWN_LABEL",
	"SHIFT_LABELS",
	"MARKET_GROUPS",
	"KPI_BANDS",
]
