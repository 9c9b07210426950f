"""Analytics feed client and the normalised snapshot cache.

The feed is an HTTP endpoint returning the marketing report table as JSON,
either ``{"data": [...]}`` or a bare list. A failed refresh never clears the
previous snapshot, so dashboards keep serving the last good data and the
stored-report views are unaffected.
"""
from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import aiohttp

from mktdash.config import ANALYTICS_FEED_URL, FEED_TIMEOUT_SECONDS
from mktdash.services.normalizer import SOURCE_FEED, normalize_rows
from mktdash.services.records import ReportRecord
from mktdash.utils import get_logger, log_performance
from mktdash.utils.time import utc_now

logger = get_logger(__name__)


class FeedUnavailableError(Exception):
    """The analytics feed could not be read; callers may retry later."""


class AnalyticsFeedClient:
    def __init__(self, url: str | None = None, timeout_seconds: float | None = None):
        self.url = url or ANALYTICS_FEED_URL
        self.timeout_seconds = float(timeout_seconds or FEED_TIMEOUT_SECONDS)

    async def fetch_rows(self) -> list[dict[str, Any]]:
        """GET the feed and return its raw rows."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.url, headers={"Accept": "application/json"}) as response:
                    if response.status != 200:
                        logger.error(
                            "Analytics feed request failed",
                            status_code=response.status,
                            url=self.url,
                        )
                        raise FeedUnavailableError(f"Analytics feed returned status {response.status}")
                    payload = await response.json(content_type=None)
        except asyncio.TimeoutError as exc:
            logger.error("Analytics feed request timed out", url=self.url, timeout_seconds=self.timeout_seconds)
            raise FeedUnavailableError("Analytics feed request timed out") from exc
        except aiohttp.ClientError as exc:
            logger.error("Analytics feed client error", url=self.url, error=str(exc))
            raise FeedUnavailableError(f"Analytics feed client error: {exc}") from exc
        except ValueError as exc:
            logger.error("Analytics feed returned invalid JSON", url=self.url, error=str(exc))
            raise FeedUnavailableError("Analytics feed returned invalid JSON") from exc

        return extract_rows(payload)


def extract_rows(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get("data")
    if not isinstance(payload, list):
        raise FeedUnavailableError("Analytics feed returned an unexpected payload shape")
    return payload


@dataclass
class FeedSnapshot:
    records: list[ReportRecord] = field(default_factory=list)
    fetched_at: datetime | None = None
    raw_count: int = 0


class FeedCache:
    """Holds the last successfully normalised feed snapshot."""

    def __init__(self, client: AnalyticsFeedClient | None = None):
        self.client = client or AnalyticsFeedClient()
        self._snapshot = FeedSnapshot()
        self._lock = threading.Lock()
        self.last_error: str | None = None

    @property
    def snapshot(self) -> FeedSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def loaded(self) -> bool:
        return self.snapshot.fetched_at is not None

    def load(self, rows: list[Any]) -> FeedSnapshot:
        """Normalise raw rows and swap them in as the current snapshot."""
        snapshot = FeedSnapshot(
            records=normalize_rows(rows, SOURCE_FEED),
            fetched_at=utc_now(),
            raw_count=len(rows),
        )
        with self._lock:
            self._snapshot = snapshot
            self.last_error = None
        return snapshot

    async def refresh(self) -> FeedSnapshot:
        start_time = time.time()
        try:
            rows = await self.client.fetch_rows()
        except FeedUnavailableError as exc:
            self.last_error = str(exc)
            raise
        snapshot = self.load(rows)
        logger.info(
            "Analytics feed refreshed",
            raw_rows=snapshot.raw_count,
            records=len(snapshot.records),
        )
        log_performance("feed_refresh", (time.time() - start_time) * 1000, {"records": len(snapshot.records)})
        return snapshot

    async def get_records(self, force_refresh: bool = False) -> list[ReportRecord]:
        """Current records, fetching first when nothing is loaded yet or a refresh is forced."""
        if force_refresh or not self.loaded:
            await self.refresh()
        return self.snapshot.records


__all__ = [
    "FeedUnavailableError",
    "AnalyticsFeedClient",
    "extract_rows",
    "FeedSnapshot",
    "FeedCache",
]
