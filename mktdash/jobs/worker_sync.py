"""Background worker mirroring submitted reports into the spreadsheet.

Failed syncs are re-queued with exponential backoff until
SYNC_RETRY_POLICY["max_attempts"] is reached; the report then stays in
``error`` until someone triggers a manual resync.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional, Protocol

from sqlalchemy.orm import Session

from mktdash.config import SYNC_RETRY_POLICY
from mktdash.database import SessionLocal
from mktdash.jobs.queue import PriorityDelayQueue
from mktdash.jobs.sync_job import SheetSyncJob
from mktdash.services.sheets_client import SheetsClient
from mktdash.services.sheets_sync import ReportNotFoundError, SyncOutcome, sync_report
from mktdash.utils import get_logger
from mktdash.utils.backoff import compute_backoff_seconds

logger = get_logger(__name__)

# Recent unexpected job failures, newest last
LAST_EXCEPTIONS: list[dict] = []
_MAX_KEPT_EXCEPTIONS = 50


class QueueProtocol(Protocol):
    def enqueue(self, job: Any, *, priority: str = "normal", delay_seconds: float = 0.0) -> Any: ...
    def dequeue(self, *, block: bool = True, timeout: Optional[float] = None) -> Any: ...
    def shutdown(self) -> None: ...
    def snapshot(self) -> dict: ...


class SheetSyncWorker:
    def __init__(
        self,
        queue: QueueProtocol,
        client_provider: Callable[[], SheetsClient | None],
        *,
        poll_timeout: float = 5.0,
    ):
        self.queue = queue
        self.client_provider = client_provider
        self.poll_timeout = poll_timeout
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._loop, name="sheet-sync-worker", daemon=True)
        self._thread.start()
        logger.info("Sheet sync worker started")

    def stop(self) -> None:
        self._stop_event.set()
        logger.info("Sheet sync worker stop requested")

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                job = self.queue.dequeue(timeout=self.poll_timeout)
                if job is None:
                    continue
                if not isinstance(job, SheetSyncJob):
                    logger.warning("Skipping unknown job type", job_type=type(job).__name__)
                    continue
                self.process(job)
            except Exception as e:  # pragma: no cover
                logger.error("Worker loop error", error=str(e), exc_info=True)
                time.sleep(1)

    def process(self, job: SheetSyncJob) -> SyncOutcome | None:
        logger.info("Processing sheet sync job", report_id=job.report_id, attempt=job.attempt)
        session: Session = SessionLocal()
        try:
            outcome = sync_report(session, job.report_id, self.client_provider())
        except ReportNotFoundError:
            # Deleted before its sync ran
            logger.warning("Sync job for missing report dropped", report_id=job.report_id)
            return None
        except Exception as e:
            session.rollback()
            logger.error("Sheet sync job failed", report_id=job.report_id, error=str(e), exc_info=True)
            LAST_EXCEPTIONS.append({"report_id": job.report_id, "error": str(e), "type": type(e).__name__})
            del LAST_EXCEPTIONS[:-_MAX_KEPT_EXCEPTIONS]
            return None
        finally:
            session.close()

        if not outcome.success:
            self._schedule_retry(job, outcome)
        return outcome

    def _schedule_retry(self, job: SheetSyncJob, outcome: SyncOutcome) -> None:
        max_attempts = int(SYNC_RETRY_POLICY["max_attempts"])
        if job.attempt >= max_attempts:
            logger.warning(
                "Sheet sync retries exhausted",
                report_id=job.report_id,
                attempts=job.attempt,
                error=outcome.error_message,
            )
            return
        delay = compute_backoff_seconds(job.attempt)
        retry = job.next_attempt()
        self.queue.enqueue(retry, priority=retry.priority, delay_seconds=delay)
        logger.info(
            "Sheet sync retry scheduled",
            report_id=job.report_id,
            next_attempt=retry.attempt,
            delay_seconds=round(delay, 2),
        )


def create_queue() -> PriorityDelayQueue:
    return PriorityDelayQueue()


__all__ = ["SheetSyncWorker", "LAST_EXCEPTIONS", "create_queue"]
