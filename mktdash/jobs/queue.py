"""In-memory priority + delay queue for spreadsheet sync jobs (single process).

- Lower numeric priority value = served first; equal priorities are FIFO.
- A job may carry a delay; it only becomes ready once the delay has passed.
  Sync retries use this for their backoff.
- Jobs exposing ``key()`` are deduplicated while queued, so a report that is
  already waiting for a retry is not queued a second time.
- Capacity limits via QUEUE_SETTINGS; thread-safe through one condition variable.

Ready jobs live in ``(priority, seq)`` order in one heap and delayed jobs in
``(ready_at, priority, seq)`` order in another. Delayed jobs are promoted on
dequeue, so a far-future high-priority retry never blocks jobs that are ready now.
"""
from __future__ import annotations

import heapq
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from mktdash.config import QUEUE_SETTINGS
from mktdash.utils import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class QueueItem:
    job: Any
    priority_label: str
    priority_value: int
    enqueued_at: float
    ready_at: float
    seq: int
    key: str | None = None


def _job_key(job: Any) -> str | None:
    key_fn = getattr(job, "key", None)
    return key_fn() if callable(key_fn) else None


class PriorityDelayQueue:
    def __init__(self) -> None:
        priorities_cfg = QUEUE_SETTINGS.get("priorities", {})  # type: ignore[assignment]
        self._priority_map: dict[str, int] = priorities_cfg if isinstance(priorities_cfg, dict) else {"normal": 5}
        self._warn_depth = int(QUEUE_SETTINGS.get("warn_depth", 1000))  # type: ignore[arg-type]
        self._max_in_memory = int(QUEUE_SETTINGS.get("max_in_memory", 5000))  # type: ignore[arg-type]
        self._lock = threading.RLock()
        self._cv = threading.Condition(self._lock)
        self._ready_heap: list[tuple[int, int, QueueItem]] = []
        self._scheduled_heap: list[tuple[float, int, int, QueueItem]] = []
        self._queued: dict[str, QueueItem] = {}
        self._seq_counter = 0
        self._shutdown = False

    def _next_seq(self) -> int:
        self._seq_counter += 1
        return self._seq_counter

    def _promote_scheduled(self) -> None:
        now_ts = time.time()
        while self._scheduled_heap and self._scheduled_heap[0][0] <= now_ts:
            _, priority_value, seq, item = heapq.heappop(self._scheduled_heap)
            heapq.heappush(self._ready_heap, (priority_value, seq, item))

    def _wait(self, timeout: Optional[float]) -> None:
        """Sleep until notified, the next delayed job is due, or ``timeout`` passes."""
        if self._ready_heap:
            return
        if not self._scheduled_heap:
            self._cv.wait(timeout=timeout)
            return
        wait_time = max(0.0, self._scheduled_heap[0][0] - time.time())
        if timeout is not None:
            wait_time = min(wait_time, timeout)
        if wait_time > 0:
            self._cv.wait(timeout=wait_time)

    def enqueue(self, job: Any, *, priority: str = "normal", delay_seconds: float = 0.0) -> QueueItem:
        """Queue a job. A job whose key is already queued returns the existing item."""
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Queue shutdown")
            if priority not in self._priority_map:
                raise ValueError(f"Unknown priority '{priority}'")
            key = _job_key(job)
            if key is not None and key in self._queued:
                logger.debug("Job already queued", key=key)
                return self._queued[key]
            if self.depth() >= self._max_in_memory:
                raise OverflowError("Queue capacity exceeded")

            now_ts = time.time()
            ready_at_ts = now_ts + max(0.0, delay_seconds)
            item = QueueItem(
                job=job,
                priority_label=priority,
                priority_value=self._priority_map[priority],
                enqueued_at=now_ts,
                ready_at=ready_at_ts,
                seq=self._next_seq(),
                key=key,
            )
            if ready_at_ts <= now_ts:
                heapq.heappush(self._ready_heap, (item.priority_value, item.seq, item))
            else:
                heapq.heappush(self._scheduled_heap, (ready_at_ts, item.priority_value, item.seq, item))
            if key is not None:
                self._queued[key] = item
            if self.depth() >= self._warn_depth:
                logger.warning("Queue depth warning", depth=self.depth())
            self._cv.notify()
            return item

    def dequeue(self, *, block: bool = True, timeout: Optional[float] = None) -> Any:
        """Pop the next ready job; None when non-blocking and empty, on timeout, or after shutdown drains."""
        end_time = None if timeout is None else time.time() + timeout
        with self._lock:
            while True:
                if self._shutdown and not self._ready_heap and not self._scheduled_heap:
                    return None
                self._promote_scheduled()
                if self._ready_heap:
                    _, _, item = heapq.heappop(self._ready_heap)
                    if item.key is not None:
                        self._queued.pop(item.key, None)
                    return item.job
                if not block:
                    return None
                remaining = None if end_time is None else max(0.0, end_time - time.time())
                if remaining == 0:
                    return None
                self._wait(remaining)

    def shutdown(self) -> None:
        with self._lock:
            self._shutdown = True
            self._cv.notify_all()

    def purge(self) -> None:
        """Drop every queued job (test isolation)."""
        with self._lock:
            self._ready_heap.clear()
            self._scheduled_heap.clear()
            self._queued.clear()
            self._cv.notify_all()

    def depth(self) -> int:
        return len(self._ready_heap) + len(self._scheduled_heap)

    def __len__(self) -> int:
        return self.depth()

    def is_queued(self, key: str) -> bool:
        with self._lock:
            return key in self._queued

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "depth": self.depth(),
                "ready": len(self._ready_heap),
                "scheduled": len(self._scheduled_heap),
                "shutdown": self._shutdown,
            }


__all__ = ["PriorityDelayQueue", "QueueItem"]
