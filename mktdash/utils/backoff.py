"""Exponential backoff helpers with jitter."""
from __future__ import annotations

import random
from typing import Optional

from mktdash.config import BACKOFF_POLICY


def compute_backoff_seconds(attempt: int, *, base: Optional[float] = None, factor: Optional[float] = None, max_seconds: Optional[float] = None, jitter_pct: Optional[float] = None) -> float:
    """Compute exponential backoff delay for the given 1-based attempt, capped and jittered."""
    if attempt < 1:
        attempt = 1
    base = float(base if base is not None else BACKOFF_POLICY["base_seconds"])
    factor = float(factor if factor is not None else BACKOFF_POLICY["factor"])
    max_seconds = float(max_seconds if max_seconds is not None else BACKOFF_POLICY["max_seconds"])
    jitter_pct = float(jitter_pct if jitter_pct is not None else BACKOFF_POLICY["jitter_pct"])

    delay = min(base * (factor ** (attempt - 1)), max_seconds)
    if jitter_pct > 0:
        jitter_amount = delay * jitter_pct
        delay = random.uniform(delay - jitter_amount, delay + jitter_amount)
    return max(delay, 0.0)


__all__ = ["compute_backoff_seconds"]
