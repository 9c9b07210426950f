"""Pure ratio helpers used by the aggregator and dashboard views."""
from __future__ import annotations

import math


def safe_div(numerator: float | int, denominator: float | int) -> float:
    """Divide, returning 0.0 instead of NaN/inf for a zero or non-finite denominator."""
    if not denominator or not math.isfinite(float(denominator)):
        return 0.0
    result = float(numerator) / float(denominator)
    return result if math.isfinite(result) else 0.0


def as_percent(ratio: float, digits: int = 2) -> float:
    """Ratio -> percentage rounded for chart labels (0.2 -> 20.0)."""
    return round(ratio * 100.0, digits)


__all__ = ["safe_div", "as_percent"]
