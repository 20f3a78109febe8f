# ═══════════════════════════════════════════════════════════════════════════════
# NUMERIC UTILITIES
# Implementation: I2 (Numerics)
# ═══════════════════════════════════════════════════════════════════════════════

"""
I2: "Every score in this system lives in [0, 1] and every statistic is taken
over lists that can be empty. Guard once, here, instead of at every call site."
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp to [low, high]. Non-finite values collapse to low."""
    if not np.isfinite(value):
        return low
    return float(min(high, max(low, value)))


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def variance(values: Sequence[float]) -> float:
    """Population variance, 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.var(values))


def std(values: Sequence[float]) -> float:
    """Population standard deviation, 0.0 for an empty sequence."""
    return float(np.sqrt(variance(values)))
