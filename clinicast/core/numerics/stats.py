"""
Statistics Kernel - Small descriptive statistics used across the engine.

All functions return 0 on empty input instead of NaN.
"""

import math
from collections.abc import Sequence

import numpy as np


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(values))


def median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1). Fewer than two values gives 0."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def percentile(values: Sequence[float], p: float) -> float:
    """Linear-interpolated percentile, p in [0, 100]."""
    if len(values) == 0:
        return 0.0
    return float(np.percentile(values, clamp(p, 0.0, 100.0)))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_to(value: float, digits: int) -> float:
    """Round half up (2.5 -> 3, -2.5 -> -2), not to the even digit."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale
