"""
Parameter Optimizer - Grid search for double exponential smoothing constants.

The history is split 70/30 into train/test. Every (alpha, beta) pair on the
grid is fitted on the train split, projected len(test) steps, and scored by
mean squared error against the test split.
"""

import logging
from collections.abc import Sequence

from clinicast.core.domain.models import SmoothingParameters
from clinicast.core.numerics.smoothing import double_exponential_smoothing

logger = logging.getLogger(__name__)

MIN_HISTORY = 10
TRAIN_FRACTION = 0.7

# Integer steps keep the grid free of accumulated float drift.
ALPHA_GRID = [round(i * 0.1, 1) for i in range(1, 10)]      # 0.1 .. 0.9
BETA_GRID = [round(i * 0.05, 2) for i in range(1, 11)]      # 0.05 .. 0.5


def split_history(history: Sequence[float]) -> tuple[list[float], list[float]]:
    train_size = int(len(history) * TRAIN_FRACTION)
    values = list(history)
    return values[:train_size], values[train_size:]


def forecast_mse(train: Sequence[float], test: Sequence[float], alpha: float, beta: float) -> float:
    """Test-split MSE of one (alpha, beta) pair."""
    projected = double_exponential_smoothing(train, alpha, beta, len(test))
    return sum((f - a) ** 2 for f, a in zip(projected, test)) / len(test)


def optimize(
    history: Sequence[float],
    defaults: SmoothingParameters | None = None,
) -> SmoothingParameters:
    """
    Find the grid pair with the lowest test-split MSE.

    Args:
        history: Observations, oldest first
        defaults: Returned unchanged when history has fewer than 10 points

    Returns:
        SmoothingParameters; ties keep the first pair in grid order
    """
    defaults = defaults or SmoothingParameters()
    if len(history) < MIN_HISTORY:
        logger.warning(f"Optimizer needs {MIN_HISTORY} points, got {len(history)}; keeping defaults")
        return defaults

    train, test = split_history(history)

    best = defaults
    best_error = float("inf")
    for alpha in ALPHA_GRID:
        for beta in BETA_GRID:
            mse = forecast_mse(train, test, alpha, beta)
            if mse < best_error:
                best_error = mse
                best = SmoothingParameters(alpha=alpha, beta=beta)

    logger.info(f"Optimized smoothing over {len(history)} points: alpha={best.alpha} beta={best.beta} mse={best_error:.4f}")
    return best
