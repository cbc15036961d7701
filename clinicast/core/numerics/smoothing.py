"""
Smoothing Forecaster - Exponential smoothing projections with bounded bands.

Method selection by history length:
- >= 10 points: double exponential smoothing (Holt)
- 3..9 points:  simple exponential smoothing, alpha 0.3
- < 3 points:   simple exponential smoothing, alpha 0.5
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from clinicast.core.domain.errors import MalformedInputError
from clinicast.core.domain.models import SmoothingParameters
from clinicast.core.domain.readings import SignalType
from clinicast.core.domain.results import ForecastPoint, ForecastResult
from clinicast.core.numerics import stats

logger = logging.getLogger(__name__)

DOUBLE_MIN_POINTS = 10
SIMPLE_MIN_POINTS = 3
SIMPLE_ALPHA = 0.3
SPARSE_ALPHA = 0.5
TREND_TOLERANCE = 0.02
FULL_CONFIDENCE_SAMPLES = 20

METHOD_NONE = "none"
METHOD_SIMPLE = "simple_exponential_smoothing"
METHOD_DOUBLE = "double_exponential_smoothing"

# Plausible range per signal; projections are clamped into it.
PHYSIOLOGICAL_BOUNDS: dict[SignalType, tuple[float, float]] = {
    SignalType.HEART_RATE: (20, 250),
    SignalType.SYSTOLIC_BP: (40, 300),
    SignalType.DIASTOLIC_BP: (20, 200),
    SignalType.TEMPERATURE: (30, 43),
    SignalType.RESPIRATORY_RATE: (4, 60),
    SignalType.SPO2: (50, 100),
    SignalType.MAP: (30, 250),
    SignalType.PAIN_INTENSITY: (0, 10),
}
DEFAULT_BOUNDS = (0, 500)


def physiological_bounds(signal_type: SignalType | None) -> tuple[float, float]:
    return PHYSIOLOGICAL_BOUNDS.get(signal_type, DEFAULT_BOUNDS)


def z_multiplier(confidence_level: float) -> float:
    """1.645 below 95%, 2.576 at 99% and above, 1.96 otherwise."""
    if confidence_level >= 0.99:
        return 2.576
    if confidence_level < 0.95:
        return 1.645
    return 1.96


def simple_exponential_smoothing(values: Sequence[float], alpha: float = SIMPLE_ALPHA, steps_ahead: int = 6) -> list[float]:
    """Flat projection of the final smoothed level."""
    if len(values) == 0:
        return []

    level = values[0]
    for value in values[1:]:
        level = alpha * value + (1 - alpha) * level

    return [stats.round_to(level, 2)] * steps_ahead


def double_exponential_smoothing(
    values: Sequence[float],
    alpha: float = 0.3,
    beta: float = 0.1,
    steps_ahead: int = 6,
) -> list[float]:
    """Holt's linear method; step i ahead is level + i * trend."""
    if len(values) < 2:
        return simple_exponential_smoothing(values, alpha, steps_ahead)

    level = values[0]
    trend = values[1] - values[0]
    for value in values[1:]:
        prev_level = level
        level = alpha * value + (1 - alpha) * (prev_level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend

    return [stats.round_to(level + i * trend, 2) for i in range(1, steps_ahead + 1)]


def moving_average(values: Sequence[float], window: int = 5) -> list[float]:
    """Trailing window means; a short series collapses to its overall mean."""
    if len(values) == 0:
        return []
    if len(values) < window:
        return [stats.mean(values)]

    return [
        stats.round_to(stats.mean(values[i - window + 1 : i + 1]), 2)
        for i in range(window - 1, len(values))
    ]


def confidence_interval(
    values: Sequence[float],
    forecast_value: float,
    confidence_level: float = 0.95,
) -> tuple[float, float]:
    """
    Band around a forecast value from the spread of the input history.

    Returns:
        (lower, upper), rounded to 2 decimals
    """
    if len(values) < 2:
        return forecast_value, forecast_value

    margin = z_multiplier(confidence_level) * stats.std_dev(values)
    return (
        stats.round_to(forecast_value - margin, 2),
        stats.round_to(forecast_value + margin, 2),
    )


def classify_recent_trend(values: Sequence[float]) -> str:
    """Direction of the last three values relative to their mean."""
    if len(values) < 3:
        return "stable"

    recent = values[-3:]
    slope = (recent[-1] - recent[0]) / (len(recent) - 1)
    avg = stats.mean(recent)
    relative_slope = abs(slope / avg) if avg != 0 else 0.0
    if relative_slope <= TREND_TOLERANCE:
        return "stable"
    return "increasing" if slope > 0 else "decreasing"


def forecast_values(
    values: Sequence[float],
    horizon: int = 6,
    interval_hours: float = 1.0,
    signal_type: SignalType | None = None,
    params: SmoothingParameters | None = None,
    confidence_level: float = 0.95,
    start: datetime | None = None,
) -> ForecastResult:
    """
    Project a time-ordered series ``horizon`` steps ahead.

    Args:
        values: Observations, oldest first
        horizon: Number of steps to project
        interval_hours: Spacing between projected steps
        signal_type: Selects the physiological bounds
        params: Tuned alpha/beta for the double method (defaults 0.3/0.1)
        confidence_level: Band width selector (0.90, 0.95, 0.99)
        start: Timestamp of the last observation, used to stamp projections

    Returns:
        ForecastResult; empty input yields method "none" with confidence 0
    """
    if horizon < 0:
        raise MalformedInputError(f"Forecast horizon must be non-negative, got {horizon}")

    values = [float(v) for v in values]

    if len(values) == 0:
        return ForecastResult(method=METHOD_NONE, signal_type=signal_type)

    params = params or SmoothingParameters()

    if len(values) >= DOUBLE_MIN_POINTS:
        projected = double_exponential_smoothing(values, params.alpha, params.beta, horizon)
        method = METHOD_DOUBLE
    elif len(values) >= SIMPLE_MIN_POINTS:
        projected = simple_exponential_smoothing(values, SIMPLE_ALPHA, horizon)
        method = METHOD_SIMPLE
    else:
        projected = simple_exponential_smoothing(values, SPARSE_ALPHA, horizon)
        method = METHOD_SIMPLE

    low, high = physiological_bounds(signal_type)
    points = []
    for i, raw in enumerate(projected):
        value = stats.clamp(raw, low, high)
        lower, upper = confidence_interval(values, value, confidence_level)
        hours_ahead = (i + 1) * interval_hours
        points.append(ForecastPoint(
            timestamp=start + timedelta(hours=hours_ahead) if start else None,
            value=value,
            upper_bound=min(upper, high),
            lower_bound=max(lower, low),
            horizon_steps=i + 1,
            hours_ahead=hours_ahead,
        ))

    logger.debug(f"Forecast {signal_type} with {method} over {len(values)} points, horizon={horizon}")
    return ForecastResult(
        method=method,
        forecast_points=points,
        trend=classify_recent_trend(values),
        confidence=min(len(values) / FULL_CONFIDENCE_SAMPLES, 1.0),
        signal_type=signal_type,
        current_value=float(values[-1]),
    )
