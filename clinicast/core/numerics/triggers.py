"""
Trigger Detector - Threshold breaches, rapid changes and trend direction.
"""

import logging
from collections.abc import Sequence

import numpy as np

from clinicast.core.domain.readings import Reading, SignalType
from clinicast.core.domain.results import Severity, TrendDirection, TrendResult, Trigger, TriggerKind
from clinicast.core.numerics import stats
from clinicast.core.numerics.series import readings_to_frame

logger = logging.getLogger(__name__)

# (low, high) bands; a value strictly outside a band breaches it.
WARNING_BANDS: dict[SignalType, tuple[float, float]] = {
    SignalType.HEART_RATE: (50, 110),
    SignalType.SYSTOLIC_BP: (100, 180),
    SignalType.DIASTOLIC_BP: (50, 100),
    SignalType.TEMPERATURE: (36.0, 38.3),
    SignalType.RESPIRATORY_RATE: (10, 24),
    SignalType.SPO2: (94, 100),
}
CRITICAL_BANDS: dict[SignalType, tuple[float, float]] = {
    SignalType.HEART_RATE: (40, 130),
    SignalType.SYSTOLIC_BP: (90, 200),
    SignalType.DIASTOLIC_BP: (40, 120),
    SignalType.TEMPERATURE: (35.0, 39.5),
    SignalType.RESPIRATORY_RATE: (8, 30),
    SignalType.SPO2: (90, 100),
}

# Absolute change between consecutive readings that counts as rapid.
RAPID_CHANGE_THRESHOLDS: dict[SignalType, float] = {
    SignalType.HEART_RATE: 30,
    SignalType.SYSTOLIC_BP: 40,
    SignalType.TEMPERATURE: 1.5,
    SignalType.RESPIRATORY_RATE: 10,
    SignalType.SPO2: 5,
}
RAPID_CHANGE_WINDOW_HOURS = 2.0

NORMAL_RANGES: dict[SignalType, tuple[float, float]] = {
    SignalType.HEART_RATE: (60, 100),
    SignalType.SYSTOLIC_BP: (110, 140),
    SignalType.DIASTOLIC_BP: (60, 90),
    SignalType.TEMPERATURE: (36.5, 37.5),
    SignalType.RESPIRATORY_RATE: (12, 20),
    SignalType.SPO2: (95, 100),
    SignalType.MAP: (70, 100),
    SignalType.PAIN_INTENSITY: (0, 3),
}
DEFAULT_NORMAL_RANGE = (0, 100)
NORMAL_TEMPERATURE = 37.0

STABLE_RELATIVE_SLOPE = 0.005
FLUCTUATION_CV = 0.15
FLUCTUATION_MAX_SLOPE = 0.01
MIN_TREND_POINTS = 3


def normal_range(signal_type: SignalType) -> tuple[float, float]:
    return NORMAL_RANGES.get(signal_type, DEFAULT_NORMAL_RANGE)


def check_threshold(reading: Reading) -> Trigger | None:
    """Most severe band breached by one reading; critical wins over warning."""
    critical = CRITICAL_BANDS.get(reading.signal_type)
    warning = WARNING_BANDS.get(reading.signal_type)
    if critical is None or warning is None:
        return None

    name = reading.signal_type.value
    value = reading.value
    checks = [
        (Severity.CRITICAL, "CRITICAL", critical),
        (Severity.WARNING, "WARNING", warning),
    ]
    for severity, label, (low, high) in checks:
        if value < low:
            message = f"{label}: {name} is {value:g}, below {severity.value} threshold of {low:g}"
            threshold = low
        elif value > high:
            message = f"{label}: {name} is {value:g}, above {severity.value} threshold of {high:g}"
            threshold = high
        else:
            continue
        return Trigger(
            kind=TriggerKind.THRESHOLD_BREACH,
            signal_type=reading.signal_type,
            current_value=value,
            severity=severity,
            message=message,
            timestamp=reading.timestamp,
            threshold=threshold,
        )
    return None


def check_rapid_change(previous: Reading, latest: Reading, elapsed_hours: float) -> Trigger | None:
    """
    Absolute jump between the last two readings inside a 2-hour gate.

    The change is not normalised by elapsed time: a jump over 10 minutes and
    one over 2 hours are treated the same.
    """
    threshold = RAPID_CHANGE_THRESHOLDS.get(latest.signal_type)
    if threshold is None:
        return None

    change = abs(latest.value - previous.value)
    if change <= threshold or elapsed_hours > RAPID_CHANGE_WINDOW_HOURS:
        return None

    return Trigger(
        kind=TriggerKind.RAPID_CHANGE,
        signal_type=latest.signal_type,
        current_value=latest.value,
        severity=Severity.URGENT,
        message=(
            f"Rapid change in {latest.signal_type.value}: {previous.value:g} -> {latest.value:g} "
            f"(change of {change:.1f} in {elapsed_hours * 60:.0f} minutes)"
        ),
        timestamp=latest.timestamp,
        threshold=threshold,
    )


def detect_triggers(readings: Sequence[Reading]) -> list[Trigger]:
    """
    Evaluate the latest reading(s) of one signal window.

    Emits at most one threshold breach, at most one rapid-change trigger and,
    when the full window trends worse, one trend-deterioration trigger.
    Triggers are not deduplicated across calls.
    """
    df = readings_to_frame(readings)
    if df.empty:
        return []

    ordered = [readings[i] for i in df["position"].tolist()]
    latest = ordered[-1]
    triggers: list[Trigger] = []

    breach = check_threshold(latest)
    if breach:
        triggers.append(breach)

    if len(ordered) >= 2:
        elapsed_hours = (df["ds"].iloc[-1] - df["ds"].iloc[-2]).total_seconds() / 3600
        rapid = check_rapid_change(ordered[-2], latest, elapsed_hours)
        if rapid:
            triggers.append(rapid)

    trend = _classify(df["y"].tolist(), latest.signal_type)
    if trend.direction == TrendDirection.WORSENING:
        triggers.append(Trigger(
            kind=TriggerKind.TREND_DETERIORATION,
            signal_type=latest.signal_type,
            current_value=latest.value,
            severity=Severity.WARNING,
            message=trend.message,
            timestamp=latest.timestamp,
        ))

    if triggers:
        logger.debug(f"{len(triggers)} trigger(s) for {latest.subject_id}/{latest.signal_type.value}")
    return triggers


def classify_trend(readings: Sequence[Reading]) -> TrendResult:
    """Linear trend of the full window, interpreted for the signal type."""
    df = readings_to_frame(readings)
    signal_type = readings[0].signal_type if len(readings) else None
    return _classify(df["y"].tolist(), signal_type)


def _classify(values: list[float], signal_type: SignalType | None) -> TrendResult:
    if len(values) < MIN_TREND_POINTS or signal_type is None:
        return TrendResult(
            direction=TrendDirection.STABLE,
            slope=0.0,
            rate_of_change=0.0,
            message="Insufficient data for trend analysis",
            signal_type=signal_type,
        )

    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    n = len(y)
    denominator = n * np.sum(x * x) - np.sum(x) ** 2
    slope = float((n * np.sum(x * y) - np.sum(x) * np.sum(y)) / denominator) if denominator != 0 else 0.0

    mean_value = float(y.mean())
    relative_slope = slope / mean_value if mean_value != 0 else 0.0
    cv = float(np.std(y)) / abs(mean_value) if mean_value != 0 else 0.0

    if cv > FLUCTUATION_CV and abs(relative_slope) < FLUCTUATION_MAX_SLOPE:
        direction = TrendDirection.FLUCTUATING
    elif abs(relative_slope) < STABLE_RELATIVE_SLOPE:
        direction = TrendDirection.STABLE
    else:
        direction = _direction_for_signal(values, slope, signal_type)

    return TrendResult(
        direction=direction,
        slope=stats.round_to(slope, 3),
        rate_of_change=stats.round_to(relative_slope, 4),
        message=f"{signal_type.value}: {direction.value} trend (slope={slope:.3f} per reading)",
        signal_type=signal_type,
    )


def _direction_for_signal(values: list[float], slope: float, signal_type: SignalType) -> TrendDirection:
    latest = values[-1]

    if signal_type == SignalType.SPO2:
        return TrendDirection.IMPROVING if slope > 0 else TrendDirection.WORSENING

    if signal_type == SignalType.TEMPERATURE:
        distance = abs(latest - NORMAL_TEMPERATURE)
        previous_distance = abs(values[-3] - NORMAL_TEMPERATURE)
        return TrendDirection.IMPROVING if distance < previous_distance else TrendDirection.WORSENING

    low, high = normal_range(signal_type)
    if latest > high:
        return TrendDirection.WORSENING if slope > 0 else TrendDirection.IMPROVING
    if latest < low:
        return TrendDirection.WORSENING if slope < 0 else TrendDirection.IMPROVING
    return TrendDirection.STABLE
