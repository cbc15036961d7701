"""
Tests for the exponential smoothing forecaster.
"""
from datetime import datetime, timedelta, timezone

import pytest

from clinicast.core.domain.errors import MalformedInputError
from clinicast.core.domain.models import SmoothingParameters
from clinicast.core.domain.readings import SignalType
from clinicast.core.numerics.smoothing import (
    METHOD_DOUBLE,
    METHOD_NONE,
    METHOD_SIMPLE,
    PHYSIOLOGICAL_BOUNDS,
    classify_recent_trend,
    confidence_interval,
    double_exponential_smoothing,
    forecast_values,
    moving_average,
    simple_exponential_smoothing,
    z_multiplier,
)


def test_simple_smoothing_is_flat():
    assert simple_exponential_smoothing([10, 20], alpha=0.5, steps_ahead=3) == [15.0, 15.0, 15.0]


def test_simple_smoothing_rounds_half_up():
    assert simple_exponential_smoothing([0.125], steps_ahead=1) == [0.13]


def test_simple_smoothing_empty():
    assert simple_exponential_smoothing([], steps_ahead=3) == []


def test_double_smoothing_follows_linear_ramp():
    values = list(range(1, 11))
    assert double_exponential_smoothing(values, 0.3, 0.1, 3) == pytest.approx([11.0, 12.0, 13.0])


def test_double_smoothing_short_series_falls_back():
    assert double_exponential_smoothing([7.0], 0.3, 0.1, 2) == [7.0, 7.0]


def test_moving_average():
    assert moving_average([1, 2, 3, 4, 5, 6], window=5) == [3.0, 4.0]
    assert moving_average([2, 4], window=5) == [3.0]
    assert moving_average([], window=5) == []


@pytest.mark.parametrize("level,expected", [(0.90, 1.645), (0.95, 1.96), (0.99, 2.576)])
def test_z_multiplier(level, expected):
    assert z_multiplier(level) == expected


def test_confidence_interval_uses_history_spread():
    lower, upper = confidence_interval([1, 2, 3], 10.0)
    assert lower == pytest.approx(8.04)
    assert upper == pytest.approx(11.96)


def test_confidence_interval_single_value_collapses():
    assert confidence_interval([5.0], 5.0) == (5.0, 5.0)


@pytest.mark.parametrize("values,expected", [
    ([100, 100, 100], "stable"),
    ([80, 90, 100], "increasing"),
    ([100, 90, 80], "decreasing"),
    ([100, 101, 102], "stable"),
    ([5, 6], "stable"),
])
def test_recent_trend(values, expected):
    assert classify_recent_trend(values) == expected


def test_method_selection_by_length():
    assert forecast_values(list(range(60, 72))).method == METHOD_DOUBLE
    assert forecast_values([70, 72, 71, 73, 72]).method == METHOD_SIMPLE

    sparse = forecast_values([10, 20], horizon=2)
    assert sparse.method == METHOD_SIMPLE
    assert [p.value for p in sparse.forecast_points] == [15.0, 15.0]


def test_empty_history_is_neutral():
    result = forecast_values([], signal_type=SignalType.HEART_RATE)
    assert result.method == METHOD_NONE
    assert result.forecast_points == []
    assert result.trend == "stable"
    assert result.confidence == 0.0


def test_runaway_series_capped_at_physiological_max():
    values = [150 + 10 * i for i in range(10)]
    result = forecast_values(values, horizon=6, signal_type=SignalType.HEART_RATE)

    low, high = PHYSIOLOGICAL_BOUNDS[SignalType.HEART_RATE]
    assert max(p.value for p in result.forecast_points) == high
    for point in result.forecast_points:
        assert low <= point.lower_bound <= point.value <= point.upper_bound <= high


@pytest.mark.parametrize("signal_type", list(SignalType))
def test_all_points_within_bounds(signal_type):
    values = [5, 95, 12, 300, -40, 60, 61, 62, 400, 0, 3, 1000]
    result = forecast_values(values, horizon=8, signal_type=signal_type)

    low, high = PHYSIOLOGICAL_BOUNDS[signal_type]
    for point in result.forecast_points:
        assert low <= point.lower_bound <= point.value <= point.upper_bound <= high


def test_confidence_heuristic():
    assert forecast_values([70] * 5).confidence == 0.25
    assert forecast_values([70] * 30).confidence == 1.0


def test_supplied_parameters_change_double_forecast():
    values = [70, 72, 71, 75, 74, 78, 77, 80, 82, 81, 85, 84]
    default = forecast_values(values, horizon=3)
    tuned = forecast_values(values, horizon=3, params=SmoothingParameters(alpha=0.9, beta=0.5))
    assert default.forecast_points != tuned.forecast_points


def test_forecast_is_idempotent():
    values = [70, 72, 71, 75, 74, 78, 77, 80, 82, 81, 85, 84]
    assert forecast_values(values, horizon=4) == forecast_values(values, horizon=4)


def test_timestamps_and_horizon_steps():
    start = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    result = forecast_values([70, 71, 72], horizon=3, interval_hours=2.0, start=start)

    assert [p.horizon_steps for p in result.forecast_points] == [1, 2, 3]
    assert [p.hours_ahead for p in result.forecast_points] == [2.0, 4.0, 6.0]
    assert result.forecast_points[0].timestamp == start + timedelta(hours=2)
    assert result.current_value == 72.0


def test_wider_band_at_higher_confidence():
    values = [70, 75, 68, 80, 72]
    narrow = forecast_values(values, horizon=1, confidence_level=0.90).forecast_points[0]
    wide = forecast_values(values, horizon=1, confidence_level=0.99).forecast_points[0]
    assert wide.upper_bound - wide.lower_bound > narrow.upper_bound - narrow.lower_bound


def test_negative_horizon_rejected():
    with pytest.raises(MalformedInputError):
        forecast_values([1, 2, 3], horizon=-1)
