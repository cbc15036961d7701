"""
Tests for the next-day pain prediction service.
"""
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from clinicast.core.domain.errors import InsufficientHistoryError
from clinicast.core.domain.models import RegressionModel
from clinicast.core.domain.readings import PainEntry
from clinicast.core.domain.results import PainAlertKind, Severity
from clinicast.core.services.pain_model import (
    FEATURE_NAMES,
    PainPredictionService,
    days_between,
    expected_pain_curve,
)

MONDAY = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def diary(days, subject_id="p1", per_day=1, start=MONDAY):
    """Synthetic diary with varied sleep, medication and activity per day."""
    entries = []
    for k in range(days):
        for j in range(per_day):
            entries.append(PainEntry(
                subject_id=subject_id,
                timestamp=start + timedelta(days=k, hours=2 * j),
                intensity=2 + k % 5,
                sleep_quality=4 + k % 3,
                medication_taken=k % 2 == 0,
                activity="driving" if k % 4 == 0 else "resting",
            ))
    return entries


@pytest.fixture
def service(engine):
    return PainPredictionService(engine)


def test_too_few_entries(service):
    with pytest.raises(InsufficientHistoryError) as exc:
        service.train("p1", diary(3))
    assert (exc.value.required, exc.value.available) == (7, 3)


def test_too_few_days(service):
    with pytest.raises(InsufficientHistoryError) as exc:
        service.train("p1", diary(2, per_day=5))
    assert "unique days" in str(exc.value)
    assert exc.value.available == 2


def test_empty_diary(service):
    with pytest.raises(InsufficientHistoryError):
        service.predict_next_day("p1", [])


def test_first_training_row(service):
    features, targets = service.build_training_set(diary(8))

    assert len(features) == 1
    row = dict(zip(FEATURE_NAMES, features[0]))
    assert row["rolling_avg_3d"] == pytest.approx(11 / 3)
    assert row["rolling_avg_7d"] == pytest.approx(25 / 7)
    assert row["day_of_week"] == 0
    assert row["days_since_start"] == 7
    assert row["sleep_quality"] == 4
    assert row["medication_ratio"] == pytest.approx(2 / 3)
    assert row["activity_intensity"] == 0
    assert row["is_weekend"] == 0
    assert targets == [4.0]


def test_weekend_row(service):
    features, _ = service.build_training_set(diary(14))
    saturday = dict(zip(FEATURE_NAMES, features[5]))
    assert saturday["day_of_week"] == 5
    assert saturday["is_weekend"] == 1


def test_unreported_sleep_is_neutral(service):
    entries = [e.model_copy(update={"sleep_quality": None}) for e in diary(8)]
    features, _ = service.build_training_set(entries)
    assert dict(zip(FEATURE_NAMES, features[0]))["sleep_quality"] == 5.0


def test_unsorted_entries(service):
    entries = diary(10)
    assert service.build_training_set(list(reversed(entries))) == service.build_training_set(entries)


def test_exactly_minimum_days_gives_zero_model(service):
    model = service.train("p1", diary(7))
    assert model.weights == [0.0] * 8
    assert model.r_squared == 0.0


def test_train_caches_model(service, engine):
    model = service.train("p1", diary(21))

    assert model.feature_names == FEATURE_NAMES
    assert len(model.weights) == 8
    assert 0.0 <= model.r_squared <= 1.0
    assert engine.get_model("p1") == model


def test_next_day_features(service):
    features, next_date = service.next_day_features(diary(21))
    row = dict(zip(FEATURE_NAMES, features))

    assert next_date.date().isoformat() == "2024-01-22"
    assert row["day_of_week"] == 0
    assert row["days_since_start"] == 21
    assert row["is_weekend"] == 0
    # k=16 (3d15h before the last midnight) floors to 3 days and is included;
    # k=16, 18 and 20 had medication.
    assert row["medication_ratio"] == 0.6
    # Last diary day (k=20) was a driving day.
    assert row["activity_intensity"] == 1.0


def test_predict_trains_on_cache_miss(service, engine):
    prediction = service.predict_next_day("p2", diary(21, subject_id="p2"))

    assert engine.get_model("p2") is not None
    assert prediction.date == "2024-01-22"
    assert 0 <= prediction.lower <= prediction.predicted_intensity <= prediction.upper <= 10
    assert set(prediction.features) == set(FEATURE_NAMES)


def test_predict_uses_cached_model(service, engine):
    cached = RegressionModel(weights=[0.0] * 8, bias=4.2, r_squared=0.6543, feature_names=FEATURE_NAMES, residual_std_dev=0.5)
    engine.cache_model("p3", cached)

    prediction = service.predict_next_day("p3", diary(10, subject_id="p3"))

    assert prediction.predicted_intensity == 4.2
    assert prediction.lower == 3.2
    assert prediction.upper == 5.2
    assert prediction.confidence == 0.654
    assert engine.get_model("p3") == cached


def test_min_days_from_settings(store):
    from clinicast.core.domain.settings import EngineSettings
    from clinicast.core.services.engine import ClinicalEngine

    service = PainPredictionService(ClinicalEngine(store, EngineSettings(min_training_days=10)))
    with pytest.raises(InsufficientHistoryError) as exc:
        service.train("p1", diary(8))
    assert exc.value.required == 10


def test_medication_window_floors_whole_days(service):
    entries = [
        PainEntry(subject_id="p1", timestamp=MONDAY + timedelta(days=k), intensity=3)
        for k in range(8)
    ]
    day_minus_4 = MONDAY.replace(hour=0) + timedelta(days=3)
    entries += [
        PainEntry(subject_id="p1", timestamp=day_minus_4, intensity=3, medication_taken=True),
        PainEntry(subject_id="p1", timestamp=day_minus_4 + timedelta(minutes=30), intensity=3, medication_taken=True),
    ]

    features, _ = service.next_day_features(entries)

    # 00:00 on day -4 is exactly 4 days out; 00:30 floors to 3 and counts.
    assert dict(zip(FEATURE_NAMES, features))["medication_ratio"] == pytest.approx(1 / 6)


# --- Alerts ---

def daily(intensities, medicated=None, subject_id="p1"):
    """One 09:00 entry per day."""
    medicated = medicated or [False] * len(intensities)
    return [
        PainEntry(subject_id=subject_id, timestamp=MONDAY + timedelta(days=k), intensity=v, medication_taken=m)
        for k, (v, m) in enumerate(zip(intensities, medicated))
    ]


def alerts_of(alerts, kind):
    return [a for a in alerts if a.kind == kind]


def test_expected_pain_curve():
    curve = expected_pain_curve()

    assert len(curve) == 29
    assert (curve[0].expected_intensity, curve[0].upper_bound, curve[0].lower_bound) == (7.5, 9.0, 6.0)
    assert (curve[10].expected_intensity, curve[10].upper_bound, curve[10].lower_bound) == (3.7, 5.0, 2.3)
    assert all(p.lower_bound <= p.expected_intensity <= p.upper_bound for p in curve)


def test_days_between_floors():
    start = pd.Timestamp("2024-01-01T09:00Z")
    assert days_between(start, pd.Timestamp("2024-01-05T00:00Z")) == 3
    assert days_between(pd.Timestamp("2024-01-05T00:00Z"), start) == 3
    assert days_between(start, pd.Timestamp("2024-01-05T09:00Z")) == 4


def test_no_alerts_for_empty_diary(service):
    assert service.check_alerts("p1", []) == []


@pytest.mark.parametrize("intensities,severity", [
    ([2, 2, 2, 3, 4, 5], Severity.WARNING),
    ([2, 2, 3, 4, 5, 6], Severity.CRITICAL),
    ([2, 3, 4, 3, 4, 5], None),
    ([3, 4, 5], None),
    ([4, 5], None),
])
def test_pain_escalation(service, intensities, severity):
    found = alerts_of(service.check_alerts("p1", daily(intensities)), PainAlertKind.PAIN_ESCALATION)

    if severity is None:
        assert found == []
    else:
        assert len(found) == 1
        assert found[0].severity == severity
        assert found[0].data["recent_values"] == [float(v) for v in intensities[-5:]]


def test_escalation_needs_more_than_a_tenth(service):
    entries = daily([3.0, 3.1, 3.2, 3.3])
    assert alerts_of(service.check_alerts("p1", entries), PainAlertKind.PAIN_ESCALATION) == []


@pytest.mark.parametrize("intensities,fires", [
    ([3] * 9 + [7], True),
    ([3] * 15 + [8], True),
    ([5] * 9 + [7], False),
    ([2] * 9 + [6], False),
    ([3, 3, 3, 9], False),
])
def test_breakthrough_pain(service, intensities, fires):
    found = alerts_of(service.check_alerts("p1", daily(intensities)), PainAlertKind.BREAKTHROUGH_PAIN)

    assert len(found) == (1 if fires else 0)
    if fires:
        assert found[0].severity == Severity.CRITICAL
        assert found[0].data["recent_average"] == 3.0


@pytest.mark.parametrize("medicated_recent,total_days,fires", [
    (8, 12, True),
    (7, 12, True),
    (6, 12, False),
    (8, 9, False),
])
def test_medication_overuse(service, medicated_recent, total_days, fires):
    # The last 8 days (as of the latest entry) are inside the 7-day window.
    medicated = [False] * (total_days - 8) + [True] * medicated_recent + [False] * (8 - medicated_recent)
    entries = daily([3] * total_days, medicated=medicated)

    found = alerts_of(service.check_alerts("p1", entries), PainAlertKind.MEDICATION_OVERUSE)

    assert len(found) == (1 if fires else 0)
    if fires:
        assert found[0].data["total_entries"] == 8
        assert found[0].data["entries_with_medication"] == medicated_recent


def test_medication_overuse_window_follows_as_of(service):
    entries = daily([3] * 12, medicated=[True] * 12)
    later = MONDAY + timedelta(days=30)

    assert alerts_of(service.check_alerts("p1", entries), PainAlertKind.MEDICATION_OVERUSE)
    assert alerts_of(service.check_alerts("p1", entries, as_of=later), PainAlertKind.MEDICATION_OVERUSE) == []


@pytest.mark.parametrize("tail,days_above", [
    ([6, 6, 6], 3),
    ([3, 6, 6], 2),
    ([6, 3, 6], 2),
    ([3, 3, 6], None),
    ([3, 3, 3], None),
])
def test_above_expected_curve(service, tail, days_above):
    # Days 9-11 map to curve days 8-10, upper bounds 5.5, 5.3 and 5.0.
    entries = daily([3] * 9 + tail)

    found = alerts_of(service.check_alerts("p1", entries), PainAlertKind.ABOVE_EXPECTED_CURVE)

    if days_above is None:
        assert found == []
    else:
        assert len(found) == 1
        assert found[0].severity == Severity.WARNING
        assert found[0].data["days_above_expected"] == days_above


def test_alerts_repeat_without_deduplication(service):
    entries = daily([3] * 9 + [7])

    first = service.check_alerts("p1", entries)
    second = service.check_alerts("p1", entries)

    assert [a.kind for a in first] == [a.kind for a in second] == [PainAlertKind.BREAKTHROUGH_PAIN]
    assert first[0].subject_id == "p1"
    assert first[0].timestamp == entries[-1].timestamp
