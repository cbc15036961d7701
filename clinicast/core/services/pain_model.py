"""
Pain Prediction Service - Next-day pain intensity from a subject's pain diary.

Entries are rolled up per calendar day (UTC). Each day from the eighth onward
becomes one training row whose features describe the preceding days and whose
target is that day's mean intensity:

    1. rolling_avg_3d      mean of the previous 3 daily means
    2. rolling_avg_7d      mean of the previous 7 daily means
    3. day_of_week         0 = Monday
    4. days_since_start    days since the first diary day
    5. sleep_quality       previous day's mean sleep score (5 if unreported)
    6. medication_ratio    share of entries with medication over the previous 3 days
    7. activity_intensity  share of the previous day's entries with a high-pain activity
    8. is_weekend          1 on Saturday/Sunday

The same diary feeds four alert checks: escalating daily means, a
breakthrough spike, medication overuse and pain above the expected
post-surgical recovery curve.
"""

import logging
import math
from collections.abc import Sequence
from datetime import datetime

import numpy as np
import pandas as pd

from clinicast.core.domain.errors import InsufficientHistoryError
from clinicast.core.domain.models import RegressionModel
from clinicast.core.domain.readings import PainEntry
from clinicast.core.domain.results import ExpectedPainPoint, PainAlert, PainAlertKind, PainPrediction, Severity
from clinicast.core.numerics import stats
from clinicast.core.services.engine import ClinicalEngine

logger = logging.getLogger(__name__)

FEATURE_NAMES = [
    "rolling_avg_3d",
    "rolling_avg_7d",
    "day_of_week",
    "days_since_start",
    "sleep_quality",
    "medication_ratio",
    "activity_intensity",
    "is_weekend",
]
HIGH_PAIN_ACTIVITIES = {"physical_therapy", "climbing_stairs", "driving"}
NEUTRAL_SLEEP_QUALITY = 5.0
RECENT_SLEEP_ENTRIES = 10
MEDICATION_WINDOW_DAYS = 3

ESCALATION_WINDOW_DAYS = 5
ESCALATION_MIN_STEP = 0.1
ESCALATION_WARNING_RUN = 3
ESCALATION_CRITICAL_RUN = 4
BREAKTHROUGH_MIN_ENTRIES = 5
BREAKTHROUGH_LOOKBACK = 9
BREAKTHROUGH_SPIKE = 3.0
BREAKTHROUGH_FLOOR = 7.0
OVERUSE_MIN_ENTRIES = 10
OVERUSE_MIN_RECENT = 5
OVERUSE_WINDOW_DAYS = 7
OVERUSE_RATIO = 0.85
CURVE_MIN_ENTRIES = 5
CURVE_RECENT_DAYS = 3
CURVE_DAYS_ABOVE = 2
CURVE_LENGTH_DAYS = 28


def entries_to_frame(entries: Sequence[PainEntry]) -> pd.DataFrame:
    """Diary entries as a time-sorted frame with a UTC calendar 'date' column."""
    df = pd.DataFrame({
        "ds": pd.to_datetime([e.timestamp for e in entries], utc=True),
        "intensity": [e.intensity for e in entries],
        "sleep_quality": [e.sleep_quality if e.sleep_quality is not None else np.nan for e in entries],
        "medication_taken": [e.medication_taken for e in entries],
        "high_pain_activity": [e.activity in HIGH_PAIN_ACTIVITIES for e in entries],
    })
    df = df.sort_values("ds", kind="stable").reset_index(drop=True)
    df["date"] = df["ds"].dt.floor("D")
    return df


def daily_summary(df: pd.DataFrame) -> pd.DataFrame:
    """One row per diary day, oldest first."""
    return df.groupby("date").agg(
        mean_intensity=("intensity", "mean"),
        sleep_quality=("sleep_quality", "mean"),
        medication_count=("medication_taken", "sum"),
        entry_count=("intensity", "size"),
        activity_intensity=("high_pain_activity", "mean"),
    ).sort_index()


def _sleep_or_neutral(value: float) -> float:
    return NEUTRAL_SLEEP_QUALITY if pd.isna(value) else float(value)


def _calendar_features(date: pd.Timestamp, first_date: pd.Timestamp) -> tuple[int, int, int]:
    dow = int(date.dayofweek)
    return dow, int((date - first_date).days), 1 if dow >= 5 else 0


def days_between(a, b):
    """Whole days between two instants, floored. Works on Timestamps and Series."""
    return abs(b - a) // pd.Timedelta(days=1)


def expected_pain_curve() -> list[ExpectedPainPoint]:
    """
    Generic post-surgical recovery curve for days 0-28.

    Pain peaks around 7.5 and decays towards 2; the band is widest early on.
    """
    curve = []
    for day in range(CURVE_LENGTH_DAYS + 1):
        expected = 2 + 5.5 * math.exp(-0.12 * day)
        band = 1.2 + 0.3 * math.exp(-0.05 * day)
        curve.append(ExpectedPainPoint(
            day=day,
            expected_intensity=stats.round_to(expected, 1),
            upper_bound=stats.round_to(expected + band, 1),
            lower_bound=stats.round_to(max(0.0, expected - band), 1),
        ))
    return curve


class PainPredictionService:
    """
    Trains and applies the per-subject pain regression.

    Models are cached through the engine's store under the subject id and
    replaced wholesale on retrain.
    """

    def __init__(self, engine: ClinicalEngine):
        self.engine = engine
        self.min_days = engine.settings.min_training_days

    def _check_history(self, entries: Sequence[PainEntry], daily: pd.DataFrame) -> None:
        if len(entries) < self.min_days:
            raise InsufficientHistoryError(
                f"Insufficient data for training: need at least {self.min_days} days, have {len(entries)} entries",
                required=self.min_days,
                available=len(entries),
            )
        if len(daily) < self.min_days:
            raise InsufficientHistoryError(
                f"Insufficient unique days for training: need at least {self.min_days}, have {len(daily)}",
                required=self.min_days,
                available=len(daily),
            )

    def build_training_set(self, entries: Sequence[PainEntry]) -> tuple[list[list[float]], list[float]]:
        """
        Feature rows and targets for every day with a full week of history.

        Raises:
            InsufficientHistoryError: fewer than min_training_days entries or days
        """
        daily = daily_summary(entries_to_frame(entries)) if entries else pd.DataFrame()
        self._check_history(entries, daily)

        means = daily["mean_intensity"].to_numpy()
        first_date = daily.index[0]
        features: list[list[float]] = []
        targets: list[float] = []

        for i in range(7, len(daily)):
            dow, days_since_start, is_weekend = _calendar_features(daily.index[i], first_date)
            previous = daily.iloc[max(0, i - MEDICATION_WINDOW_DAYS):i]
            entry_total = previous["entry_count"].sum()
            medication_ratio = previous["medication_count"].sum() / entry_total if entry_total > 0 else 0.0

            features.append([
                float(means[i - 3:i].mean()),
                float(means[i - 7:i].mean()),
                dow,
                days_since_start,
                _sleep_or_neutral(daily["sleep_quality"].iloc[i - 1]),
                float(medication_ratio),
                float(daily["activity_intensity"].iloc[i - 1]),
                is_weekend,
            ])
            targets.append(float(means[i]))

        return features, targets

    def train(self, subject_id: str, entries: Sequence[PainEntry]) -> RegressionModel:
        """Train, cache and return the subject's model."""
        features, targets = self.build_training_set(entries)
        model = self.engine.train_regression(features, targets, FEATURE_NAMES)
        self.engine.cache_model(subject_id, model)
        logger.info(f"Trained pain model for '{subject_id}' on {len(targets)} days: r_squared={model.r_squared:.3f}")
        return model

    def next_day_features(self, entries: Sequence[PainEntry]) -> tuple[list[float], pd.Timestamp]:
        """Feature vector describing the day after the last diary day."""
        df = entries_to_frame(entries)
        daily = daily_summary(df)
        self._check_history(entries, daily)

        means = daily["mean_intensity"].to_numpy()
        last_date = daily.index[-1]
        next_date = last_date + pd.Timedelta(days=1)
        dow, days_since_start, is_weekend = _calendar_features(next_date, daily.index[0])

        recent_sleep = df["sleep_quality"].tail(RECENT_SLEEP_ENTRIES).dropna()
        sleep_quality = float(recent_sleep.mean()) if not recent_sleep.empty else NEUTRAL_SLEEP_QUALITY

        # Whole days back from the last diary day's midnight, floored.
        recent = df[days_between(df["ds"], last_date) <= MEDICATION_WINDOW_DAYS]
        medication_ratio = float(recent["medication_taken"].mean()) if not recent.empty else 0.0

        features = [
            float(means[-3:].mean()),
            float(means[-7:].mean()),
            dow,
            days_since_start,
            sleep_quality,
            medication_ratio,
            float(daily["activity_intensity"].iloc[-1]),
            is_weekend,
        ]
        return features, next_date

    def predict_next_day(self, subject_id: str, entries: Sequence[PainEntry]) -> PainPrediction:
        """
        Predict tomorrow's pain, training first if no model is cached.

        Raises:
            InsufficientHistoryError: not enough diary days to train or predict
        """
        model = self.engine.get_model(subject_id)
        if model is None:
            model = self.train(subject_id, entries)

        features, next_date = self.next_day_features(entries)
        point = self.engine.predict(model, features)

        return PainPrediction(
            predicted_intensity=point.value,
            lower=point.lower,
            upper=point.upper,
            confidence=stats.round_to(model.r_squared, 3),
            features={name: stats.round_to(value, 3) for name, value in zip(model.feature_names, features)},
            date=next_date.date().isoformat(),
        )

    # --- Alerts ---

    def check_alerts(
        self,
        subject_id: str,
        entries: Sequence[PainEntry],
        as_of: datetime | None = None,
    ) -> list[PainAlert]:
        """
        Evaluate the diary for escalation, breakthrough pain, medication
        overuse and pain above the expected recovery curve.

        Alerts are not deduplicated; a condition that still holds alerts again.

        Args:
            subject_id: Subject the diary belongs to
            entries: Pain diary, any order
            as_of: End of the medication overuse window (defaults to the latest entry)
        """
        if not entries:
            return []

        df = entries_to_frame(entries)
        latest_at = df["ds"].iloc[-1]
        as_of = pd.Timestamp(as_of) if as_of is not None else latest_at
        if as_of.tzinfo is None:
            as_of = as_of.tz_localize("UTC")

        alerts: list[PainAlert] = []
        for check in (self._escalation, self._breakthrough, self._medication_overuse, self._above_curve):
            alert = check(df, as_of)
            if alert:
                alerts.append(PainAlert(subject_id=subject_id, timestamp=latest_at.to_pydatetime(), **alert))

        if alerts:
            logger.info(f"{len(alerts)} pain alert(s) for '{subject_id}': {[a.kind.value for a in alerts]}")
        return alerts

    def _escalation(self, df: pd.DataFrame, as_of: pd.Timestamp) -> dict | None:
        means = [stats.round_to(v, 2) for v in df.groupby("date")["intensity"].mean().sort_index()]
        if len(means) < 3:
            return None

        recent = means[-ESCALATION_WINDOW_DAYS:]
        run = 0
        for previous, current in zip(recent, recent[1:]):
            run = run + 1 if current > previous + ESCALATION_MIN_STEP else 0

        if run < ESCALATION_WARNING_RUN:
            return None
        return {
            "kind": PainAlertKind.PAIN_ESCALATION,
            "severity": Severity.CRITICAL if run >= ESCALATION_CRITICAL_RUN else Severity.WARNING,
            "message": (
                f"Pain has been increasing for {run} consecutive days. "
                f"Current average: {recent[-1]:g}/10. Consider reviewing pain management plan."
            ),
            "data": {"consecutive_days": run, "recent_values": recent},
        }

    def _breakthrough(self, df: pd.DataFrame, as_of: pd.Timestamp) -> dict | None:
        if len(df) < BREAKTHROUGH_MIN_ENTRIES:
            return None

        latest = float(df["intensity"].iloc[-1])
        recent_avg = stats.mean(df["intensity"].iloc[-BREAKTHROUGH_LOOKBACK - 1:-1].tolist())
        if latest < recent_avg + BREAKTHROUGH_SPIKE or latest < BREAKTHROUGH_FLOOR:
            return None

        return {
            "kind": PainAlertKind.BREAKTHROUGH_PAIN,
            "severity": Severity.CRITICAL,
            "message": (
                f"Breakthrough pain detected: {latest:g}/10 (recent average: {stats.round_to(recent_avg, 1):g}/10). "
                f"Spike of +{stats.round_to(latest - recent_avg, 1):g} points."
            ),
            "data": {"intensity": latest, "recent_average": stats.round_to(recent_avg, 1)},
        }

    def _medication_overuse(self, df: pd.DataFrame, as_of: pd.Timestamp) -> dict | None:
        if len(df) < OVERUSE_MIN_ENTRIES:
            return None

        recent = df[df["ds"] >= as_of - pd.Timedelta(days=OVERUSE_WINDOW_DAYS)]
        if len(recent) < OVERUSE_MIN_RECENT:
            return None

        medicated = int(recent["medication_taken"].sum())
        ratio = medicated / len(recent)
        if ratio <= OVERUSE_RATIO:
            return None

        return {
            "kind": PainAlertKind.MEDICATION_OVERUSE,
            "severity": Severity.WARNING,
            "message": (
                f"High medication usage detected: medication taken in {stats.round_to(ratio * 100, 0):g}% "
                f"of pain reports over the last {OVERUSE_WINDOW_DAYS} days ({medicated}/{len(recent)} entries). "
                f"Consider discussing medication plan with your doctor."
            ),
            "data": {
                "medication_ratio": stats.round_to(ratio, 2),
                "entries_with_medication": medicated,
                "total_entries": len(recent),
            },
        }

    def _above_curve(self, df: pd.DataFrame, as_of: pd.Timestamp) -> dict | None:
        if len(df) < CURVE_MIN_ENTRIES:
            return None

        upper_bounds = {point.day: point.upper_bound for point in expected_pain_curve()}
        first_at = df["ds"].iloc[0]
        daily = df.groupby("date")["intensity"].mean().sort_index()

        days_above = 0
        for date, daily_mean in daily.tail(CURVE_RECENT_DAYS).items():
            # Measured from the first entry itself, not its midnight.
            upper = upper_bounds.get(int(days_between(first_at, date)))
            if upper is not None and daily_mean > upper:
                days_above += 1

        if days_above < CURVE_DAYS_ABOVE:
            return None
        return {
            "kind": PainAlertKind.ABOVE_EXPECTED_CURVE,
            "severity": Severity.WARNING,
            "message": (
                f"Pain levels have been above the expected recovery curve for {days_above} of the last "
                f"{CURVE_RECENT_DAYS} days. This may indicate complications or inadequate pain management."
            ),
            "data": {"days_above_expected": days_above},
        }
