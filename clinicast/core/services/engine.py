"""
Clinical Engine - The library surface of Clinicast.

Wraps the pure numerical kernels and routes learned state (regression models,
tuned smoothing parameters, accuracy samples) through an injected StateStore.
Construct one per process and pass it by reference.
"""

import logging
from collections.abc import Sequence

from clinicast.core.domain.models import RegressionModel, SmoothingParameters
from clinicast.core.domain.readings import Reading, SignalType
from clinicast.core.domain.results import (
    AccuracyStats,
    ClinicalScore,
    ForecastResult,
    PointPrediction,
    TrendResult,
    Trigger,
)
from clinicast.core.domain.settings import EngineSettings
from clinicast.core.domain.vitals import VitalsSnapshot
from clinicast.core.numerics import optimizer, regression, scoring, smoothing, triggers
from clinicast.core.numerics.series import order_readings
from clinicast.core.ports.state_store import StateStore
from clinicast.core.services.accuracy_tracker import AccuracyTracker

logger = logging.getLogger(__name__)

MODELS = "models"
PARAMETERS = "parameters"


def parameter_key(subject_id: str, signal_type: SignalType | str) -> str:
    return f"{subject_id}:{SignalType(signal_type).value}"


class ClinicalEngine:
    """
    Forecasting, scoring and alerting over caller-supplied reading windows.
    """

    def __init__(self, store: StateStore, settings: EngineSettings | None = None):
        """
        Initialize the engine.

        Args:
            store: Port holding models, parameters and accuracy samples
            settings: Engine configuration (defaults if None)
        """
        self.store = store
        self.settings = settings or EngineSettings()
        self.accuracy = AccuracyTracker(store, capacity=self.settings.accuracy_capacity)

    @property
    def default_parameters(self) -> SmoothingParameters:
        return SmoothingParameters(alpha=self.settings.default_alpha, beta=self.settings.default_beta)

    # --- Regression ---

    def train_regression(
        self,
        features: Sequence[Sequence[float]],
        targets: Sequence[float],
        feature_names: Sequence[str],
    ) -> RegressionModel:
        return regression.train(features, targets, feature_names)

    def predict(
        self,
        model: RegressionModel,
        features: Sequence[float],
        domain: tuple[float, float] = regression.PAIN_DOMAIN,
    ) -> PointPrediction:
        return regression.predict(model, features, domain)

    def cache_model(self, subject_id: str, model: RegressionModel) -> None:
        self.store.put(MODELS, subject_id, model.model_dump())

    def get_model(self, subject_id: str) -> RegressionModel | None:
        data = self.store.get(MODELS, subject_id)
        return RegressionModel(**data) if data is not None else None

    # --- Forecasting ---

    def forecast(
        self,
        values: Sequence[float],
        horizon: int = 6,
        interval_hours: float = 1.0,
        signal_type: SignalType | str | None = None,
        params: SmoothingParameters | None = None,
    ) -> ForecastResult:
        """
        Forecast an ordered value series.

        Tuned parameters are never looked up implicitly; pass the result of
        get_cached_parameters() as ``params`` to use them.
        """
        signal = SignalType(signal_type) if signal_type is not None else None
        return smoothing.forecast_values(
            values,
            horizon=horizon,
            interval_hours=interval_hours,
            signal_type=signal,
            params=params or self.default_parameters,
            confidence_level=self.settings.confidence_level,
        )

    def forecast_readings(
        self,
        readings: Sequence[Reading],
        horizon: int = 6,
        interval_hours: float = 1.0,
        params: SmoothingParameters | None = None,
    ) -> ForecastResult:
        """Forecast a reading window; projections are stamped from the last reading."""
        ordered = order_readings(readings)
        if not ordered:
            return smoothing.forecast_values([], horizon=horizon)

        return smoothing.forecast_values(
            [r.value for r in ordered],
            horizon=horizon,
            interval_hours=interval_hours,
            signal_type=ordered[-1].signal_type,
            params=params or self.default_parameters,
            confidence_level=self.settings.confidence_level,
            start=ordered[-1].timestamp,
        )

    # --- Scoring & Alerts ---

    def score_news2(self, vitals: VitalsSnapshot) -> ClinicalScore:
        return scoring.score_news2(vitals)

    def score_mews(self, vitals: VitalsSnapshot) -> ClinicalScore:
        return scoring.score_mews(vitals)

    def detect_triggers(self, readings: Sequence[Reading]) -> list[Trigger]:
        return triggers.detect_triggers(readings)

    def classify_trend(self, readings: Sequence[Reading]) -> TrendResult:
        return triggers.classify_trend(readings)

    # --- Self-Learning ---

    def optimize_parameters(
        self,
        values: Sequence[float],
        subject_id: str | None = None,
        signal_type: SignalType | str | None = None,
    ) -> SmoothingParameters:
        """
        Grid-search smoothing constants and, when keyed, cache the result.

        Only the most recent ``optimizer_max_history`` points are searched.
        """
        history = list(values)[-self.settings.optimizer_max_history:]
        params = optimizer.optimize(history, defaults=self.default_parameters)

        if subject_id is not None and signal_type is not None:
            self.store.put(PARAMETERS, parameter_key(subject_id, signal_type), params.model_dump())
        return params

    def get_cached_parameters(self, subject_id: str, signal_type: SignalType | str) -> SmoothingParameters | None:
        data = self.store.get(PARAMETERS, parameter_key(subject_id, signal_type))
        return SmoothingParameters(**data) if data is not None else None

    def record_accuracy(self, key: str, predicted: float, actual: float, method: str) -> None:
        self.accuracy.record(key, predicted, actual, method)

    def get_accuracy(self, key: str, method: str) -> AccuracyStats:
        return self.accuracy.accuracy(key, method)

    def reset_learning(self) -> None:
        """Drop tuned parameters and accuracy samples."""
        self.store.clear(PARAMETERS)
        self.accuracy.reset()
        logger.info("Learning state reset")
