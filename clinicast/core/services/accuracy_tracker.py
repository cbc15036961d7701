"""
Accuracy Tracker - Predicted-vs-actual samples and error metrics.

Samples are kept in a bounded ring per (key, method) inside the injected
StateStore and are only exposed in aggregate.
"""

import logging

import numpy as np

from clinicast.core.domain.models import AccuracySample
from clinicast.core.domain.results import AccuracyStats
from clinicast.core.numerics import stats
from clinicast.core.ports.state_store import StateStore

logger = logging.getLogger(__name__)

NAMESPACE = "accuracy"
DEFAULT_CAPACITY = 100


class AccuracyTracker:
    """
    Records forecast errors and reports MAE, MAPE and RMSE.
    """

    def __init__(self, store: StateStore, capacity: int = DEFAULT_CAPACITY):
        self.store = store
        self.capacity = capacity

    @staticmethod
    def _ring_key(key: str, method: str) -> str:
        return f"{key}:{method}"

    def record(self, key: str, predicted: float, actual: float, method: str) -> None:
        """Append one sample, dropping the oldest beyond capacity."""
        sample = AccuracySample(predicted=predicted, actual=actual, method=method)
        self.store.append(NAMESPACE, self._ring_key(key, method), sample.model_dump(), self.capacity)

    def accuracy(self, key: str, method: str) -> AccuracyStats:
        """
        Aggregate error metrics. All zero when nothing was recorded.

        MAPE is in percent; samples with an actual of 0 contribute 0.
        """
        samples = [AccuracySample(**item) for item in self.store.get_list(NAMESPACE, self._ring_key(key, method))]
        if not samples:
            return AccuracyStats(key=key, method=method)

        predicted = np.array([s.predicted for s in samples])
        actual = np.array([s.actual for s in samples])
        errors = predicted - actual

        nonzero = actual != 0
        ape = np.zeros_like(errors)
        ape[nonzero] = np.abs(errors[nonzero]) / np.abs(actual[nonzero])

        return AccuracyStats(
            key=key,
            method=method,
            mae=stats.round_to(float(np.mean(np.abs(errors))), 2),
            mape=stats.round_to(float(np.mean(ape)) * 100, 2),
            rmse=stats.round_to(float(np.sqrt(np.mean(errors ** 2))), 2),
            sample_count=len(samples),
        )

    def reset(self) -> None:
        self.store.clear(NAMESPACE)
