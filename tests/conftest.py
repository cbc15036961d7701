"""
Shared fixtures for Clinicast tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from clinicast.adapters.stores.memory_store import InMemoryStateStore
from clinicast.core.domain.readings import Reading, SignalType
from clinicast.core.services.engine import ClinicalEngine

T0 = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def engine(store):
    return ClinicalEngine(store)


@pytest.fixture
def make_readings():
    """Build an hourly reading window from a list of values."""
    def _make(values, signal_type=SignalType.HEART_RATE, start=T0, step=timedelta(hours=1), subject_id="patient-1"):
        return [
            Reading(signal_type=signal_type, value=v, timestamp=start + i * step, subject_id=subject_id)
            for i, v in enumerate(values)
        ]
    return _make
