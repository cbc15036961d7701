"""
Reading Domain Models - Time-ordered measurements consumed by the engine.

Uses Pydantic for validation. Readings are immutable once recorded.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SignalType(str, Enum):
    """Measured signal kinds."""

    HEART_RATE = "heart_rate"
    SYSTOLIC_BP = "systolic_bp"
    DIASTOLIC_BP = "diastolic_bp"
    TEMPERATURE = "temperature"
    RESPIRATORY_RATE = "respiratory_rate"
    SPO2 = "spo2"
    MAP = "mean_arterial_pressure"
    PAIN_INTENSITY = "pain_intensity"


class Reading(BaseModel):
    """A single measurement for one subject and signal."""

    model_config = ConfigDict(frozen=True)

    signal_type: SignalType
    value: float
    timestamp: datetime
    subject_id: str


class PainEntry(BaseModel):
    """A pain diary entry with the context used by the next-day pain model."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    timestamp: datetime
    intensity: float = Field(ge=0, le=10)
    sleep_quality: float | None = Field(default=None, ge=1, le=10)  # last night, 1-10
    medication_taken: bool = False
    activity: str = "resting"
