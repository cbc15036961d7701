"""
Result Domain Models - Data structures for forecasts, scores and alerts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from clinicast.core.domain.readings import SignalType


class RiskTier(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TriggerKind(str, Enum):
    THRESHOLD_BREACH = "threshold_breach"
    RAPID_CHANGE = "rapid_change"
    TREND_DETERIORATION = "trend_deterioration"


class Severity(str, Enum):
    WARNING = "warning"
    URGENT = "urgent"
    CRITICAL = "critical"


class PainAlertKind(str, Enum):
    PAIN_ESCALATION = "pain_escalation"
    BREAKTHROUGH_PAIN = "breakthrough_pain"
    MEDICATION_OVERUSE = "medication_overuse"
    ABOVE_EXPECTED_CURVE = "above_expected_curve"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"
    FLUCTUATING = "fluctuating"


@dataclass
class ForecastPoint:
    """A single projected value with its confidence band."""

    timestamp: datetime | None
    value: float
    upper_bound: float
    lower_bound: float
    horizon_steps: int
    hours_ahead: float


@dataclass
class ForecastResult:
    """Output of one forecast call."""

    method: str
    forecast_points: list[ForecastPoint] = field(default_factory=list)
    trend: str = "stable"  # increasing | decreasing | stable
    confidence: float = 0.0  # min(n / 20, 1): history-size heuristic, not a probability
    signal_type: SignalType | None = None
    current_value: float | None = None


@dataclass
class PointPrediction:
    value: float
    lower: float
    upper: float


@dataclass
class ClinicalScore:
    """Early warning score computed from one vitals snapshot."""

    standard: str
    total_score: int
    risk_tier: RiskTier
    component_scores: dict[str, int]
    recommended_response: str
    monitoring_frequency: str
    single_parameter_trigger: bool = False


@dataclass
class Trigger:
    """An alert raised from the latest reading(s). Not deduplicated."""

    kind: TriggerKind
    signal_type: SignalType
    current_value: float
    severity: Severity
    message: str
    timestamp: datetime
    threshold: float | None = None


@dataclass
class TrendResult:
    direction: TrendDirection
    slope: float
    rate_of_change: float
    message: str
    signal_type: SignalType | None = None


@dataclass
class AccuracyStats:
    key: str
    method: str
    mae: float = 0.0
    mape: float = 0.0
    rmse: float = 0.0
    sample_count: int = 0


@dataclass
class PainPrediction:
    """Next-day pain forecast from the subject's regression model."""

    predicted_intensity: float
    lower: float
    upper: float
    confidence: float  # R² of the model
    features: dict[str, float]
    date: str  # ISO date the prediction is for


@dataclass
class ExpectedPainPoint:
    day: int
    expected_intensity: float
    upper_bound: float
    lower_bound: float


@dataclass
class PainAlert:
    """A pain diary alert. Repeats on every check while the condition holds."""

    subject_id: str
    kind: PainAlertKind
    severity: Severity
    message: str
    timestamp: datetime  # latest diary entry the alert was raised from
    data: dict[str, Any] = field(default_factory=dict)
