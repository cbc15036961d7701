"""
Learned State - Records the engine produces and callers cache by key.

These are Pydantic models so store adapters can round-trip them through JSON.
"""

from pydantic import BaseModel, ConfigDict, Field


class RegressionModel(BaseModel):
    """Ordinary least squares fit. Replaced wholesale on retrain."""

    model_config = ConfigDict(frozen=True)

    weights: list[float]
    bias: float
    r_squared: float = Field(ge=0)
    feature_names: list[str]
    residual_std_dev: float = 0.0


class SmoothingParameters(BaseModel):
    """Level (alpha) and trend (beta) decay for double exponential smoothing."""

    model_config = ConfigDict(frozen=True)

    alpha: float = Field(default=0.3, gt=0, le=1)
    beta: float = Field(default=0.1, gt=0, le=1)


class AccuracySample(BaseModel):
    """One predicted-vs-actual pair."""

    predicted: float
    actual: float
    method: str
