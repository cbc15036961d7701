from typing import Literal
from pydantic import BaseModel, Field

class EngineSettings(BaseModel):
    """
    Global engine configuration settings.
    """
    store_type: Literal["memory", "redis"] = Field(default="memory", description="State store backend")

    # Redis Store (also the Celery broker)
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL for state and task broker")
    redis_prefix: str = Field(default="clinicast", description="Key prefix for stored state")

    # Forecasting
    confidence_level: float = Field(default=0.95, description="Confidence level for forecast bands (0.90, 0.95, 0.99)")
    default_alpha: float = Field(default=0.3, gt=0, le=1, description="Level decay when no tuned parameters exist")
    default_beta: float = Field(default=0.1, gt=0, le=1, description="Trend decay when no tuned parameters exist")

    # Learning
    accuracy_capacity: int = Field(default=100, gt=0, description="Samples kept per (key, method)")
    min_training_days: int = Field(default=7, ge=1, description="Distinct days required to train a pain model")
    optimizer_max_history: int = Field(default=500, ge=10, description="Most recent points used by the grid search")

    log_level: str = Field(default="INFO", description="Root log level for the application")
