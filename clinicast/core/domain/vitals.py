"""
Vitals Snapshot - A single point-in-time set of observations for scoring.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Consciousness(str, Enum):
    """ACVPU alertness scale. MEWS uses the AVPU subset."""

    ALERT = "A"
    CONFUSION = "C"
    VOICE = "V"
    PAIN = "P"
    UNRESPONSIVE = "U"


class VitalsSnapshot(BaseModel):
    """Observations taken together at one bedside check."""

    model_config = ConfigDict(frozen=True)

    respiratory_rate: float
    spo2: float
    systolic_bp: float
    heart_rate: float
    temperature: float
    consciousness: Consciousness = Consciousness.ALERT
    on_oxygen: bool = False
    use_spo2_scale_2: bool = False  # hypercapnic respiratory failure target 88-92%
