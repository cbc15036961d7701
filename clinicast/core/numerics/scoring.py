"""
Clinical Scorer - NEWS2 and MEWS early warning scores.

Each factor is a step function with exact inclusive cutoffs. Values outside
every listed band fall through to the final branch, so out-of-range vitals
score as the most extreme tier instead of being rejected.
"""

from clinicast.core.domain.results import ClinicalScore, RiskTier
from clinicast.core.domain.vitals import Consciousness, VitalsSnapshot

NEWS2 = "news2"
MEWS = "mews"


# --- NEWS2 ---

def news2_respiratory_rate(rr: float) -> int:
    if rr <= 8:
        return 3
    if rr <= 11:
        return 1
    if rr <= 20:
        return 0
    if rr <= 24:
        return 2
    return 3


def news2_spo2_scale_1(spo2: float) -> int:
    if spo2 <= 91:
        return 3
    if spo2 <= 93:
        return 2
    if spo2 <= 95:
        return 1
    return 0


def news2_spo2_scale_2(spo2: float) -> int:
    """Scale for patients with a prescribed 88-92% target."""
    if spo2 <= 83:
        return 3
    if spo2 <= 85:
        return 2
    if spo2 <= 87:
        return 1
    if spo2 <= 92:
        return 0
    if spo2 <= 94:
        return 1
    if spo2 <= 96:
        return 2
    return 3


def news2_air_or_oxygen(on_oxygen: bool) -> int:
    return 2 if on_oxygen else 0


def news2_systolic_bp(sbp: float) -> int:
    if sbp <= 90:
        return 3
    if sbp <= 100:
        return 2
    if sbp <= 110:
        return 1
    if sbp <= 219:
        return 0
    return 3


def news2_heart_rate(hr: float) -> int:
    if hr <= 40:
        return 3
    if hr <= 50:
        return 1
    if hr <= 90:
        return 0
    if hr <= 110:
        return 1
    if hr <= 130:
        return 2
    return 3


def news2_consciousness(level: Consciousness) -> int:
    return 0 if level == Consciousness.ALERT else 3


def news2_temperature(temp: float) -> int:
    if temp <= 35.0:
        return 3
    if temp <= 36.0:
        return 1
    if temp <= 38.0:
        return 0
    if temp <= 39.0:
        return 1
    return 2


def score_news2(vitals: VitalsSnapshot) -> ClinicalScore:
    """
    Compute NEWS2 from one snapshot.

    Tier is high at 7+, medium at 5+ or when any 0-3 parameter scores 3,
    low at 1+, otherwise none.
    """
    spo2_scorer = news2_spo2_scale_2 if vitals.use_spo2_scale_2 else news2_spo2_scale_1
    components = {
        "respiratory_rate": news2_respiratory_rate(vitals.respiratory_rate),
        "spo2": spo2_scorer(vitals.spo2),
        "air_or_oxygen": news2_air_or_oxygen(vitals.on_oxygen),
        "systolic_bp": news2_systolic_bp(vitals.systolic_bp),
        "heart_rate": news2_heart_rate(vitals.heart_rate),
        "consciousness": news2_consciousness(vitals.consciousness),
        "temperature": news2_temperature(vitals.temperature),
    }
    total = sum(components.values())
    # air_or_oxygen tops out at 2 and never counts as an extreme parameter
    extreme = any(score == 3 for name, score in components.items() if name != "air_or_oxygen")

    single_parameter = False
    if total >= 7:
        tier = RiskTier.HIGH
        response = "Emergency response - urgent clinical review by critical care team. Consider transfer to ICU/HDU."
        frequency = "Continuous monitoring"
    elif total >= 5:
        tier = RiskTier.MEDIUM
        response = "Urgent response - clinical review by clinician with acute care competencies"
        frequency = "Minimum every hour"
    elif extreme:
        tier = RiskTier.MEDIUM
        single_parameter = True
        response = "Urgent ward-based response - clinician review within 1 hour"
        frequency = "Minimum every hour"
    elif total >= 1:
        tier = RiskTier.LOW
        response = "Ward-based response - inform registered nurse, assess patient"
        frequency = "Minimum every 4-6 hours"
    else:
        tier = RiskTier.NONE
        response = "Continue routine monitoring"
        frequency = "Minimum every 12 hours"

    return ClinicalScore(
        standard=NEWS2,
        total_score=total,
        risk_tier=tier,
        component_scores=components,
        recommended_response=response,
        monitoring_frequency=frequency,
        single_parameter_trigger=single_parameter,
    )


# --- MEWS ---

def mews_systolic_bp(sbp: float) -> int:
    if sbp <= 70:
        return 3
    if sbp <= 80:
        return 2
    if sbp <= 100:
        return 1
    if sbp <= 199:
        return 0
    return 2


def mews_heart_rate(hr: float) -> int:
    if hr < 40:
        return 2
    if hr <= 50:
        return 1
    if hr <= 100:
        return 0
    if hr <= 110:
        return 1
    if hr <= 129:
        return 2
    return 3


def mews_respiratory_rate(rr: float) -> int:
    if rr < 9:
        return 2
    if rr <= 14:
        return 0
    if rr <= 20:
        return 1
    if rr <= 29:
        return 2
    return 3


def mews_temperature(temp: float) -> int:
    if temp < 35:
        return 2
    if temp <= 38.4:
        return 0
    return 2


_MEWS_CONSCIOUSNESS = {
    Consciousness.ALERT: 0,
    Consciousness.VOICE: 1,
    Consciousness.PAIN: 2,
}


def mews_consciousness(level: Consciousness) -> int:
    """AVPU; anything not A, V or P scores as unresponsive."""
    return _MEWS_CONSCIOUSNESS.get(level, 3)


def score_mews(vitals: VitalsSnapshot) -> ClinicalScore:
    """Compute MEWS from one snapshot. Tiers: 5+ critical, 4 high, 2-3 medium, else low."""
    components = {
        "systolic_bp": mews_systolic_bp(vitals.systolic_bp),
        "heart_rate": mews_heart_rate(vitals.heart_rate),
        "respiratory_rate": mews_respiratory_rate(vitals.respiratory_rate),
        "temperature": mews_temperature(vitals.temperature),
        "consciousness": mews_consciousness(vitals.consciousness),
    }
    total = sum(components.values())

    if total >= 5:
        tier = RiskTier.CRITICAL
        response = "Immediate assessment by senior clinician. Consider ICU admission. Activate rapid response if available."
        frequency = "Continuous monitoring"
    elif total >= 4:
        tier = RiskTier.HIGH
        response = "Urgent clinical review. Increase monitoring frequency. Notify senior clinician."
        frequency = "Minimum every hour"
    elif total >= 2:
        tier = RiskTier.MEDIUM
        response = "Increase monitoring frequency. Nurse-led assessment. Consider medical review."
        frequency = "Minimum every 2 hours"
    else:
        tier = RiskTier.LOW
        response = "Continue routine monitoring per unit protocol."
        frequency = "Minimum every 12 hours"

    return ClinicalScore(
        standard=MEWS,
        total_score=total,
        risk_tier=tier,
        component_scores=components,
        recommended_response=response,
        monitoring_frequency=frequency,
    )
