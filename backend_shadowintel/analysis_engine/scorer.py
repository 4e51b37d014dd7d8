"""
Risk score computation: additive rules, level cut points, confidence.

Responsibilities:
- Aggregate anomaly count and feature thresholds into a risk score in [0, 1].
- Map the score to a discrete level with inclusive lower bounds.
- Derive a heuristic confidence (more signal => higher confidence).
"""

from __future__ import annotations

from backend_shadowintel.analysis_engine.features import RiskFeatures
from backend_shadowintel.analysis_engine.models import ThreatLevel

RISK_PER_ANOMALY = 0.15
RISK_HIGH_FREQUENCY = 0.2
HIGH_FREQUENCY_THRESHOLD = 0.9
RISK_HIGH_DEVIATION = 0.15
HIGH_DEVIATION_THRESHOLD = 0.7
RISK_IRREGULAR_TIMING = 0.1
RISK_SCORE_MAX = 1.0

# score >= cut -> level; checked top-down
LEVEL_CUTS: tuple[tuple[float, ThreatLevel], ...] = (
    (0.8, ThreatLevel.CRITICAL),
    (0.6, ThreatLevel.HIGH),
    (0.4, ThreatLevel.MEDIUM),
)

CONFIDENCE_BASE = 0.5
CONFIDENCE_FREQUENCY_BONUS = 0.2
CONFIDENCE_ANOMALY_BONUS = 0.2
CONFIDENCE_MAX = 1.0


def compute_risk_score(anomalies: list[str], features: RiskFeatures) -> float:
    """
    Additive risk: 0.15 per anomaly, +0.2 if frequency > 0.9,
    +0.15 if amount deviation > 0.7, +0.1 if timing irregular. Clamped once at the end.
    """
    risk = len(anomalies) * RISK_PER_ANOMALY
    if features.frequency > HIGH_FREQUENCY_THRESHOLD:
        risk += RISK_HIGH_FREQUENCY
    if features.amount_deviation > HIGH_DEVIATION_THRESHOLD:
        risk += RISK_HIGH_DEVIATION
    if features.time_pattern == 0:
        risk += RISK_IRREGULAR_TIMING
    return min(RISK_SCORE_MAX, risk)


def score_to_level(score: float) -> ThreatLevel:
    """0.8 -> critical, 0.6 -> high, 0.4 -> medium (each cut inclusive); else low."""
    for cut, level in LEVEL_CUTS:
        if score >= cut:
            return level
    return ThreatLevel.LOW


def compute_confidence(features: RiskFeatures, anomalies: list[str]) -> float:
    confidence = CONFIDENCE_BASE
    if features.frequency > 0:
        confidence += CONFIDENCE_FREQUENCY_BONUS
    if anomalies:
        confidence += CONFIDENCE_ANOMALY_BONUS
    return min(CONFIDENCE_MAX, confidence)
