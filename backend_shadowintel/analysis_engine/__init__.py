"""
Analysis engine package: fraud risk and reputation scoring.

Turns payment histories into bounded feature vectors, applies gated anomaly
rules and weighted aggregation, and produces explainable verdicts with a
confidence value.
"""

from backend_shadowintel.analysis_engine.models import (
    EMPTY_COMMITMENT,
    FraudAssessment,
    PaymentEvent,
    ReputationPrediction,
    ThreatLevel,
    TransactionType,
)
from backend_shadowintel.analysis_engine.features import (
    ReputationFeatures,
    RiskFeatures,
    extract_reputation_features,
    extract_risk_features,
)
from backend_shadowintel.analysis_engine.anomaly import detect_anomalies
from backend_shadowintel.analysis_engine.scorer import (
    compute_confidence,
    compute_risk_score,
    score_to_level,
)
from backend_shadowintel.analysis_engine.fraud_detector import DetectionOptions, FraudDetector
from backend_shadowintel.analysis_engine.reputation import (
    ReputationLearner,
    ReputationWeights,
    TrainingData,
)

__all__ = [
    "EMPTY_COMMITMENT",
    "FraudAssessment",
    "PaymentEvent",
    "ReputationPrediction",
    "ThreatLevel",
    "TransactionType",
    "ReputationFeatures",
    "RiskFeatures",
    "extract_reputation_features",
    "extract_risk_features",
    "detect_anomalies",
    "compute_confidence",
    "compute_risk_score",
    "score_to_level",
    "DetectionOptions",
    "FraudDetector",
    "ReputationLearner",
    "ReputationWeights",
    "TrainingData",
]
