"""
Fraud detector: per-identity payment history in, explainable risk verdict out.

assess_risk is a pure function of the event, the options and the current
history; it never records anything. History only grows through update_pattern.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_shadowintel.analysis_engine.anomaly import detect_anomalies
from backend_shadowintel.analysis_engine.features import extract_risk_features
from backend_shadowintel.analysis_engine.models import FraudAssessment, PaymentEvent
from backend_shadowintel.analysis_engine.scorer import (
    compute_confidence,
    compute_risk_score,
    score_to_level,
)
from backend_shadowintel.config.settings import DEFAULT_SENSITIVITY, PAYMENT_HISTORY_CAPACITY
from backend_shadowintel.history import HistoryStore
from backend_shadowintel.intel_logging import get_logger, short_identity

logger = get_logger(__name__)


@dataclass(frozen=True)
class DetectionOptions:
    """preserve_privacy selects hash-derived features; sensitivity gates anomaly rules."""

    preserve_privacy: bool = True
    sensitivity: float = DEFAULT_SENSITIVITY


class FraudDetector:
    def __init__(self, payment_history: HistoryStore[PaymentEvent] | None = None) -> None:
        self.payment_history: HistoryStore[PaymentEvent] = (
            payment_history
            if payment_history is not None
            else HistoryStore(PAYMENT_HISTORY_CAPACITY, name="payment_history")
        )

    def assess_risk(
        self,
        event: PaymentEvent,
        options: DetectionOptions | None = None,
    ) -> FraudAssessment:
        """
        Score fraud risk for a payment.

        Pipeline: features (private or direct) -> gated anomaly rules ->
        additive risk score -> level -> confidence.
        """
        opts = options or DetectionOptions()
        history = self.payment_history.get(event.identity_key)
        features = extract_risk_features(event, history, preserve_privacy=opts.preserve_privacy)
        anomalies = detect_anomalies(features, opts.sensitivity)
        risk_score = compute_risk_score(anomalies, features)
        assessment = FraudAssessment(
            risk_score=risk_score,
            risk_level=score_to_level(risk_score),
            anomalies=anomalies,
            confidence=compute_confidence(features, anomalies),
        )
        logger.debug(
            "fraud_risk_assessed",
            identity=short_identity(event.identity_hex),
            venue=event.venue,
            preserve_privacy=opts.preserve_privacy,
            sensitivity=opts.sensitivity,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
            anomaly_flags=anomalies,
        )
        return assessment

    def update_pattern(self, event: PaymentEvent) -> None:
        """Record a payment into the identity's pattern history."""
        self.payment_history.record(event.identity_key, event)

    def get_pattern(self, identity_key: bytes) -> tuple[PaymentEvent, ...]:
        return self.payment_history.get(identity_key)
