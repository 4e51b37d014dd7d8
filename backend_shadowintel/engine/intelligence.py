"""
Intelligence engine: one store set, one of each component, feature toggles.

Responsibilities:
- Build the shared history stores from settings (capacities, lock stripes).
- Wire RouteSelector, ReputationLearner, PrivacyAdapter, FraudDetector and
  the PaymentBridge over those stores.
- Apply feature toggles: a disabled component answers with a fixed neutral
  result instead of being called.
"""

from __future__ import annotations

import time
from typing import Any, Sequence

from backend_shadowintel.analysis_engine.anomaly import validate_sensitivity
from backend_shadowintel.analysis_engine.fraud_detector import DetectionOptions, FraudDetector
from backend_shadowintel.analysis_engine.models import (
    FraudAssessment,
    PaymentEvent,
    ReputationPrediction,
    ThreatLevel,
)
from backend_shadowintel.analysis_engine.reputation import (
    PaymentPatternSignal,
    ReputationLearner,
    TrainingData,
)
from backend_shadowintel.config.settings import IntelligenceSettings, get_settings
from backend_shadowintel.core.identity import identity_key_hex
from backend_shadowintel.engine.bridge import OptimizedPayment, PaymentBridge, PaymentRequest
from backend_shadowintel.history import HistoryStore
from backend_shadowintel.intel_logging import get_logger, short_identity
from backend_shadowintel.privacy.adapter import PrivacyAdapter, PrivacyContext
from backend_shadowintel.privacy.tiers import PrivacyConfiguration, PrivacyLevel, config_for_tier
from backend_shadowintel.routing.router import PaymentRoute, RouteSelector, RoutingOptions, default_route
from backend_shadowintel.routing.venues import VenueRegistry

logger = get_logger(__name__)

AI_DISABLED_FACTOR = "ai_disabled"
DISABLED_REPUTATION_SCORE = 50.0
DISABLED_REPUTATION_CONFIDENCE = 0.5
DISABLED_RISK_SCORE = 0.5
DISABLED_RISK_CONFIDENCE = 0.5


def disabled_reputation() -> ReputationPrediction:
    return ReputationPrediction(
        score=DISABLED_REPUTATION_SCORE,
        confidence=DISABLED_REPUTATION_CONFIDENCE,
        factors=[AI_DISABLED_FACTOR],
    )


def disabled_fraud_assessment() -> FraudAssessment:
    return FraudAssessment(
        risk_score=DISABLED_RISK_SCORE,
        risk_level=ThreatLevel.MEDIUM,
        anomalies=[],
        confidence=DISABLED_RISK_CONFIDENCE,
    )


class IntelligenceEngine:
    """Caller-facing entry point over all decision components."""

    def __init__(
        self,
        settings: IntelligenceSettings | None = None,
        *,
        venues: VenueRegistry | None = None,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        s = self.settings
        validate_sensitivity(s.sensitivity)

        self.route_history: HistoryStore[PaymentRoute] = HistoryStore(
            s.route_history_capacity, name="route_history", lock_stripes=s.lock_stripes
        )
        self.threat_history: HistoryStore[ThreatLevel] = HistoryStore(
            s.threat_history_capacity, name="threat_history", lock_stripes=s.lock_stripes
        )
        self.payment_history: HistoryStore[PaymentEvent] = HistoryStore(
            s.payment_history_capacity, name="payment_history", lock_stripes=s.lock_stripes
        )

        self.router = RouteSelector(venues=venues, route_history=self.route_history)
        self.reputation_learner = ReputationLearner()
        self.privacy_adapter = PrivacyAdapter(threat_history=self.threat_history)
        self.fraud_detector = FraudDetector(payment_history=self.payment_history)
        self.detection_options = DetectionOptions(
            preserve_privacy=s.preserve_privacy,
            sensitivity=s.sensitivity,
        )
        self.bridge = PaymentBridge(
            self.router,
            self.fraud_detector,
            self.privacy_adapter,
            sensitivity=s.sensitivity,
            default_tier=s.default_requested_tier,
        )
        logger.info("intelligence_engine_ready", **self.feature_flags())

    def feature_flags(self) -> dict[str, bool]:
        s = self.settings
        return {
            "payment_routing": s.enable_payment_routing,
            "reputation_learning": s.enable_reputation_learning,
            "privacy_adaptation": s.enable_privacy_adaptation,
            "fraud_detection": s.enable_fraud_detection,
        }

    # --- routing ---

    def select_route(self, options: RoutingOptions) -> PaymentRoute:
        if not self.settings.enable_payment_routing:
            return default_route(options.target_venue)
        return self.router.find_optimal_route(options)

    def record_outcome(self, venue: str, route: PaymentRoute) -> None:
        self.router.record_outcome(venue, route)

    # --- risk ---

    def assess_risk(self, event: PaymentEvent, options: DetectionOptions | None = None) -> FraudAssessment:
        if not self.settings.enable_fraud_detection:
            return disabled_fraud_assessment()
        return self.fraud_detector.assess_risk(event, options or self.detection_options)

    assess_fraud = assess_risk

    # --- privacy tier ---

    def adapt_tier(self, context: PrivacyContext) -> PrivacyConfiguration:
        if not self.settings.enable_privacy_adaptation:
            return config_for_tier(PrivacyLevel.MEDIUM)
        return self.privacy_adapter.adapt_privacy_level(context)

    adapt_privacy = adapt_tier

    def update_threat_history(self, identity_key: bytes, threat: ThreatLevel | str) -> None:
        self.privacy_adapter.update_threat_history(identity_key, threat)

    # --- reputation ---

    def predict_reputation(
        self,
        identity_key: bytes,
        history: Sequence[PaymentEvent] | None = None,
        now_ms: int | None = None,
    ) -> ReputationPrediction:
        if not self.settings.enable_reputation_learning:
            return disabled_reputation()
        return self.reputation_learner.predict(identity_key, history, now_ms)

    def train_reputation(self, data: TrainingData, now_ms: int | None = None) -> None:
        if not self.settings.enable_reputation_learning:
            logger.info("reputation_train_skipped", reason="disabled")
            return
        self.reputation_learner.train(data, now_ms)

    def learn_from_payments(self, payments: Sequence[PaymentEvent]) -> list[PaymentPatternSignal]:
        """Feed observed payments to the reputation learner and the fraud pattern history."""
        patterns: list[PaymentPatternSignal] = []
        if self.settings.enable_reputation_learning:
            patterns = self.reputation_learner.learn_from_payments(payments)
        if self.settings.enable_fraud_detection:
            for event in payments:
                self.fraud_detector.update_pattern(event)
        logger.info(
            "payments_learned",
            payments=len(payments),
            patterns=[p.type for p in patterns],
        )
        return patterns

    # --- composed decision ---

    def optimize_payment(self, request: PaymentRequest, now_ms: int | None = None) -> OptimizedPayment:
        return self.bridge.optimize_payment(request, now_ms)

    def learn_from_payment(
        self,
        request: PaymentRequest,
        success: bool,
        actual_fee: int | None = None,
        now_ms: int | None = None,
    ) -> PaymentRoute:
        return self.bridge.learn_from_payment(request, success, actual_fee, now_ms)

    def get_intelligence_summary(self, identity_key: bytes, now_ms: int | None = None) -> dict[str, Any]:
        """Reputation for the identity (from its observed payments when any) plus feature flags."""
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        observed = self.fraud_detector.get_pattern(identity_key)
        reputation = self.predict_reputation(identity_key, list(observed) or None, now_ms)
        logger.debug(
            "intelligence_summary",
            identity=short_identity(identity_key_hex(identity_key)),
            observed_payments=len(observed),
        )
        return {
            "reputation_score": reputation.score,
            "reputation_confidence": reputation.confidence,
            "reputation_factors": list(reputation.factors),
            "observed_payments": len(observed),
            "ai_enabled": self.feature_flags(),
        }
