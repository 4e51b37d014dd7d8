"""
Reputation scoring: an explicit, named weight table plus its learner.

This is not a statistical model. Weights come from two plain mutators:
- train: weight = mean(labels) / feature value for each trained factor
  (0 when the feature is 0), replacing earlier values for those factors;
- update: adds a fixed delta per detected payment pattern.

Prediction starts at 50 and adds value * weight * 10 per table entry in
insertion order, then clamps once to [0, 100]. Same calls in the same order
always produce the same weights and scores.
"""

from __future__ import annotations

import statistics
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from backend_shadowintel.analysis_engine.features import (
    HIGH_VALUE_AVG_AMOUNT,
    MIN_PAYMENTS_FOR_REGULARITY,
    MULTI_CHAIN_MIN_VENUES,
    ReputationFeatures,
    extract_private_reputation_features,
    extract_reputation_features,
    is_regular_timing,
)
from backend_shadowintel.analysis_engine.models import PaymentEvent, ReputationPrediction
from backend_shadowintel.core.identity import identity_key_hex
from backend_shadowintel.intel_logging import get_logger, short_identity

logger = get_logger(__name__)

BASE_SCORE = 50.0
SCORE_MIN = 0.0
SCORE_MAX = 100.0
WEIGHT_SCALE = 10.0
BASE_CONFIDENCE = 0.5
# Confidence reaches 1.0 at this many payments
CONFIDENCE_FULL_AT_PAYMENTS = 10

TRAINED_FACTORS = ("payment_count", "success_rate", "chain_diversity", "recent_activity")

PATTERN_REGULAR = "regular"
PATTERN_HIGH_VALUE = "high_value"
PATTERN_MULTI_CHAIN = "multi_chain"
PATTERN_WEIGHTS = {
    PATTERN_REGULAR: 0.3,
    PATTERN_HIGH_VALUE: 0.2,
    PATTERN_MULTI_CHAIN: 0.2,
}
# Pattern weights read the matching 0/1 indicator feature
PATTERN_FEATURES = {
    PATTERN_REGULAR: "is_regular",
    PATTERN_HIGH_VALUE: "high_value",
    PATTERN_MULTI_CHAIN: "multi_chain",
}

FACTOR_HIGH_ACTIVITY = "high_activity"
FACTOR_RELIABLE = "reliable"
FACTOR_MULTI_CHAIN = "multi_chain"
FACTOR_RECENT_ACTIVITY = "recent_activity"
FACTOR_HIGH_VALUE = "high_value"
FACTOR_REGULAR = "regular"
FACTOR_NEW_USER = "new_user"
FACTOR_INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class PaymentPatternSignal:
    """A detected payment pattern and the weight delta it contributes."""

    type: str
    weight: float


@dataclass
class TrainingData:
    payments: list[PaymentEvent]
    labels: list[float]
    """Reputation scores (0–100) observed for this payment history."""


class ReputationWeights:
    """
    Ordered factor -> weight table used to score reputation features.

    Shared across requests: mutators hold the lock; predict scores a snapshot.
    """

    def __init__(self) -> None:
        self._weights: dict[str, float] = {}
        self._lock = threading.Lock()

    def train(self, features: ReputationFeatures, labels: Sequence[float]) -> None:
        avg_label = statistics.fmean(labels)
        with self._lock:
            for factor in TRAINED_FACTORS:
                value = features.value(factor)
                self._weights[factor] = avg_label / value if value > 0 else 0.0

    def update(self, patterns: Sequence[PaymentPatternSignal]) -> None:
        with self._lock:
            for pattern in patterns:
                self._weights[pattern.type] = self._weights.get(pattern.type, 0.0) + pattern.weight

    def predict(self, features: ReputationFeatures) -> tuple[float, float]:
        """Return (score in [0, 100], confidence in [0.5, 1])."""
        score = BASE_SCORE
        for factor, weight in self.as_dict().items():
            value = features.value(PATTERN_FEATURES.get(factor, factor))
            score += value * weight * WEIGHT_SCALE
        score = max(SCORE_MIN, min(SCORE_MAX, score))

        data_quality = 0.0
        if features.payment_count > 0:
            data_quality = min(1.0, features.payment_count / CONFIDENCE_FULL_AT_PAYMENTS)
        confidence = BASE_CONFIDENCE + data_quality * (1.0 - BASE_CONFIDENCE)
        return score, confidence

    def as_dict(self) -> dict[str, float]:
        with self._lock:
            return dict(self._weights)

    def __len__(self) -> int:
        return len(self._weights)


def is_regular_pattern(payments: Sequence[PaymentEvent]) -> bool:
    """Three or more payments with near-constant spacing (order as given)."""
    return is_regular_timing([p.timestamp_ms for p in payments], MIN_PAYMENTS_FOR_REGULARITY)


def identify_patterns(payments: Sequence[PaymentEvent]) -> list[PaymentPatternSignal]:
    if not payments:
        return []
    patterns: list[PaymentPatternSignal] = []
    if is_regular_pattern(payments):
        patterns.append(PaymentPatternSignal(PATTERN_REGULAR, PATTERN_WEIGHTS[PATTERN_REGULAR]))
    avg_amount = sum(p.amount for p in payments) / len(payments)
    if avg_amount > HIGH_VALUE_AVG_AMOUNT:
        patterns.append(PaymentPatternSignal(PATTERN_HIGH_VALUE, PATTERN_WEIGHTS[PATTERN_HIGH_VALUE]))
    if len({p.venue for p in payments}) >= MULTI_CHAIN_MIN_VENUES:
        patterns.append(PaymentPatternSignal(PATTERN_MULTI_CHAIN, PATTERN_WEIGHTS[PATTERN_MULTI_CHAIN]))
    return patterns


def identify_factors(features: ReputationFeatures) -> list[str]:
    """Explainable factor tags for a feature vector; ["new_user"] when none apply."""
    factors: list[str] = []
    if features.payment_count > 10:
        factors.append(FACTOR_HIGH_ACTIVITY)
    if features.success_rate > 0.95:
        factors.append(FACTOR_RELIABLE)
    if features.chain_diversity > 0.5:
        factors.append(FACTOR_MULTI_CHAIN)
    if features.recent_activity > 0.7:
        factors.append(FACTOR_RECENT_ACTIVITY)
    if features.avg_amount > 100_000:
        factors.append(FACTOR_HIGH_VALUE)
    if features.is_regular > 0:
        factors.append(FACTOR_REGULAR)
    return factors or [FACTOR_NEW_USER]


@dataclass
class ReputationLearner:
    """Trains and queries a ReputationWeights table; keeps submitted training data."""

    weights: ReputationWeights = field(default_factory=ReputationWeights)
    training_data: list[TrainingData] = field(default_factory=list)
    is_trained: bool = False

    def train(self, data: TrainingData, now_ms: int | None = None) -> None:
        if not data.labels:
            logger.warning("reputation_train_skipped", reason="no_labels", payments=len(data.payments))
            return
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        self.training_data.append(data)
        features = extract_reputation_features(data.payments, now_ms)
        self.weights.train(features, data.labels)
        self.is_trained = True
        logger.info(
            "reputation_model_trained",
            payments=len(data.payments),
            labels=len(data.labels),
            weights=self.weights.as_dict(),
        )

    def predict(
        self,
        identity_key: bytes,
        history: Sequence[PaymentEvent] | None = None,
        now_ms: int | None = None,
    ) -> ReputationPrediction:
        """
        Predict reputation for an identity.

        Untrained and no history -> 50 / 0.5 / ["insufficient_data"].
        With history -> direct features; otherwise hash-derived features of the identity key.
        """
        if not self.is_trained and history is None:
            return ReputationPrediction(score=BASE_SCORE, confidence=BASE_CONFIDENCE, factors=[FACTOR_INSUFFICIENT_DATA])

        if history is not None:
            now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
            features = extract_reputation_features(history, now_ms)
        else:
            features = extract_private_reputation_features(identity_key)

        score, confidence = self.weights.predict(features)
        prediction = ReputationPrediction(score=score, confidence=confidence, factors=identify_factors(features))
        logger.debug(
            "reputation_predicted",
            identity=short_identity(identity_key_hex(identity_key)),
            score=round(score, 2),
            confidence=round(confidence, 4),
            factors=prediction.factors,
        )
        return prediction

    def learn_from_payments(self, payments: Sequence[PaymentEvent]) -> list[PaymentPatternSignal]:
        """Detect patterns in payments and add their deltas to the weight table."""
        patterns = identify_patterns(payments)
        self.weights.update(patterns)
        logger.debug("reputation_patterns_learned", patterns=[p.type for p in patterns])
        return patterns

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_trained": self.is_trained,
            "training_sets": len(self.training_data),
            "weights": self.weights.as_dict(),
        }
