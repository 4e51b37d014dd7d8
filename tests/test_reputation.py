"""
Pytest tests for the reputation weight table and learner.
"""

from __future__ import annotations

import pytest

from backend_shadowintel.analysis_engine import ReputationLearner, ReputationWeights, TrainingData
from backend_shadowintel.analysis_engine.features import ReputationFeatures
from backend_shadowintel.analysis_engine.reputation import (
    FACTOR_INSUFFICIENT_DATA,
    FACTOR_NEW_USER,
    FACTOR_REGULAR,
    FACTOR_RELIABLE,
    PATTERN_HIGH_VALUE,
    PATTERN_MULTI_CHAIN,
    PATTERN_REGULAR,
    PaymentPatternSignal,
    identify_factors,
    identify_patterns,
)
from tests.conftest import NOW_MS


def test_untrained_without_history_returns_insufficient_data(identity):
    prediction = ReputationLearner().predict(identity)
    assert prediction.score == 50
    assert prediction.confidence == 0.5
    assert prediction.factors == [FACTOR_INSUFFICIENT_DATA]


def test_untrained_with_history_scores_base_and_explains(identity, regular_payments):
    """No weights: score stays 50; 4 payments -> confidence 0.7; regular + reliable factors."""
    prediction = ReputationLearner().predict(identity, regular_payments, NOW_MS)
    assert prediction.score == 50
    assert prediction.confidence == pytest.approx(0.7)
    assert prediction.factors == [FACTOR_RELIABLE, FACTOR_REGULAR]


def test_learn_from_payments_adds_pattern_weights(identity, regular_payments):
    learner = ReputationLearner()
    patterns = learner.learn_from_payments(regular_payments)
    assert patterns == [PaymentPatternSignal(PATTERN_REGULAR, 0.3)]
    assert learner.predict(identity, regular_payments, NOW_MS).score == pytest.approx(53.0)

    learner.learn_from_payments(regular_payments)
    assert learner.weights.as_dict()[PATTERN_REGULAR] == pytest.approx(0.6)
    assert learner.predict(identity, regular_payments, NOW_MS).score == pytest.approx(56.0)


def test_train_sets_weights_and_clamps_score(identity, regular_payments):
    """mean(labels)=70 divided by each trained feature; large weights clamp at 100."""
    learner = ReputationLearner()
    learner.train(TrainingData(payments=regular_payments, labels=[80, 60]), now_ms=NOW_MS)

    weights = learner.weights.as_dict()
    assert learner.is_trained is True
    assert weights["payment_count"] == pytest.approx(17.5)
    assert weights["success_rate"] == pytest.approx(70.0)
    assert weights["chain_diversity"] == pytest.approx(490.0)
    assert weights["recent_activity"] == pytest.approx(70 / 0.3)
    assert learner.predict(identity, regular_payments, NOW_MS).score == 100.0


def test_train_zero_feature_gives_zero_weight(make_event):
    """All payments older than the window -> recent_activity 0 -> weight 0."""
    old = [make_event(timestamp_ms=NOW_MS - 30 * 86_400_000 - i) for i in range(3)]
    learner = ReputationLearner()
    learner.train(TrainingData(payments=old, labels=[40]), now_ms=NOW_MS)
    assert learner.weights.as_dict()["recent_activity"] == 0.0


def test_train_with_no_labels_is_ignored(regular_payments):
    learner = ReputationLearner()
    learner.train(TrainingData(payments=regular_payments, labels=[]), now_ms=NOW_MS)
    assert learner.is_trained is False
    assert learner.training_data == []
    assert len(learner.weights) == 0


def test_trained_prediction_without_history_uses_identity_hash(identity, regular_payments):
    learner = ReputationLearner()
    learner.train(TrainingData(payments=regular_payments, labels=[70]), now_ms=NOW_MS)
    first = learner.predict(identity)
    assert first == learner.predict(identity)
    assert 0.0 <= first.score <= 100.0
    assert 0.5 <= first.confidence <= 1.0
    assert FACTOR_INSUFFICIENT_DATA not in first.factors


def test_identify_patterns_high_value_and_multi_chain(make_event):
    payments = [
        make_event(amount=3_000_000, venue="ethereum", timestamp_ms=NOW_MS),
        make_event(amount=3_000_000, venue="polygon", timestamp_ms=NOW_MS + 10),
        make_event(amount=3_000_000, venue="solana", timestamp_ms=NOW_MS + 100_000),
    ]
    types = [p.type for p in identify_patterns(payments)]
    assert types == [PATTERN_HIGH_VALUE, PATTERN_MULTI_CHAIN]


def test_identify_patterns_empty():
    assert identify_patterns([]) == []


def test_identify_factors_defaults_to_new_user():
    assert identify_factors(ReputationFeatures()) == [FACTOR_NEW_USER]


def test_identify_factors_full_set():
    features = ReputationFeatures(
        payment_count=20,
        success_rate=0.99,
        chain_diversity=0.6,
        recent_activity=0.8,
        avg_amount=200_000,
        is_regular=1.0,
    )
    assert identify_factors(features) == [
        "high_activity",
        "reliable",
        "multi_chain",
        "recent_activity",
        "high_value",
        "regular",
    ]


def test_weights_predict_reads_indicator_for_pattern_weights():
    weights = ReputationWeights()
    weights.update([PaymentPatternSignal(PATTERN_MULTI_CHAIN, 0.2)])
    score, confidence = weights.predict(ReputationFeatures(multi_chain=1.0))
    assert score == pytest.approx(52.0)
    assert confidence == 0.5


def test_learner_to_dict(regular_payments):
    learner = ReputationLearner()
    learner.learn_from_payments(regular_payments)
    data = learner.to_dict()
    assert data["is_trained"] is False
    assert data["training_sets"] == 0
    assert data["weights"] == {PATTERN_REGULAR: pytest.approx(0.3)}


def test_concurrent_weight_updates_lose_nothing():
    """8 threads x 2000 pattern deltas on one shared table: every delta lands."""
    import sys
    import threading

    weights = ReputationWeights()
    signal = PaymentPatternSignal(PATTERN_REGULAR, 1.0)
    old_interval = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    try:
        def worker() -> None:
            for _ in range(2_000):
                weights.update([signal])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        sys.setswitchinterval(old_interval)

    assert weights.as_dict()[PATTERN_REGULAR] == 16_000.0


def test_predict_while_table_grows():
    """predict scores a snapshot, so concurrent inserts never break iteration."""
    import threading

    weights = ReputationWeights()
    features = ReputationFeatures(is_regular=1.0)
    errors: list[BaseException] = []
    done = threading.Event()

    def writer() -> None:
        for i in range(5_000):
            weights.update([PaymentPatternSignal(f"pattern_{i}", 0.0)])
        done.set()

    def reader() -> None:
        try:
            while not done.is_set():
                weights.predict(features)
        except RuntimeError as e:
            errors.append(e)

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(weights) == 5_000
