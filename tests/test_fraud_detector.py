"""
Pytest tests for anomaly rules, risk scoring and the FraudDetector.
"""

from __future__ import annotations

import pytest

from backend_shadowintel.analysis_engine import (
    DetectionOptions,
    FraudDetector,
    ThreatLevel,
    compute_confidence,
    compute_risk_score,
    detect_anomalies,
    score_to_level,
)
from backend_shadowintel.analysis_engine.anomaly import (
    ANOMALY_EXCESSIVE_CHAIN_SWITCHING,
    ANOMALY_HIGH_AMOUNT_DEVIATION,
    ANOMALY_HIGH_FREQUENCY,
    ANOMALY_IRREGULAR_TIMING,
    ANOMALY_UNUSUAL_AMOUNT_CATEGORY,
)
from backend_shadowintel.analysis_engine.features import RiskFeatures
from backend_shadowintel.core.exceptions import ConfigurationError
from tests.conftest import NOW_MS

DIRECT = DetectionOptions(preserve_privacy=False, sensitivity=1.0)


# --- Scorer ---


@pytest.mark.parametrize(
    "score,level",
    [
        (1.0, ThreatLevel.CRITICAL),
        (0.8, ThreatLevel.CRITICAL),
        (0.79999, ThreatLevel.HIGH),
        (0.6, ThreatLevel.HIGH),
        (0.59999, ThreatLevel.MEDIUM),
        (0.4, ThreatLevel.MEDIUM),
        (0.39999, ThreatLevel.LOW),
        (0.0, ThreatLevel.LOW),
    ],
)
def test_score_to_level_cuts_are_inclusive(score, level):
    assert score_to_level(score) is level


def test_risk_score_is_clamped_once():
    features = RiskFeatures(frequency=1.0, amount_deviation=1.0, time_pattern=0)
    anomalies = ["a", "b", "c", "d", "e"]
    assert compute_risk_score(anomalies, features) == 1.0


def test_risk_score_components():
    assert compute_risk_score([], RiskFeatures(time_pattern=1)) == 0.0
    assert compute_risk_score([], RiskFeatures(time_pattern=0)) == pytest.approx(0.1)
    assert compute_risk_score(["x"], RiskFeatures(time_pattern=1, frequency=0.95)) == pytest.approx(0.35)
    assert compute_risk_score([], RiskFeatures(time_pattern=1, amount_deviation=0.71)) == pytest.approx(0.15)


def test_confidence_bonuses():
    assert compute_confidence(RiskFeatures(), []) == 0.5
    assert compute_confidence(RiskFeatures(frequency=0.1), []) == pytest.approx(0.7)
    assert compute_confidence(RiskFeatures(frequency=0.1), ["x"]) == pytest.approx(0.9)


# --- Anomaly rules ---


def test_every_rule_fires_at_full_sensitivity():
    features = RiskFeatures(amount_category=5, time_pattern=0, chain_pattern=6, frequency=0.9, amount_deviation=0.6)
    assert detect_anomalies(features, 1.0) == [
        ANOMALY_UNUSUAL_AMOUNT_CATEGORY,
        ANOMALY_HIGH_FREQUENCY,
        ANOMALY_HIGH_AMOUNT_DEVIATION,
        ANOMALY_IRREGULAR_TIMING,
        ANOMALY_EXCESSIVE_CHAIN_SWITCHING,
    ]


def test_rule_gates_are_strict():
    """Sensitivity equal to a gate does not open it."""
    features = RiskFeatures(amount_category=5, time_pattern=1)
    assert detect_anomalies(features, 0.3) == []
    assert detect_anomalies(features, 0.31) == [ANOMALY_UNUSUAL_AMOUNT_CATEGORY]


def test_higher_sensitivity_never_removes_anomalies():
    features = RiskFeatures(amount_category=5, time_pattern=0, chain_pattern=6, frequency=0.9, amount_deviation=0.6)
    previous: set[str] = set()
    for step in range(11):
        current = set(detect_anomalies(features, step / 10))
        assert previous <= current
        previous = current


@pytest.mark.parametrize("sensitivity", [-0.1, 1.01, "high"])
def test_invalid_sensitivity_raises(sensitivity):
    with pytest.raises(ConfigurationError):
        detect_anomalies(RiskFeatures(), sensitivity)


# --- FraudDetector ---


def _irregular_multi_venue_history(make_event):
    offsets = [0, 1, 2, 1_000, 1_001, 50_000, 50_002, 90_000, 90_001, 300_000]
    venues = ["ethereum", "polygon", "bsc", "arbitrum", "optimism"]
    return [
        make_event(amount=100, timestamp_ms=NOW_MS - 400_000 + off, venue=venues[i % len(venues)])
        for i, off in enumerate(offsets)
    ]


def test_no_history_direct_mode_is_low(make_event):
    detector = FraudDetector()
    result = detector.assess_risk(make_event(amount=500), DetectionOptions(preserve_privacy=False))
    assert result.anomalies == []
    assert result.risk_score == pytest.approx(0.1)
    assert result.risk_level is ThreatLevel.LOW
    assert result.confidence == 0.5


def test_regular_history_large_deviation_is_high(make_event):
    """Regular hourly history, 1000x amount jump: high_frequency + high_amount_deviation."""
    detector = FraudDetector()
    for i in range(10, 0, -1):
        detector.update_pattern(make_event(amount=100, timestamp_ms=NOW_MS - i * 3_600_000))

    event = make_event(amount=100_000, venue="solana")
    result = detector.assess_risk(event, DIRECT)
    assert result.anomalies == [ANOMALY_HIGH_FREQUENCY, ANOMALY_HIGH_AMOUNT_DEVIATION]
    assert result.risk_score == pytest.approx(0.65)
    assert result.risk_level is ThreatLevel.HIGH
    assert result.confidence == pytest.approx(0.9)

    lower = detector.assess_risk(event, DetectionOptions(preserve_privacy=False, sensitivity=0.45))
    assert lower.anomalies == [ANOMALY_HIGH_FREQUENCY]
    assert lower.risk_level is ThreatLevel.MEDIUM

    none = detector.assess_risk(event, DetectionOptions(preserve_privacy=False, sensitivity=0.0))
    assert none.anomalies == []
    assert none.risk_score == pytest.approx(0.35)
    assert none.confidence == pytest.approx(0.7)


def test_chain_switching_and_irregular_history_is_critical(make_event):
    detector = FraudDetector()
    for event in _irregular_multi_venue_history(make_event):
        detector.update_pattern(event)

    result = detector.assess_risk(make_event(amount=100_000, venue="solana"), DIRECT)
    assert ANOMALY_EXCESSIVE_CHAIN_SWITCHING in result.anomalies
    assert ANOMALY_IRREGULAR_TIMING in result.anomalies
    assert result.risk_score == 1.0
    assert result.risk_level is ThreatLevel.CRITICAL


def test_assess_risk_is_idempotent_and_does_not_record(make_event, identity):
    detector = FraudDetector()
    detector.update_pattern(make_event(amount=100))
    event = make_event(amount=5_000, venue="polygon")

    first = detector.assess_risk(event, DIRECT)
    second = detector.assess_risk(event, DIRECT)
    assert first == second
    assert len(detector.get_pattern(identity)) == 1


def test_private_mode_assessment_is_bounded_and_deterministic(make_event):
    detector = FraudDetector()
    event = make_event(amount=1_234, commitment=b"\x42" * 32)
    first = detector.assess_risk(event)
    assert first == detector.assess_risk(event)
    assert 0.0 <= first.risk_score <= 1.0
    assert 0.5 <= first.confidence <= 1.0
    assert first.risk_level is score_to_level(first.risk_score)


def test_update_pattern_is_per_identity(make_event):
    detector = FraudDetector()
    a = bytes.fromhex("01" * 32)
    b = bytes.fromhex("02" * 32)
    detector.update_pattern(make_event(identity_key=a))
    detector.update_pattern(make_event(identity_key=a))
    detector.update_pattern(make_event(identity_key=b))
    assert len(detector.get_pattern(a)) == 2
    assert len(detector.get_pattern(b)) == 1
