"""
Rule-based anomaly detection on risk features.

Each rule is an independent threshold predicate gated by the caller's
sensitivity: a rule can only fire when sensitivity exceeds its gate, so
raising sensitivity can add anomalies but never remove one. Rules are
evaluated in a fixed order and report stable tags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from backend_shadowintel.analysis_engine.features import RiskFeatures
from backend_shadowintel.core.exceptions import ConfigurationError
from backend_shadowintel.intel_logging import get_logger

logger = get_logger(__name__)

ANOMALY_UNUSUAL_AMOUNT_CATEGORY = "unusual_amount_category"
ANOMALY_HIGH_FREQUENCY = "high_frequency"
ANOMALY_HIGH_AMOUNT_DEVIATION = "high_amount_deviation"
ANOMALY_IRREGULAR_TIMING = "irregular_timing"
ANOMALY_EXCESSIVE_CHAIN_SWITCHING = "excessive_chain_switching"


@dataclass(frozen=True)
class AnomalyRule:
    """Threshold predicate that fires only when sensitivity > gate."""

    tag: str
    gate: float
    predicate: Callable[[RiskFeatures], bool]

    def fires(self, features: RiskFeatures, sensitivity: float) -> bool:
        return sensitivity > self.gate and self.predicate(features)


ANOMALY_RULES: tuple[AnomalyRule, ...] = (
    AnomalyRule(ANOMALY_UNUSUAL_AMOUNT_CATEGORY, 0.3, lambda f: f.amount_category > 4),
    AnomalyRule(ANOMALY_HIGH_FREQUENCY, 0.4, lambda f: f.frequency > 0.8),
    AnomalyRule(ANOMALY_HIGH_AMOUNT_DEVIATION, 0.5, lambda f: f.amount_deviation > 0.5),
    AnomalyRule(ANOMALY_IRREGULAR_TIMING, 0.6, lambda f: f.time_pattern == 0),
    AnomalyRule(ANOMALY_EXCESSIVE_CHAIN_SWITCHING, 0.7, lambda f: f.chain_pattern > 5),
)


def validate_sensitivity(sensitivity: float) -> float:
    """Return sensitivity as float; raise ConfigurationError outside [0, 1]."""
    try:
        value = float(sensitivity)
    except (TypeError, ValueError) as e:
        logger.warning("sensitivity_invalid", value=str(sensitivity))
        raise ConfigurationError("sensitivity must be a number", sensitivity=str(sensitivity)) from e
    if not 0.0 <= value <= 1.0:
        logger.warning("sensitivity_invalid", value=value)
        raise ConfigurationError("sensitivity must be within [0, 1]", sensitivity=value)
    return value


def detect_anomalies(
    features: RiskFeatures,
    sensitivity: float,
    rules: tuple[AnomalyRule, ...] = ANOMALY_RULES,
) -> list[str]:
    """Return tags of every rule that fires, in rule order."""
    s = validate_sensitivity(sensitivity)
    return [rule.tag for rule in rules if rule.fires(features, s)]
