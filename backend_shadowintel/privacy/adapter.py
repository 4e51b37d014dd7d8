"""
Adaptive privacy tier selection.

Starts from the tier matching the assessed threat, then applies three
independent signed steps in a fixed order, clamping after each one:
  1. transaction type (compliance +1, reputation/governance -1, payment 0)
  2. amount bracket, when an amount is given (> 10 USDC +1, > 1 USDC 0, else -1)
  3. network conditions, when given (congestion > 0.8 -> -1, else
     health < 0.7 -> +1, else 0; congestion is checked first)
Order matters because each step can saturate at low or maximum.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass

from backend_shadowintel.analysis_engine.models import ThreatLevel, TransactionType
from backend_shadowintel.config.settings import THREAT_HISTORY_CAPACITY
from backend_shadowintel.core.identity import identity_key_hex
from backend_shadowintel.history import HistoryStore
from backend_shadowintel.intel_logging import get_logger, short_identity
from backend_shadowintel.privacy.tiers import (
    PrivacyConfiguration,
    PrivacyLevel,
    config_for_tier,
    step_tier,
    threat_to_tier,
)

logger = get_logger(__name__)

TRANSACTION_TYPE_STEPS: dict[TransactionType, int] = {
    TransactionType.PAYMENT: 0,
    TransactionType.REPUTATION: -1,
    TransactionType.COMPLIANCE: 1,
    TransactionType.GOVERNANCE: -1,
}

# Amounts in the smallest token unit (6 decimals: 1_000_000 = 1 USDC)
AMOUNT_HIGH_THRESHOLD = 10_000_000
AMOUNT_MID_THRESHOLD = 1_000_000

CONGESTION_THRESHOLD = 0.8
NETWORK_HEALTH_THRESHOLD = 0.7

# Threat averaging over the most recent observations
RECENT_THREAT_WINDOW = 10
THREAT_AVG_CUTS: tuple[tuple[float, ThreatLevel], ...] = (
    (3.5, ThreatLevel.CRITICAL),
    (2.5, ThreatLevel.HIGH),
    (1.5, ThreatLevel.MEDIUM),
)


@dataclass(frozen=True)
class NetworkConditions:
    congestion: float
    """0–1; above 0.8 lowers proof complexity."""
    network_health: float
    """0–1; below 0.7 raises privacy."""
    avg_gas_price: int = 0


@dataclass(frozen=True)
class PrivacyContext:
    identity_key: bytes
    transaction_type: TransactionType = TransactionType.PAYMENT
    amount: int | None = None
    threat_level: ThreatLevel | None = None
    network_conditions: NetworkConditions | None = None


def adjust_for_transaction_type(tier: PrivacyLevel, transaction_type: TransactionType | str) -> PrivacyLevel:
    return step_tier(tier, TRANSACTION_TYPE_STEPS[TransactionType.parse(transaction_type)])


def adjust_for_amount(tier: PrivacyLevel, amount: int) -> PrivacyLevel:
    if amount > AMOUNT_HIGH_THRESHOLD:
        return step_tier(tier, 1)
    if amount > AMOUNT_MID_THRESHOLD:
        return step_tier(tier, 0)
    return step_tier(tier, -1)


def adjust_for_network(tier: PrivacyLevel, conditions: NetworkConditions) -> PrivacyLevel:
    if conditions.congestion > CONGESTION_THRESHOLD:
        return step_tier(tier, -1)
    if conditions.network_health < NETWORK_HEALTH_THRESHOLD:
        return step_tier(tier, 1)
    return tier


def average_threat(threats: list[ThreatLevel]) -> ThreatLevel:
    """Mean of threat ranks (low=1 .. critical=4) mapped back with inclusive cuts."""
    avg = statistics.fmean(t.rank for t in threats)
    for cut, level in THREAT_AVG_CUTS:
        if avg >= cut:
            return level
    return ThreatLevel.LOW


class PrivacyAdapter:
    def __init__(self, threat_history: HistoryStore[ThreatLevel] | None = None) -> None:
        self.threat_history: HistoryStore[ThreatLevel] = (
            threat_history
            if threat_history is not None
            else HistoryStore(THREAT_HISTORY_CAPACITY, name="threat_history")
        )

    def assess_threat(self, context: PrivacyContext) -> ThreatLevel:
        """
        Threat for an identity without a caller-supplied level.

        No observations -> medium. With observations, compliance -> high and
        governance -> medium; other types use the average of the last 10.
        """
        history = self.threat_history.get(context.identity_key)
        if not history:
            return ThreatLevel.MEDIUM
        tx_type = TransactionType.parse(context.transaction_type)
        if tx_type is TransactionType.COMPLIANCE:
            return ThreatLevel.HIGH
        if tx_type is TransactionType.GOVERNANCE:
            return ThreatLevel.MEDIUM
        return average_threat(list(history[-RECENT_THREAT_WINDOW:]))

    def adapt_privacy_level(self, context: PrivacyContext) -> PrivacyConfiguration:
        if context.threat_level is not None:
            threat = ThreatLevel.parse(context.threat_level)
        else:
            threat = self.assess_threat(context)

        tier = threat_to_tier(threat)
        trail = [tier.value]
        tier = adjust_for_transaction_type(tier, context.transaction_type)
        trail.append(tier.value)
        if context.amount:
            tier = adjust_for_amount(tier, context.amount)
            trail.append(tier.value)
        if context.network_conditions is not None:
            tier = adjust_for_network(tier, context.network_conditions)
            trail.append(tier.value)

        logger.debug(
            "privacy_tier_adapted",
            identity=short_identity(identity_key_hex(context.identity_key)),
            threat=threat.value,
            transaction_type=TransactionType.parse(context.transaction_type).value,
            tier_trail=trail,
            tier=tier.value,
        )
        return config_for_tier(tier)

    def update_threat_history(self, identity_key: bytes, threat: ThreatLevel | str) -> None:
        self.threat_history.record(identity_key, ThreatLevel.parse(threat))
