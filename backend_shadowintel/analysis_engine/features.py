"""
Feature extraction for risk and reputation scoring.

Two modes:
- Private mode derives every feature from a SHA-256 digest (of the payment
  commitment for risk, of the identity key for reputation). Each feature reads
  one digest byte at a fixed offset. Values are reproducible from the hash
  input alone and carry no information about real amounts or timing; they
  only give the rest of the pipeline a stable input shape.
- Direct mode computes features from the identity's recorded payment history.

Extraction never fails and never mutates the history; an empty history
yields an all-zero vector.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from typing import Any, Sequence

import numpy as np

from backend_shadowintel.analysis_engine.models import PaymentEvent

MS_PER_DAY = 86_400_000
RECENT_WINDOW_MS = 7 * MS_PER_DAY
# Recent-activity ratio saturates at this many events in the window
RECENT_ACTIVITY_SATURATION = 10
# Frequency is history length over this divisor (not capped)
FREQUENCY_DIVISOR = 10
# Venue diversity is distinct venues over this count, capped at 1
MAX_VENUES = 7
# Regular iff interval variance < (REGULARITY_RATIO * mean interval) ** 2
REGULARITY_RATIO = 0.3
MIN_PAYMENTS_FOR_REGULARITY = 3
HIGH_VALUE_AVG_AMOUNT = 1_000_000
MULTI_CHAIN_MIN_VENUES = 3

# Amount buckets: amount < bound -> index
AMOUNT_CATEGORY_BOUNDS = (1_000, 10_000, 100_000, 1_000_000)

RISK_FEATURE_NAMES = (
    "amount_category",
    "time_pattern",
    "chain_pattern",
    "frequency",
    "amount_deviation",
)

REPUTATION_FEATURE_NAMES = (
    "payment_count",
    "total_amount",
    "avg_amount",
    "success_rate",
    "avg_interval",
    "chain_diversity",
    "recent_activity",
    "is_regular",
    "high_value",
    "multi_chain",
)


@dataclass(frozen=True)
class RiskFeatures:
    """Fraud feature set for a single payment."""

    amount_category: int = 0
    time_pattern: int = 0
    """Direct mode: 1 = regular inter-payment timing, 0 = irregular or unknown."""
    chain_pattern: int = 0
    """Direct mode: distinct venues seen including the current one."""
    frequency: float = 0.0
    amount_deviation: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_array(self) -> np.ndarray:
        """Fixed-order float64 vector (RISK_FEATURE_NAMES)."""
        return np.array([float(getattr(self, n)) for n in RISK_FEATURE_NAMES], dtype=np.float64)


@dataclass(frozen=True)
class ReputationFeatures:
    """Reputation feature vector for an identity's payment history."""

    payment_count: float = 0.0
    total_amount: float = 0.0
    avg_amount: float = 0.0
    success_rate: float = 0.0
    avg_interval: float = 0.0
    chain_diversity: float = 0.0
    recent_activity: float = 0.0
    is_regular: float = 0.0
    high_value: float = 0.0
    multi_chain: float = 0.0

    def value(self, name: str) -> float:
        """Feature value by name; unknown names read as 0."""
        if name not in REPUTATION_FEATURE_NAMES:
            return 0.0
        return float(getattr(self, name))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_array(self) -> np.ndarray:
        """Fixed-order float64 vector (REPUTATION_FEATURE_NAMES)."""
        return np.array([self.value(n) for n in REPUTATION_FEATURE_NAMES], dtype=np.float64)


def digest(data: bytes) -> bytes:
    return hashlib.sha256(bytes(data)).digest()


def hash_to_category(hash_bytes: bytes, offset: int, max_value: int) -> int:
    """Categorical feature: digest byte at offset, modulo max_value."""
    return hash_bytes[offset % len(hash_bytes)] % max_value


def hash_to_number(hash_bytes: bytes, offset: int, max_value: float) -> float:
    """Continuous feature: digest byte at offset scaled into [0, max_value]."""
    return (hash_bytes[offset % len(hash_bytes)] / 255) * max_value


def categorize_amount(amount: int) -> int:
    for idx, bound in enumerate(AMOUNT_CATEGORY_BOUNDS):
        if amount < bound:
            return idx
    return len(AMOUNT_CATEGORY_BOUNDS)


def is_regular_timing(timestamps: Sequence[int], min_points: int = 2) -> bool:
    """
    True iff population variance of consecutive intervals is below
    (REGULARITY_RATIO * mean interval) ** 2. Timestamps are taken in the given order.
    """
    if len(timestamps) < min_points or len(timestamps) < 2:
        return False
    intervals = np.diff(np.asarray(timestamps, dtype=np.float64))
    mean_interval = float(intervals.mean())
    variance = float(intervals.var())
    return variance < (mean_interval * REGULARITY_RATIO) ** 2


def _amount_deviation(history: Sequence[PaymentEvent], amount: int) -> float:
    amounts = np.asarray([p.amount for p in history], dtype=np.float64)
    avg = float(amounts.mean())
    if avg == 0:
        return 0.0
    return min(1.0, abs(float(amount) - avg) / avg)


def extract_private_risk_features(commitment: bytes) -> RiskFeatures:
    """Hash-derived risk features from the payment commitment only."""
    h = digest(commitment)
    return RiskFeatures(
        amount_category=hash_to_category(h, 0, 5),
        time_pattern=hash_to_category(h, 1, 4),
        chain_pattern=hash_to_category(h, 2, 7),
        frequency=hash_to_number(h, 3, 100) / 100,
        amount_deviation=hash_to_number(h, 4, 50) / 100,
    )


def extract_direct_risk_features(
    event: PaymentEvent,
    history: Sequence[PaymentEvent],
) -> RiskFeatures:
    """
    Risk features from the identity's prior payments (event itself not included).

    With no history only amount_category is non-zero.
    """
    amount_category = categorize_amount(event.amount)
    if not history:
        return RiskFeatures(amount_category=amount_category)

    regular = is_regular_timing([p.timestamp_ms for p in history])
    venues = {p.venue for p in history}
    venues.add(event.venue)
    return RiskFeatures(
        amount_category=amount_category,
        time_pattern=1 if regular else 0,
        chain_pattern=len(venues),
        frequency=len(history) / FREQUENCY_DIVISOR,
        amount_deviation=_amount_deviation(history, event.amount),
    )


def extract_risk_features(
    event: PaymentEvent,
    history: Sequence[PaymentEvent],
    *,
    preserve_privacy: bool,
) -> RiskFeatures:
    if preserve_privacy:
        return extract_private_risk_features(event.commitment)
    return extract_direct_risk_features(event, history)


def extract_reputation_features(
    payments: Sequence[PaymentEvent],
    now_ms: int,
) -> ReputationFeatures:
    """
    Reputation features from a payment list (order as given).

    avg_interval is the observed time span divided by the payment count.
    recent_activity counts payments strictly less than 7 days before now_ms.
    """
    if not payments:
        return ReputationFeatures()

    n = len(payments)
    amounts = np.asarray([p.amount for p in payments], dtype=np.float64)
    timestamps = [p.timestamp_ms for p in payments]
    total_amount = float(amounts.sum())
    avg_amount = total_amount / n
    success_rate = sum(1 for p in payments if p.succeeded) / n

    time_span = max(timestamps) - min(timestamps)
    avg_interval = time_span / n if time_span > 0 else 0.0

    venues = {p.venue for p in payments}
    recent = sum(1 for ts in timestamps if now_ms - ts < RECENT_WINDOW_MS)
    regular = is_regular_timing(timestamps, MIN_PAYMENTS_FOR_REGULARITY)

    return ReputationFeatures(
        payment_count=float(n),
        total_amount=total_amount,
        avg_amount=avg_amount,
        success_rate=success_rate,
        avg_interval=float(avg_interval),
        chain_diversity=min(1.0, len(venues) / MAX_VENUES),
        recent_activity=min(1.0, recent / RECENT_ACTIVITY_SATURATION),
        is_regular=1.0 if regular else 0.0,
        high_value=1.0 if avg_amount > HIGH_VALUE_AVG_AMOUNT else 0.0,
        multi_chain=1.0 if len(venues) >= MULTI_CHAIN_MIN_VENUES else 0.0,
    )


def extract_private_reputation_features(identity_key: bytes) -> ReputationFeatures:
    """Hash-derived reputation features from the identity key; pattern indicators stay 0."""
    h = digest(identity_key)
    return ReputationFeatures(
        payment_count=hash_to_number(h, 0, 100),
        total_amount=hash_to_number(h, 1, 1_000_000),
        avg_amount=hash_to_number(h, 2, 10_000),
        success_rate=hash_to_number(h, 3, 100) / 100,
        avg_interval=hash_to_number(h, 4, 86_400),
        chain_diversity=hash_to_number(h, 5, 100) / 100,
        recent_activity=hash_to_number(h, 6, 100) / 100,
    )
