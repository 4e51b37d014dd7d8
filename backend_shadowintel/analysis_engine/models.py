"""
Data models for analysis engine input and output.

Responsibilities:
- Define the payment observation recorded into histories.
- Define ordered threat/risk levels and transaction categories.
- Define fraud and reputation results returned to callers and the API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backend_shadowintel.core.exceptions import ConfigurationError
from backend_shadowintel.core.identity import identity_key_hex
from backend_shadowintel.intel_logging import get_logger

logger = get_logger(__name__)

# Commitment used when the payment layer has not supplied one yet
EMPTY_COMMITMENT = bytes(32)


class ThreatLevel(str, Enum):
    """Ordered risk / threat level: low < medium < high < critical."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """1-based rank used when averaging threat observations."""
        return _THREAT_ORDER.index(self) + 1

    @classmethod
    def parse(cls, value: "ThreatLevel | str") -> "ThreatLevel":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            logger.warning("threat_level_invalid", value=str(value))
            raise ConfigurationError(f"unknown threat level: {value!r}", value=str(value)) from e


_THREAT_ORDER = (ThreatLevel.LOW, ThreatLevel.MEDIUM, ThreatLevel.HIGH, ThreatLevel.CRITICAL)


class TransactionType(str, Enum):
    PAYMENT = "payment"
    REPUTATION = "reputation"
    COMPLIANCE = "compliance"
    GOVERNANCE = "governance"

    @classmethod
    def parse(cls, value: "TransactionType | str") -> "TransactionType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            logger.warning("transaction_type_invalid", value=str(value))
            raise ConfigurationError(f"unknown transaction type: {value!r}", value=str(value)) from e


@dataclass(frozen=True)
class PaymentEvent:
    """
    One payment observation for an identity. Immutable once recorded.

    amount is in the smallest token unit (e.g. 1_000_000 = 1 USDC).
    commitment is opaque; it only feeds privacy-preserving feature hashing.
    """

    identity_key: bytes
    amount: int
    timestamp_ms: int
    venue: str
    succeeded: bool = True
    commitment: bytes = EMPTY_COMMITMENT

    def __post_init__(self) -> None:
        if self.amount < 0:
            logger.warning("payment_amount_invalid", amount=self.amount)
            raise ConfigurationError("payment amount must be non-negative", amount=self.amount)

    @property
    def identity_hex(self) -> str:
        return identity_key_hex(self.identity_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity_hex,
            "amount": self.amount,
            "timestamp_ms": self.timestamp_ms,
            "venue": self.venue,
            "succeeded": self.succeeded,
            "commitment": self.commitment.hex(),
        }


@dataclass
class FraudAssessment:
    """Risk verdict for one payment; anomalies are rule tags in evaluation order."""

    risk_score: float
    risk_level: ThreatLevel
    anomalies: list[str]
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "anomalies": list(self.anomalies),
            "confidence": self.confidence,
        }


@dataclass
class ReputationPrediction:
    """Reputation estimate on a 0–100 scale with explainable factor tags."""

    score: float
    confidence: float
    factors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "confidence": self.confidence,
            "factors": list(self.factors),
        }
