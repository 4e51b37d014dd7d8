"""
Privacy tiers: ordered levels, clamped stepping, and per-tier proof parameters.

Tiers are totally ordered low < medium < high < maximum. Stepping by a signed
offset clamps at both ends; it never wraps and never leaves the range.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from backend_shadowintel.analysis_engine.models import ThreatLevel
from backend_shadowintel.core.exceptions import ConfigurationError
from backend_shadowintel.intel_logging import get_logger

logger = get_logger(__name__)


class PrivacyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    MAXIMUM = "maximum"

    @property
    def index(self) -> int:
        return TIER_ORDER.index(self)

    @classmethod
    def parse(cls, value: "PrivacyLevel | str") -> "PrivacyLevel":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            logger.warning("privacy_tier_invalid", value=str(value))
            raise ConfigurationError(f"unknown privacy tier: {value!r}", value=str(value)) from e


TIER_ORDER = (PrivacyLevel.LOW, PrivacyLevel.MEDIUM, PrivacyLevel.HIGH, PrivacyLevel.MAXIMUM)

THREAT_TO_TIER: dict[ThreatLevel, PrivacyLevel] = {
    ThreatLevel.LOW: PrivacyLevel.LOW,
    ThreatLevel.MEDIUM: PrivacyLevel.MEDIUM,
    ThreatLevel.HIGH: PrivacyLevel.HIGH,
    ThreatLevel.CRITICAL: PrivacyLevel.MAXIMUM,
}


def step_tier(tier: PrivacyLevel | str, steps: int) -> PrivacyLevel:
    """Move tier by a signed number of steps, clamped to [low, maximum]."""
    current = PrivacyLevel.parse(tier)
    new_index = max(0, min(len(TIER_ORDER) - 1, current.index + steps))
    return TIER_ORDER[new_index]


def threat_to_tier(threat: ThreatLevel | str) -> PrivacyLevel:
    return THREAT_TO_TIER[ThreatLevel.parse(threat)]


@dataclass(frozen=True)
class PrivacyConfiguration:
    """Parameters handed to the proof system for one tier."""

    level: PrivacyLevel
    proof_size: int
    """Proof size in bytes."""
    verify_time_ms: int
    """Verification time budget in milliseconds."""
    zk_proof_required: bool
    merkle_depth: int
    polynomial_degree: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "proof_size": self.proof_size,
            "verify_time_ms": self.verify_time_ms,
            "zk_proof_required": self.zk_proof_required,
            "merkle_depth": self.merkle_depth,
            "polynomial_degree": self.polynomial_degree,
        }


PRIVACY_CONFIGS: dict[PrivacyLevel, PrivacyConfiguration] = {
    PrivacyLevel.LOW: PrivacyConfiguration(PrivacyLevel.LOW, 1024, 10, False, 8, 4),
    PrivacyLevel.MEDIUM: PrivacyConfiguration(PrivacyLevel.MEDIUM, 2048, 50, True, 12, 8),
    PrivacyLevel.HIGH: PrivacyConfiguration(PrivacyLevel.HIGH, 4096, 100, True, 16, 16),
    PrivacyLevel.MAXIMUM: PrivacyConfiguration(PrivacyLevel.MAXIMUM, 8192, 200, True, 20, 32),
}


def config_for_tier(tier: PrivacyLevel | str) -> PrivacyConfiguration:
    return PRIVACY_CONFIGS[PrivacyLevel.parse(tier)]
