"""
Privacy package: tier model and context-driven tier adaptation.

Maps assessed threat to one of four ordered tiers and exposes the proof
parameters (proof size, verify budget, merkle depth, polynomial degree) the
proof system should use for that tier.
"""

from backend_shadowintel.privacy.tiers import (
    PRIVACY_CONFIGS,
    PrivacyConfiguration,
    PrivacyLevel,
    config_for_tier,
    step_tier,
    threat_to_tier,
)
from backend_shadowintel.privacy.adapter import (
    NetworkConditions,
    PrivacyAdapter,
    PrivacyContext,
)

__all__ = [
    "PRIVACY_CONFIGS",
    "PrivacyConfiguration",
    "PrivacyLevel",
    "config_for_tier",
    "step_tier",
    "threat_to_tier",
    "NetworkConditions",
    "PrivacyAdapter",
    "PrivacyContext",
]
