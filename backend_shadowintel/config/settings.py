"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and .env files.
- Provide defaults for every engine knob (toggles, sensitivity, capacities).
- Expose typed settings for the engine, the API server and the entrypoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from backend_shadowintel.config.env import (
    env_bool,
    env_float,
    env_int,
    env_str,
    load_shadowintel_env,
)

DEFAULT_SENSITIVITY = 0.5
DEFAULT_REQUESTED_TIER = "high"
THREAT_HISTORY_CAPACITY = 50
ROUTE_HISTORY_CAPACITY = 100
PAYMENT_HISTORY_CAPACITY = 1000
DEFAULT_LOCK_STRIPES = 16


@dataclass(frozen=True)
class IntelligenceSettings:
    """Engine and server configuration; immutable once built."""

    enable_payment_routing: bool = True
    enable_reputation_learning: bool = True
    enable_privacy_adaptation: bool = True
    enable_fraud_detection: bool = True

    sensitivity: float = DEFAULT_SENSITIVITY
    preserve_privacy: bool = True
    default_requested_tier: str = DEFAULT_REQUESTED_TIER

    threat_history_capacity: int = THREAT_HISTORY_CAPACITY
    route_history_capacity: int = ROUTE_HISTORY_CAPACITY
    payment_history_capacity: int = PAYMENT_HISTORY_CAPACITY
    lock_stripes: int = DEFAULT_LOCK_STRIPES

    api_host: str = "0.0.0.0"
    api_port: int = 8000


def load_settings() -> IntelligenceSettings:
    """Build settings from the current environment (after loading .env)."""
    load_shadowintel_env()
    return IntelligenceSettings(
        enable_payment_routing=env_bool("SHADOWINTEL_ENABLE_ROUTING", True),
        enable_reputation_learning=env_bool("SHADOWINTEL_ENABLE_REPUTATION", True),
        enable_privacy_adaptation=env_bool("SHADOWINTEL_ENABLE_PRIVACY", True),
        enable_fraud_detection=env_bool("SHADOWINTEL_ENABLE_FRAUD", True),
        sensitivity=env_float("SHADOWINTEL_SENSITIVITY", DEFAULT_SENSITIVITY),
        preserve_privacy=env_bool("SHADOWINTEL_PRESERVE_PRIVACY", True),
        default_requested_tier=env_str("SHADOWINTEL_DEFAULT_TIER", DEFAULT_REQUESTED_TIER).lower(),
        threat_history_capacity=env_int("SHADOWINTEL_THREAT_HISTORY_CAPACITY", THREAT_HISTORY_CAPACITY),
        route_history_capacity=env_int("SHADOWINTEL_ROUTE_HISTORY_CAPACITY", ROUTE_HISTORY_CAPACITY),
        payment_history_capacity=env_int("SHADOWINTEL_PAYMENT_HISTORY_CAPACITY", PAYMENT_HISTORY_CAPACITY),
        lock_stripes=env_int("SHADOWINTEL_LOCK_STRIPES", DEFAULT_LOCK_STRIPES),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
    )


@lru_cache(maxsize=1)
def get_settings() -> IntelligenceSettings:
    """
    Return the current application settings (cached after first call).

    Tests that change the environment should call get_settings.cache_clear().
    """
    return load_settings()
