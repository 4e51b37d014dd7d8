"""
Venue reference data: static per-venue profiles seeded at engine startup.

Only network_health, avg_gas_price and last_updated_ms are refreshed later;
every other field is read-only for the lifetime of the registry.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Any

from backend_shadowintel.core.exceptions import ConfigurationError
from backend_shadowintel.intel_logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIRMATION_BLOCKS = 12
DEFAULT_AVG_GAS_PRICE = 20  # gwei
DEFAULT_NETWORK_HEALTH = 0.95


@dataclass(frozen=True)
class VenueProfile:
    name: str
    base_gas: int
    base_privacy: float
    """Privacy score (0–1) before the requested-tier multiplier."""
    default_success_rate: float
    """Used until the venue has recorded route outcomes."""
    block_time_ms: int
    confirmation_blocks: int = DEFAULT_CONFIRMATION_BLOCKS
    avg_gas_price: int = DEFAULT_AVG_GAS_PRICE
    network_health: float = DEFAULT_NETWORK_HEALTH
    last_updated_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "base_gas": self.base_gas,
            "base_privacy": self.base_privacy,
            "default_success_rate": self.default_success_rate,
            "block_time_ms": self.block_time_ms,
            "confirmation_blocks": self.confirmation_blocks,
            "avg_gas_price": self.avg_gas_price,
            "network_health": self.network_health,
            "last_updated_ms": self.last_updated_ms,
        }


# (name, base_gas, base_privacy, default_success_rate, block_time_ms), in candidate order
DEFAULT_VENUE_TABLE: tuple[tuple[str, int, float, float, int], ...] = (
    ("ethereum", 21_000, 0.7, 0.95, 12_000),
    ("polygon", 21_000, 0.6, 0.98, 2_000),
    ("bsc", 21_000, 0.5, 0.97, 3_000),
    ("arbitrum", 21_000, 0.7, 0.96, 1_000),
    ("optimism", 21_000, 0.7, 0.96, 2_000),
    ("avalanche", 21_000, 0.6, 0.97, 2_000),
    ("solana", 5_000, 0.8, 0.99, 400),
)


def default_venue_profiles(now_ms: int | None = None) -> list[VenueProfile]:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return [
        VenueProfile(
            name=name,
            base_gas=base_gas,
            base_privacy=base_privacy,
            default_success_rate=success,
            block_time_ms=block_time_ms,
            last_updated_ms=now_ms,
        )
        for name, base_gas, base_privacy, success, block_time_ms in DEFAULT_VENUE_TABLE
    ]


class VenueRegistry:
    """Ordered venue profiles; lookups of unknown venues raise ConfigurationError."""

    def __init__(self, profiles: list[VenueProfile] | None = None) -> None:
        profiles = profiles if profiles is not None else default_venue_profiles()
        self._profiles: dict[str, VenueProfile] = {p.name: p for p in profiles}
        self._lock = threading.Lock()

    def names(self) -> list[str]:
        return list(self._profiles)

    def get(self, name: str) -> VenueProfile:
        profile = self._profiles.get(name)
        if profile is None:
            logger.warning("venue_unknown", venue=name, known=self.names())
            raise ConfigurationError(f"unknown venue: {name!r}", venue=name)
        return profile

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def refresh(
        self,
        name: str,
        *,
        network_health: float | None = None,
        avg_gas_price: int | None = None,
        now_ms: int | None = None,
    ) -> VenueProfile:
        """Refresh the mutable fields of a venue profile; returns the new profile."""
        with self._lock:
            current = self.get(name)
            updated = replace(
                current,
                network_health=current.network_health if network_health is None else float(network_health),
                avg_gas_price=current.avg_gas_price if avg_gas_price is None else int(avg_gas_price),
                last_updated_ms=now_ms if now_ms is not None else int(time.time() * 1000),
            )
            self._profiles[name] = updated
        logger.info(
            "venue_refreshed",
            venue=name,
            network_health=updated.network_health,
            avg_gas_price=updated.avg_gas_price,
        )
        return updated
