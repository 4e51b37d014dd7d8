"""
Payment route selection across execution venues.

For each candidate venue computes (gas, privacy score, success rate, time),
ranks by 0.4*privacy + 0.4*success - 0.2*(gas / 1e9), then filters by the
requested tier's privacy floor and the caller's fee ceiling.

Fallback chain (the call always yields a route):
  1. best venue surviving both filters;
  2. otherwise the best venue before filtering;
  3. otherwise (no candidates at all) a fixed default route.

Success rate from history counts a recorded route as successful when its own
stored success_rate exceeded 0.9. This self-referential definition is kept
as-is; changing it changes which venues win.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from backend_shadowintel.config.settings import ROUTE_HISTORY_CAPACITY
from backend_shadowintel.history import HistoryStore
from backend_shadowintel.intel_logging import get_logger
from backend_shadowintel.privacy.tiers import PrivacyLevel
from backend_shadowintel.routing.venues import VenueProfile, VenueRegistry

logger = get_logger(__name__)

LARGE_AMOUNT_THRESHOLD = 1_000_000
LARGE_AMOUNT_GAS_MULTIPLIER = 1.2

TIER_PRIVACY_MULTIPLIERS: dict[PrivacyLevel, float] = {
    PrivacyLevel.LOW: 0.8,
    PrivacyLevel.MEDIUM: 1.0,
    PrivacyLevel.HIGH: 1.2,
    PrivacyLevel.MAXIMUM: 1.5,
}
TIER_MIN_PRIVACY: dict[PrivacyLevel, float] = {
    PrivacyLevel.LOW: 0.3,
    PrivacyLevel.MEDIUM: 0.5,
    PrivacyLevel.HIGH: 0.7,
    PrivacyLevel.MAXIMUM: 0.9,
}

WEIGHT_PRIVACY = 0.4
WEIGHT_SUCCESS = 0.4
WEIGHT_COST = 0.2
GAS_NORMALIZER = 1e9
HISTORY_SUCCESS_THRESHOLD = 0.9

DEFAULT_ROUTE_VENUE = "ethereum"
DEFAULT_ROUTE_GAS = 21_000
DEFAULT_ROUTE_PRIVACY = 0.7
DEFAULT_ROUTE_SUCCESS = 0.95
DEFAULT_ROUTE_TIME_MS = 12_000


@dataclass(frozen=True)
class PaymentRoute:
    venue: str
    estimated_gas: int
    privacy_score: float
    success_rate: float
    estimated_time_ms: int

    @property
    def composite_score(self) -> float:
        """Ranking score: higher is better."""
        cost = self.estimated_gas / GAS_NORMALIZER if self.estimated_gas > 0 else 0.0
        return self.privacy_score * WEIGHT_PRIVACY + self.success_rate * WEIGHT_SUCCESS - cost * WEIGHT_COST

    def to_dict(self) -> dict[str, Any]:
        return {
            "venue": self.venue,
            "estimated_gas": self.estimated_gas,
            "privacy_score": self.privacy_score,
            "success_rate": self.success_rate,
            "estimated_time_ms": self.estimated_time_ms,
        }


@dataclass(frozen=True)
class RoutingOptions:
    amount: int
    privacy_level: PrivacyLevel | str = PrivacyLevel.MEDIUM
    target_venue: str | None = None
    """Venue used for the default route when no candidate can be scored."""
    max_fee: int | None = None
    """Gas ceiling; routes above it are dropped."""
    preferred_venues: Sequence[str] | None = None
    """Venue allow-list; None means every registered venue."""


def default_route(venue: str | None = None) -> PaymentRoute:
    return PaymentRoute(
        venue=venue or DEFAULT_ROUTE_VENUE,
        estimated_gas=DEFAULT_ROUTE_GAS,
        privacy_score=DEFAULT_ROUTE_PRIVACY,
        success_rate=DEFAULT_ROUTE_SUCCESS,
        estimated_time_ms=DEFAULT_ROUTE_TIME_MS,
    )


def estimate_gas(profile: VenueProfile, amount: int) -> int:
    multiplier = LARGE_AMOUNT_GAS_MULTIPLIER if amount > LARGE_AMOUNT_THRESHOLD else 1.0
    return math.floor(profile.base_gas * multiplier)


def venue_privacy_score(profile: VenueProfile, tier: PrivacyLevel) -> float:
    return min(1.0, profile.base_privacy * TIER_PRIVACY_MULTIPLIERS[tier])


def estimate_time_ms(profile: VenueProfile) -> int:
    return profile.block_time_ms * (profile.confirmation_blocks or 12)


def historical_success_rate(profile: VenueProfile, history: Sequence[PaymentRoute]) -> float:
    if not history:
        return profile.default_success_rate
    successful = sum(1 for r in history if r.success_rate > HISTORY_SUCCESS_THRESHOLD)
    return successful / len(history)


class RouteSelector:
    def __init__(
        self,
        venues: VenueRegistry | None = None,
        route_history: HistoryStore[PaymentRoute] | None = None,
    ) -> None:
        self.venues = venues if venues is not None else VenueRegistry()
        self.route_history: HistoryStore[PaymentRoute] = (
            route_history
            if route_history is not None
            else HistoryStore(ROUTE_HISTORY_CAPACITY, name="route_history")
        )

    def calculate_route(self, venue: str, amount: int, tier: PrivacyLevel) -> PaymentRoute:
        profile = self.venues.get(venue)
        return PaymentRoute(
            venue=venue,
            estimated_gas=estimate_gas(profile, amount),
            privacy_score=venue_privacy_score(profile, tier),
            success_rate=historical_success_rate(profile, self.route_history.get(venue)),
            estimated_time_ms=estimate_time_ms(profile),
        )

    def rank_routes(self, options: RoutingOptions) -> list[PaymentRoute]:
        """Score every candidate venue; best first (stable for equal scores)."""
        tier = PrivacyLevel.parse(options.privacy_level)
        candidates = (
            list(options.preferred_venues)
            if options.preferred_venues is not None
            else self.venues.names()
        )
        routes = [self.calculate_route(venue, options.amount, tier) for venue in candidates]
        return sorted(routes, key=lambda r: r.composite_score, reverse=True)

    def find_optimal_route(self, options: RoutingOptions) -> PaymentRoute:
        tier = PrivacyLevel.parse(options.privacy_level)
        if options.target_venue is not None:
            self.venues.get(options.target_venue)

        routes = self.rank_routes(options)
        min_privacy = TIER_MIN_PRIVACY[tier]
        eligible = [r for r in routes if r.privacy_score >= min_privacy]
        if options.max_fee is not None:
            eligible = [r for r in eligible if r.estimated_gas <= options.max_fee]

        if eligible:
            route, source = eligible[0], "filtered"
        elif routes:
            route, source = routes[0], "unfiltered_fallback"
        else:
            route, source = default_route(options.target_venue), "default"

        logger.info(
            "route_selected",
            venue=route.venue,
            tier=tier.value,
            amount=options.amount,
            max_fee=options.max_fee,
            candidates=len(routes),
            eligible=len(eligible),
            source=source,
            estimated_gas=route.estimated_gas,
        )
        return route

    def record_outcome(self, venue: str, route: PaymentRoute) -> None:
        """Append a completed route to the venue's history (last 100 kept)."""
        self.route_history.record(venue, route)

    def refresh_venue(
        self,
        venue: str,
        *,
        network_health: float | None = None,
        avg_gas_price: int | None = None,
    ) -> VenueProfile:
        return self.venues.refresh(venue, network_health=network_health, avg_gas_price=avg_gas_price)
