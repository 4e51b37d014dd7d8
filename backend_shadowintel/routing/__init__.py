"""
Routing package: venue reference data and best-route selection.
"""

from backend_shadowintel.routing.venues import VenueProfile, VenueRegistry, default_venue_profiles
from backend_shadowintel.routing.router import (
    PaymentRoute,
    RouteSelector,
    RoutingOptions,
    default_route,
)

__all__ = [
    "VenueProfile",
    "VenueRegistry",
    "default_venue_profiles",
    "PaymentRoute",
    "RouteSelector",
    "RoutingOptions",
    "default_route",
]
