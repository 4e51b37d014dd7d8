"""
Payment decision facade: route, risk and privacy tier in one pass.

Composition order is fixed: the route is chosen first, risk is assessed on
the chosen venue, and the risk level becomes the threat signal for tier
adaptation. Tier adaptation depends on the risk output, so the two steps are
never reordered or run in parallel.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, replace
from typing import Any, Sequence

from backend_shadowintel.analysis_engine.fraud_detector import DetectionOptions, FraudDetector
from backend_shadowintel.analysis_engine.models import (
    EMPTY_COMMITMENT,
    FraudAssessment,
    PaymentEvent,
    TransactionType,
)
from backend_shadowintel.config.settings import DEFAULT_REQUESTED_TIER, DEFAULT_SENSITIVITY
from backend_shadowintel.core.identity import identity_key_hex
from backend_shadowintel.intel_logging import bind_identity
from backend_shadowintel.privacy.adapter import NetworkConditions, PrivacyAdapter, PrivacyContext
from backend_shadowintel.privacy.tiers import PrivacyConfiguration, PrivacyLevel
from backend_shadowintel.routing.router import PaymentRoute, RouteSelector, RoutingOptions

# Proof-size unit for cost scaling: each started KiB multiplies the gas estimate
PROOF_SIZE_UNIT = 1024


@dataclass(frozen=True)
class PaymentRequest:
    identity_key: bytes
    amount: int
    target_venue: str | None = None
    privacy_level: PrivacyLevel | str | None = None
    """Requested tier for routing; engine default (high) when None."""
    max_fee: int | None = None
    preferred_venues: Sequence[str] | None = None
    commitment: bytes = EMPTY_COMMITMENT
    transaction_type: TransactionType = TransactionType.PAYMENT
    network_conditions: NetworkConditions | None = None


@dataclass(frozen=True)
class OptimizedPayment:
    route: PaymentRoute
    privacy_config: PrivacyConfiguration
    fraud_assessment: FraudAssessment
    recommended_venue: str
    estimated_cost: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "route": self.route.to_dict(),
            "privacy_config": self.privacy_config.to_dict(),
            "fraud_assessment": self.fraud_assessment.to_dict(),
            "recommended_venue": self.recommended_venue,
            "estimated_cost": self.estimated_cost,
        }


def estimate_cost(route: PaymentRoute, privacy: PrivacyConfiguration) -> int:
    """gas * ceil(proof_size / 1 KiB)."""
    return route.estimated_gas * math.ceil(privacy.proof_size / PROOF_SIZE_UNIT)


class PaymentBridge:
    """Composes RouteSelector, FraudDetector and PrivacyAdapter; adds no scoring of its own."""

    def __init__(
        self,
        router: RouteSelector,
        fraud_detector: FraudDetector,
        privacy_adapter: PrivacyAdapter,
        *,
        sensitivity: float = DEFAULT_SENSITIVITY,
        default_tier: PrivacyLevel | str = DEFAULT_REQUESTED_TIER,
    ) -> None:
        self.router = router
        self.fraud_detector = fraud_detector
        self.privacy_adapter = privacy_adapter
        self.detection_options = DetectionOptions(preserve_privacy=True, sensitivity=sensitivity)
        self.default_tier = PrivacyLevel.parse(default_tier)

    def _routing_options(self, request: PaymentRequest) -> RoutingOptions:
        return RoutingOptions(
            amount=request.amount,
            privacy_level=request.privacy_level or self.default_tier,
            target_venue=request.target_venue,
            max_fee=request.max_fee,
            preferred_venues=request.preferred_venues,
        )

    def optimize_payment(self, request: PaymentRequest, now_ms: int | None = None) -> OptimizedPayment:
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        log = bind_identity(identity_key_hex(request.identity_key))

        route = self.router.find_optimal_route(self._routing_options(request))

        event = PaymentEvent(
            identity_key=request.identity_key,
            amount=request.amount,
            timestamp_ms=now_ms,
            venue=route.venue,
            commitment=request.commitment,
        )
        fraud = self.fraud_detector.assess_risk(event, self.detection_options)

        privacy = self.privacy_adapter.adapt_privacy_level(
            PrivacyContext(
                identity_key=request.identity_key,
                transaction_type=request.transaction_type,
                amount=request.amount,
                threat_level=fraud.risk_level,
                network_conditions=request.network_conditions,
            )
        )

        result = OptimizedPayment(
            route=route,
            privacy_config=privacy,
            fraud_assessment=fraud,
            recommended_venue=route.venue,
            estimated_cost=estimate_cost(route, privacy),
        )
        log.info(
            "payment_optimized",
            venue=route.venue,
            risk_level=fraud.risk_level.value,
            tier=privacy.level.value,
            estimated_cost=result.estimated_cost,
        )
        return result

    def learn_from_payment(
        self,
        request: PaymentRequest,
        success: bool,
        actual_fee: int | None = None,
        now_ms: int | None = None,
    ) -> PaymentRoute:
        """
        Feed back an executed payment.

        Re-selects the route for the request; on success records it in the
        venue's history (with the actual fee as its gas when reported). The
        identity's payment pattern is updated either way.
        """
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        route = self.router.find_optimal_route(self._routing_options(request))
        if success:
            recorded = replace(route, estimated_gas=actual_fee) if actual_fee is not None else route
            self.router.record_outcome(route.venue, recorded)

        self.fraud_detector.update_pattern(
            PaymentEvent(
                identity_key=request.identity_key,
                amount=request.amount,
                timestamp_ms=now_ms,
                venue=route.venue,
                succeeded=success,
                commitment=request.commitment,
            )
        )
        bind_identity(identity_key_hex(request.identity_key)).info(
            "payment_outcome_recorded",
            venue=route.venue,
            success=success,
            actual_fee=actual_fee,
        )
        return route
