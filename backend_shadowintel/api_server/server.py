"""
FastAPI server: decision API over one IntelligenceEngine.

Identities travel as hex strings and are parsed at the edge. Unknown tier,
threat, venue or transaction type names surface as 400 with
{"detail", "code"}; malformed bodies are rejected by pydantic (422).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_shadowintel import __version__
from backend_shadowintel.analysis_engine.fraud_detector import DetectionOptions
from backend_shadowintel.analysis_engine.models import (
    EMPTY_COMMITMENT,
    PaymentEvent,
    ThreatLevel,
    TransactionType,
)
from backend_shadowintel.config.settings import IntelligenceSettings, get_settings
from backend_shadowintel.core.exceptions import ConfigurationError, ShadowIntelError
from backend_shadowintel.core.identity import parse_identity_key
from backend_shadowintel.engine import IntelligenceEngine, PaymentRequest
from backend_shadowintel.intel_logging import get_logger
from backend_shadowintel.privacy.adapter import NetworkConditions, PrivacyContext
from backend_shadowintel.routing.router import RoutingOptions

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------

class PaymentEventBody(BaseModel):
    """One observed payment."""

    identity: str = Field(..., min_length=2, description="Identity key (hex)")
    amount: int = Field(..., ge=0, description="Amount in smallest token unit")
    timestamp_ms: int = Field(..., ge=0, description="Payment time, epoch milliseconds")
    venue: str = Field(..., min_length=1, description="Execution venue tag")
    succeeded: bool = Field(True)
    commitment: str | None = Field(None, description="Opaque commitment (hex); 32 zero bytes when omitted")


class RouteBody(BaseModel):
    """POST /route body."""

    amount: int = Field(..., ge=0)
    privacy_level: str = Field("medium", description="Requested tier: low, medium, high, maximum")
    target_venue: str | None = None
    max_fee: int | None = Field(None, ge=0)
    preferred_venues: list[str] | None = None


class RiskBody(PaymentEventBody):
    """POST /risk body: the payment to score plus optional detection overrides."""

    timestamp_ms: int | None = Field(None, ge=0, description="Defaults to now")
    preserve_privacy: bool | None = None
    sensitivity: float | None = Field(None, ge=0, le=1)


class NetworkConditionsBody(BaseModel):
    congestion: float = Field(..., ge=0, le=1)
    network_health: float = Field(..., ge=0, le=1)
    avg_gas_price: int = Field(0, ge=0)


class PrivacyBody(BaseModel):
    """POST /privacy body."""

    identity: str = Field(..., min_length=2)
    transaction_type: str = Field("payment", description="payment, reputation, compliance, governance")
    amount: int | None = Field(None, ge=0)
    threat_level: str | None = Field(None, description="low, medium, high, critical")
    network_conditions: NetworkConditionsBody | None = None


class ReputationBody(BaseModel):
    """POST /reputation body."""

    identity: str = Field(..., min_length=2)
    history: list[PaymentEventBody] | None = None


class OptimizeBody(BaseModel):
    """POST /optimize body."""

    identity: str = Field(..., min_length=2)
    amount: int = Field(..., ge=0)
    target_venue: str | None = None
    privacy_level: str | None = Field(None, description="Requested routing tier; engine default when omitted")
    max_fee: int | None = Field(None, ge=0)
    preferred_venues: list[str] | None = None
    commitment: str | None = None


class OutcomeBody(OptimizeBody):
    """POST /outcome body: an executed payment and how it went."""

    success: bool
    actual_fee: int | None = Field(None, ge=0)


class LearnBody(BaseModel):
    """POST /learn body."""

    payments: list[PaymentEventBody] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Conversion helpers
# -----------------------------------------------------------------------------

def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_commitment(value: str | None) -> bytes:
    if not value:
        return EMPTY_COMMITMENT
    try:
        return bytes.fromhex(value[2:] if value.startswith(("0x", "0X")) else value)
    except ValueError as e:
        logger.warning("commitment_invalid", length=len(value))
        raise ConfigurationError("commitment is not valid hex", value=value) from e


def _to_event(body: PaymentEventBody) -> PaymentEvent:
    return PaymentEvent(
        identity_key=parse_identity_key(body.identity),
        amount=body.amount,
        timestamp_ms=body.timestamp_ms,
        venue=body.venue,
        succeeded=body.succeeded,
        commitment=_parse_commitment(body.commitment),
    )


def _to_payment_request(body: OptimizeBody) -> PaymentRequest:
    return PaymentRequest(
        identity_key=parse_identity_key(body.identity),
        amount=body.amount,
        target_venue=body.target_venue,
        privacy_level=body.privacy_level,
        max_fee=body.max_fee,
        preferred_venues=body.preferred_venues,
        commitment=_parse_commitment(body.commitment),
    )


# -----------------------------------------------------------------------------
# Lifespan and dependency
# -----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the engine once; all requests share its stores."""
    settings: IntelligenceSettings = getattr(app.state, "settings", None) or get_settings()
    app.state.engine = IntelligenceEngine(settings)
    logger.info("api_engine_started", **app.state.engine.feature_flags())
    yield
    logger.info("api_engine_stopped")


def get_engine(request: Request) -> IntelligenceEngine:
    return request.app.state.engine


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

def create_app(settings: IntelligenceSettings | None = None) -> FastAPI:
    """Build the FastAPI app; settings default to the environment at startup."""
    application = FastAPI(
        title="ShadowIntel Decision API",
        description="Payment route selection, fraud risk, privacy tier and reputation decisions.",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.settings = settings

    @application.exception_handler(ShadowIntelError)
    def shadowintel_error_handler(request: Request, exc: ShadowIntelError) -> JSONResponse:
        logger.warning("api_request_rejected", path=request.url.path, code=exc.code, detail=exc.message)
        return JSONResponse(status_code=400, content=exc.to_dict())

    @application.post("/route")
    def select_route(body: RouteBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        """Best venue for the amount and requested tier."""
        route = engine.select_route(
            RoutingOptions(
                amount=body.amount,
                privacy_level=body.privacy_level,
                target_venue=body.target_venue,
                max_fee=body.max_fee,
                preferred_venues=body.preferred_venues,
            )
        )
        return route.to_dict()

    @application.post("/risk")
    def assess_risk(body: RiskBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        """Fraud risk for one payment. Does not record the payment."""
        timestamp_ms = body.timestamp_ms if body.timestamp_ms is not None else _now_ms()
        event = _to_event(body.model_copy(update={"timestamp_ms": timestamp_ms}))
        options = None
        if body.preserve_privacy is not None or body.sensitivity is not None:
            defaults = engine.detection_options
            options = DetectionOptions(
                preserve_privacy=defaults.preserve_privacy if body.preserve_privacy is None else body.preserve_privacy,
                sensitivity=defaults.sensitivity if body.sensitivity is None else body.sensitivity,
            )
        return engine.assess_risk(event, options).to_dict()

    @application.post("/privacy")
    def adapt_privacy(body: PrivacyBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        """Privacy configuration for a transaction context."""
        network = None
        if body.network_conditions is not None:
            network = NetworkConditions(**body.network_conditions.model_dump())
        context = PrivacyContext(
            identity_key=parse_identity_key(body.identity),
            transaction_type=TransactionType.parse(body.transaction_type),
            amount=body.amount,
            threat_level=ThreatLevel.parse(body.threat_level) if body.threat_level else None,
            network_conditions=network,
        )
        return engine.adapt_tier(context).to_dict()

    @application.post("/reputation")
    def predict_reputation(body: ReputationBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        history = [_to_event(p) for p in body.history] if body.history is not None else None
        return engine.predict_reputation(parse_identity_key(body.identity), history, _now_ms()).to_dict()

    @application.post("/optimize")
    def optimize_payment(body: OptimizeBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        """Route, risk and privacy tier in one decision."""
        return engine.optimize_payment(_to_payment_request(body), _now_ms()).to_dict()

    @application.post("/outcome")
    def record_outcome(body: OutcomeBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        """Feed back an executed payment; returns the route it was attributed to."""
        route = engine.learn_from_payment(_to_payment_request(body), body.success, body.actual_fee, _now_ms())
        return {"recorded": body.success, "route": route.to_dict()}

    @application.post("/learn")
    def learn_from_payments(body: LearnBody, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        patterns = engine.learn_from_payments([_to_event(p) for p in body.payments])
        return {
            "payments": len(body.payments),
            "patterns": [{"type": p.type, "weight": p.weight} for p in patterns],
        }

    @application.get("/summary/{identity}")
    def intelligence_summary(identity: str, engine: IntelligenceEngine = Depends(get_engine)) -> dict[str, Any]:
        return engine.get_intelligence_summary(parse_identity_key(identity), _now_ms())

    @application.get("/health")
    def health() -> dict[str, str]:
        """Liveness check: API is up."""
        return {"status": "ok"}

    return application


app = create_app()
