"""
Pytest fixtures for ShadowIntel tests. Engines are built fresh per test with
explicit settings; the HTTP client runs the app lifespan so the engine exists.
"""

from __future__ import annotations

import pytest

from backend_shadowintel.analysis_engine.models import PaymentEvent
from backend_shadowintel.config.settings import IntelligenceSettings

# Fixed clock for deterministic windows: 2024-01-01T00:00:00Z
NOW_MS = 1_704_067_200_000
MS_PER_DAY = 86_400_000

IDENTITY = bytes.fromhex("a1" * 32)
OTHER_IDENTITY = bytes.fromhex("b2" * 32)


@pytest.fixture
def now_ms() -> int:
    return NOW_MS


@pytest.fixture
def identity() -> bytes:
    return IDENTITY


@pytest.fixture
def make_event():
    """Factory for PaymentEvent with sensible defaults."""

    def _make(
        amount: int = 1_000,
        timestamp_ms: int = NOW_MS,
        venue: str = "ethereum",
        identity_key: bytes = IDENTITY,
        succeeded: bool = True,
        commitment: bytes = bytes(32),
    ) -> PaymentEvent:
        return PaymentEvent(
            identity_key=identity_key,
            amount=amount,
            timestamp_ms=timestamp_ms,
            venue=venue,
            succeeded=succeeded,
            commitment=commitment,
        )

    return _make


@pytest.fixture
def regular_payments(make_event):
    """Four payments 7, 5, 3 and 1 days before NOW_MS on one venue."""
    return [make_event(amount=1_000, timestamp_ms=NOW_MS - d * MS_PER_DAY) for d in (7, 5, 3, 1)]


@pytest.fixture
def settings() -> IntelligenceSettings:
    return IntelligenceSettings()


@pytest.fixture
def engine(settings):
    from backend_shadowintel.engine import IntelligenceEngine

    return IntelligenceEngine(settings)


@pytest.fixture
def client(settings):
    """FastAPI TestClient with lifespan run (engine built on enter)."""
    from fastapi.testclient import TestClient

    from backend_shadowintel.api_server.server import create_app

    with TestClient(create_app(settings)) as test_client:
        yield test_client
