"""
Pytest tests for the FastAPI decision endpoints (TestClient, engine built in lifespan).
"""

from __future__ import annotations

import time

MS_PER_DAY = 86_400_000
IDENTITY_HEX = "a1" * 32


def _payments(identity_hex: str = IDENTITY_HEX) -> list[dict]:
    now_ms = int(time.time() * 1000)
    return [
        {"identity": identity_hex, "amount": 1_000, "timestamp_ms": now_ms - d * MS_PER_DAY, "venue": "ethereum"}
        for d in (7, 5, 3, 1)
    ]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_route_falls_back_when_fee_ceiling_excludes_everything(client):
    r = client.post("/route", json={"amount": 5_000_000, "privacy_level": "maximum", "max_fee": 10})
    assert r.status_code == 200
    data = r.json()
    assert data["venue"] == "solana"
    assert data["estimated_gas"] == 6_000


def test_route_unknown_tier_is_400(client):
    r = client.post("/route", json={"amount": 100, "privacy_level": "ultra"})
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "configuration_error"
    assert "ultra" in body["detail"]


def test_route_unknown_venue_is_400(client):
    r = client.post("/route", json={"amount": 100, "target_venue": "dogechain"})
    assert r.status_code == 400
    assert r.json()["code"] == "configuration_error"


def test_route_negative_amount_is_422(client):
    r = client.post("/route", json={"amount": -1})
    assert r.status_code == 422


def test_privacy_compliance_without_history(client):
    r = client.post("/privacy", json={"identity": IDENTITY_HEX, "transaction_type": "compliance"})
    assert r.status_code == 200
    data = r.json()
    assert data["level"] == "high"
    assert data["proof_size"] == 4096
    assert data["zk_proof_required"] is True


def test_privacy_with_threat_and_network(client):
    r = client.post(
        "/privacy",
        json={
            "identity": IDENTITY_HEX,
            "threat_level": "critical",
            "amount": 500,
            "network_conditions": {"congestion": 0.9, "network_health": 0.9},
        },
    )
    assert r.status_code == 200
    assert r.json()["level"] == "medium"


def test_privacy_unknown_transaction_type_is_400(client):
    r = client.post("/privacy", json={"identity": IDENTITY_HEX, "transaction_type": "refund"})
    assert r.status_code == 400


def test_risk_direct_mode(client):
    r = client.post(
        "/risk",
        json={"identity": IDENTITY_HEX, "amount": 500, "venue": "ethereum", "preserve_privacy": False},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["anomalies"] == []
    assert data["risk_level"] == "low"
    assert abs(data["risk_score"] - 0.1) < 1e-9


def test_risk_private_mode_shape(client):
    r = client.post(
        "/risk",
        json={"identity": IDENTITY_HEX, "amount": 500, "venue": "solana", "commitment": "0x" + "42" * 32},
    )
    assert r.status_code == 200
    data = r.json()
    assert 0.0 <= data["risk_score"] <= 1.0
    assert data["risk_level"] in {"low", "medium", "high", "critical"}


def test_risk_bad_identity_is_400(client):
    r = client.post("/risk", json={"identity": "zz", "amount": 1, "venue": "ethereum"})
    assert r.status_code == 400
    assert r.json()["code"] == "configuration_error"


def test_reputation_without_history(client):
    r = client.post("/reputation", json={"identity": IDENTITY_HEX})
    assert r.status_code == 200
    assert r.json() == {"score": 50.0, "confidence": 0.5, "factors": ["insufficient_data"]}


def test_learn_then_summary(client):
    r = client.post("/learn", json={"payments": _payments()})
    assert r.status_code == 200
    assert r.json()["payments"] == 4
    assert [p["type"] for p in r.json()["patterns"]] == ["regular"]

    summary = client.get(f"/summary/{IDENTITY_HEX}")
    assert summary.status_code == 200
    data = summary.json()
    assert data["observed_payments"] == 4
    assert "regular" in data["reputation_factors"]
    assert abs(data["reputation_score"] - 53.0) < 1e-9
    assert data["ai_enabled"]["fraud_detection"] is True


def test_summary_bad_identity_is_400(client):
    r = client.get("/summary/not-hex")
    assert r.status_code == 400


def test_optimize_and_outcome(client):
    body = {"identity": IDENTITY_HEX, "amount": 5_000_000, "privacy_level": "maximum", "max_fee": 10}
    r = client.post("/optimize", json=body)
    assert r.status_code == 200
    data = r.json()
    assert data["recommended_venue"] == "solana"
    assert data["route"]["venue"] == "solana"
    assert data["estimated_cost"] == 6_000 * (data["privacy_config"]["proof_size"] // 1024)

    outcome = client.post("/outcome", json={**body, "success": True, "actual_fee": 5_500})
    assert outcome.status_code == 200
    assert outcome.json()["recorded"] is True
    assert outcome.json()["route"]["venue"] == "solana"

    summary = client.get(f"/summary/{IDENTITY_HEX}").json()
    assert summary["observed_payments"] == 1


def test_risk_keeps_explicit_zero_timestamp(client):
    """timestamp_ms=0 is a real timestamp, not a request for the current time."""
    from unittest.mock import patch

    engine = client.app.state.engine
    with patch.object(engine, "assess_risk", wraps=engine.assess_risk) as spy:
        r = client.post(
            "/risk",
            json={"identity": IDENTITY_HEX, "amount": 10, "venue": "ethereum", "timestamp_ms": 0},
        )
    assert r.status_code == 200
    assert spy.call_args.args[0].timestamp_ms == 0

    with patch.object(engine, "assess_risk", wraps=engine.assess_risk) as spy:
        client.post("/risk", json={"identity": IDENTITY_HEX, "amount": 10, "venue": "ethereum"})
    assert spy.call_args.args[0].timestamp_ms > 0
