# tests/test_api.py
from unittest.mock import AsyncMock

import pytest

DETECT_URL = "/api/v1/compliance/detect-fraud"


def payload(**overrides):
    body = {
        "transactionId": "tx_1",
        "userId": "user_1",
        "amount": 50,
        "timestamp": "2024-06-01T14:00:00Z",
    }
    body.update(overrides)
    return {k: v for k, v in body.items() if v is not None}


class TestDetectFraudContract:

    def test_returns_full_breakdown(self, client):
        resp = client.post(DETECT_URL, json=payload(amount=15000))
        assert resp.status_code == 200, resp.text

        data = resp.json()
        assert data["fraudScore"] == 32
        assert data["recommendedAction"] == "MONITOR"
        assert data["isFraudulent"] is False
        assert data["similarCases"] == 0

        assert len(data["factors"]) == 6
        amount = data["factors"][0]
        assert amount == {
            "name": "Amount Analysis",
            "score": 80,
            "weight": 0.25,
            "weightedScore": 20,
            "severity": "high",
            "description": "High-value transaction exceeds $10,000 threshold",
        }
        assert data["evidence"] == [
            {
                "type": "amount_analysis",
                "description": "High-value transaction exceeds $10,000 threshold",
                "severity": 8.0,
            }
        ]

        analysis = data["analysis"]
        assert analysis["transactionId"] == "tx_1"
        assert analysis["userId"] == "user_1"
        assert analysis["totalRiskScore"] == 32
        assert analysis["modelVersion"] == "fraud-detection-v2.1"
        assert 85 <= analysis["confidence"] <= 95
        assert analysis["degradedSignals"] == []

    @pytest.mark.parametrize("missing", ["transactionId", "userId", "amount"])
    def test_missing_required_field_is_rejected(self, client, missing):
        resp = client.post(DETECT_URL, json=payload(**{missing: None}))
        assert resp.status_code == 400
        assert resp.json() == {"error": "transactionId, userId, and amount are required"}

    def test_empty_transaction_id_is_rejected(self, client):
        resp = client.post(DETECT_URL, json=payload(transactionId=""))
        assert resp.status_code == 400

    def test_negative_amount_is_a_client_error(self, client):
        resp = client.post(DETECT_URL, json=payload(amount=-5))
        assert resp.status_code == 422

    def test_zero_amount_is_accepted(self, client):
        resp = client.post(DETECT_URL, json=payload(amount=0))
        assert resp.status_code == 200

    def test_long_optional_fields_are_scored(self, client):
        resp = client.post(
            DETECT_URL,
            json=payload(
                merchantCategory="x" * 200,
                location={"country": "N" * 200, "city": "c" * 300},
                deviceFingerprint="f" * 500,
                ipAddress="2001:db8::1" * 10,
            ),
        )
        assert resp.status_code == 200, resp.text

        data = resp.json()
        assert data["factors"][2]["score"] == 0  # unknown country
        assert data["factors"][4]["score"] == 0  # unknown category


class TestDetectFraudScenarios:

    def test_high_risk_country_and_gambling(self, client):
        resp = client.post(
            DETECT_URL,
            json=payload(amount=500, location={"country": "NG", "city": "Lagos"}, merchantCategory="gambling"),
        )
        data = resp.json()

        assert data["fraudScore"] == 30
        assert {e["type"] for e in data["evidence"]} == {"geographic_analysis", "merchant_analysis"}
        assert "New or unrecognized device" in data["patterns"]

    def test_known_device_clean_transaction_approves(self, client):
        first = payload(
            transactionId="tx_a",
            location={"country": "US", "city": "Austin"},
            merchantCategory="groceries",
            deviceFingerprint="fp-1",
        )
        assert client.post(DETECT_URL, json=first).json()["factors"][3]["score"] == 40

        second = dict(first, transactionId="tx_b", timestamp="2024-06-01T14:05:00Z")
        data = client.post(DETECT_URL, json=second).json()

        assert [f["score"] for f in data["factors"]] == [0, 0, 0, 0, 0, 0]
        assert data["fraudScore"] == 0
        assert data["recommendedAction"] == "APPROVE"
        assert data["evidence"] == []
        assert data["patterns"] == []

    def test_velocity_builds_from_recorded_history(self, client):
        for i in range(8):
            client.post(DETECT_URL, json=payload(transactionId=f"tx_{i}", timestamp=f"2024-06-01T13:{10 + i}:00Z"))

        data = client.post(DETECT_URL, json=payload(transactionId="tx_burst")).json()
        velocity = data["factors"][1]

        assert velocity["score"] == 90
        assert velocity["severity"] == "critical"
        assert "8 transactions" in velocity["description"]

    def test_retried_transaction_does_not_inflate_velocity(self, client):
        for _ in range(3):
            client.post(DETECT_URL, json=payload(transactionId="tx_retry", timestamp="2024-06-01T13:50:00Z"))

        data = client.post(DETECT_URL, json=payload(transactionId="tx_next")).json()
        velocity = data["factors"][1]

        assert velocity["name"] == "Velocity Analysis"
        assert velocity["score"] == 0

    def test_same_input_same_assessment(self, client):
        body = payload(transactionId="tx_same", amount=7000, location={"country": "VN", "city": "Hanoi"})
        first = client.post(DETECT_URL, json=body).json()
        second = client.post(DETECT_URL, json=body).json()

        for key in ("fraudScore", "recommendedAction", "factors", "evidence", "patterns"):
            assert first[key] == second[key]


def test_capabilities(client):
    resp = client.get(DETECT_URL)
    assert resp.status_code == 200

    data = resp.json()
    assert data["status"] == "operational"
    assert data["model"] == "fraud-detection-v2.1"
    assert "velocity-detection" in data["capabilities"]
    assert data["riskThresholds"] == {
        "block": 80,
        "investigate": 60,
        "review": 40,
        "monitor": 20,
        "approve": 0,
    }


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200

    data = resp.json()
    assert data["scoring"]["indicator"] == "operational"
    assert data["service"]["model_version"] == "fraud-detection-v2.1"
    assert data["components"]["database"]["status"] == "operational"
    assert data["components"]["database"]["feeds"] == ["velocity-detection", "device-fingerprinting"]
    assert set(data["components"]) == {"database", "cache", "device_intel"}


def test_health_reports_cache_outage_without_fallbacks(client):
    redis = AsyncMock()
    redis.ping.side_effect = ConnectionError("redis down")
    client.app.state.redis = redis

    data = client.get("/api/v1/health").json()

    assert data["components"]["cache"]["status"] == "degraded_performance"
    assert data["scoring"]["indicator"] == "degraded_performance"
    assert "no-data defaults" not in data["scoring"]["description"]


def test_root(client):
    assert client.get("/").json()["status"] == "ok"
