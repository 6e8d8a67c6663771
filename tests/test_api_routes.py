"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================

These tests verify:
- Health endpoint availability
- Domain errors map to the right status codes and error body
- An end-to-end create → assign → score flow over HTTP
"""

from __future__ import annotations

import pytest


def _person(client, name: str) -> int:
    resp = client.post("/api/persons", json={"name": name})
    assert resp.status_code == 201
    return resp.json()["id"]


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Error mapping
# ===========================================================================
class TestErrorMapping:
    def test_not_found_is_404(self, client):
        resp = client.get("/api/persons/99")
        assert resp.status_code == 404
        assert resp.json() == {
            "error": "not_found",
            "detail": "Person with ID 99 not found",
            "details": {"id": 99},
        }

    def test_duplicate_is_409(self, client):
        _person(client, "Alice")
        resp = client.post("/api/persons", json={"name": "alice"})
        assert resp.status_code == 409
        assert resp.json()["error"] == "already_exists"

    def test_sign_rule_is_400(self, client):
        resp = client.post("/api/rewards", json={"name": "Nothing", "value": 0})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_malformed_body_is_400(self, client):
        resp = client.post("/api/assignments", json={"personIds": "nope"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_error"

    def test_delete_referenced_action_is_422(self, client):
        alice = _person(client, "Alice")
        reward = client.post("/api/rewards", json={"name": "Chores", "value": 10}).json()
        client.post(
            "/api/assignments",
            json={"personIds": [alice], "itemType": "reward", "itemId": reward["id"]},
        )
        resp = client.delete(f"/api/rewards/{reward['id']}")
        assert resp.status_code == 422
        assert resp.json()["error"] == "business_rule_violation"

    def test_compare_same_person_is_400(self, client):
        alice = _person(client, "Alice")
        resp = client.get("/api/scores/compare", params={"person1": alice, "person2": alice})
        assert resp.status_code == 400


# ===========================================================================
# End-to-end flow
# ===========================================================================
class TestScoringFlow:
    def test_assign_and_rank(self, client):
        alice = _person(client, "Alice")
        bob = _person(client, "Bob")
        reward = client.post("/api/rewards", json={"name": "Chores", "value": 10}).json()
        punishment = client.post("/api/punishments", json={"name": "Late", "value": -5}).json()

        resp = client.post(
            "/api/assignments",
            json={"personIds": [bob, alice], "itemType": "reward", "itemId": reward["id"]},
        )
        assert resp.status_code == 201
        assert [a["personId"] for a in resp.json()] == [bob, alice]
        assert resp.json()[0]["itemValue"] == 10

        client.post(
            "/api/assignments",
            json={"personIds": [bob], "itemType": "punishment", "itemId": punishment["id"]},
        )

        total = client.get("/api/scores/total").json()
        assert [(s["personName"], s["totalScore"], s["rank"]) for s in total] == [
            ("Alice", 10, 1),
            ("Bob", 5, 2),
        ]

        weekly = client.get("/api/scores/weekly").json()
        assert weekly[0]["personName"] == "Alice"
        assert "weekStart" in weekly[0]

    def test_validate_endpoint(self, client):
        reward = client.post("/api/rewards", json={"name": "Chores", "value": 10}).json()
        resp = client.post(
            "/api/assignments/validate",
            json={"personIds": [41, 42], "itemType": "reward", "itemId": reward["id"]},
        )
        assert resp.status_code == 200
        assert resp.json()["isValid"] is False
        assert len(resp.json()["errors"]) == 2

    @pytest.mark.parametrize("value,severity", [(-5, "Mild"), (-20, "Severe")])
    def test_severity_level(self, client, value, severity):
        resp = client.get("/api/punishments/severity-level", params={"value": value})
        assert resp.json() == {"value": value, "severity": severity}

    def test_recommended_value_default(self, client):
        resp = client.get("/api/punishments/recommended-value")
        assert resp.json() == {"recommendedValue": -10}
