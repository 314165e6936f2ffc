"""
Unit tests for the HTTP API.
Service calls are monkeypatched so no database is needed.
"""
import pytest
from fastapi.testclient import TestClient

from matching.api.main import app
from matching.services import match_service, stadium_service, user_service
from matching.services.connection_monitor import ConnectionState, get_connection_monitor
from matching.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ResourceExhaustedError,
    StoreError,
)


# ============================================================================
# Test Fixtures and Helpers
# ============================================================================

def make_client_with_auth(monkeypatch, user_id="kim", unit="unit-1"):
    """Helper to create a client whose X-User-Id resolves to a user."""
    async def fake_get_user_by_id(session, uid):
        if uid != user_id:
            return None
        return {
            "id": user_id,
            "name": "Kim",
            "rank": 0,
            "unit": unit,
            "description": None,
            "match_ongoing": None,
            "created_at": "2020-01-01T00:00:00+00:00",
            "updated_at": "2020-01-01T00:00:00+00:00",
        }

    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)
    return TestClient(app), {"X-User-Id": user_id}


STADIUM = {
    "id": 1,
    "name": "North Field",
    "available_types": ["soccer"],
    "belong_at": "unit-1",
    "max_capacity": 22,
    "occupied_capacity": 0,
    "remaining_capacity": 22,
    "matchings": [],
    "modified_at": None,
}


# ============================================================================
# Authentication
# ============================================================================

class TestAuthentication:
    """Caller identity comes from the X-User-Id header."""

    def test_missing_header_is_401(self, monkeypatch):
        client, _ = make_client_with_auth(monkeypatch)
        response = client.post("/api/matches", json={"activity_type": "soccer", "players": ["a"]})
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authenticated user"

    def test_unknown_user_is_401(self, monkeypatch):
        client, _ = make_client_with_auth(monkeypatch)
        response = client.get("/api/matches/mine", headers={"X-User-Id": "ghost"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"


# ============================================================================
# Match Endpoints
# ============================================================================

class TestMatchEndpoints:
    """Tests for /api/matches."""

    def test_create_match_success(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        calls = []

        async def fake_create_match(session, initiator_id, activity_type, participants):
            calls.append((initiator_id, activity_type, participants))
            return {"stadium": "North Field", "match_id": "abc123"}

        monkeypatch.setattr(match_service, "create_match", fake_create_match, raising=True)

        response = client.post(
            "/api/matches",
            json={"activity_type": " soccer ", "players": ["kim", "ahn"]},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {"result": True, "match_id": "abc123", "stadium": "North Field"}
        assert calls == [("kim", "soccer", ["kim", "ahn"])]

    def test_create_match_validation(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        empty_players = client.post(
            "/api/matches", json={"activity_type": "soccer", "players": []}, headers=headers
        )
        blank_type = client.post(
            "/api/matches", json={"activity_type": "   ", "players": ["a"]}, headers=headers
        )
        too_many = client.post(
            "/api/matches",
            json={"activity_type": "soccer", "players": [f"p{i}" for i in range(201)]},
            headers=headers,
        )

        assert empty_players.status_code == 422
        assert blank_type.status_code == 422
        assert too_many.status_code == 422

    @pytest.mark.parametrize(
        "error, status, kind",
        [
            (ResourceExhaustedError("NoMatchingStadium", "none"), 409, "resource_exhausted"),
            (ResourceExhaustedError("FailedAssigningStadium", "full"), 409, "resource_exhausted"),
            (ConflictError("MatchAlreadyOngoing", "busy"), 409, "conflict"),
            (ConflictError("CapacityContention", "raced"), 409, "conflict"),
            (NotFoundError("NoSuchUser", "gone"), 404, "not_found"),
            (StoreError("StoreError", "db down"), 500, "store_error"),
        ],
    )
    def test_create_match_failures_are_structured(self, monkeypatch, error, status, kind):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_create_match(session, initiator_id, activity_type, participants):
            raise error

        monkeypatch.setattr(match_service, "create_match", fake_create_match, raising=True)

        response = client.post(
            "/api/matches", json={"activity_type": "soccer", "players": ["a"]}, headers=headers
        )

        assert response.status_code == status
        body = response.json()
        assert body["result"] is False
        assert body["reason"] == error.reason
        assert body["kind"] == kind

    def test_create_match_invalid_group_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_create_match(session, initiator_id, activity_type, participants):
            raise ValueError("A match needs at least one participant")

        monkeypatch.setattr(match_service, "create_match", fake_create_match, raising=True)

        response = client.post(
            "/api/matches", json={"activity_type": "soccer", "players": ["a"]}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "A match needs at least one participant"

    def test_create_match_unexpected_error_is_500(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_create_match(session, initiator_id, activity_type, participants):
            raise RuntimeError("boom")

        monkeypatch.setattr(match_service, "create_match", fake_create_match, raising=True)

        response = client.post(
            "/api/matches", json={"activity_type": "soccer", "players": ["a"]}, headers=headers
        )
        assert response.status_code == 500
        assert response.json()["detail"] == "Error creating match"

    def test_delete_match_success(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        calls = []

        async def fake_delete_match(session, initiator_id, match_id):
            calls.append((initiator_id, match_id))

        monkeypatch.setattr(match_service, "delete_match", fake_delete_match, raising=True)

        response = client.delete("/api/matches/abc123", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"result": True}
        assert calls == [("kim", "abc123")]

    def test_delete_match_forbidden(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_delete_match(session, initiator_id, match_id):
            raise ForbiddenError("ForbiddenOperation", "not yours")

        monkeypatch.setattr(match_service, "delete_match", fake_delete_match, raising=True)

        response = client.delete("/api/matches/abc123", headers=headers)

        assert response.status_code == 403
        assert response.json() == {
            "result": False,
            "reason": "ForbiddenOperation",
            "kind": "forbidden",
            "detail": "not yours",
        }

    def test_delete_match_not_found(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_delete_match(session, initiator_id, match_id):
            raise NotFoundError("NoSuchMatch", "missing")

        monkeypatch.setattr(match_service, "delete_match", fake_delete_match, raising=True)

        response = client.delete("/api/matches/nope", headers=headers)

        assert response.status_code == 404
        assert response.json()["reason"] == "NoSuchMatch"

    def test_get_my_match(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_get_match(session, initiator_id):
            return {
                "match_id": "abc123",
                "initiator_id": initiator_id,
                "activity_type": "soccer",
                "players": ["kim"],
                "stadium": "North Field",
                "created_at": None,
            }

        monkeypatch.setattr(match_service, "get_match", fake_get_match, raising=True)

        response = client.get("/api/matches/mine", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["result"] is True
        assert data["match"]["match_id"] == "abc123"
        assert data["match"]["initiator_id"] == "kim"

    def test_get_my_match_multiple(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_get_match(session, initiator_id):
            raise ConflictError("MultipleMatch", "2 matches")

        monkeypatch.setattr(match_service, "get_match", fake_get_match, raising=True)

        response = client.get("/api/matches/mine", headers=headers)

        assert response.status_code == 409
        assert response.json()["reason"] == "MultipleMatch"

    def test_get_all_matchings(self, monkeypatch):
        client = TestClient(app)

        async def fake_get_all(session):
            return []

        monkeypatch.setattr(match_service, "get_all_matchings", fake_get_all, raising=True)

        response = client.get("/api/matches")

        assert response.status_code == 200
        assert response.json() == {"result": True, "docs": []}


# ============================================================================
# Stadium Endpoints
# ============================================================================

class TestStadiumEndpoints:
    """Tests for /api/stadiums."""

    def test_create_stadium(self, monkeypatch):
        client = TestClient(app)
        calls = []

        async def fake_create_stadium(session, name, available_types, belong_at, max_capacity):
            calls.append((name, available_types, belong_at, max_capacity))
            return STADIUM

        monkeypatch.setattr(stadium_service, "create_stadium", fake_create_stadium, raising=True)

        response = client.post(
            "/api/stadiums",
            json={
                "name": "North Field",
                "available_type": ["soccer"],
                "belong_at": "unit-1",
                "max_players": 22,
            },
        )

        assert response.status_code == 200
        assert response.json()["stadium"]["name"] == "North Field"
        assert calls == [("North Field", ["soccer"], "unit-1", 22)]

    def test_create_stadium_duplicate(self, monkeypatch):
        client = TestClient(app)

        async def fake_create_stadium(session, **kwargs):
            raise ConflictError("DuplicatedEntity", "taken")

        monkeypatch.setattr(stadium_service, "create_stadium", fake_create_stadium, raising=True)

        response = client.post(
            "/api/stadiums",
            json={
                "name": "North Field",
                "available_type": ["soccer"],
                "belong_at": "unit-1",
                "max_players": 22,
            },
        )

        assert response.status_code == 409
        assert response.json()["reason"] == "DuplicatedEntity"

    def test_create_stadium_negative_capacity_is_422(self):
        client = TestClient(app)
        response = client.post(
            "/api/stadiums",
            json={"name": "X", "available_type": ["soccer"], "belong_at": "u", "max_players": -1},
        )
        assert response.status_code == 422

    def test_list_stadiums_with_unit(self, monkeypatch):
        client = TestClient(app)
        seen = []

        async def fake_list_stadiums(session, unit=None):
            seen.append(unit)
            return [STADIUM]

        monkeypatch.setattr(stadium_service, "list_stadiums", fake_list_stadiums, raising=True)

        response = client.get("/api/stadiums?unit=unit-1")

        assert response.status_code == 200
        assert len(response.json()["docs"]) == 1
        assert seen == ["unit-1"]

    def test_get_stadium_not_found(self, monkeypatch):
        client = TestClient(app)

        async def fake_get_stadium(session, name):
            raise NotFoundError("NoSuchStadium", f"Stadium {name!r} not found")

        monkeypatch.setattr(stadium_service, "get_stadium", fake_get_stadium, raising=True)

        response = client.get("/api/stadiums/Nowhere")

        assert response.status_code == 404
        assert response.json()["reason"] == "NoSuchStadium"


# ============================================================================
# User and Health Endpoints
# ============================================================================

class TestUserEndpoints:
    """Tests for /api/users/me."""

    def test_get_me(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)

        async def fake_get_user_info(session, user_id):
            return {
                "id": user_id,
                "name": "Kim",
                "rank": 0,
                "unit": "unit-1",
                "description": None,
                "match_ongoing": "abc123",
                "match_history": ["old", "abc123"],
                "created_at": None,
                "updated_at": None,
            }

        monkeypatch.setattr(user_service, "get_user_info", fake_get_user_info, raising=True)

        response = client.get("/api/users/me", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["match_ongoing"] == "abc123"
        assert data["match_history"] == ["old", "abc123"]


class TestHealthEndpoint:
    """Health reports the connection monitor state."""

    @pytest.mark.parametrize(
        "state, expected",
        [
            (ConnectionState.CONNECTED, "healthy"),
            (ConnectionState.RECONNECTING, "degraded"),
            (ConnectionState.FAILED, "unavailable"),
        ],
    )
    def test_health_reflects_monitor(self, monkeypatch, state, expected):
        monitor = get_connection_monitor()
        monkeypatch.setattr(monitor, "state", state)
        client = TestClient(app)

        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == expected
        assert data["database"]["state"] == state.value
