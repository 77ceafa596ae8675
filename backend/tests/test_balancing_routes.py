"""Tests for balancing API routes."""

import httpx
import pytest

from atlas_balancer.config import settings
from atlas_balancer.main import app
from atlas_balancer.repositories.tournament_repository import InMemoryTournamentRepository

pytestmark = pytest.mark.anyio


def weighted(player_id: str, weight: int) -> dict:
    return {
        "id": player_id,
        "displayName": player_id.title(),
        "useManualOverride": True,
        "manualWeightOverride": weight,
    }


SCENARIO = (
    [weighted(f"gold{i}", 130) for i in range(1, 5)]
    + [weighted(f"imm{i}", 210) for i in range(1, 3)]
    + [weighted(f"silver{i}", 55) for i in range(1, 5)]
)


@pytest.fixture
def repository():
    return InMemoryTournamentRepository({"t1": SCENARIO})


@pytest.fixture
async def client(repository):
    """Create async test client with an in-memory repository."""
    # Set repository directly on app.state (mimics lifespan startup)
    app.state.repository = repository

    # Clear the cached service so it picks up this repository
    if hasattr(app.state, "balancing_service"):
        delattr(app.state, "balancing_service")

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "atlas-balancer"}


class TestPreview:
    """Tests for POST /api/balance/preview."""

    async def test_preview_balances_snapshot(self, client):
        response = await client.post("/api/balance/preview", json={"players": SCENARIO})

        assert response.status_code == 200
        data = response.json()
        assert data["format"] == "atlas_v2"
        assert [len(t["players"]) for t in data["teams"]] == [5, 5]
        assert data["balance_analysis"]["balance"]["spread"] <= 50
        assert data["diagnostics"]["total_entries"] > 0
        assert "audit" not in data

    async def test_preview_with_options_and_audit(self, client):
        response = await client.post(
            "/api/balance/preview",
            json={
                "players": SCENARIO,
                "options": {"team_count": 5, "team_capacity": 2, "as_of": "2026-03-01T00:00:00"},
                "include_audit": True,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["teams"]) == 5
        assert data["audit"][0]["seq"] == 1

    async def test_preview_saves_diagnostics_when_enabled(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "diagnostics", True)
        monkeypatch.setattr(settings, "diagnostics_dir", str(tmp_path))

        response = await client.post("/api/balance/preview", json={"players": SCENARIO})

        assert response.status_code == 200
        saved = list(tmp_path.glob("preview_*.json"))
        assert len(saved) == 1

    async def test_preview_skips_diagnostics_by_default(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "diagnostics", False)
        monkeypatch.setattr(settings, "diagnostics_dir", str(tmp_path))
        monkeypatch.setenv("ATLAS_DIAGNOSTICS", "true")

        response = await client.post("/api/balance/preview", json={"players": SCENARIO})

        assert response.status_code == 200
        assert list(tmp_path.iterdir()) == []

    async def test_preview_empty_players_is_422(self, client):
        response = await client.post("/api/balance/preview", json={"players": []})
        assert response.status_code == 422
        assert "No players" in response.json()["detail"]

    async def test_preview_duplicate_ids_is_422(self, client):
        response = await client.post(
            "/api/balance/preview", json={"players": [{"id": "a"}, {"id": "a"}]}
        )
        assert response.status_code == 422

    async def test_preview_zero_capacity_is_422(self, client):
        response = await client.post(
            "/api/balance/preview",
            json={"players": SCENARIO, "options": {"team_capacity": 0}},
        )
        assert response.status_code == 422

    async def test_preview_unknown_evidence_mode_is_422(self, client):
        response = await client.post(
            "/api/balance/preview",
            json={"players": SCENARIO, "options": {"evidence_mode": "psychic"}},
        )
        assert response.status_code == 422

    async def test_preview_payload_without_id_is_422(self, client):
        response = await client.post("/api/balance/preview", json={"players": [{"rank": "Gold 1"}]})
        assert response.status_code == 422


class TestTournamentBalance:
    """Tests for POST /api/tournaments/{tournament_id}/balance."""

    async def test_balance_and_persist(self, client, repository):
        response = await client.post("/api/tournaments/t1/balance", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["tournament_id"] == "t1"
        assert data["persisted"] is True
        assert len(repository.saved["t1"]) == 2

    async def test_balance_without_persist(self, client, repository):
        response = await client.post("/api/tournaments/t1/balance", json={"persist": False})

        assert response.status_code == 200
        assert response.json()["persisted"] is False
        assert repository.saved == {}

    async def test_unknown_tournament_is_404(self, client):
        response = await client.post("/api/tournaments/nope/balance", json={})
        assert response.status_code == 404
        assert response.json()["detail"] == "Tournament not found: nope"


class TestMigrateReport:
    """Tests for POST /api/reports/migrate."""

    async def test_migrate_legacy_report(self, client):
        response = await client.post(
            "/api/reports/migrate",
            json={
                "balanceSteps": [
                    {"round": 1, "player": {"discordUsername": "Ace", "points": 400}, "assignedTo": "A"},
                    {"round": 1, "player": {"discordUsername": "Bo", "points": 350}, "assignedTo": "B"},
                ],
                "maxPointDifference": 50,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["format"] == "atlas_v2"
        assert data["migrated_from"] == "legacy_snake"
        assert [t["total_points"] for t in data["teams"]] == [400, 350]

    async def test_unrecognized_report_is_422(self, client):
        response = await client.post("/api/reports/migrate", json={"hello": "world"})
        assert response.status_code == 422
