"""Tests for the HTTP endpoints."""

import pytest

from rangescope.schemas import TeamRole, User

# Client fixture is inherited from conftest.py

RED = {"X-Principal-ID": "r1", "X-Team-Role": "red"}
BLUE = {"X-Principal-ID": "b1", "X-Team-Role": "blue"}
NOBODY = {"X-Principal-ID": "g1"}

EX1 = {
    "nodes": [
        {"id": "n1", "type": "router", "owner_team": "shared"},
        {"id": "n2", "type": "pc", "owner_team": "red"},
        {"id": "n3", "type": "server", "owner_team": "blue"},
    ],
    "edges": [{"source": "n1", "target": "n2"}, {"source": "n1", "target": "n3"}],
    "custom_elements": [{"kind": "label", "text": "DMZ"}],
}


@pytest.fixture
def ex1(client):
    """Seed project ex-1 with its topology, assets and team members."""
    assert client.post("/v1/topology/ex-1", json=EX1, headers=RED).status_code == 200
    for asset, headers in [
        ({"asset_id": "a1", "owner_team": "red", "is_target": True, "node_id": "n2"}, RED),
        ({"asset_id": "a2", "owner_team": "blue", "is_target": False, "node_id": "n3"}, BLUE),
    ]:
        assert client.post("/v1/projects/ex-1/assets", json=asset, headers=headers).status_code == 201

    roster = client.app.state.roster
    for user in [
        User(user_id="r1", display_name="Rook", role=TeamRole.RED, credential_hash="secret-r1"),
        User(user_id="r2", display_name="Raven", role=TeamRole.RED, enabled=False, credential_hash="secret-r2"),
        User(user_id="b1", display_name="Bishop", role=TeamRole.BLUE, credential_hash="secret-b1"),
    ]:
        client.portal.call(roster.add_user, user)
    return client


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestTopologyEndpoints:
    def test_save_and_load(self, client):
        response = client.post("/v1/topology/ex-1", json=EX1, headers=RED)
        assert response.status_code == 200
        assert response.json() == {"project_id": "ex-1", "version": 1}

        response = client.get("/v1/topology/ex-1", headers=BLUE)
        assert response.status_code == 200
        data = response.json()
        assert data["project_id"] == "ex-1"
        assert [n["id"] for n in data["nodes"]] == ["n1", "n3"]
        assert [(e["source"], e["target"]) for e in data["edges"]] == [("n1", "n3")]
        assert data["custom_elements"] == [{"kind": "label", "text": "DMZ"}]

    def test_resave_bumps_version(self, client):
        client.post("/v1/topology/p", json=EX1, headers=RED)
        response = client.post("/v1/topology/p", json=EX1, headers=RED)
        assert response.json()["version"] == 2

    def test_load_missing_is_404(self, client):
        response = client.get("/v1/topology/nonexistent-project", headers=RED)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_dangling_edge_is_422_and_keeps_previous(self, client):
        client.post("/v1/topology/ex-1", json=EX1, headers=RED)
        broken = {"nodes": [{"id": "n1"}], "edges": [{"source": "n1", "target": "nX"}]}
        response = client.post("/v1/topology/ex-1", json=broken, headers=RED)
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert any("nX" in d for d in body["details"])
        nodes = client.get("/v1/topology/ex-1", headers=RED).json()["nodes"]
        assert [n["id"] for n in nodes] == ["n1", "n2"]

    def test_blank_project_id_is_422(self, client):
        response = client.post("/v1/topology/%20", json=EX1, headers=RED)
        assert response.status_code == 422

    def test_missing_principal_is_401(self, client):
        assert client.get("/v1/topology/ex-1").status_code == 401

    def test_unaffiliated_cannot_load(self, client):
        client.post("/v1/topology/ex-1", json=EX1, headers=BLUE)
        for headers in (NOBODY, {**NOBODY, "X-Team-Role": "none"}, {**NOBODY, "X-Team-Role": "judge"}):
            response = client.get("/v1/topology/ex-1", headers=headers)
            assert response.status_code == 403
            assert "n3" not in response.text

    def test_other_team_nodes_not_loaded(self, client):
        client.post("/v1/topology/ex-1", json=EX1, headers=BLUE)
        response = client.get("/v1/topology/ex-1", headers=RED)
        assert response.status_code == 200
        assert [n["id"] for n in response.json()["nodes"]] == ["n1", "n2"]
        assert "n3" not in response.text

    def test_unaffiliated_cannot_save(self, client):
        response = client.post("/v1/topology/ex-1", json=EX1, headers=NOBODY)
        assert response.status_code == 403
        assert client.get("/v1/topology/ex-1", headers=RED).status_code == 404

    def test_red_view(self, ex1):
        response = ex1.get("/v1/topology/ex-1/view", headers=RED)
        assert response.status_code == 200
        view = response.json()
        assert view["role"] == "red"
        assert [n["id"] for n in view["nodes"]] == ["n1", "n2"]
        assert [(e["source"], e["target"]) for e in view["edges"]] == [("n1", "n2")]
        assert [a["asset_id"] for a in view["assets"]] == ["a1"]
        assert view["nodes"][0]["icon_name"] == "main_switch"

    def test_unaffiliated_view_is_empty(self, ex1):
        view = ex1.get("/v1/topology/ex-1/view", headers=NOBODY).json()
        assert view["nodes"] == view["edges"] == view["assets"] == []

    def test_view_of_missing_project(self, client):
        assert client.get("/v1/topology/ghost/view", headers=RED).status_code == 404


class TestAssetEndpoints:
    def test_visible_assets_per_team(self, ex1):
        red = ex1.get("/v1/projects/ex-1/assets", headers=RED).json()
        blue = ex1.get("/v1/projects/ex-1/assets", headers=BLUE).json()
        assert [a["asset_id"] for a in red["assets"]] == ["a1"]
        assert [a["asset_id"] for a in blue["assets"]] == ["a2"]

    def test_stats_per_team(self, ex1):
        assert ex1.get("/v1/projects/ex-1/assets/stats", headers=RED).json() == {
            "count": 1,
            "high_value_target_count": 1,
        }
        assert ex1.get("/v1/projects/ex-1/assets/stats", headers=BLUE).json() == {
            "count": 1,
            "high_value_target_count": 0,
        }

    def test_stats_match_listing(self, ex1):
        for headers in (RED, BLUE, NOBODY):
            listing = ex1.get("/v1/projects/ex-1/assets", headers=headers).json()
            stats = ex1.get("/v1/projects/ex-1/assets/stats", headers=headers).json()
            assert stats["count"] == listing["count"] == len(listing["assets"])

    def test_unknown_owner_team_rejected(self, client):
        response = client.post(
            "/v1/projects/ex-1/assets",
            json={"asset_id": "a1", "owner_team": "green"},
            headers=RED,
        )
        assert response.status_code == 422

    def test_duplicate_asset_rejected(self, ex1):
        response = ex1.post(
            "/v1/projects/ex-1/assets",
            json={"asset_id": "a1", "owner_team": "blue"},
            headers=BLUE,
        )
        assert response.status_code == 422

    def test_same_asset_id_in_another_project(self, ex1):
        response = ex1.post(
            "/v1/projects/ex-2/assets",
            json={"asset_id": "a1", "owner_team": "red"},
            headers=RED,
        )
        assert response.status_code == 201
        assert [a["asset_id"] for a in ex1.get("/v1/projects/ex-1/assets", headers=RED).json()["assets"]] == ["a1"]

    def test_cannot_register_for_other_team(self, ex1):
        response = ex1.post(
            "/v1/projects/ex-1/assets",
            json={"asset_id": "a9", "owner_team": "blue", "is_target": True},
            headers=RED,
        )
        assert response.status_code == 403
        assert response.json()["error"] == "authorization_denied"
        stats = ex1.get("/v1/projects/ex-1/assets/stats", headers=BLUE).json()
        assert stats == {"count": 1, "high_value_target_count": 0}

    def test_unaffiliated_cannot_register_shared(self, ex1):
        response = ex1.post(
            "/v1/projects/ex-1/assets",
            json={"asset_id": "s1", "owner_team": "shared"},
            headers=NOBODY,
        )
        assert response.status_code == 403

    def test_team_registers_shared(self, ex1):
        response = ex1.post(
            "/v1/projects/ex-1/assets",
            json={"asset_id": "s1", "owner_team": "shared"},
            headers=BLUE,
        )
        assert response.status_code == 201


class TestRosterEndpoints:
    def test_own_team_users(self, ex1):
        response = ex1.get("/v1/teams/red/users", headers=RED)
        assert response.status_code == 200
        assert [(u["user_id"], u["enabled"]) for u in response.json()] == [("r1", True), ("r2", False)]

    def test_other_team_users_forbidden(self, ex1):
        response = ex1.get("/v1/teams/blue/users", headers=RED)
        assert response.status_code == 403
        assert response.json()["error"] == "authorization_denied"

    def test_unaffiliated_forbidden(self, ex1):
        assert ex1.get("/v1/teams/red/users", headers=NOBODY).status_code == 403

    def test_team_stats(self, ex1):
        response = ex1.get("/v1/teams/red/stats", headers=RED)
        assert response.json() == {"team_member_count": 2, "online_members": 1}

    def test_basic_users_hide_credentials(self, ex1):
        response = ex1.get("/v1/users/basic", headers=BLUE)
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 3
        for user in data["users"]:
            assert set(user) == {"user_id", "display_name", "role", "enabled"}
        assert "secret" not in response.text

    def test_basic_users_filtered(self, ex1):
        data = ex1.get("/v1/users/basic", params={"role": "red"}, headers=BLUE).json()
        assert [u["user_id"] for u in data["users"]] == ["r1", "r2"]

    def test_basic_users_bad_filter(self, ex1):
        response = ex1.get("/v1/users/basic", params={"role": "judge"}, headers=BLUE)
        assert response.status_code == 422

    def test_dashboard(self, ex1):
        response = ex1.get("/v1/projects/ex-1/dashboard", headers=RED)
        assert response.status_code == 200
        assert response.json() == {
            "project_id": "ex-1",
            "role": "red",
            "team_member_count": 2,
            "online_members": 1,
            "asset_count": 1,
            "high_value_target_count": 1,
        }

    def test_dashboard_requires_team(self, ex1):
        assert ex1.get("/v1/projects/ex-1/dashboard", headers=NOBODY).status_code == 403
