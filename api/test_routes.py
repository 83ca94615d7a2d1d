from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from database import get_settings
from main import app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    get_settings.cache_clear()
    with TestClient(app) as c:
        yield c
    get_settings.cache_clear()


def _create(client: TestClient, name: str, color: str = "#FF0000") -> int:
    r = client.post("/api/teams", json={"name": name, "display_name": f"{name} Team", "color": color})
    assert r.status_code == 201, r.text
    return r.json()["team_id"]


def test_health(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


def test_create_and_list_teams(client) -> None:
    team_id = _create(client, "Red")

    r = client.get("/api/teams")
    assert r.status_code == 200, r.text
    teams = r.json()
    assert len(teams) == 1
    assert teams[0]["team_id"] == team_id
    assert teams[0]["color"] == "#FF0000"
    assert teams[0]["members"] == []


def test_duplicate_team_name_conflicts(client) -> None:
    _create(client, "Red")

    r = client.post("/api/teams", json={"name": "RED"})
    assert r.status_code == 409, r.text


def test_invalid_color_is_unprocessable(client) -> None:
    r = client.post("/api/teams", json={"name": "Red", "color": "crimson"})
    assert r.status_code == 422, r.text


def test_patch_team(client) -> None:
    team_id = _create(client, "Red")

    r = client.patch(f"/api/teams/{team_id}", json={"display_name": "Reds", "color": 0x00FF00})
    assert r.status_code == 200, r.text
    assert r.json()["display_name"] == "Reds"
    assert r.json()["color"] == "#00FF00"

    assert client.patch("/api/teams/99", json={"name": "X"}).status_code == 404


def test_membership_flow(client) -> None:
    red = _create(client, "Red")
    blue = _create(client, "Blue", "#0000FF")

    r = client.put(f"/api/teams/{red}/members/p1", json={"display_name": "Alice"})
    assert r.status_code == 200, r.text
    r = client.put(f"/api/teams/{blue}/members/p1")
    assert r.status_code == 200, r.text

    r = client.get("/api/participants/p1/team")
    assert r.status_code == 200, r.text
    assert r.json()["team_id"] == blue

    assert client.get(f"/api/teams/{red}").json()["members"] == []

    assert client.delete("/api/participants/p1/team").status_code == 204
    assert client.get("/api/participants/p1/team").status_code == 404
    assert client.delete("/api/participants/p1/team").status_code == 404


def test_points_flow(client) -> None:
    red = _create(client, "Red")

    r = client.post(f"/api/points/teams/{red}", json={"delta": 5})
    assert r.status_code == 200, r.text
    assert r.json()["balance"] == 5
    r = client.post(f"/api/points/teams/{red}", json={"delta": -8})
    assert r.json()["balance"] == -3

    r = client.put("/api/points/participants/p1", json={"value": 12})
    assert r.status_code == 200, r.text
    assert client.get("/api/points/participants/p1").json()["balance"] == 12

    # team balances are keyed by id only; no team needed
    r = client.post("/api/points/teams/77", json={"delta": 1})
    assert r.status_code == 200, r.text
    assert r.json()["balance"] == 1

    assert client.delete("/api/points/teams").json() == {"reset": True}
    assert client.get(f"/api/points/teams/{red}").json()["balance"] == 0
    assert client.get("/api/points/participants").json() == {"p1": 12}


def test_delete_team_cascades(client) -> None:
    red = _create(client, "Red")
    client.put(f"/api/teams/{red}/members/p1")
    client.post("/api/points/participants/p1", json={"delta": 9})

    assert client.delete(f"/api/teams/{red}").status_code == 204
    assert client.get(f"/api/teams/{red}").status_code == 404
    assert client.get("/api/participants/p1/team").status_code == 404
    assert client.get("/api/points/participants/p1").json()["balance"] == 9
    assert client.delete(f"/api/teams/{red}").status_code == 404


def test_scoreboard(client) -> None:
    red = _create(client, "Red")
    blue = _create(client, "Blue", "#0000FF")
    client.post(f"/api/points/teams/{blue}", json={"delta": 10})
    client.post(f"/api/points/teams/{red}", json={"delta": 3})

    r = client.get("/api/scoreboard")
    assert r.status_code == 200, r.text
    rows = r.json()["teams"]
    assert [row["team_id"] for row in rows] == [blue, red]
    assert rows[0]["rank"] == 1


def test_unexpected_error_maps_to_500(client, monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(app.state.state_manager, "add_team_points", boom)
    monkeypatch.setattr(app.state.state_manager, "create_team", boom)

    r = client.post("/api/points/teams/1", json={"delta": 1})
    assert r.status_code == 500
    assert r.json() == {"detail": "Internal error"}
    assert client.post("/api/teams", json={"name": "Red"}).status_code == 500
