from __future__ import annotations

from app.services.errors import PersistenceError


def _create(client, **overrides) -> dict:
    body = {"name": "Acme funding", "search_query": "acme series b", **overrides}
    response = client.post("/api/scouts", json=body)
    assert response.status_code == 200
    return response.json()["scout"]


def test_create_and_list_scouts(client):
    scout = _create(client, schedule="weekly", notification_email="ops@acme.io")

    assert scout["schedule"] == "weekly"
    assert scout["is_active"] is True
    assert scout["next_run_at"] is not None

    listing = client.get("/api/scouts").json()["scouts"]
    assert [(row["id"], row["result_count"]) for row in listing] == [(scout["id"], 0)]


def test_create_requires_name_and_query(client):
    response = client.post("/api/scouts", json={"name": "Only a name"})

    assert response.status_code == 400
    assert response.json() == {"error": "Name and search query required"}


def test_run_scout_then_fetch_results(client, serper, exa):
    scout = _create(client)

    run = client.post(f"/api/scouts/{scout['id']}/run")
    again = client.post(f"/api/scouts/{scout['id']}/run")

    assert run.json() == {"success": True, "new_results": 3, "total_searched": 3}
    assert again.json() == {"success": True, "new_results": 0, "total_searched": 3}

    detail = client.get(f"/api/scouts/{scout['id']}").json()
    assert detail["scout"]["last_run_at"] is not None
    assert len(detail["results"]) == 3
    assert {result["source"] for result in detail["results"]} == {"serper", "exa"}
    assert all("metadata" in result for result in detail["results"])


def test_run_due_only_runs_scheduled_scouts(client):
    _create(client, name="Manual")
    daily = _create(client, name="Daily", schedule="daily")

    body = client.post("/api/scouts/run-due").json()

    assert body["success"] is True
    assert [run["id"] for run in body["runs"]] == [daily["id"]]
    assert client.post("/api/scouts/run-due").json()["runs"] == []


def test_unknown_scout_is_404(client):
    for path in ("/api/scouts/not-a-uuid", "/api/scouts/00000000-0000-0000-0000-000000000000"):
        response = client.get(path)
        assert response.status_code == 404
        assert response.json() == {"error": "Scout not found"}

    assert client.post("/api/scouts/not-a-uuid/run").status_code == 404


def test_delete_is_idempotent(client):
    scout = _create(client)

    assert client.delete(f"/api/scouts/{scout['id']}").json() == {"success": True}
    assert client.delete(f"/api/scouts/{scout['id']}").json() == {"success": True}
    assert client.get("/api/scouts").json() == {"scouts": []}


def test_storage_failure_uses_generic_message(client, services, monkeypatch):
    def broken():
        raise PersistenceError("connection refused")

    monkeypatch.setattr(services.repositories.scouts, "list_with_counts", broken)

    response = client.get("/api/scouts")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch scouts"}
