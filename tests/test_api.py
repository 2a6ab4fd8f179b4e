"""HTTP API tests driven through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from web.backend.app.engine import get_engine
from web.backend.app.main import app


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def keys(engine):
    """Raw API keys by name, plus the matching participants."""
    out = {}
    for name in ("alice", "bob", "carol", "erin"):
        participant, key = engine.agents.create_agent(name)
        out[name] = (participant, {"X-API-Key": key})
    participant, key = engine.agents.create_agent("phil", is_admin=True)
    out["admin"] = (participant, {"X-API-Key": key})
    return out


@pytest.fixture
def post(engine, keys):
    return engine.contents["post"].create(keys["erin"][0].id, "Buy cheap tokens at scam.example now!!!")


def _file(client, headers, post, reason="spam content here"):
    return client.post(
        "/api/report",
        json={"target_type": "post", "target_id": post, "reason": reason},
        headers=headers,
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_file_report_requires_key(client, post):
    resp = client.post("/api/report", json={"target_type": "post", "target_id": post, "reason": "spam content here"})
    assert resp.status_code == 401

    resp = _file(client, {"X-API-Key": "cq_" + "0" * 64}, post)
    assert resp.status_code == 401


def test_file_report(client, keys, post):
    resp = _file(client, keys["alice"][1], post)
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Report submitted. Other agents can now vote to confirm."
    assert body["report"]["votes_confirm"] == 1
    assert body["report"]["status"] == "pending"


def test_numeric_target_id_is_accepted(client, keys):
    resp = client.post(
        "/api/report",
        json={"target_type": "knowledge", "target_id": 42, "reason": "plagiarised entry"},
        headers=keys["alice"][1],
    )
    assert resp.status_code == 201
    assert resp.json()["report"]["target_id"] == "42"


@pytest.mark.parametrize(
    "payload",
    [
        {"target_type": "post", "target_id": "x", "reason": "short"},
        {"target_type": "comment", "target_id": "x", "reason": "spam content here"},
        {"target_type": "post", "reason": "spam content here"},
    ],
)
def test_file_report_rejects_malformed(client, keys, payload):
    resp = client.post("/api/report", json=payload, headers=keys["alice"][1])
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"


def test_duplicate_open_report_conflicts(client, keys, post):
    assert _file(client, keys["alice"][1], post).status_code == 201
    resp = _file(client, keys["alice"][1], post)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "You already reported this content"


def test_vote_flow_reaches_consensus(client, engine, keys, post):
    report_id = _file(client, keys["alice"][1], post).json()["report"]["id"]

    first = client.post(f"/api/report/{report_id}/vote", json={"vote": "confirm"}, headers=keys["bob"][1])
    assert first.status_code == 200
    assert first.json()["message"] == "Vote recorded"
    assert first.json()["needed_for_confirm"] == 1

    again = client.post(f"/api/report/{report_id}/vote", json={"vote": "dismiss"}, headers=keys["bob"][1])
    assert again.status_code == 409

    last = client.post(f"/api/report/{report_id}/vote", json={"vote": "confirm"}, headers=keys["carol"][1])
    assert last.json()["message"] == "Vote recorded. Report confirmed by community consensus!"
    assert last.json()["status"] == "confirmed"
    assert not engine.contents["post"].exists(post)

    late = client.post(f"/api/report/{report_id}/vote", json={"vote": "confirm"}, headers=keys["erin"][1])
    assert late.status_code == 409
    assert late.json()["error"] == "AlreadyResolvedError"


def test_vote_on_missing_report(client, keys):
    resp = client.post("/api/report/nope/vote", json={"vote": "confirm"}, headers=keys["bob"][1])
    assert resp.status_code == 404


def test_invalid_vote_choice(client, keys, post):
    report_id = _file(client, keys["alice"][1], post).json()["report"]["id"]
    resp = client.post(f"/api/report/{report_id}/vote", json={"vote": "maybe"}, headers=keys["bob"][1])
    assert resp.status_code == 400


def test_list_and_get_reports(client, keys, post):
    report_id = _file(client, keys["alice"][1], post).json()["report"]["id"]

    listing = client.get("/api/reports").json()["reports"]
    assert [r["id"] for r in listing] == [report_id]
    assert listing[0]["reporter_name"] == "alice"
    assert listing[0]["target_preview"].startswith("Buy cheap tokens")

    assert client.get("/api/reports", params={"status": "confirmed"}).json()["reports"] == []
    assert client.get(f"/api/report/{report_id}").json()["id"] == report_id
    assert client.get("/api/report/missing").status_code == 404


def test_banned_agent_gets_403(client, engine, keys, post):
    engine.admin_ban(keys["admin"][0], keys["bob"][0].id, "abuse")
    resp = _file(client, keys["bob"][1], post)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "This agent has been banned from the collective"


def test_admin_routes_need_admin(client, keys, post):
    resp = client.request("DELETE", f"/api/admin/post/{post}", json={"reason": "spam"}, headers=keys["alice"][1])
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin access required"


def test_admin_delete(client, engine, keys, post):
    resp = client.request("DELETE", f"/api/admin/post/{post}", json={"reason": "spam"}, headers=keys["admin"][1])
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "post deleted"
    assert body["deleted"].startswith("Buy cheap tokens")
    assert body["failed_steps"] == []
    assert not engine.contents["post"].exists(post)

    missing = client.request("DELETE", "/api/admin/skill/unknown", headers=keys["admin"][1])
    assert missing.status_code == 404


def test_admin_ban_and_unban(client, engine, keys):
    erin = keys["erin"][0]
    resp = client.post(f"/api/admin/ban/{erin.id}", json={"reason": "abuse"}, headers=keys["admin"][1])
    assert resp.status_code == 200
    assert resp.json()["agent"] == "erin"
    assert engine.is_banned(erin.id)

    assert client.delete(f"/api/admin/ban/{erin.id}", headers=keys["admin"][1]).status_code == 200
    assert client.delete(f"/api/admin/ban/{erin.id}", headers=keys["admin"][1]).status_code == 404


def test_admin_verdict(client, keys, post):
    report_id = _file(client, keys["alice"][1], post).json()["report"]["id"]
    url = f"/api/admin/report/{report_id}/verdict"

    resp = client.post(url, json={"outcome": "dismissed"}, headers=keys["admin"][1])
    assert resp.status_code == 200
    assert resp.json()["status"] == "dismissed"

    assert client.post(url, json={"outcome": "confirmed"}, headers=keys["admin"][1]).status_code == 409
