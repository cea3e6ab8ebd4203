"""HTTP tests for the FastAPI service (dev auth bypass, file-backed store)."""
from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

# Set env vars BEFORE importing the app, which loads settings at import time
os.environ["TASKLY_STORE_FORCE_FILE"] = "1"
os.environ["TASKLY_DEV_AUTH_BYPASS"] = "1"

from api.dependencies import get_services  # noqa: E402
from api.main import app  # noqa: E402
from taskly.documents import FileDocumentStore  # noqa: E402
from taskly.llm import suggestions as suggestion_service  # noqa: E402
from taskly.session import build_services  # noqa: E402

ALICE = {"X-User-Email": "alice@example.com", "X-User-Id": "uid-alice", "X-User-Name": "Alice"}
BOB = {"X-User-Email": "bob@example.com", "X-User-Id": "uid-bob", "X-User-Name": "Bob"}
CAROL = {"X-User-Email": "carol@example.com", "X-User-Id": "uid-carol"}


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKLY_DEV_AUTH_BYPASS", "1")
    services = build_services(FileDocumentStore(tmp_path / "store"))
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as test_client:
        for headers in (ALICE, BOB, CAROL):
            assert test_client.post("/session", json={}, headers=headers).status_code == 200
        yield test_client
    app.dependency_overrides.clear()


def _create(client, headers=ALICE, **fields):
    body = {"title": "Buy milk", "category": "shopping", **fields}
    resp = client.post("/tasks", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


def _share_and_accept(client, task_id, permission="view", owner=ALICE, recipient=BOB):
    resp = client.post(
        f"/tasks/{task_id}/share",
        json={"email": recipient["X-User-Email"], "permission": permission},
        headers=owner,
    )
    assert resp.status_code == 201, resp.text
    invitation_id = resp.json()["invitation"]["id"]
    resp = client.post(f"/invitations/{invitation_id}/respond", json={"accept": True}, headers=recipient)
    assert resp.status_code == 200, resp.text
    return resp.json()["sharedId"]


def test_health_check(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_missing_identity_rejected(client):
    resp = client.get("/tasks")
    assert resp.status_code == 401


def test_session_returns_tasks_and_invitations(client):
    task = _create(client)
    client.post(f"/tasks/{task['id']}/share", json={"email": "bob@example.com"}, headers=ALICE)

    body = client.post("/session", json={"photoUrl": "https://example.com/b.png"}, headers=BOB).json()

    assert body["user"]["email"] == "bob@example.com"
    assert body["tasks"] == []
    assert body["invitations"][0]["todoId"] == task["id"]


class TestTasks:

    def test_create_and_list(self, client):
        task = _create(client, priority="high", dueDate="2024-01-10")

        body = client.get("/tasks", headers=ALICE).json()

        assert body["count"] == 1
        listed = body["tasks"][0]
        assert listed["id"] == task["id"]
        assert listed["isOwner"] is True
        assert listed["dueDate"] == "2024-01-10"
        assert listed["originalOwner"] == "alice@example.com"

    def test_blank_title_is_400(self, client):
        resp = client.post("/tasks", json={"title": "   "}, headers=ALICE)
        assert resp.status_code == 400

    def test_invalid_category_is_422(self, client):
        resp = client.post("/tasks", json={"title": "T", "category": "errands"}, headers=ALICE)
        assert resp.status_code == 422

    def test_filters_and_sort(self, client):
        _create(client, title="Low", priority="low", category="work")
        _create(client, title="High", priority="high", category="work")
        _create(client, title="Groceries", priority="medium")

        body = client.get("/tasks?category=work&sort=priority", headers=ALICE).json()

        assert [t["title"] for t in body["tasks"]] == ["High", "Low"]

    def test_edit_toggle_delete(self, client):
        task = _create(client)

        resp = client.patch(f"/tasks/{task['id']}", json={"title": "Buy oat milk"}, headers=ALICE)
        assert resp.json()["task"]["title"] == "Buy oat milk"

        resp = client.post(f"/tasks/{task['id']}/toggle", headers=ALICE)
        assert resp.json()["task"]["completed"] is True

        assert client.get("/tasks?status=pending", headers=ALICE).json()["count"] == 0

        resp = client.delete(f"/tasks/{task['id']}", headers=ALICE)
        assert resp.status_code == 200
        assert client.get("/tasks", headers=ALICE).json()["count"] == 0

    def test_unknown_task_is_404(self, client):
        assert client.post("/tasks/missing/toggle", headers=ALICE).status_code == 404


class TestSharing:

    def test_view_holder_cannot_toggle_or_edit(self, client):
        task = _create(client)
        shared_id = _share_and_accept(client, task["id"], "view")

        toggle = client.post(f"/tasks/{task['id']}/toggle?sharedId={shared_id}", headers=BOB)
        edit = client.patch(
            f"/tasks/{task['id']}",
            json={"title": "Hacked", "sharedId": shared_id},
            headers=BOB,
        )

        assert toggle.status_code == 403
        assert edit.status_code == 403
        listed = client.get("/tasks", headers=BOB).json()["tasks"][0]
        assert listed["completed"] is False
        assert listed["permission"] == "view"
        assert client.get("/tasks", headers=ALICE).json()["tasks"][0]["title"] == "Buy milk"

    def test_view_holder_removes_own_copy(self, client):
        task = _create(client)
        shared_id = _share_and_accept(client, task["id"], "view")

        resp = client.delete(f"/tasks/{task['id']}?sharedId={shared_id}", headers=BOB)

        assert resp.status_code == 200
        assert client.get("/tasks", headers=BOB).json()["count"] == 0
        assert client.get("/tasks", headers=ALICE).json()["count"] == 1

    def test_share_with_unknown_user_is_404(self, client):
        task = _create(client)
        resp = client.post(f"/tasks/{task['id']}/share", json={"email": "nobody@example.com"}, headers=ALICE)
        assert resp.status_code == 404

    def test_share_with_mixed_case_email(self, client):
        task = _create(client)

        resp = client.post(f"/tasks/{task['id']}/share", json={"email": "Bob@Example.com"}, headers=ALICE)

        assert resp.status_code == 201, resp.text
        assert client.get("/invitations", headers=BOB).json()["count"] == 1

    def test_share_with_invalid_email_is_400(self, client):
        task = _create(client)
        resp = client.post(f"/tasks/{task['id']}/share", json={"email": "nope"}, headers=ALICE)
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Please enter a valid email address."

    def test_decline_invitation(self, client):
        task = _create(client)
        invitation = client.post(
            f"/tasks/{task['id']}/share", json={"email": "bob@example.com"}, headers=ALICE
        ).json()["invitation"]

        resp = client.post(f"/invitations/{invitation['id']}/respond", json={"accept": False}, headers=BOB)

        assert resp.json()["status"] == "declined"
        assert resp.json()["sharedId"] is None
        assert client.get("/invitations", headers=BOB).json()["count"] == 0
        assert client.get("/tasks", headers=BOB).json()["count"] == 0

    def test_respond_to_unknown_invitation_is_404(self, client):
        resp = client.post("/invitations/missing/respond", json={"accept": True}, headers=BOB)
        assert resp.status_code == 404
        assert resp.json()["code"] == "ERR_INVITATION_NOT_FOUND"

    def test_accept_cannot_redirect_to_another_task(self, client):
        """Accepting an invitation with someone else's task id grants nothing."""
        private = _create(client, headers=ALICE, title="Alice private")
        carol_task = _create(client, headers=CAROL, title="Carol shared")
        invitation = client.post(
            f"/tasks/{carol_task['id']}/share",
            json={"email": "bob@example.com", "permission": "edit"},
            headers=CAROL,
        ).json()["invitation"]

        resp = client.post(
            f"/invitations/{invitation['id']}/respond",
            json={"accept": True, "taskId": private["id"]},
            headers=BOB,
        )
        assert resp.status_code == 400

        edit = client.patch(f"/tasks/{private['id']}", json={"title": "Changed by Bob"}, headers=BOB)
        assert edit.status_code == 404
        titles = [t["title"] for t in client.get("/tasks", headers=ALICE).json()["tasks"]]
        assert titles == ["Alice private"]
        assert client.get("/tasks", headers=BOB).json()["count"] == 0

    def test_accept_with_matching_task_id(self, client):
        task = _create(client)
        invitation = client.post(
            f"/tasks/{task['id']}/share", json={"email": "bob@example.com"}, headers=ALICE
        ).json()["invitation"]

        resp = client.post(
            f"/invitations/{invitation['id']}/respond",
            json={"accept": True, "taskId": task["id"]},
            headers=BOB,
        )

        assert resp.status_code == 200
        assert client.get("/tasks", headers=BOB).json()["tasks"][0]["id"] == task["id"]

    def test_owner_manages_recipients(self, client):
        task = _create(client)
        _share_and_accept(client, task["id"], "view", recipient=BOB)
        _share_and_accept(client, task["id"], "edit", recipient=CAROL)

        shares = client.get(f"/tasks/{task['id']}/shares", headers=ALICE).json()["sharedUsers"]
        assert sorted(u["email"] for u in shares) == ["bob@example.com", "carol@example.com"]

        resp = client.patch(f"/tasks/{task['id']}/shares/uid-bob", json={"permission": "edit"}, headers=ALICE)
        assert resp.status_code == 200
        assert resp.json()["sharedUser"]["permission"] == "edit"
        assert client.get("/tasks", headers=BOB).json()["tasks"][0]["permission"] == "edit"

        resp = client.delete(f"/tasks/{task['id']}/shares/uid-bob", headers=ALICE)
        assert [u["email"] for u in resp.json()["sharedUsers"]] == ["carol@example.com"]
        assert client.get("/tasks", headers=BOB).json()["count"] == 0

    def test_non_owner_cannot_manage_recipients(self, client):
        task = _create(client)
        _share_and_accept(client, task["id"], "edit", recipient=BOB)
        _share_and_accept(client, task["id"], "view", recipient=CAROL)

        assert client.get(f"/tasks/{task['id']}/shares", headers=BOB).json()["sharedUsers"] == []
        resp = client.delete(f"/tasks/{task['id']}/shares/uid-carol", headers=BOB)
        assert resp.status_code == 403
        assert client.get("/tasks", headers=CAROL).json()["count"] == 1

    def test_user_exists(self, client):
        assert client.get("/users/exists?email=bob@example.com", headers=ALICE).json()["exists"] is True
        assert client.get("/users/exists?email=nobody@example.com", headers=ALICE).json()["exists"] is False


def test_suggestions_failure_is_not_an_error(client, monkeypatch):
    def not_configured():
        raise suggestion_service.SuggestionNotConfigured("missing key")

    monkeypatch.setattr(suggestion_service, "build_anthropic_client", not_configured)

    resp = client.post("/suggestions", json={"title": "Buy milk"}, headers=ALICE)

    assert resp.status_code == 200
    assert resp.json() == {"suggestions": suggestion_service.SUGGESTION_ERROR, "ok": False}
