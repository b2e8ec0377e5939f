"""Tests for the public share endpoints."""

import dataclasses
import json

import pytest
from fastapi.testclient import TestClient

from api.app import create_app

NOTES_GIST_ID = "notesgist0001"


@pytest.fixture
def shared_note(api_client, sample_note_data):
    """A pushed note and its share response."""
    note_id = api_client.post("/notes", json=sample_note_data).json()["id"]
    api_client.post("/sync/push")
    response = api_client.post("/share", json={"noteId": note_id, "noteTitle": "Groceries"})
    return note_id, response.json()


class TestCreateShare:
    def test_create_share(self, api_client, shared_note, fake_gist):
        note_id, body = shared_note

        assert body["success"] is True
        assert body["data"]["noteId"] == note_id
        assert body["data"]["viewCount"] == 0
        assert body["data"]["revoked"] is False
        assert len(body["data"]["token"]) == 64
        assert body["url"] == f"http://notes.test/share/{body['data']['token']}"

        stored = fake_gist.file_json(NOTES_GIST_ID, "share-tokens.json")
        assert stored["tokens"][0]["token"] == body["data"]["token"]

    def test_create_returns_201_with_cors(self, api_client):
        response = api_client.post("/share", json={"noteId": "n1"})

        assert response.status_code == 201
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.json()["data"]["noteTitle"] == "Untitled Note"

    def test_note_id_required(self, api_client):
        response = api_client.post("/share", json={"noteTitle": "x"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "noteId required"}
        assert response.headers["access-control-allow-origin"] == "*"

    def test_body_must_be_json(self, api_client):
        response = api_client.post(
            "/share", content=b"not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "noteId required"

    def test_expires_in_sets_expiry(self, api_client):
        data = api_client.post("/share", json={"noteId": "n1", "expiresIn": 3600}).json()

        assert data["data"]["expiresAt"] is not None

    def test_invalid_expiry_rejected(self, api_client):
        response = api_client.post("/share", json={"noteId": "n1", "expiresIn": 0})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid share request"

    def test_sharing_again_rotates_token(self, api_client, shared_note):
        note_id, first = shared_note

        second = api_client.post("/share", json={"noteId": note_id}).json()

        assert second["data"]["token"] != first["data"]["token"]
        response = api_client.get("/share", params={"token": first["data"]["token"]})
        assert response.status_code == 404

    def test_preflight(self, api_client):
        response = api_client.options("/share")

        assert response.status_code == 204
        assert "DELETE" in response.headers["access-control-allow-methods"]


class TestReadShare:
    def test_validate_token(self, api_client, shared_note):
        note_id, body = shared_note

        response = api_client.get("/share", params={"token": body["data"]["token"]})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["noteId"] == note_id
        assert data["noteTitle"] == "Groceries"
        assert "reason" not in data
        assert response.headers["access-control-allow-origin"] == "*"

    def test_token_required(self, api_client):
        response = api_client.get("/share")

        assert response.status_code == 400
        assert response.json()["valid"] is False

    def test_unknown_token(self, api_client):
        response = api_client.get("/share", params={"token": "f" * 64})

        assert response.status_code == 404
        assert response.json() == {
            "valid": False,
            "error": "This share link is invalid or has expired",
        }

    def test_shared_content(self, api_client, shared_note):
        _, body = shared_note

        response = api_client.get("/share/content", params={"token": body["data"]["token"]})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["title"] == "Groceries"
        assert "milk" in data["content"]
        assert data["placeholder"] is False

    def test_content_of_deleted_note_is_placeholder(self, api_client, shared_note):
        note_id, body = shared_note
        api_client.delete(f"/notes/{note_id}")
        api_client.post("/sync/push")

        data = api_client.get("/share/content", params={"token": body["data"]["token"]}).json()

        assert data["valid"] is True
        assert data["placeholder"] is True
        assert data["title"] == "Groceries"

    def test_content_for_invalid_token(self, api_client):
        response = api_client.get("/share/content", params={"token": "nope"})

        assert response.status_code == 404
        assert response.json()["valid"] is False

    def test_note_share_lookup(self, api_client, shared_note):
        note_id, body = shared_note

        data = api_client.get(f"/share/note/{note_id}").json()

        assert data["success"] is True
        assert data["data"]["token"] == body["data"]["token"]
        assert api_client.get("/share/note/unshared").status_code == 404

    def test_views_are_counted(self, settings, fake_gist, sample_note_data):
        """Both reads of a valid link count a view once the queue drains."""
        app = create_app(settings, fake_gist.transport)
        with TestClient(app) as client:
            note_id = client.post("/notes", json=sample_note_data).json()["id"]
            token = client.post("/share", json={"noteId": note_id}).json()["data"]["token"]

            client.get("/share", params={"token": token})
            client.get("/share/content", params={"token": token})
            client.get("/share", params={"token": "f" * 64})

        assert app.state.services.tokens.list_tokens()[0].view_count == 2

    def test_content_of_invalid_remote_note_is_placeholder(self, settings, fake_gist):
        bad_note = {"id": "n1", "title": "Groceries", "updatedAt": "yesterday"}
        fake_gist.add_gist(
            NOTES_GIST_ID,
            {"notes.json": json.dumps({"schemaVersion": 1, "notes": [bad_note]})},
        )
        quiet = dataclasses.replace(settings, sync_debounce_seconds=60.0)

        with TestClient(create_app(quiet, fake_gist.transport)) as client:
            token = client.post("/share", json={"noteId": "n1"}).json()["data"]["token"]

            response = client.get("/share/content", params={"token": token})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["placeholder"] is True
        assert "Unable to load" in data["content"]


class TestRevokeShare:
    def test_revoke(self, api_client, shared_note):
        note_id, body = shared_note
        token = body["data"]["token"]

        response = api_client.delete("/share", params={"noteId": note_id})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert api_client.get("/share", params={"token": token}).status_code == 404
        assert api_client.get("/share/content", params={"token": token}).status_code == 404
        assert api_client.get(f"/share/note/{note_id}").status_code == 404

    def test_revoke_twice_succeeds(self, api_client, shared_note):
        note_id, _ = shared_note
        api_client.delete("/share", params={"noteId": note_id})

        response = api_client.delete("/share", params={"noteId": note_id})

        assert response.status_code == 200

    def test_revoke_unknown_note(self, api_client):
        response = api_client.delete("/share", params={"noteId": "never-shared"})

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_revoke_requires_note_id(self, api_client):
        assert api_client.delete("/share").status_code == 400

    def test_share_after_revoke_restores_access(self, api_client, shared_note):
        note_id, _ = shared_note
        api_client.delete("/share", params={"noteId": note_id})

        token = api_client.post("/share", json={"noteId": note_id}).json()["data"]["token"]

        assert api_client.get("/share", params={"token": token}).json()["valid"] is True
