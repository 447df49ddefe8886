"""
Тесты API endpoints.
"""
import httpx
import pytest

from office_core.domains.assistant.services import AssistantClient


def create(test_client, kind, name=None):
    payload = {"kind": kind}
    if name:
        payload["name"] = name
    response = test_client.post("/documents/", json=payload)
    assert response.status_code == 201
    return response.json()


class TestHealthCheck:
    """Тесты health check."""

    def test_health_returns_200(self, test_client):
        """Health endpoint возвращает 200."""
        response = test_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDocumentsAPI:
    """Тесты API документов."""

    def test_create_and_get(self, test_client):
        document = create(test_client, "slide_deck")
        assert document["name"] == "Untitled presentation"
        assert document["content"][0]["title"] == "New Presentation"

        response = test_client.get(f"/documents/{document['id']}")
        assert response.status_code == 200
        assert response.json()["kind"] == "slide_deck"

    def test_get_missing(self, test_client):
        response = test_client.get("/documents/missing")
        assert response.status_code == 404

    def test_list_with_filters(self, test_client):
        create(test_client, "rich_text", "Meeting notes")
        create(test_client, "spreadsheet", "Meeting budget")
        create(test_client, "rich_text", "Letter")

        data = test_client.get("/documents/").json()
        assert data["total"] == 3

        data = test_client.get("/documents/", params={"query": "meeting"}).json()
        assert data["total"] == 2

        data = test_client.get("/documents/", params={"query": "meeting", "kind": "spreadsheet"}).json()
        assert [d["name"] for d in data["documents"]] == ["Meeting budget"]

    def test_invalid_kind(self, test_client):
        response = test_client.post("/documents/", json={"kind": "drawing"})
        assert response.status_code == 422

    def test_delete_is_idempotent(self, test_client):
        document = create(test_client, "rich_text")

        assert test_client.delete(f"/documents/{document['id']}").status_code == 204
        assert test_client.delete(f"/documents/{document['id']}").status_code == 204
        assert test_client.get(f"/documents/{document['id']}").status_code == 404

    def test_import_document(self, test_client):
        response = test_client.post("/documents/import", json={
            "kind": "spreadsheet",
            "name": "Imported",
            "content": {"A1": {"raw": "2"}, "A2": {"raw": "=A1*21"}}
        })
        assert response.status_code == 201
        assert response.json()["content"]["A2"] == {"raw": "=A1*21"}

    def test_import_wrong_content_shape(self, test_client):
        response = test_client.post("/documents/import", json={
            "kind": "spreadsheet", "name": "Broken", "content": "plain text"
        })
        assert response.status_code == 422

    def test_import_non_string_values(self, test_client):
        response = test_client.post("/documents/import", json={
            "kind": "spreadsheet", "name": "Broken", "content": {"A1": {"raw": 5}}
        })
        assert response.status_code == 422

        response = test_client.post("/documents/import", json={
            "kind": "slide_deck", "name": "Broken", "content": [{"id": "1", "body": ["x"]}]
        })
        assert response.status_code == 422
        assert test_client.get("/documents/").json()["total"] == 0

    def test_clear_all(self, test_client):
        create(test_client, "rich_text")
        create(test_client, "spreadsheet")

        response = test_client.delete("/documents/")
        assert response.json()["removed"] == 2
        assert test_client.get("/documents/").json()["total"] == 0


class TestSessionAPI:
    """Тесты API сессии редактирования."""

    def test_closed_session(self, test_client):
        assert test_client.get("/session/").json()["state"] == "closed"
        assert test_client.post("/session/save").status_code == 409
        assert test_client.put("/session/cells/A1", json={"raw": "1"}).status_code == 409

    def test_open_missing(self, test_client):
        response = test_client.post("/session/open", json={"document_id": "missing"})
        assert response.status_code == 404

    def test_spreadsheet_editing(self, test_client):
        document = create(test_client, "spreadsheet")
        response = test_client.post("/session/open", json={"document_id": document["id"]})
        assert response.json()["state"] == "open"

        test_client.put("/session/cells/A1", json={"raw": "5"})
        test_client.put("/session/cells/a2", json={"raw": "7"})
        response = test_client.put("/session/cells/A3", json={"raw": "=SUM(A1:A2)"})
        assert response.json() == {"address": "A3", "raw": "=SUM(A1:A2)", "display": "12"}

        response = test_client.get("/session/cells/A2")
        assert response.json()["raw"] == "7"

        values = test_client.get("/session/cells").json()["values"]
        assert values == {"A1": "5", "A2": "7", "A3": "12"}

    def test_invalid_cell_address(self, test_client):
        document = create(test_client, "spreadsheet")
        test_client.post("/session/open", json={"document_id": document["id"]})

        response = test_client.put("/session/cells/1A", json={"raw": "1"})
        assert response.status_code == 422

    def test_cells_on_text_document(self, test_client):
        document = create(test_client, "rich_text")
        test_client.post("/session/open", json={"document_id": document["id"]})

        assert test_client.get("/session/cells").status_code == 422

    def test_content_save_and_close(self, test_client):
        document = create(test_client, "rich_text")
        test_client.post("/session/open", json={"document_id": document["id"]})

        response = test_client.put("/session/content", json={"content": "<p>Hello world</p>"})
        assert response.status_code == 200
        assert response.json()["word_count"] == 2

        assert test_client.post("/session/save").status_code == 200
        assert test_client.post("/session/close").json()["state"] == "closed"

        saved = test_client.get(f"/documents/{document['id']}").json()
        assert saved["content"] == "<p>Hello world</p>"

    def test_content_of_wrong_kind(self, test_client):
        document = create(test_client, "slide_deck")
        test_client.post("/session/open", json={"document_id": document["id"]})

        response = test_client.put("/session/content", json={"content": "<p>text</p>"})
        assert response.status_code == 422

    def test_content_with_non_string_cell(self, test_client):
        document = create(test_client, "spreadsheet")
        test_client.post("/session/open", json={"document_id": document["id"]})

        response = test_client.put("/session/content", json={"content": {"A1": {"raw": 5}}})
        assert response.status_code == 422
        assert test_client.get("/session/cells").json()["values"] == {}

    def test_rename(self, test_client):
        document = create(test_client, "rich_text")
        test_client.post("/session/open", json={"document_id": document["id"]})

        response = test_client.put("/session/name", json={"name": "  Renamed  "})
        assert response.json()["name"] == "Renamed"
        assert test_client.get(f"/documents/{document['id']}").json()["name"] == "Renamed"

    def test_delete_open_document_closes_session(self, test_client):
        document = create(test_client, "rich_text")
        test_client.post("/session/open", json={"document_id": document["id"]})

        test_client.delete(f"/documents/{document['id']}")
        assert test_client.get("/session/").json()["state"] == "closed"


class TestSettingsAPI:
    """Тесты API настроек."""

    def test_defaults(self, test_client):
        data = test_client.get("/settings/").json()
        assert data["autosave_interval"] == 2
        assert data["default_font"] == "Playfair Display"

    def test_patch_merges(self, test_client):
        response = test_client.patch("/settings/", json={"dark_mode": False})
        assert response.status_code == 200
        data = response.json()
        assert data["dark_mode"] is False
        assert data["spell_check"] is True

        assert test_client.get("/settings/").json()["dark_mode"] is False

    def test_patch_applies_autosave_interval(self, test_client):
        test_client.patch("/settings/", json={"autosave_interval": 0})
        assert test_client.get("/session/").json()["autosave_interval"] == 0

    def test_put_replaces(self, test_client):
        test_client.patch("/settings/", json={"language": "de-DE"})
        response = test_client.put("/settings/", json={"dark_mode": False})
        assert response.json()["language"] == "en-US"

    def test_settings_survive_restart(self, app_settings):
        from fastapi.testclient import TestClient
        from office_core.main import create_app

        with TestClient(create_app(app_settings)) as client:
            client.patch("/settings/", json={"default_font_size": 16})
        with TestClient(create_app(app_settings)) as client:
            assert client.get("/settings/").json()["default_font_size"] == 16


class TestAssistantAPI:
    """Тесты API ассистента."""

    def test_missing_key(self, test_client):
        response = test_client.post("/assistant/complete", json={"prompt": "Hello"})
        assert response.status_code == 401

    def test_completion(self, test_client):
        def handler(request):
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Hi there"}]})

        test_client.app.state.assistant = AssistantClient(
            test_client.app.state.app_settings, transport=httpx.MockTransport(handler)
        )
        test_client.patch("/settings/", json={"anthropic_api_key": "key"})

        response = test_client.post("/assistant/complete", json={"prompt": "Hello"})
        assert response.status_code == 200
        assert response.json() == {"text": "Hi there"}

    def test_upstream_failure(self, test_client):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "internal"}})

        test_client.app.state.assistant = AssistantClient(
            test_client.app.state.app_settings, transport=httpx.MockTransport(handler)
        )
        test_client.patch("/settings/", json={"anthropic_api_key": "key"})

        response = test_client.post("/assistant/complete", json={"prompt": "Hello"})
        assert response.status_code == 502


class TestStorageUnavailable:
    """Приложение без хранилища."""

    def test_degraded_health_and_503(self, tmp_path):
        from fastapi.testclient import TestClient
        from office_core.core.config import AppSettings
        from office_core.main import create_app

        broken = AppSettings(database_url=f"sqlite+aiosqlite:///{tmp_path}/missing/dir/office.db")
        with TestClient(create_app(broken)) as client:
            assert client.get("/health").json()["status"] == "degraded"
            assert client.post("/documents/", json={"kind": "rich_text"}).status_code == 503
            assert client.get("/settings/").json()["dark_mode"] is True
