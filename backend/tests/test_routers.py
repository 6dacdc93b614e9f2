"""HTTP tests: routing, access checks and the JSON error contract."""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from case_tracker.core.dependencies import CurrentUser, get_current_user
from case_tracker.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ParseError,
    ProviderError,
)
from case_tracker.features.documents.schemas import QAResult
from case_tracker.main import create_app

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def services(settings):
    services = Mock()
    services.settings = settings
    services.projects.return_value = Mock()
    services.files.return_value = Mock()
    services.qa.return_value = Mock()
    services.llm = Mock()
    return services


@pytest.fixture
def client(services):
    app = create_app(services=services)
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id="user-1", email="owner@firm.test")
    return TestClient(app, raise_server_exceptions=False)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuthentication:
    def test_missing_token_is_401_json(self, services):
        client = TestClient(create_app(services=services))
        response = client.post("/api/documents/project-qa", json={"projectId": "p1", "question": "q"})
        assert response.status_code == 401
        assert response.json()["type"] == "AuthenticationError"


class TestProjectQA:
    def test_answer_returned(self, client, services):
        services.qa.return_value.answer = AsyncMock(
            return_value=QAResult(answer="It ends in May.", confidence=0.8, source_chunk_ids=["c1"])
        )
        response = client.post(
            "/api/documents/project-qa",
            json={"projectId": "p1", "question": "When does the lease end?"},
            headers=AUTH,
        )
        assert response.status_code == 200
        body = response.json()["data"]
        assert body["answer"] == "It ends in May."
        assert body["source_chunk_ids"] == ["c1"]
        services.projects.return_value.require_access.assert_called_once_with("p1", "user-1")
        services.qa.return_value.answer.assert_awaited_once_with("p1", "When does the lease end?", limit=5)

    def test_missing_field_is_400(self, client):
        response = client.post("/api/documents/project-qa", json={"question": "q"}, headers=AUTH)
        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "ValidationError"
        assert "projectId" in body["error"]

    def test_unknown_project_is_404(self, client, services):
        services.projects.return_value.require_access.side_effect = NotFoundError("Project", "p404")
        response = client.post(
            "/api/documents/project-qa", json={"projectId": "p404", "question": "q"}, headers=AUTH
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Project not found"

    def test_foreign_project_is_403(self, client, services):
        services.projects.return_value.require_access.side_effect = AuthorizationError()
        response = client.post(
            "/api/documents/project-qa", json={"projectId": "p2", "question": "q"}, headers=AUTH
        )
        assert response.status_code == 403
        assert response.json()["type"] == "AuthorizationError"

    def test_parse_error_is_502_with_raw_response(self, client, services):
        services.qa.return_value.answer = AsyncMock(side_effect=ParseError(raw_response="not json"))
        response = client.post(
            "/api/documents/project-qa", json={"projectId": "p1", "question": "q"}, headers=AUTH
        )
        assert response.status_code == 502
        assert response.json()["raw_response"] == "not json"

    def test_provider_error_hides_detail(self, client, services):
        services.qa.return_value.answer = AsyncMock(
            side_effect=ProviderError("LLM", "api key sk-secret rejected")
        )
        response = client.post(
            "/api/documents/project-qa", json={"projectId": "p1", "question": "q"}, headers=AUTH
        )
        assert response.status_code == 500
        assert response.json() == {"error": "LLM request failed", "type": "ProviderError"}

    def test_unexpected_error_is_500_json(self, client, services):
        services.qa.return_value.answer = AsyncMock(side_effect=RuntimeError("boom"))
        response = client.post(
            "/api/documents/project-qa", json={"projectId": "p1", "question": "q"}, headers=AUTH
        )
        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestFileQA:
    def test_scoped_to_file_project(self, client, services):
        services.files.return_value.get_file.return_value = {"id": "f1", "project_id": "p9"}
        services.qa.return_value.answer = AsyncMock(
            return_value=QAResult(answer="Yes.", confidence=0.7)
        )
        response = client.post(
            "/api/documents/file-qa", json={"fileId": "f1", "question": "Signed?"}, headers=AUTH
        )
        assert response.status_code == 200
        services.projects.return_value.require_access.assert_called_once_with("p9", "user-1")
        services.qa.return_value.answer.assert_awaited_once_with("p9", "Signed?", file_id="f1")


class TestFiles:
    def test_suggest_filename_falls_back_on_bad_json(self, client, services):
        files = services.files.return_value
        files.get_file.return_value = {"id": "f1", "project_id": "p1", "name": "scan.pdf", "file_type": "pdf"}
        files.next_exhibit_id.return_value = "EXH-004"
        services.llm.ainvoke = AsyncMock(return_value=AIMessage(content="Sure! Here are some names"))

        response = client.post("/api/files/suggest-filename", json={"fileId": "f1"}, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["nextExhibitId"] == "EXH-004"
        assert body["suggestedNames"] == ["pdf_document_EXH-004", "scan.pdf", "Evidence_EXH-004"]

    def test_next_exhibit_id(self, client, services):
        services.files.return_value.next_exhibit_id.return_value = "EXH-001"
        response = client.get("/api/files/next-exhibit-id", params={"project_id": "p1"}, headers=AUTH)
        assert response.json() == {"nextExhibitId": "EXH-001"}

    def test_missing_file_is_404(self, client, services):
        services.files.return_value.get_file.side_effect = NotFoundError("File", "f404")
        response = client.get("/api/files/f404", headers=AUTH)
        assert response.status_code == 404
        assert response.json()["error"] == "File not found"


class TestProjectRoutes:
    def test_list_projects(self, client, services):
        services.projects.return_value.list_projects.return_value = [{"id": "p1", "name": "Doe v. Acme"}]

        response = client.get("/api/projects/", headers=AUTH)

        assert response.json() == {"data": [{"id": "p1", "name": "Doe v. Acme"}]}
        services.projects.return_value.list_projects.assert_called_once_with("user-1", False)

    def test_create_requires_name(self, client):
        response = client.post("/api/projects/", json={"description": "no name"}, headers=AUTH)
        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"

    def test_non_owner_update_is_403(self, client, services):
        services.projects.return_value.update_project.side_effect = AuthorizationError()
        response = client.put("/api/projects/p1", json={"name": "Renamed"}, headers=AUTH)
        assert response.status_code == 403

    def test_archive(self, client, services):
        services.projects.return_value.archive_project.return_value = {"id": "p1", "is_archived": True}
        response = client.post("/api/projects/p1/archive", headers=AUTH)
        assert response.json()["data"]["is_archived"] is True
        services.projects.return_value.archive_project.assert_called_once_with("user-1", "p1")


class TestNoteRoutes:
    def test_create_checks_project_access(self, client, services):
        services.notes.return_value.create_note.return_value = {"id": "n1", "content": "Call the witness"}

        response = client.post(
            "/api/notes/", json={"projectId": "p1", "content": "Call the witness"}, headers=AUTH
        )

        assert response.json()["data"]["id"] == "n1"
        services.projects.return_value.require_access.assert_called_once_with("p1", "user-1")

    def test_list_in_foreign_project_is_403(self, client, services):
        services.projects.return_value.require_access.side_effect = AuthorizationError()
        response = client.get("/api/notes/", params={"project_id": "p9"}, headers=AUTH)
        assert response.status_code == 403
        services.notes.return_value.list_notes.assert_not_called()

    def test_delete_uses_note_project(self, client, services):
        services.notes.return_value.get_note.return_value = {"id": "n1", "project_id": "p2"}

        response = client.delete("/api/notes/n1", headers=AUTH)

        assert response.status_code == 200
        services.projects.return_value.require_access.assert_called_once_with("p2", "user-1")
        services.notes.return_value.delete_note.assert_called_once_with("n1")
