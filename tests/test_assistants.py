"""
Tests for kitchen AI assistants, conversations, chat runs and contracts.

The OpenAI client is replaced through the get_openai_factory dependency with
a MagicMock whose beta.threads / beta.assistants / files calls are scripted
per test.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

import openai
import pytest

from kitchen_ops.config import settings
from kitchen_ops.main import app
from kitchen_ops.modules.assistants.routes import get_openai_factory

from tests.conftest import ADMIN_ID, API, KITCHEN_ID, NUTRI_ID, OTHER_KITCHEN_ID, OUTSIDER_ID, login_as


def _run(status, last_error=None):
    return SimpleNamespace(id="run-1", status=status, last_error=last_error)


def _answer(text):
    content = SimpleNamespace(type="text", text=SimpleNamespace(value=text))
    return SimpleNamespace(data=[SimpleNamespace(role="assistant", content=[content])])


@pytest.fixture
def openai_client(client, monkeypatch):
    monkeypatch.setattr(settings, "assistant_poll_interval_seconds", 0)
    mock = MagicMock()
    mock.beta.threads.create.return_value = SimpleNamespace(id="thread-1")
    mock.beta.assistants.create.return_value = SimpleNamespace(id="asst-remote-1")
    mock.beta.threads.runs.create.return_value = _run("queued")
    mock.beta.threads.runs.retrieve.return_value = _run("completed")
    mock.beta.threads.messages.list.return_value = _answer("Temos 3 contratos ativos.")
    mock.files.create.return_value = SimpleNamespace(id="file-remote-1")
    factory = MagicMock(return_value=mock)
    app.dependency_overrides[get_openai_factory] = lambda: factory
    mock.factory = factory
    return mock


@pytest.fixture
def ai_ready(db):
    db.add("ai_settings", openai_api_key="sk-test", default_model="gpt-4o", max_tokens=1000, temperature=0.7)
    db.add("kitchen_assistants", id="assistant-1", kitchen_id=KITCHEN_ID, nome="Nutri Bot",
           instrucoes="Responda sobre cardápios.", ativo=True)
    db.add("ai_conversations", id="conv-1", kitchen_id=KITCHEN_ID, user_id=ADMIN_ID,
           assistant_id="assistant-1", criado_em="2026-03-01T10:00:00+00:00")
    return db


def _chat(client, conversation_id="conv-1", assistant_id="assistant-1"):
    return client.post(f"{API}/ai/chat", json={
        "message": "Quais contratos temos?", "conversationId": conversation_id, "assistantId": assistant_id
    })


class TestAssistants:
    def test_create_and_list(self, client, db, current_user):
        response = client.post(f"{API}/ai/assistants", json={"kitchen_id": KITCHEN_ID, "nome": " Nutri Bot "})
        assert response.status_code == 201
        assert response.json()["nome"] == "Nutri Bot"

        db.add("kitchen_assistants", kitchen_id=OTHER_KITCHEN_ID, nome="Norte Bot", ativo=True)
        login_as(current_user, NUTRI_ID)
        names = [a["nome"] for a in client.get(f"{API}/ai/assistants").json()]
        assert names == ["Nutri Bot"]

    def test_nutricionista_cannot_create(self, client, current_user):
        login_as(current_user, NUTRI_ID)
        response = client.post(f"{API}/ai/assistants", json={"kitchen_id": KITCHEN_ID, "nome": "Nutri Bot"})
        assert response.status_code == 403

    def test_active_only(self, client, db):
        db.add("kitchen_assistants", kitchen_id=KITCHEN_ID, nome="Antigo", ativo=False)
        db.add("kitchen_assistants", kitchen_id=KITCHEN_ID, nome="Atual", ativo=True)
        names = [a["nome"] for a in client.get(f"{API}/ai/assistants", params={"active_only": True}).json()]
        assert names == ["Atual"]

    def test_update_and_delete(self, client, ai_ready):
        response = client.put(f"{API}/ai/assistants/assistant-1", json={"ativo": False})
        assert response.json()["ativo"] is False
        assert response.json()["instrucoes"] == "Responda sobre cardápios."
        assert client.delete(f"{API}/ai/assistants/assistant-1").status_code == 204
        assert client.get(f"{API}/ai/assistants/assistant-1").status_code == 404

    def test_other_kitchen_assistant(self, client, ai_ready, current_user):
        login_as(current_user, OUTSIDER_ID)
        assert client.get(f"{API}/ai/assistants/assistant-1").status_code == 403


class TestConversations:
    def test_create_and_list_own(self, client, ai_ready, current_user):
        login_as(current_user, NUTRI_ID)
        response = client.post(f"{API}/ai/conversations", json={"kitchen_id": KITCHEN_ID, "titulo": "Dúvidas"})
        assert response.status_code == 201
        assert response.json()["user_id"] == NUTRI_ID

        conversations = client.get(f"{API}/ai/conversations").json()
        assert [c["titulo"] for c in conversations] == ["Dúvidas"]

    def test_create_in_foreign_kitchen(self, client):
        response = client.post(f"{API}/ai/conversations", json={"kitchen_id": OTHER_KITCHEN_ID})
        assert response.status_code == 403


class TestChat:
    def test_first_message_creates_thread_and_remote_assistant(self, client, ai_ready, openai_client):
        ai_ready.add("kitchen_contracts", kitchen_id=KITCHEN_ID, file_id="file-c1", nome_contrato="Hortifruti", ativo=True)
        ai_ready.add("ai_files", conversation_id="conv-1", file_id="file-a1")

        response = _chat(client)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "response": "Temos 3 contratos ativos.",
            "threadId": "thread-1",
            "filesUsed": 2,
            "contractsAvailable": 1,
            "conversationFiles": 1,
        }
        openai_client.factory.assert_called_once_with(api_key="sk-test")
        assert ai_ready.rows("ai_conversations")[0]["thread_id"] == "thread-1"
        assert ai_ready.rows("kitchen_assistants")[0]["assistant_id"] == "asst-remote-1"

        created = openai_client.beta.assistants.create.call_args.kwargs
        assert created["model"] == "gpt-4o"
        assert "Hortifruti" in created["instructions"]
        assert created["tool_resources"] == {"code_interpreter": {"file_ids": ["file-a1", "file-c1"]}}
        message = openai_client.beta.threads.messages.create.call_args
        assert message.args == ("thread-1",)
        assert [a["file_id"] for a in message.kwargs["attachments"]] == ["file-a1", "file-c1"]
        openai_client.beta.threads.runs.create.assert_called_once_with("thread-1", assistant_id="asst-remote-1")

    def test_existing_thread_and_assistant_are_reused(self, client, ai_ready, openai_client):
        ai_ready.rows("ai_conversations")[0]["thread_id"] = "thread-9"
        ai_ready.rows("kitchen_assistants")[0]["assistant_id"] = "asst-9"

        assert _chat(client).json()["threadId"] == "thread-9"

        openai_client.beta.threads.create.assert_not_called()
        openai_client.beta.assistants.create.assert_not_called()
        openai_client.beta.assistants.update.assert_called_once()

    def test_openai_calls_run_in_worker_thread(self, client, ai_ready, openai_client):
        seen = []

        def create_thread():
            try:
                asyncio.get_running_loop()
                seen.append("event loop")
            except RuntimeError:
                seen.append("worker")
            return SimpleNamespace(id="thread-1")

        openai_client.beta.threads.create.side_effect = create_thread
        assert _chat(client).status_code == 200
        assert seen == ["worker"]

    def test_failed_run(self, client, ai_ready, openai_client):
        openai_client.beta.threads.runs.retrieve.return_value = _run(
            "failed", SimpleNamespace(message="rate limit exceeded")
        )
        response = _chat(client)
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Assistant run failed: rate limit exceeded"}

    def test_run_timeout(self, client, ai_ready, openai_client, monkeypatch):
        monkeypatch.setattr(settings, "assistant_max_poll_attempts", 2)
        openai_client.beta.threads.runs.retrieve.return_value = _run("in_progress")

        response = _chat(client)

        assert response.status_code == 408
        assert response.json()["error"] == "Timeout: the assistant took too long to respond"
        assert openai_client.beta.threads.runs.retrieve.call_count == 2

    def test_without_ai_settings(self, client, db, openai_client):
        response = _chat(client)
        assert response.status_code == 400
        assert response.json()["error"] == "No AI settings found. Configure them under Settings > AI & Integrations."

    def test_without_api_key(self, client, ai_ready, openai_client, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)
        ai_ready.rows("ai_settings")[0]["openai_api_key"] = None
        assert _chat(client).status_code == 400

    def test_unknown_assistant(self, client, ai_ready, openai_client):
        response = _chat(client, assistant_id="nope")
        assert response.status_code == 404
        assert response.json()["error"] == "Assistant not found"

    def test_assistant_of_another_kitchen(self, client, ai_ready, openai_client):
        ai_ready.add("kitchen_assistants", id="assistant-north", kitchen_id=OTHER_KITCHEN_ID, nome="Norte Bot",
                     assistant_id="asst-north-remote", ativo=True)

        response = _chat(client, assistant_id="assistant-north")

        assert response.status_code == 404
        assert response.json()["error"] == "Assistant not found"
        openai_client.beta.assistants.update.assert_not_called()
        openai_client.beta.threads.runs.create.assert_not_called()

    def test_conversation_of_someone_else(self, client, ai_ready, openai_client, current_user):
        login_as(current_user, NUTRI_ID)
        response = _chat(client)
        assert response.status_code == 404
        assert response.json()["error"] == "Conversation not found"

    def test_openai_error_is_500(self, client, ai_ready, openai_client):
        openai_client.beta.threads.create.side_effect = openai.OpenAIError("connection reset")
        response = _chat(client)
        assert response.status_code == 500
        assert response.json()["error"] == "connection reset"


class TestConversationFiles:
    def test_upload(self, client, ai_ready, openai_client):
        response = client.post(
            f"{API}/ai/upload",
            data={"conversationId": "conv-1"},
            files={"file": ("estoque.csv", b"item,qtd\narroz,10", "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["file"]["file_id"] == "file-remote-1"
        assert ai_ready.rows("ai_files")[0]["tamanho_bytes"] == 17
        assert openai_client.files.create.call_args.kwargs["purpose"] == "assistants"

    def test_failed_record_removes_remote_file(self, client, ai_ready, openai_client):
        ai_ready.errors[("ai_files", "insert")] = Exception("insert failed")
        response = client.post(
            f"{API}/ai/upload", data={"conversationId": "conv-1"}, files={"file": ("a.txt", b"a", "text/plain")}
        )
        assert response.status_code == 500
        openai_client.files.delete.assert_called_once_with("file-remote-1")

    def test_too_large(self, client, ai_ready, openai_client, monkeypatch):
        monkeypatch.setattr(settings, "assistant_max_file_size", 1)
        response = client.post(
            f"{API}/ai/upload", data={"conversationId": "conv-1"}, files={"file": ("a.txt", b"ab", "text/plain")}
        )
        assert response.status_code == 400
        openai_client.files.create.assert_not_called()


class TestContracts:
    def _upload(self, client, kitchen_id=KITCHEN_ID):
        return client.post(
            f"{API}/ai/contracts/upload",
            data={"kitchenId": kitchen_id, "nomeContrato": "Hortifruti", "tipoContrato": "fornecedor"},
            files={"file": ("contrato.pdf", b"%PDF", "application/pdf")},
        )

    def test_upload_and_list(self, client, ai_ready, openai_client, current_user):
        response = self._upload(client)
        assert response.status_code == 200
        contract = response.json()["contract"]
        assert (contract["file_id"], contract["tipo_contrato"]) == ("file-remote-1", "fornecedor")

        login_as(current_user, NUTRI_ID)
        listed = client.get(f"{API}/ai/contracts", params={"kitchen_id": KITCHEN_ID}).json()
        assert [c["nome_contrato"] for c in listed] == ["Hortifruti"]

    def test_upload_is_admin_only(self, client, ai_ready, openai_client, current_user):
        login_as(current_user, NUTRI_ID)
        response = self._upload(client)
        assert response.status_code == 403
        assert response.json()["error"] == "Only administrators can manage contracts"

    def test_admin_of_other_kitchen(self, client, ai_ready, openai_client):
        assert self._upload(client, OTHER_KITCHEN_ID).status_code == 403

    def test_delete(self, client, ai_ready, openai_client):
        ai_ready.add("kitchen_contracts", id="contract-1", kitchen_id=KITCHEN_ID, file_id="file-c1",
                     nome_contrato="Hortifruti", ativo=True)
        openai_client.files.delete.side_effect = openai.OpenAIError("already gone")

        response = client.delete(f"{API}/ai/contracts/contract-1")

        assert response.json() == {"success": True, "message": "Contract deleted successfully"}
        assert ai_ready.rows("kitchen_contracts") == []

    def test_delete_unknown(self, client, ai_ready, openai_client):
        assert client.delete(f"{API}/ai/contracts/nope").status_code == 404
