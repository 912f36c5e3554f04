import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from docchat.api.dependencies import get_session
from docchat.core.settings_store import ApiSettings
from docchat.db.store import InMemoryDocumentStore
from docchat.llm.local import LocalBackend
from docchat.rag.session import ChatSession
from main import app


@pytest.fixture
def session(local_backend) -> ChatSession:
    asyncio.run(local_backend.initialize())
    return ChatSession(local_backend, InMemoryDocumentStore())


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, name: str = "fruit.txt", text: str = "Apples grow in orchards.\n\nCherries blossom in spring."):
    return client.post(
        "/api/v1/documents/upload",
        files={"file": (name, text.encode("utf-8"), "text/plain")},
    )


def test_liveness(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_reports_model_state(client) -> None:
    response = client.get("/health/ready")
    assert response.status_code == 200
    payload = response.json()
    assert payload["llm_provider"] == "local"
    assert payload["model_loaded"] is True


def test_upload_list_get_delete(client) -> None:
    created = _upload(client)
    assert created.status_code == 201
    document = created.json()
    assert document["name"] == "fruit.txt"
    assert document["chunk_count"] == 1

    listed = client.get("/api/v1/documents").json()
    assert [doc["id"] for doc in listed] == [document["id"]]

    detail = client.get(f"/api/v1/documents/{document['id']}").json()
    assert detail["content"].startswith("Apples grow")
    assert detail["chunks"] == [detail["content"]]

    assert client.delete(f"/api/v1/documents/{document['id']}").status_code == 204
    assert client.get(f"/api/v1/documents/{document['id']}").status_code == 404


def test_unsupported_upload_is_bad_request(client) -> None:
    response = _upload(client, name="slides.pptx")
    assert response.status_code == 400
    assert "Unsupported file format" in response.json()["detail"]


def test_chat_without_document_is_conflict(client) -> None:
    response = client.post("/api/v1/chat", json={"message": "hello"})
    assert response.status_code == 409
    assert response.json()["detail"].startswith("Document not set")


def test_chat_answers_and_logs_messages(client) -> None:
    _upload(client)

    response = client.post("/api/v1/chat", json={"message": "What grows in orchards?"})

    assert response.status_code == 200
    assert response.json()["message"]["content"] == "Hello, world"
    messages = client.get("/api/v1/chat/messages").json()
    assert [m["role"] for m in messages] == ["user", "assistant"]


def test_blank_chat_message_is_rejected(client) -> None:
    _upload(client)
    assert client.post("/api/v1/chat", json={"message": "   "}).status_code == 400


def test_chat_stream_emits_tokens_then_done(client) -> None:
    _upload(client)

    response = client.post("/api/v1/chat/stream", json={"message": "What grows in orchards?"})

    assert response.status_code == 200
    body = response.text
    events = [line[len("event: "):].strip() for line in body.splitlines() if line.startswith("event: ")]
    assert events == ["token", "token", "token", "message", "done"]
    data = [line[len("data: "):] for line in body.splitlines() if line.startswith("data: ")]
    assert data[:3] == ["Hel", "lo, ", "world"]
    assert json.loads(data[3])["content"] == "Hello, world"


def test_chat_stream_without_document_is_conflict(client) -> None:
    response = client.post("/api/v1/chat/stream", json={"message": "hello"})
    assert response.status_code == 409


def test_bind_document(client, session) -> None:
    first = _upload(client, name="a.txt").json()
    _upload(client, name="b.txt")

    response = client.post("/api/v1/chat/document", json={"document_id": first["id"]})

    assert response.status_code == 200
    assert session.document.id == first["id"]
    assert client.post("/api/v1/chat/document", json={"document_id": "missing"}).status_code == 404


def test_analysis_endpoints(client, engine) -> None:
    document = _upload(client).json()

    engine.reply = "Fruit and seasons."
    summary = client.post("/api/v1/analysis/summary").json()
    assert summary == {"document_id": document["id"], "summary": "Fruit and seasons."}

    engine.reply = "- Orchards\n- Spring"
    topics = client.post("/api/v1/analysis/topics").json()
    assert topics["topics"] == ["Orchards", "Spring"]


def test_analysis_without_document_is_conflict(client) -> None:
    assert client.post("/api/v1/analysis/summary").status_code == 409


def test_settings_update_swaps_backend(client, session, settings, engine, monkeypatch) -> None:
    saved: list[ApiSettings] = []

    async def loader(model_id, report):
        return engine

    monkeypatch.setattr("docchat.api.routes.settings.save_api_settings", saved.append)
    monkeypatch.setattr(
        "docchat.api.routes.settings.build_backend",
        lambda: LocalBackend(settings, engine_loader=loader),
    )
    previous = session.backend

    response = client.put(
        "/api/v1/settings",
        json={"provider": "local", "api_key": "", "model": "tiny-model", "temperature": 0.5},
    )

    assert response.status_code == 200
    assert response.json()["has_api_key"] is False
    assert saved[0].model == "tiny-model"
    assert session.backend is not previous


def test_settings_check_for_local_provider(client) -> None:
    response = client.post("/api/v1/settings/check", json={"provider": "local"})
    assert response.json() == {"ok": True}
