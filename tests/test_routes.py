"""HTTP tests for the chat, session and image routes."""

import base64

import pytest
from fastapi.testclient import TestClient

from conftest import FakeChat, FakeImages, FakeRepository, fenced
from main import create_app
from services.openai.errors import ConfigurationError, RateLimitExhausted
from services.workflow import messages
from services.workflow.controller import WorkflowController


def _client(chat):
    app = create_app()
    repo, images = FakeRepository(), FakeImages()
    app.state.chat_service = chat
    app.state.workflow = WorkflowController(repo, chat, images)
    return TestClient(app), repo, images


class TestChatRoute:
    def test_chat_reply(self):
        chat = FakeChat(replies=["Hello there"])
        client, _, _ = _client(chat)
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}], "mode": "coop_letter"})
        assert response.status_code == 200
        assert response.json() == {"message": "Hello there"}
        turns, mode = chat.turns[0]
        assert turns[0].content == "hi"
        assert mode.value == "coop_letter"

    def test_image_base64_is_forwarded(self):
        chat = FakeChat(replies=["Nice"])
        client, _, _ = _client(chat)
        client.post("/api/chat", json={"messages": [{"role": "user", "content": "look", "imageBase64": "aW1n"}]})
        turns, mode = chat.turns[0]
        assert turns[0].image_base64 == "aW1n"
        assert mode.value == "ohisama"

    @pytest.mark.parametrize("body", [{}, {"messages": None}, {"messages": "hi"}])
    def test_messages_are_required(self, body):
        client, _, _ = _client(FakeChat())
        response = client.post("/api/chat", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "messages is required"}

    def test_empty_history_is_an_upstream_error(self):
        client, _, _ = _client(FakeChat())
        response = client.post("/api/chat", json={"messages": []})
        assert response.status_code == 500
        assert response.json() == {"error": "An error occurred: At least one message is required."}

    def test_malformed_turn(self):
        client, _, _ = _client(FakeChat())
        response = client.post("/api/chat", json={"messages": [{"role": "system", "content": "x"}]})
        assert response.status_code == 400

    def test_rate_limit(self):
        client, _, _ = _client(FakeChat(replies=[RateLimitExhausted("429")]))
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert response.status_code == 429
        assert response.json() == {"error": messages.SERVICE_BUSY}

    def test_missing_api_key(self):
        client, _, _ = _client(FakeChat(replies=[ConfigurationError("no key")]))
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert response.status_code == 500
        assert response.json() == {"error": messages.MISSING_API_KEY}

    def test_unexpected_error(self):
        client, _, _ = _client(FakeChat(replies=[RuntimeError("boom")]))
        response = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert response.status_code == 500
        assert response.json() == {"error": "An error occurred: boom"}

    def test_image_generation(self):
        chat = FakeChat(images=["aW1hZ2U="])
        client, _, _ = _client(chat)
        response = client.post("/api/chat", json={"generateImagePrompt": "bread"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "imageBase64": "aW1hZ2U="}
        assert chat.prompts == ["bread"]

    def test_image_generation_declined(self):
        client, _, _ = _client(FakeChat(images=[None]))
        response = client.post("/api/chat", json={"generateImagePrompt": "bread"})
        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "Image generation failed. Please try a different prompt."}


class TestSessionRoutes:
    def test_create_list_and_rename(self):
        client, repo, _ = _client(FakeChat())
        created = client.post("/sessions", json={"mode": "coop_letter"}, headers={"X-User-Id": "alice"})
        assert created.status_code == 200
        session = created.json()["session"]
        assert session["user_id"] == "alice"
        assert session["mode"] == "coop_letter"
        assert created.json()["state"]["phase"] == "waiting"

        listed = client.get("/sessions", params={"mode": "coop_letter"}, headers={"X-User-Id": "alice"})
        assert [s["id"] for s in listed.json()] == [session["id"]]
        assert client.get("/sessions", headers={"X-User-Id": "bob"}).json() == []

        renamed = client.patch(f"/sessions/{session['id']}", json={"title": "Autumn"})
        assert renamed.json()["session"]["title"] == "Autumn"

    def test_default_user(self):
        client, _, _ = _client(FakeChat())
        created = client.post("/sessions", json={"mode": "ohisama"})
        assert created.json()["session"]["user_id"] == "local"

    def test_unknown_mode(self):
        client, _, _ = _client(FakeChat())
        assert client.post("/sessions", json={"mode": "poster"}).status_code == 400

    def test_missing_session(self):
        client, _, _ = _client(FakeChat())
        assert client.get("/sessions/nope").status_code == 404
        assert client.post("/sessions/nope/messages", json={"text": "hi"}).status_code == 404

    def test_proposal_flow(self):
        reply = fenced({"proposals": [{"id": "1", "title": "Rustic Board"}], "analysis": "Loaf"})
        chat = FakeChat(replies=[reply, fenced({"action": "generate_image", "prompt": "bread"})])
        client, _, _ = _client(chat)
        session_id = client.post("/sessions", json={"mode": "ohisama"}).json()["session"]["id"]

        body = client.post(f"/sessions/{session_id}/messages", json={"text": "style my bread"}).json()
        assert body["state"]["phase"] == "proposals_shown"
        assert body["state"]["proposals"][0]["title"] == "Rustic Board"

        assert client.post(f"/sessions/{session_id}/proposals/9/select").status_code == 404
        client.post(f"/sessions/{session_id}/proposals/1/select")
        body = client.post(f"/sessions/{session_id}/proposal/confirm", json={"auto_generate": True}).json()
        assert body["session"]["title"] == "Rustic Board"
        assert body["session"]["messages"][-1]["generated_image_url"] == "/images/1"
        assert body["state"]["can_generate_image"] is False

        assert client.post(f"/sessions/{session_id}/image/generate").status_code == 409

    def test_message_with_image(self):
        chat = FakeChat(replies=["Nice photo"])
        client, _, images = _client(chat)
        session_id = client.post("/sessions", json={"mode": "ohisama"}).json()["session"]["id"]
        png = base64.b64encode(b"\x89PNG\r\n\x1a\nrest").decode()
        body = client.post(
            f"/sessions/{session_id}/messages",
            json={"text": "my bread", "image_base64": f"data:image/png;base64,{png}"},
        ).json()
        assert body["session"]["messages"][0]["image_url"] == "/images/1"
        assert images.saved[0]["mime_type"] == "image/png"

    def test_bad_image_payload(self):
        client, _, _ = _client(FakeChat())
        session_id = client.post("/sessions", json={"mode": "ohisama"}).json()["session"]["id"]
        response = client.post(f"/sessions/{session_id}/messages", json={"text": "x", "image_base64": "data:text/plain;base64,aGk="})
        assert response.status_code == 415

    def test_revision_with_unknown_type(self):
        client, _, _ = _client(FakeChat())
        session_id = client.post("/sessions", json={"mode": "ohisama"}).json()["session"]["id"]
        response = client.post(f"/sessions/{session_id}/image/revision", json={"type": "font"})
        assert response.status_code == 400

    def test_delete_returns_replacement(self):
        client, repo, _ = _client(FakeChat())
        session_id = client.post("/sessions", json={"mode": "ohisama"}).json()["session"]["id"]
        body = client.delete(f"/sessions/{session_id}").json()
        assert body["session"]["id"] != session_id
        assert list(repo.sessions) == [body["session"]["id"]]


class TestHealth:
    def test_health(self):
        client, _, _ = _client(FakeChat())
        body = client.get("/health").json()
        assert body["ok"] is True
        assert body["openai_available"] is False

    def test_no_static_index(self):
        client, _, _ = _client(FakeChat())
        assert client.get("/").status_code == 404
