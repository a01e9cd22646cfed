"""Integration tests for Conversations API.

Tests the continue / append / end flow over HTTP, with the mock
completion engine selected by the test environment.
"""

from fastapi.testclient import TestClient

from avatar_console.config.constants import CONTINUITY

from conftest import BASE_PROMPT


class TestGetConversation:
    """Tests for GET /conversations/{id}."""

    def test_get_own_conversation(self, client: TestClient, owner_headers):
        response = client.get("/conversations/conv-1", headers=owner_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["conversation"]["id"] == "conv-1"
        assert data["conversation"]["status"] == "active"
        assert data["messages"] == []
        assert data["conversation"]["session_context"] == BASE_PROMPT

    def test_other_users_conversation_is_404(self, client: TestClient, stranger_headers):
        response = client.get("/conversations/conv-1", headers=stranger_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "ConversationNotFoundError"

    def test_missing_caller_is_401(self, client: TestClient):
        response = client.get("/conversations/conv-1")
        assert response.status_code == 401


class TestAppendMessage:
    """Tests for POST /conversations/{id}/messages."""

    def test_append_message(self, client: TestClient, owner_headers):
        response = client.post(
            "/conversations/conv-1/messages",
            json={"role": "user", "content": "I like jazz"},
            headers=owner_headers,
        )

        assert response.status_code == 201
        message = response.json()["message"]
        assert message["role"] == "user"
        assert message["content"] == "I like jazz"
        assert message["id"]

        messages = client.get("/conversations/conv-1", headers=owner_headers).json()["messages"]
        assert [m["content"] for m in messages] == ["I like jazz"]

    def test_invalid_role_is_422(self, client: TestClient, owner_headers):
        response = client.post(
            "/conversations/conv-1/messages",
            json={"role": "system", "content": "hi"},
            headers=owner_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"] == "InvalidMessageError"

    def test_empty_content_is_422(self, client: TestClient, owner_headers):
        response = client.post(
            "/conversations/conv-1/messages",
            json={"role": "user", "content": "  "},
            headers=owner_headers,
        )
        assert response.status_code == 422

    def test_missing_fields_is_422(self, client: TestClient, owner_headers):
        response = client.post(
            "/conversations/conv-1/messages", json={"role": "user"}, headers=owner_headers
        )
        assert response.status_code == 422


class TestContinueAndEnd:
    """Tests for continue and end."""

    def test_continue_without_messages(self, client: TestClient, owner_headers):
        """Empty log -> context equals the base prompt."""
        response = client.post("/conversations/conv-1/continue", headers=owner_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["summary"] == ""
        assert data["conversation"]["session_context"] == BASE_PROMPT

    def test_continue_after_messages(self, client: TestClient, owner_headers):
        """Context is base prompt + delimited summary."""
        for role, content in [("user", "I like jazz"), ("assistant", "Great, noted.")]:
            client.post(
                "/conversations/conv-1/messages",
                json={"role": role, "content": content},
                headers=owner_headers,
            )

        data = client.post("/conversations/conv-1/continue", headers=owner_headers).json()
        context = data["conversation"]["session_context"]

        assert len(data["messages"]) == 2
        assert context.startswith(BASE_PROMPT + "\n\n")
        assert context.endswith(data["summary"])
        assert data["summary"].startswith(CONTINUITY.CONTEXT_BLOCK_START)

    def test_end_conversation(self, client: TestClient, owner_headers):
        client.post(
            "/conversations/conv-1/messages",
            json={"role": "user", "content": "Goodbye for now"},
            headers=owner_headers,
        )

        response = client.post("/conversations/conv-1/end", headers=owner_headers)

        assert response.status_code == 200
        conversation = response.json()["conversation"]
        assert conversation["status"] == "completed"
        assert CONTINUITY.CONTEXT_BLOCK_START in conversation["conversation_summary"]

    def test_continue_reactivates_after_end(self, client: TestClient, owner_headers):
        client.post("/conversations/conv-1/end", headers=owner_headers)

        data = client.post("/conversations/conv-1/continue", headers=owner_headers).json()

        assert data["conversation"]["status"] == "active"

    def test_end_other_users_conversation(self, client: TestClient, stranger_headers):
        response = client.post("/conversations/conv-1/end", headers=stranger_headers)
        assert response.status_code == 404
