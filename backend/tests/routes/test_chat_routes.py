"""
Route tests for /api/chat.

Covers authentication and role gating, conversation start/list, and the
message history and send endpoints.
"""

from sqlalchemy.exc import OperationalError

from admitlink.models.message import Message
from admitlink.repositories.message_repository import MessageRepository
from admitlink.services.conversation_service import ConversationService
from admitlink.services.message_service import MessageService


def _start(client, headers, participant_id, **extra):
    return client.post(
        "/api/chat/start", json={"participantUserId": participant_id, **extra}, headers=headers
    )


class TestChatAuth:
    def test_requires_bearer_token(self, client):
        response = client.get("/api/chat/conversations")

        assert response.status_code == 401
        assert response.json()["message"] == "Unauthorized"

    def test_rejects_invalid_token(self, client):
        response = client.get(
            "/api/chat/conversations", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_rejects_blocked_user(self, client, make_user, make_token):
        blocked = make_user("student", is_blocked=True)

        response = client.get(
            "/api/chat/conversations",
            headers={"Authorization": f"Bearer {make_token(blocked)}"},
        )

        assert response.status_code == 403

    def test_admin_is_forbidden(self, client, auth_headers_admin):
        response = client.get("/api/chat/conversations", headers=auth_headers_admin)

        assert response.status_code == 403
        assert response.json()["message"] == "Forbidden"


class TestStartConversation:
    def test_start_creates_then_reuses(self, client, linked_pair, auth_headers_student):
        student, university, application = linked_pair

        first = _start(
            client, auth_headers_student, university.id, relatedApplication=application.id
        )
        second = _start(client, auth_headers_student, university.id)

        assert first.status_code == 201
        body = first.json()
        assert sorted(body["participants"]) == sorted([student.id, university.id])
        assert body["relatedApplication"] == application.id
        assert "createdAt" in body and "updatedAt" in body
        assert second.status_code == 201
        assert second.json()["id"] == body["id"]

    def test_missing_participant(self, client, auth_headers_student):
        response = client.post("/api/chat/start", json={}, headers=auth_headers_student)

        assert response.status_code == 400
        assert response.json()["message"] == "participantUserId is required"

    def test_self_conversation(self, client, test_student, auth_headers_student):
        response = _start(client, auth_headers_student, test_student.id)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot start conversation with yourself"

    def test_unrelated_pair(self, client, test_university, auth_headers_student):
        response = _start(client, auth_headers_student, test_university.id)

        assert response.status_code == 403
        assert (
            response.json()["message"]
            == "Conversation not allowed without student-university relationship"
        )

    def test_unexpected_field_fails_validation(self, client, test_university, auth_headers_student):
        response = _start(client, auth_headers_student, test_university.id, topic="hi")

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert [error["path"] for error in body["errors"]] == ["topic"]


class TestListConversations:
    def test_empty_listing(self, client, test_student, auth_headers_student):
        response = client.get("/api/chat/conversations", headers=auth_headers_student)

        assert response.status_code == 200
        assert response.json() == {
            "items": [],
            "pagination": {"page": 1, "limit": 25, "total": 0, "totalPages": 1},
        }

    def test_limit_is_clamped(self, client, linked_pair, auth_headers_university):
        student, _, _ = linked_pair
        _start(client, auth_headers_university, student.id)

        response = client.get(
            "/api/chat/conversations",
            params={"page": 0, "limit": 500},
            headers=auth_headers_university,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 100, "total": 1, "totalPages": 1}
        assert len(body["items"]) == 1

    def test_non_numeric_page_fails_validation(self, client, auth_headers_student):
        response = client.get(
            "/api/chat/conversations", params={"page": "two"}, headers=auth_headers_student
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["path"] == "page"

    def test_most_recently_active_first(
        self, client, db, test_student, make_user, make_application, auth_headers_student
    ):
        quiet_uni = make_user("university")
        busy_uni = make_user("university")
        make_application(test_student, quiet_uni)
        make_application(test_student, busy_uni)
        service = ConversationService(db)
        quiet, _ = service.start_or_get(test_student.id, quiet_uni.id)
        busy, _ = service.start_or_get(test_student.id, busy_uni.id)
        MessageService(db).append(quiet.id, quiet_uni.id, "first")
        MessageService(db).append(busy.id, busy_uni.id, "latest")

        response = client.get("/api/chat/conversations", headers=auth_headers_student)

        assert [item["id"] for item in response.json()["items"]] == [busy.id, quiet.id]


class TestMessages:
    def _conversation_id(self, client, linked_pair, headers):
        _, university, _ = linked_pair
        return _start(client, headers, university.id).json()["id"]

    def test_send_and_list(
        self, client, linked_pair, auth_headers_student, auth_headers_university
    ):
        conversation_id = self._conversation_id(client, linked_pair, auth_headers_student)

        sent = client.post(
            f"/api/chat/{conversation_id}/messages",
            json={"text": "Hello admissions", "attachments": ["transcript.pdf"]},
            headers=auth_headers_student,
        )
        client.post(
            f"/api/chat/{conversation_id}/messages",
            json={"text": "Hello student"},
            headers=auth_headers_university,
        )
        listed = client.get(
            f"/api/chat/{conversation_id}/messages", headers=auth_headers_university
        )

        assert sent.status_code == 201
        assert sent.json()["attachments"] == ["transcript.pdf"]
        assert sent.json()["conversationId"] == conversation_id
        body = listed.json()
        assert [item["text"] for item in body["items"]] == ["Hello student", "Hello admissions"]
        assert body["pagination"] == {"page": 1, "limit": 50, "total": 2, "totalPages": 1}

    def test_whitespace_text_rejected(self, client, db, linked_pair, auth_headers_student):
        conversation_id = self._conversation_id(client, linked_pair, auth_headers_student)

        response = client.post(
            f"/api/chat/{conversation_id}/messages",
            json={"text": "   "},
            headers=auth_headers_student,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Message text is required"
        assert db.query(Message).count() == 0

    def test_missing_text_fails_validation(self, client, linked_pair, auth_headers_student):
        conversation_id = self._conversation_id(client, linked_pair, auth_headers_student)

        response = client.post(
            f"/api/chat/{conversation_id}/messages", json={}, headers=auth_headers_student
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["path"] == "text"

    def test_length_is_checked_after_trimming(self, client, linked_pair, auth_headers_student):
        conversation_id = self._conversation_id(client, linked_pair, auth_headers_student)
        padded = "  " + "a" * 5000 + "  "

        accepted = client.post(
            f"/api/chat/{conversation_id}/messages",
            json={"text": padded},
            headers=auth_headers_student,
        )
        too_long = client.post(
            f"/api/chat/{conversation_id}/messages",
            json={"text": "a" * 5001},
            headers=auth_headers_student,
        )

        assert accepted.status_code == 201
        assert accepted.json()["text"] == "a" * 5000
        assert too_long.status_code == 400
        assert too_long.json()["message"] == "Message text must be at most 5000 characters"

    def test_storage_failure_hides_sql_details(
        self, client, linked_pair, auth_headers_student, monkeypatch
    ):
        conversation_id = self._conversation_id(client, linked_pair, auth_headers_student)

        def failing_create(self, **kwargs):
            raise OperationalError(
                "INSERT INTO messages (id, text) VALUES (?, ?)",
                {"text": "secret-parameter"},
                Exception("disk I/O error"),
            )

        monkeypatch.setattr(MessageRepository, "create_message", failing_create)
        response = client.post(
            f"/api/chat/{conversation_id}/messages",
            json={"text": "hello"},
            headers=auth_headers_student,
        )

        assert response.status_code == 500
        assert response.json()["message"] == "Database operation failed"
        assert "INSERT" not in response.text
        assert "secret-parameter" not in response.text

    def test_unknown_conversation(self, client, auth_headers_student):
        response = client.get(
            "/api/chat/01HMISSINGCONVERSATION0000/messages", headers=auth_headers_student
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Conversation not found"

    def test_non_participant(
        self, client, linked_pair, auth_headers_student, other_student, make_token
    ):
        conversation_id = self._conversation_id(client, linked_pair, auth_headers_student)
        outsider = {"Authorization": f"Bearer {make_token(other_student)}"}

        listed = client.get(f"/api/chat/{conversation_id}/messages", headers=outsider)
        sent = client.post(
            f"/api/chat/{conversation_id}/messages", json={"text": "hi"}, headers=outsider
        )

        assert listed.status_code == 403
        assert sent.status_code == 403
