"""
Tests for ConversationService.

Covers the start-or-get contract:
- Self conversations and missing participants are rejected
- Only a related student/university pair may open a conversation
- Repeated starts converge on one conversation
"""

import threading
from typing import List, Tuple

import pytest

from admitlink.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from admitlink.models.activity import Activity
from admitlink.models.conversation import Conversation
from admitlink.database import SessionLocal
from admitlink.services.conversation_service import ConversationService


class TestStartOrGet:
    def test_rejects_self_conversation(self, db, linked_pair):
        student, _, _ = linked_pair

        with pytest.raises(ValidationException) as exc:
            ConversationService(db).start_or_get(student.id, student.id)

        assert exc.value.message == "Cannot start conversation with yourself"

    def test_rejects_missing_participant(self, db, test_student):
        with pytest.raises(ValidationException) as exc:
            ConversationService(db).start_or_get(test_student.id, None)

        assert exc.value.message == "participantUserId is required"

    def test_rejects_same_role_pair(self, db, test_student, other_student):
        with pytest.raises(ForbiddenException) as exc:
            ConversationService(db).start_or_get(test_student.id, other_student.id)

        assert (
            exc.value.message == "Conversation not allowed without student-university relationship"
        )

    def test_rejects_pair_without_application(self, db, test_student, test_university):
        with pytest.raises(ForbiddenException):
            ConversationService(db).start_or_get(test_student.id, test_university.id)

        assert db.query(Conversation).count() == 0

    def test_admin_cannot_start(self, db, test_admin, test_student):
        with pytest.raises(ForbiddenException):
            ConversationService(db).start_or_get(test_admin.id, test_student.id)

    def test_any_application_status_allows_messaging(
        self, db, test_student, test_university, make_application
    ):
        make_application(test_student, test_university, status="rejected")

        conversation, created = ConversationService(db).start_or_get(
            test_university.id, test_student.id
        )

        assert created is True
        assert conversation.is_participant(test_student.id)

    def test_start_is_idempotent_and_order_insensitive(self, db, linked_pair):
        student, university, application = linked_pair
        service = ConversationService(db)

        first, created_first = service.start_or_get(
            student.id, university.id, related_application=application.id
        )
        second, created_second = service.start_or_get(
            university.id, student.id, related_application="01HOTHERAPPLICATION0000000"
        )

        assert created_first is True
        assert created_second is False
        assert first.id == second.id
        assert second.related_application == application.id
        assert db.query(Conversation).count() == 1

    def test_concurrent_starts_converge_on_one_conversation(self, db, linked_pair):
        student, university, _ = linked_pair
        workers = 8
        barrier = threading.Barrier(workers)
        results: List[Tuple[str, bool]] = []
        errors: List[Exception] = []

        def start(index: int) -> None:
            session = SessionLocal()
            try:
                # Alternate the argument order so both orderings race
                pair = (student.id, university.id) if index % 2 else (university.id, student.id)
                barrier.wait()
                conversation, created = ConversationService(session).start_or_get(*pair)
                results.append((conversation.id, created))
            except Exception as exc:  # surfaced by the assertions below
                errors.append(exc)
            finally:
                session.close()

        threads = [threading.Thread(target=start, args=(i,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert len(results) == workers
        assert len({conversation_id for conversation_id, _ in results}) == 1
        assert [created for _, created in results].count(True) == 1
        assert db.query(Conversation).count() == 1

    def test_start_records_activity_for_both_participants(self, db, linked_pair):
        student, university, _ = linked_pair

        conversation, _ = ConversationService(db).start_or_get(student.id, university.id)
        ConversationService(db).start_or_get(student.id, university.id)

        rows = (
            db.query(Activity)
            .filter(Activity.action == "conversation.started")
            .filter(Activity.related_id == conversation.id)
            .all()
        )
        assert sorted(row.user_id for row in rows) == sorted([student.id, university.id])


class TestListAndLookup:
    def test_empty_listing_pagination(self, db, test_student):
        page = ConversationService(db).list_for_user(test_student.id)

        assert page.items == []
        assert page.total == 0
        assert page.request.page == 1
        assert page.total_pages == 1

    def test_listing_only_returns_own_conversations(
        self, db, linked_pair, other_student, make_application
    ):
        student, university, _ = linked_pair
        make_application(other_student, university)
        service = ConversationService(db)
        mine, _ = service.start_or_get(student.id, university.id)
        service.start_or_get(other_student.id, university.id)

        page = service.list_for_user(student.id, page=1, limit=10)

        assert [c.id for c in page.items] == [mine.id]
        assert service.list_for_user(university.id).total == 2

    def test_get_for_participant(self, db, linked_pair, other_student):
        student, university, _ = linked_pair
        service = ConversationService(db)
        conversation, _ = service.start_or_get(student.id, university.id)

        assert service.get_for_participant(conversation.id, university.id).id == conversation.id
        with pytest.raises(ForbiddenException):
            service.get_for_participant(conversation.id, other_student.id)
        with pytest.raises(NotFoundException):
            service.get_for_participant("01HMISSINGCONVERSATION0000", student.id)

    def test_is_participant_and_ids(self, db, linked_pair, other_student):
        student, university, _ = linked_pair
        service = ConversationService(db)
        conversation, _ = service.start_or_get(student.id, university.id)

        assert service.is_participant(conversation.id, student.id) is True
        assert service.is_participant(conversation.id, other_student.id) is False
        assert service.is_participant("01HMISSINGCONVERSATION0000", student.id) is False
        assert service.list_conversation_ids(university.id) == [conversation.id]
