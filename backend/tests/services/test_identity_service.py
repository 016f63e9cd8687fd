"""Tests for bearer token resolution."""

from datetime import timedelta

import jwt
import pytest

from admitlink.auth import create_access_token
from admitlink.core.exceptions import ForbiddenException, UnauthorizedException
from admitlink.models.user import User
from admitlink.services.identity_service import IdentityService


class TestAuthenticate:
    def test_valid_token_resolves_user(self, db, test_student, make_token):
        user = IdentityService(db).authenticate(make_token(test_student))

        assert user.user_id == test_student.id
        assert user.role == "student"
        assert user.email == test_student.email
        assert user.is_blocked is False

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, db, token):
        with pytest.raises(UnauthorizedException) as exc:
            IdentityService(db).authenticate(token)

        assert exc.value.message == "Unauthorized"

    def test_garbage_token(self, db):
        with pytest.raises(UnauthorizedException) as exc:
            IdentityService(db).authenticate("not-a-jwt")

        assert exc.value.message == "Invalid or expired token"

    def test_expired_token(self, db, test_student):
        token = create_access_token(test_student.id, "student", expires_delta=timedelta(minutes=-5))

        with pytest.raises(UnauthorizedException):
            IdentityService(db).authenticate(token)

    def test_token_signed_with_other_key(self, db, test_student):
        token = jwt.encode(
            {"sub": test_student.id}, "another-signing-secret-of-decent-length", algorithm="HS256"
        )

        with pytest.raises(UnauthorizedException):
            IdentityService(db).authenticate(token)

    def test_unknown_user(self, db):
        token = create_access_token("01HUNKNOWNUSER000000000000", "student")

        with pytest.raises(UnauthorizedException) as exc:
            IdentityService(db).authenticate(token)

        assert exc.value.message == "Unauthorized"

    def test_blocked_user(self, db, make_user, make_token):
        blocked = make_user("student", is_blocked=True)

        with pytest.raises(ForbiddenException) as exc:
            IdentityService(db).authenticate(make_token(blocked))

        assert exc.value.code == "Blocked"


class TestTouchLastActive:
    def test_stamps_last_active(self, db, test_student):
        IdentityService(db).touch_last_active(test_student.id)

        db.expire_all()
        assert db.get(User, test_student.id).last_active_at is not None

    def test_unknown_user_is_ignored(self, db):
        IdentityService(db).touch_last_active("01HUNKNOWNUSER000000000000")
