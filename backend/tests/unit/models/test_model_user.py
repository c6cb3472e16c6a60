"""Tests for the User model."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from football_network.models.role import Role
from football_network.models.user import User
from tests.factories.user import UserFactory


class TestUser:
    def test_password_hashing(self, session):
        u = User(email="Test@Example.com", username="tester")
        u.password = "secret123"
        session.add(u)
        session.commit()
        assert u.verify_password("secret123") is True
        assert u.verify_password("wrong") is False

    def test_password_is_write_only(self):
        u = User(email="a@example.com", username="u1")
        u.password = "x"
        with pytest.raises(AttributeError):
            _ = u.password

    def test_email_normalized_and_unique(self, session):
        u1 = User(email="Alice@Example.com", username="alice")
        u1.password = "pw"
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        u2 = User(email="alice@example.com", username="alice2")
        u2.password = "pw"
        session.add(u2)
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_invalid_email_rejected(self):
        with pytest.raises(ValueError):
            User(email="not-an-email", username="x")

    def test_defaults(self, session):
        u = User(email="d@example.com", username="defaults")
        u.password = "pw"
        session.add(u)
        session.flush()
        assert u.role is Role.USER
        assert u.is_active is True
        assert u.is_email_verified is False
        assert u.last_login_at is None

    def test_behaviour(self, session):
        user = UserFactory(first_name="Robert", last_name="Lewandowski", role=Role.MODERATOR)
        at = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)

        user.record_login(at)
        assert user.last_login_at == at
        assert user.full_name == "Robert Lewandowski"
        assert user.can_perform_action(Role.USER)
        assert user.can_perform_action(Role.MODERATOR)
        assert not user.can_perform_action(Role.ADMINISTRATOR)

        user.deactivate()
        assert user.is_active is False

    def test_role_round_trips(self, session):
        user = UserFactory(role=Role.SUPER_ADMIN)
        session.commit()
        session.expire_all()
        assert session.get(User, user.id).role is Role.SUPER_ADMIN
