"""Tests for the SQLAlchemy-backed user lookup adapter."""

from __future__ import annotations

from datetime import UTC, datetime

from football_network.infra.sqlalchemy.user_lookup import SQLAlchemyUserLookup
from football_network.models.role import Role
from football_network.models.user import User
from tests.factories.user import UserFactory


def test_snapshots_are_detached_records(session):
    user = UserFactory(username="zibi", email="zibi@example.com", role=Role.MODERATOR)
    session.commit()

    record = SQLAlchemyUserLookup().get_by_id(user.id)

    assert record.id == user.id
    assert record.username == "zibi"
    assert record.role is Role.MODERATOR
    assert record.is_active is True
    assert record.password_hash == user.password_hash


def test_get_by_login(session):
    user = UserFactory(username="zibi2", email="zibi2@example.com")
    session.commit()

    lookup = SQLAlchemyUserLookup()
    assert lookup.get_by_login("zibi2").id == user.id
    assert lookup.get_by_login("ZIBI2@example.com").id == user.id
    assert lookup.get_by_login("missing") is None
    assert lookup.get_by_id(987654) is None


def test_record_login_commits(session):
    user = UserFactory()
    session.commit()

    SQLAlchemyUserLookup().record_login(user.id, datetime(2026, 5, 1, 9, 30, tzinfo=UTC))
    session.expire_all()

    assert session.get(User, user.id).last_login_at is not None
