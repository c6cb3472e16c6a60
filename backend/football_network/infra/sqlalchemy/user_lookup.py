# infra/sqlalchemy/user_lookup.py
from __future__ import annotations

from datetime import datetime

from football_network.models.user import User
from football_network.services._shared.ports import UserLookup, UserRecord
from football_network.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


def to_record(user: User) -> UserRecord:
    """Snapshot an ORM user into the framework-free :class:`UserRecord`."""
    return UserRecord(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        password_hash=user.password_hash,
        first_name=user.first_name,
        last_name=user.last_name,
    )


class SQLAlchemyUserLookup(UserLookup):
    """
    :class:`UserLookup` adapter reading through the users repository.

    Reads run in a read-only unit of work; :meth:`record_login` is the only
    write and commits its own transaction.

    .. note::
       Requires an active Flask app context (Flask-SQLAlchemy session).
    """

    def get_by_id(self, user_id: int) -> UserRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get(user_id)
            return to_record(user) if user is not None else None

    def get_by_login(self, login: str) -> UserRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get_by_login(login)
            return to_record(user) if user is not None else None

    def record_login(self, user_id: int, at: datetime) -> None:
        with SQLAlchemyUnitOfWork() as uow:
            user = uow.users.get(user_id)
            if user is not None:
                user.record_login(at)
