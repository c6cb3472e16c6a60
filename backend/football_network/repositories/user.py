"""User repository for lookups used by authentication."""

from __future__ import annotations

from typing import cast

from sqlalchemy import or_, select

from football_network.models.user import User
from football_network.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles JWT or session creation, only DB-level user access.
    """

    model = User

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by exact (trimmed) username.

        :param username: Login handle.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.username == username.strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.email == email.lower().strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def get_by_login(self, login: str) -> User | None:
        """Fetch a user by username or email, whichever matches.

        :param login: Username or email as typed on the login form.
        :returns: User instance or ``None``.
        """
        value = login.strip()
        stmt = select(User).where(or_(User.username == value, User.email == value.lower()))
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists(self, *, username: str, email: str) -> bool:
        """Return ``True`` when either the username or the email is taken."""
        stmt = select(User.id).where(
            or_(User.username == username.strip(), User.email == email.lower().strip())
        )
        return self.session.execute(stmt).first() is not None
