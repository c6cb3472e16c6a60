from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from football_network.models.role import Role


@dataclass(frozen=True, slots=True)
class UserRecord:
    """
    Snapshot of a user as seen by authentication.

    :ivar id: User id.
    :ivar username: Login handle.
    :ivar email: Normalized email.
    :ivar role: Role in the hierarchy.
    :ivar is_active: Inactive users cannot authenticate.
    :ivar password_hash: Stored password hash.
    :ivar first_name: Display first name.
    :ivar last_name: Display last name.
    """

    id: int
    username: str
    email: str
    role: Role
    is_active: bool
    password_hash: str
    first_name: str = ""
    last_name: str = ""


class UserLookup(Protocol):
    """Read access to users (plus login stamping) for the auth service."""

    def get_by_id(self, user_id: int) -> UserRecord | None: ...

    def get_by_login(self, login: str) -> UserRecord | None:
        """Resolve a username or email."""
        ...

    def record_login(self, user_id: int, at: datetime) -> None: ...


class InMemoryUserLookup(UserLookup):
    """Dictionary-backed lookup used in unit tests and local tooling."""

    def __init__(self, users: list[UserRecord] | None = None) -> None:
        self._users: dict[int, UserRecord] = {u.id: u for u in users or []}
        self.logins: dict[int, datetime] = {}

    def add(self, user: UserRecord) -> None:
        self._users[user.id] = user

    def get_by_id(self, user_id: int) -> UserRecord | None:
        return self._users.get(user_id)

    def get_by_login(self, login: str) -> UserRecord | None:
        needle = login.strip()
        for user in self._users.values():
            if user.username == needle or user.email == needle.lower():
                return user
        return None

    def record_login(self, user_id: int, at: datetime) -> None:
        self.logins[user_id] = at
