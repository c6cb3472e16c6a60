"""Builders for framework-free snapshots used by service-level tests."""

from __future__ import annotations

import itertools

from werkzeug.security import generate_password_hash

from football_network.models.role import Role
from football_network.services._shared.ports import UserRecord

_ids = itertools.count(1)
TEST_HASH_METHOD = "pbkdf2:sha256:1000"


def make_user_record(
    *,
    username: str | None = None,
    password: str = "Passw0rd!",
    role: Role = Role.USER,
    is_active: bool = True,
    user_id: int | None = None,
) -> UserRecord:
    """Return a :class:`UserRecord` whose hash matches ``password``."""
    uid = user_id if user_id is not None else next(_ids)
    name = username or f"player{uid}"
    return UserRecord(
        id=uid,
        username=name,
        email=f"{name}@example.com",
        role=role,
        is_active=is_active,
        password_hash=generate_password_hash(password, method=TEST_HASH_METHOD),
        first_name="Jan",
        last_name="Kowalski",
    )
