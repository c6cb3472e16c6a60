"""Idempotent database seed helpers for local development environments."""

from __future__ import annotations

import logging
from typing import Any, cast

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import select
from sqlalchemy.orm import Session

from football_network.models.role import Role
from football_network.models.user import User

LOGGER = logging.getLogger(__name__)

# The default administrator mirrors the production bootstrap account.
USER_FIXTURES: list[dict[str, Any]] = [
    {
        "username": "admin",
        "email": "admin@polishfootballnetwork.com",
        "first_name": "System",
        "last_name": "Administrator",
        "role": Role.SUPER_ADMIN,
        "password": "admin123",
        "is_email_verified": True,
    },
    {
        "username": "kasia.admin",
        "email": "katarzyna.nowak@example.com",
        "first_name": "Katarzyna",
        "last_name": "Nowak",
        "role": Role.ADMINISTRATOR,
        "password": "devPass123!",
        "is_email_verified": True,
    },
    {
        "username": "tomek.mod",
        "email": "tomasz.wisniewski@example.com",
        "first_name": "Tomasz",
        "last_name": "Wisniewski",
        "role": Role.MODERATOR,
        "password": "strongPass123",
        "is_email_verified": True,
    },
    {
        "username": "ola.fan",
        "email": "aleksandra.kowalczyk@example.com",
        "first_name": "Aleksandra",
        "last_name": "Kowalczyk",
        "role": Role.USER,
        "password": "kibic2024",
        "is_email_verified": False,
    },
]

#: Username of the bootstrap administrator; ``--admin-password`` applies to it.
ADMIN_USERNAME = "admin"


def _session(database: SQLAlchemy) -> Session:
    """Return the current SQLAlchemy session."""
    return cast(Session, database.session)


def _touch(summary: dict[str, dict[str, int]], table: str, created: bool) -> None:
    """Update summary counters for the given table."""
    entry = summary.setdefault(table, {"created": 0, "existing": 0})
    if created:
        entry["created"] += 1
    else:
        entry["existing"] += 1


def seed_users(
    database: SQLAlchemy,
    *,
    verbose: bool = False,
    admin_password: str | None = None,
) -> dict[str, dict[str, int]]:
    """
    Create the bootstrap administrator and sample accounts for every role.

    Existing users (matched by email) keep their password; profile fields
    and role are refreshed from the fixtures.

    :param admin_password: Password for the bootstrap administrator. When
        given it is applied on creation and also resets an existing account.
    """
    if verbose:
        LOGGER.info("Seeding users...")
    session = _session(database)
    summary: dict[str, dict[str, int]] = {}

    with session.begin():
        for fixture in USER_FIXTURES:
            email = str(fixture["email"]).strip().lower()
            user = session.execute(select(User).filter_by(email=email)).scalar_one_or_none()
            created = user is None
            is_admin = fixture["username"] == ADMIN_USERNAME
            if user is None:
                user = User(email=email, username=str(fixture["username"]))
                user.password = str(
                    admin_password if is_admin and admin_password else fixture["password"]
                )
                session.add(user)
            else:
                user.username = str(fixture["username"])
                if is_admin and admin_password:
                    user.password = admin_password
            user.first_name = str(fixture["first_name"])
            user.last_name = str(fixture["last_name"])
            user.role = fixture["role"]
            user.is_email_verified = bool(fixture["is_email_verified"])
            session.flush()
            if verbose:
                LOGGER.info("seed.user username=%s created=%s", user.username, created)
            _touch(summary, "users", created)

    return summary


def seeded_accounts(database: SQLAlchemy) -> list[tuple[str, Role]]:
    """Return ``(username, role)`` for every fixture account present in the database."""
    emails = [str(fixture["email"]).lower() for fixture in USER_FIXTURES]
    rows = _session(database).execute(
        select(User.username, User.role).where(User.email.in_(emails)).order_by(User.username)
    )
    return [(username, role) for username, role in rows]


def run_all(
    database: SQLAlchemy,
    *,
    verbose: bool = False,
    admin_password: str | None = None,
) -> dict[str, dict[str, int]]:
    """Run all seeders in the correct foreign-key order."""
    if verbose:
        LOGGER.info("Running full seed pipeline...")
    combined: dict[str, dict[str, int]] = {}
    result = seed_users(database, verbose=verbose, admin_password=admin_password)
    for table, counters in result.items():
        entry = combined.setdefault(table, {"created": 0, "existing": 0})
        entry["created"] += counters.get("created", 0)
        entry["existing"] += counters.get("existing", 0)
    return combined


__all__ = ["ADMIN_USERNAME", "USER_FIXTURES", "run_all", "seed_users", "seeded_accounts"]
