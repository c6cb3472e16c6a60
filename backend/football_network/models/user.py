"""User model: the authentication identity behind every principal."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from football_network.core.extensions import db
from football_network.services.security.passwords import default_hasher

from .base import PKMixin, ReprMixin, TimestampMixin
from .role import ROLE_RANK, Role


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account able to log in to the network.

    Fields
    ------
    username : str
        Login handle. Unique, trimmed.
    email : str
        Contact/login email. Stored normalized (lowercase, trimmed).
    password_hash : str
        Self-describing password hash (write via ``password``).
    first_name, last_name : str
        Display names.
    role : Role
        Position in the role hierarchy.
    is_active : bool
        Inactive accounts cannot log in nor refresh tokens.
    is_email_verified : bool
        Whether the email address was confirmed.
    last_login_at : datetime | None
        Timestamp of the last successful login.
    """

    __tablename__ = "users"

    # Columns
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="user_role", native_enum=False, length=20),
        nullable=False,
        default=Role.USER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Constraints & indexes
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
        Index("ix_users_email", "email"),
        Index("ix_users_username", "username"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        self.password_hash = default_hasher().hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :returns: ``True`` if it matches; otherwise ``False``.
        """
        return default_hasher().verify(raw, self.password_hash)

    # -------------------- Behaviour --------------------
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def record_login(self, at: datetime) -> None:
        """Stamp the last successful login."""
        self.last_login_at = at

    def deactivate(self) -> None:
        self.is_active = False

    def can_perform_action(self, required: Role) -> bool:
        """Return ``True`` when the user's role ranks at least ``required``."""
        return ROLE_RANK[self.role] >= ROLE_RANK[required]

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
