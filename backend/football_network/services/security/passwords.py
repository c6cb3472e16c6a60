"""Salted, adaptive password hashing on top of :mod:`werkzeug.security`."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app, has_app_context
from werkzeug.security import check_password_hash, generate_password_hash

from football_network.services._shared.errors import InvalidArgumentError

log = logging.getLogger(__name__)

DEFAULT_METHOD = "scrypt"


@dataclass(frozen=True, slots=True)
class PasswordHasher:
    """
    One-way password hashing and verification.

    Hashes are self-describing (``method$salt$digest``), so a hash produced
    with one cost setting still verifies after the default changes.

    :param method: werkzeug method string, e.g. ``"scrypt"`` or
        ``"pbkdf2:sha256:600000"``.
    :param salt_length: Length of the random per-call salt.
    """

    method: str = DEFAULT_METHOD
    salt_length: int = 16

    def hash(self, password: str) -> str:
        """
        Hash ``password`` with a fresh random salt.

        :param password: Plain text password.
        :returns: Self-describing hash string.
        :raises InvalidArgumentError: If the password is empty or whitespace.
        """
        if not isinstance(password, str) or not password.strip():
            raise InvalidArgumentError("Password must be a non-empty string.")
        return generate_password_hash(password, method=self.method, salt_length=self.salt_length)

    def verify(self, password: str, hashed: str) -> bool:
        """
        Check ``password`` against ``hashed``.

        Comparison is delegated to werkzeug (constant time). Malformed or
        unsupported hashes are logged and reported as a mismatch.

        :param password: Candidate plain text password.
        :param hashed: Stored hash.
        :returns: ``True`` on match, otherwise ``False``.
        """
        if not isinstance(password, str) or not hashed:
            return False
        try:
            return bool(check_password_hash(hashed, password))
        except (ValueError, TypeError, LookupError) as exc:
            log.warning("password.verify.malformed_hash error=%s", type(exc).__name__)
            return False


def default_hasher() -> PasswordHasher:
    """Return a hasher configured from ``PASSWORD_HASH_METHOD`` when an app is active."""
    if has_app_context():
        return PasswordHasher(method=current_app.config.get("PASSWORD_HASH_METHOD", DEFAULT_METHOD))
    return PasswordHasher()
