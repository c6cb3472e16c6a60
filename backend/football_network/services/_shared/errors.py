"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP. They serve as stable contracts between repositories, ports
and application services.

The translation to HTTP responses (RFC 7807) is handled by
``football_network/core/errors.py`` inside the request pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The request pipeline translates them to ``APIError`` subclasses.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class InvalidArgumentError(ServiceError):
    """Raised when an argument is structurally unusable (empty password, ...)."""


class InvalidCredentialsError(ServiceError):
    """Raised when a login attempt does not match an active account."""

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class AuthorizationError(ServiceError):
    """Raised when an authenticated principal lacks the required role."""


class SecurityTokenReason(str, Enum):
    """Server-side reason a refresh token was rejected."""

    NOT_FOUND = "not_found"
    REVOKED = "revoked"
    EXPIRED = "expired"
    USER_INACTIVE = "user_inactive"


class SecurityTokenError(ServiceError):
    """
    Raised when a refresh token cannot mint a new access token.

    The ``reason`` is meant for logs only; clients receive a generic
    "invalid refresh token" detail so the endpoint is not an oracle.

    :param reason: Why the token was rejected.
    :type reason: SecurityTokenReason
    """

    def __init__(self, reason: SecurityTokenReason) -> None:
        super().__init__(f"Refresh token rejected: {reason.value}")
        self.reason = reason
