# comments in English; reST docstrings strict
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from football_network.models.role import Role, highest_role


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Authenticated identity embedded in an access token.

    :param user_id: Numeric user identifier (token ``sub``).
    :type user_id: int
    :param email: Email claim.
    :type email: str
    :param username: Username claim.
    :type username: str
    :param roles: Role claim values, as carried on the wire.
    :type roles: tuple[str, ...]
    """

    user_id: int
    email: str
    username: str
    roles: tuple[str, ...] = ()

    @property
    def role(self) -> Role | None:
        """Highest parseable role, ``None`` when no claim parses."""
        return highest_role(self.roles)


class TokenFailure(str, Enum):
    """Why an access token failed validation."""

    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_SUBJECT = "invalid_subject"
    INVALID_ISSUER = "invalid_issuer"
    INVALID_AUDIENCE = "invalid_audience"
    MALFORMED = "malformed"


FAILURE_MESSAGES: dict[TokenFailure, str] = {
    TokenFailure.EXPIRED: "Token expired",
    TokenFailure.INVALID_SIGNATURE: "Invalid token signature",
    TokenFailure.INVALID_SUBJECT: "Invalid user ID in token",
    TokenFailure.INVALID_ISSUER: "Invalid token issuer",
    TokenFailure.INVALID_AUDIENCE: "Invalid token audience",
    TokenFailure.MALFORMED: "Token validation failed",
}


@dataclass(frozen=True, slots=True)
class TokenValidationResult:
    """
    Discriminated success/failure outcome of access-token validation.

    Exactly one of ``principal`` / ``failure`` is set.

    :param principal: Claims extracted on success.
    :type principal: Principal | None
    :param failure: Failure kind otherwise.
    :type failure: TokenFailure | None
    :param claims: Raw decoded claims (empty on failure).
    :type claims: dict
    """

    principal: Principal | None = None
    failure: TokenFailure | None = None
    claims: dict[str, object] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.principal is not None

    @property
    def message(self) -> str | None:
        return FAILURE_MESSAGES[self.failure] if self.failure else None

    @classmethod
    def success(cls, principal: Principal, claims: dict[str, object]) -> TokenValidationResult:
        return cls(principal=principal, claims=claims)

    @classmethod
    def fail(cls, failure: TokenFailure) -> TokenValidationResult:
        return cls(failure=failure)
