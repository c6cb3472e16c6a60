# services/auth/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from football_network.services._shared.ports import UserRecord

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Username or email as typed by the user.
    :type username: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh token issued at login/refresh.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Refresh token of the session being closed.
    :type refresh_token: str
    :param all_sessions: If True, revoke every session of the caller.
    :type all_sessions: bool
    """

    refresh_token: str
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #

TOKEN_TYPE_BEARER = "Bearer"


@dataclass(frozen=True, slots=True)
class AccessToken:
    """
    Output DTO with a freshly issued token pair.

    :param access_token: Signed bearer token.
    :type access_token: str
    :param expires_at: Absolute access-token expiry (aware UTC).
    :type expires_at: datetime
    :param refresh_token: Opaque refresh token (rotated on every refresh).
    :type refresh_token: str
    :param token_type: Always ``"Bearer"``.
    :type token_type: str
    :param expires_in: Access-token lifetime in seconds.
    :type expires_in: int
    """

    access_token: str
    expires_at: datetime
    refresh_token: str
    token_type: str = TOKEN_TYPE_BEARER
    expires_in: int = 0


@dataclass(frozen=True, slots=True)
class LoginOut:
    """
    Output DTO for a successful login.

    :param tokens: Issued token pair.
    :type tokens: AccessToken
    :param user: Authenticated user snapshot.
    :type user: UserRecord
    """

    tokens: AccessToken
    user: UserRecord


# ------------------------ Config DTO -------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime (negative values issue
        already-expired tokens, useful in tests).
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta
    refresh_expires: timedelta

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AuthTokenConfig:
        """Build from a Flask config mapping (``JWT_*_TOKEN_EXPIRES``)."""
        return cls(
            access_expires=config.get("JWT_ACCESS_TOKEN_EXPIRES", timedelta(minutes=60)),
            refresh_expires=config.get("JWT_REFRESH_TOKEN_EXPIRES", timedelta(days=7)),
        )
