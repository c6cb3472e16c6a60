"""Shared API helpers: service wiring, bearer authentication and role guards."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from football_network.core.errors import Forbidden, Unauthorized
from football_network.core.logger import ensure_request_id
from football_network.infra.sqlalchemy.user_lookup import SQLAlchemyUserLookup
from football_network.middleware.base import client_ip
from football_network.models.role import Role
from football_network.services._shared.base import ServiceContext
from football_network.services._shared.dto import Principal
from football_network.services.auth.dto import AuthTokenConfig
from football_network.services.auth.service import AuthenticationService
from football_network.services.authorization import (
    AuthorizationService,
    RoleAuthorizationHandler,
    policy,
)
from football_network.services.security.passwords import default_hasher
from football_network.services.users.service import UserAccountService

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "bearer "


# --------------------------------------------------------------------------- #
# Service wiring
# --------------------------------------------------------------------------- #


def service_context() -> ServiceContext:
    """Request-scoped context handed to every service."""

    principal = current_principal()
    return ServiceContext(
        actor_id=principal.user_id if principal is not None else None,
        request_id=ensure_request_id(),
        client_ip=client_ip(request),
        user_agent=request.user_agent.string or None,
    )


def get_auth_service() -> AuthenticationService:
    """Build the authentication service from the collaborators built in ``create_app``."""

    ext = current_app.extensions
    return AuthenticationService(
        token_codec=ext["token_codec"],
        refresh_store=ext["refresh_token_store"],
        user_lookup=ext.get("user_lookup") or SQLAlchemyUserLookup(),
        hasher=default_hasher(),
        token_cfg=AuthTokenConfig.from_mapping(current_app.config),
        ctx=service_context(),
    )


def get_authorization_service() -> AuthorizationService:
    return AuthorizationService(ctx=service_context())


def get_user_service() -> UserAccountService:
    return UserAccountService(ctx=service_context())


# --------------------------------------------------------------------------- #
# Authentication
# --------------------------------------------------------------------------- #


def current_principal() -> Principal | None:
    """Principal authenticated by :func:`require_auth` for this request."""

    return g.get("principal")


def bearer_token() -> str | None:
    """Extract the bearer token from ``Authorization``; ``None`` when absent."""

    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX) :].strip()
    return token or None


def authenticate() -> Principal:
    """
    Validate the bearer token and bind its principal to ``flask.g``.

    :raises Unauthorized: Missing token, or the validation failure message.
    """

    principal = current_principal()
    if principal is not None:
        return principal
    token = bearer_token()
    if token is None:
        raise Unauthorized()
    result = get_auth_service().validate_token(token)
    if not result.is_valid or result.principal is None:
        raise Unauthorized(result.message or "Token validation failed")
    g.principal = result.principal
    g.token_claims = result.claims
    return result.principal


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        authenticate()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


# --------------------------------------------------------------------------- #
# Authorization
# --------------------------------------------------------------------------- #


def require_role(minimum: Role) -> Callable[[F], F]:
    """Require an authenticated principal ranking at least ``minimum``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            principal = authenticate()
            if not get_authorization_service().has_role(principal, minimum):
                raise Forbidden()
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def require_policy(name: str) -> Callable[[F], F]:
    """Require the named policy (``RequireUser``, ``RequireModerator``, ...)."""

    requirement = policy(name)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            principal = authenticate()
            handler = RoleAuthorizationHandler(get_authorization_service())
            if not handler.handle(principal, requirement):
                raise Forbidden()
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def require_resource_access(
    owner_kw: str = "user_id",
    *,
    bypass_role: Role = Role.MODERATOR,
) -> Callable[[F], F]:
    """
    Allow the owner named by the ``owner_kw`` view argument, or anyone ranking
    at least ``bypass_role``.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            principal = authenticate()
            get_authorization_service().ensure_resource_access(
                principal, kwargs.get(owner_kw), bypass_role
            )
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


# --------------------------------------------------------------------------- #
# Responses
# --------------------------------------------------------------------------- #


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
