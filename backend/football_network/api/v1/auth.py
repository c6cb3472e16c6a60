"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, g, request

from football_network.api.deps import (
    authenticate,
    get_auth_service,
    json_response,
    require_auth,
    timing,
)
from football_network.models.role import hierarchy
from football_network.schemas import (
    LoginResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    TokenResponseSchema,
    TokenValidationSchema,
)
from football_network.services.authorization.requirements import describe_policies

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
login_response_schema = LoginResponseSchema()
token_schema = TokenResponseSchema()
validation_schema = TokenValidationSchema()


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue an access/refresh token pair."""

    dto = login_schema.load(request.get_json(silent=True) or {})
    result = get_auth_service().login(dto)
    tokens = result.tokens
    body = login_response_schema.dump(
        {
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
            "expires_at": tokens.expires_at,
            "expires_in": tokens.expires_in,
            "token_type": tokens.token_type,
            "user": result.user,
        }
    )
    return json_response(body)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate a refresh token into a brand-new pair."""

    dto = refresh_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().refresh_token(dto.refresh_token)
    return json_response(token_schema.dump(pair))


@bp.post("/logout")
@require_auth
@timing
def logout():
    """Revoke the caller's refresh token (or every session with ``allSessions``)."""

    dto = logout_schema.load(request.get_json(silent=True) or {})
    revoked = get_auth_service().logout(dto, user_id=g.principal.user_id)
    return json_response({"revoked": revoked})


@bp.get("/validate")
@timing
def validate():
    """Validate the bearer token and echo its claims."""

    principal = authenticate()
    body = validation_schema.dump(
        {
            "valid": True,
            "user_id": principal.user_id,
            "email": principal.email,
            "username": principal.username,
            "roles": list(principal.roles),
        }
    )
    return json_response(body)


@bp.get("/roles")
@timing
def roles():
    """Publish the role hierarchy and the named policies built on it."""

    return json_response({"roles": hierarchy(), "policies": describe_policies()})
