"""User account endpoints guarded by the role hierarchy."""

from __future__ import annotations

from flask import Blueprint, g

from football_network.api.deps import (
    get_auth_service,
    get_user_service,
    json_response,
    require_policy,
    require_resource_access,
    timing,
)
from football_network.models.role import Role
from football_network.schemas import RevokedSessionsSchema, UserOutSchema
from football_network.services.authorization.requirements import (
    REQUIRE_ADMINISTRATOR,
    REQUIRE_USER,
)

bp = Blueprint("users", __name__)

user_schema = UserOutSchema()
revoked_schema = RevokedSessionsSchema()


@bp.get("/me")
@require_policy(REQUIRE_USER)
@timing
def me():
    """Return the authenticated user's profile."""

    user = get_user_service().get(g.principal.user_id)
    return json_response(user_schema.dump(user))


@bp.get("/<int:user_id>")
@require_resource_access("user_id", bypass_role=Role.MODERATOR)
@timing
def get_user(user_id: int):
    """Return a user profile (self, or Moderator and above)."""

    user = get_user_service().get(user_id)
    return json_response(user_schema.dump(user))


@bp.post("/<int:user_id>/revoke-sessions")
@require_resource_access("user_id", bypass_role=Role.ADMINISTRATOR)
@timing
def revoke_sessions(user_id: int):
    """Revoke every refresh token of the user (self, or Administrator and above)."""

    get_user_service().get(user_id)
    count = get_auth_service().revoke_all_user_tokens(user_id)
    return json_response(revoked_schema.dump({"user_id": user_id, "revoked": count}))


@bp.post("/<int:user_id>/deactivate")
@require_policy(REQUIRE_ADMINISTRATOR)
@timing
def deactivate(user_id: int):
    """Deactivate the account and revoke all of its sessions."""

    user = get_user_service().deactivate(user_id)
    count = get_auth_service().revoke_all_user_tokens(user_id)
    body = user_schema.dump(user)
    body["revokedSessions"] = count
    return json_response(body)
