"""User resource schemas."""

from __future__ import annotations

from marshmallow import Schema, fields


class UserOutSchema(Schema):
    """Public representation of a user (no credential material)."""

    id = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    first_name = fields.String(data_key="firstName")
    last_name = fields.String(data_key="lastName")
    role = fields.Function(lambda user: user.role.value, data_key="role")
    roles = fields.Function(lambda user: [user.role.value], data_key="roles")
    is_active = fields.Boolean(data_key="isActive")


class RevokedSessionsSchema(Schema):
    """Outcome of revoking a user's refresh tokens."""

    user_id = fields.Integer(required=True, data_key="userId")
    revoked = fields.Integer(required=True)
