"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, validate

from football_network.services.auth.dto import LoginIn, LogoutIn, RefreshIn

from .user import UserOutSchema


class LoginSchema(Schema):
    """Input payload for authenticating a user (username or email)."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> LoginIn:
        return LoginIn(username=data["username"].strip(), password=data["password"])


class RefreshSchema(Schema):
    """Input payload exchanging a refresh token."""

    refresh_token = fields.String(
        required=True, data_key="refreshToken", validate=validate.Length(min=1)
    )

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> RefreshIn:
        return RefreshIn(refresh_token=data["refresh_token"])


class LogoutSchema(Schema):
    """Input payload closing the caller's session."""

    refresh_token = fields.String(load_default="", data_key="refreshToken")
    all_sessions = fields.Boolean(load_default=False, data_key="allSessions")

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> LogoutIn:
        return LogoutIn(refresh_token=data["refresh_token"], all_sessions=data["all_sessions"])


class TokenResponseSchema(Schema):
    """Issued token pair."""

    access_token = fields.String(required=True, data_key="accessToken")
    refresh_token = fields.String(required=True, data_key="refreshToken")
    expires_at = fields.DateTime(required=True, data_key="expiresAt")
    expires_in = fields.Integer(required=True, data_key="expiresIn")
    token_type = fields.String(required=True, data_key="tokenType")


class LoginResponseSchema(TokenResponseSchema):
    """Token pair plus the authenticated user."""

    user = fields.Nested(UserOutSchema, required=True)


class TokenValidationSchema(Schema):
    """Result of validating the caller's access token."""

    valid = fields.Boolean(required=True)
    user_id = fields.Integer(required=True, data_key="userId")
    email = fields.String(required=True)
    username = fields.String(required=True)
    roles = fields.List(fields.String(), required=True)
