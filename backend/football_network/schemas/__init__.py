"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    TokenResponseSchema,
    TokenValidationSchema,
)
from .user import RevokedSessionsSchema, UserOutSchema

__all__ = [
    "LoginResponseSchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RevokedSessionsSchema",
    "TokenResponseSchema",
    "TokenValidationSchema",
    "UserOutSchema",
]
