"""Role-hierarchy authorization: imperative service and declarative requirements."""

from __future__ import annotations

from .requirements import POLICIES, RoleAuthorizationHandler, RoleRequirement, policy
from .service import AuthorizationService

__all__ = [
    "POLICIES",
    "AuthorizationService",
    "RoleAuthorizationHandler",
    "RoleRequirement",
    "policy",
]
