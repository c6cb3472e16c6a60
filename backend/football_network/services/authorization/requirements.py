"""Declarative role requirements and the handler that evaluates them.

Named policies map to a minimum role; route decorators in
:mod:`football_network.api.deps` resolve a policy name to its
:class:`RoleRequirement` and ask :class:`RoleAuthorizationHandler` for a
verdict. The handler delegates to :class:`AuthorizationService`, so both
call styles share one rank table and one comparison.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from football_network.models.role import Role
from football_network.services._shared.dto import Principal
from football_network.services.authorization.service import AuthorizationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoleRequirement:
    """
    Minimum role a principal must hold.

    :param minimum_role: Lowest acceptable role in the hierarchy.
    """

    minimum_role: Role


REQUIRE_USER = "RequireUser"
REQUIRE_MODERATOR = "RequireModerator"
REQUIRE_ADMINISTRATOR = "RequireAdministrator"
REQUIRE_SUPER_ADMIN = "RequireSuperAdmin"

POLICIES: Mapping[str, RoleRequirement] = MappingProxyType(
    {
        REQUIRE_USER: RoleRequirement(Role.USER),
        REQUIRE_MODERATOR: RoleRequirement(Role.MODERATOR),
        REQUIRE_ADMINISTRATOR: RoleRequirement(Role.ADMINISTRATOR),
        REQUIRE_SUPER_ADMIN: RoleRequirement(Role.SUPER_ADMIN),
    }
)


def policy(name: str) -> RoleRequirement:
    """
    Resolve a named policy.

    :raises KeyError: For unknown policy names (a programming error).
    """
    try:
        return POLICIES[name]
    except KeyError:
        raise KeyError(f"Unknown authorization policy: {name!r}") from None


class RoleAuthorizationHandler:
    """Evaluate :class:`RoleRequirement` instances against a principal."""

    def __init__(self, authz: AuthorizationService | None = None) -> None:
        self.authz = authz or AuthorizationService()

    def handle(self, principal: Principal | None, requirement: RoleRequirement) -> bool:
        """Return ``True`` when ``principal`` satisfies ``requirement``."""
        allowed = self.authz.has_role(principal, requirement.minimum_role)
        if not allowed:
            logger.info(
                "authz.denied required=%s user_id=%s",
                requirement.minimum_role.value,
                principal.user_id if principal is not None else None,
            )
        return allowed


def describe_policies() -> list[dict[str, str]]:
    """Project named policies for clients."""
    return [{"name": name, "minimumRole": req.minimum_role.value} for name, req in POLICIES.items()]
