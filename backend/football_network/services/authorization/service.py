"""
AuthorizationService
====================

Imperative role-hierarchy checks over an authenticated :class:`Principal`.

The comparison itself lives in
:func:`football_network.services._shared.policies.common.meets_minimum` and
is shared with the declarative handler in :mod:`.requirements`.
"""

from __future__ import annotations

import logging

from football_network.models.role import Role, highest_role
from football_network.services._shared.base import BaseService
from football_network.services._shared.dto import Principal
from football_network.services._shared.errors import AuthorizationError
from football_network.services._shared.policies.common import is_owner, meets_minimum

logger = logging.getLogger(__name__)


class AuthorizationService(BaseService):
    """Role-hierarchy and resource-ownership checks (fail closed)."""

    def get_role(self, principal: Principal | None) -> Role | None:
        """Highest parseable role of ``principal``; ``None`` when absent or unparseable."""
        if principal is None:
            return None
        return highest_role(principal.roles)

    def get_user_id(self, principal: Principal | None) -> int | None:
        return principal.user_id if principal is not None else None

    def has_role(self, principal: Principal | None, minimum: Role) -> bool:
        """
        Return ``True`` when ``principal`` ranks at least ``minimum``.

        Unauthenticated principals, missing roles and unparseable role claims
        all yield ``False``.
        """
        role = self.get_role(principal)
        if role is None and principal is not None:
            logger.debug("authz.role_unparseable roles=%s", principal.roles)
        return meets_minimum(role, minimum)

    def can_access_resource(
        self,
        principal: Principal | None,
        owner_id: int | str | None,
        minimum_role_for_bypass: Role = Role.MODERATOR,
    ) -> bool:
        """
        Allow self-access, or access by anyone ranking at least the bypass role.

        :param principal: Caller.
        :param owner_id: Owner of the resource.
        :param minimum_role_for_bypass: Role allowed to access others' data.
        """
        if principal is None:
            return False
        if is_owner(actor_id=principal.user_id, owner_id=owner_id):
            return True
        return self.has_role(principal, minimum_role_for_bypass)

    # ------------------------------ guards -------------------------------

    def ensure_role(self, principal: Principal | None, minimum: Role) -> None:
        """:raises AuthorizationError: When :meth:`has_role` is ``False``."""
        if not self.has_role(principal, minimum):
            raise AuthorizationError(f"Requires role {minimum.value} or higher.")

    def ensure_resource_access(
        self,
        principal: Principal | None,
        owner_id: int | str | None,
        minimum_role_for_bypass: Role = Role.MODERATOR,
    ) -> None:
        """:raises AuthorizationError: When :meth:`can_access_resource` is ``False``."""
        if not self.can_access_resource(principal, owner_id, minimum_role_for_bypass):
            raise AuthorizationError("Cannot access another user's resource.")
