"""Tests for role-hierarchy authorization (imperative and policy-based)."""

from __future__ import annotations

import itertools

import pytest

from football_network.models.role import ROLE_RANK, Role
from football_network.services._shared.dto import Principal
from football_network.services._shared.errors import AuthorizationError
from football_network.services.authorization import (
    POLICIES,
    AuthorizationService,
    RoleAuthorizationHandler,
    policy,
)
from football_network.services.authorization.requirements import (
    REQUIRE_ADMINISTRATOR,
    REQUIRE_USER,
    describe_policies,
)


def _principal(*roles: str, user_id: int = 10) -> Principal:
    return Principal(user_id=user_id, email=f"u{user_id}@example.com", username=f"u{user_id}", roles=roles)


@pytest.fixture()
def authz() -> AuthorizationService:
    return AuthorizationService()


@pytest.mark.parametrize(("actual", "minimum"), list(itertools.product(Role, Role)))
def test_has_role_matches_rank_table(authz, actual, minimum):
    expected = ROLE_RANK[actual] >= ROLE_RANK[minimum]
    assert authz.has_role(_principal(actual.value), minimum) is expected


class TestFailClosed:
    def test_no_principal(self, authz):
        assert authz.has_role(None, Role.USER) is False
        assert authz.get_role(None) is None
        assert authz.get_user_id(None) is None
        assert authz.can_access_resource(None, 10) is False

    @pytest.mark.parametrize("roles", [(), ("Coach",), ("",)])
    def test_unparseable_roles(self, authz, roles):
        p = _principal(*roles)
        assert authz.get_role(p) is None
        assert authz.has_role(p, Role.USER) is False

    def test_highest_of_several_claims_wins(self, authz):
        p = _principal("User", "junk", "moderator")
        assert authz.get_role(p) is Role.MODERATOR
        assert authz.has_role(p, Role.MODERATOR)


class TestResourceAccess:
    def test_self_access_needs_no_role(self, authz):
        assert authz.can_access_resource(_principal(user_id=5), 5)
        assert authz.can_access_resource(_principal("User", user_id=5), "5")

    def test_other_users_need_bypass_role(self, authz):
        assert not authz.can_access_resource(_principal("User"), 99)
        assert authz.can_access_resource(_principal("Moderator"), 99)
        assert not authz.can_access_resource(_principal("Moderator"), 99, Role.ADMINISTRATOR)
        assert authz.can_access_resource(_principal("SuperAdmin"), 99, Role.ADMINISTRATOR)

    def test_missing_owner_is_denied(self, authz):
        assert not authz.can_access_resource(_principal("User"), None)

    def test_ensure_guards_raise(self, authz):
        authz.ensure_role(_principal("Administrator"), Role.ADMINISTRATOR)
        with pytest.raises(AuthorizationError, match="Administrator"):
            authz.ensure_role(_principal("Moderator"), Role.ADMINISTRATOR)
        with pytest.raises(AuthorizationError):
            authz.ensure_resource_access(_principal("User"), 99)


class TestPolicies:
    def test_named_policies(self):
        assert {name: req.minimum_role for name, req in POLICIES.items()} == {
            "RequireUser": Role.USER,
            "RequireModerator": Role.MODERATOR,
            "RequireAdministrator": Role.ADMINISTRATOR,
            "RequireSuperAdmin": Role.SUPER_ADMIN,
        }

    def test_unknown_policy(self):
        with pytest.raises(KeyError, match="RequireCoach"):
            policy("RequireCoach")

    def test_handler_agrees_with_service(self):
        handler = RoleAuthorizationHandler()
        assert handler.handle(_principal("Administrator"), policy(REQUIRE_ADMINISTRATOR))
        assert not handler.handle(_principal("Moderator"), policy(REQUIRE_ADMINISTRATOR))
        assert not handler.handle(None, policy(REQUIRE_USER))

    def test_describe_policies(self):
        assert {"name": "RequireSuperAdmin", "minimumRole": "SuperAdmin"} in describe_policies()
        assert len(describe_policies()) == 4
