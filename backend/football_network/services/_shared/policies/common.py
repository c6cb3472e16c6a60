from __future__ import annotations

from football_network.models.role import ROLE_RANK, Role


def is_owner(*, actor_id, owner_id) -> bool:
    """Return True if the actor owns the resource."""
    if actor_id is None or owner_id is None:
        return False
    return str(actor_id) == str(owner_id)


def meets_minimum(actual: Role | None, minimum: Role) -> bool:
    """Return True if ``actual`` ranks at least ``minimum`` (``None`` never does)."""
    if actual is None:
        return False
    return ROLE_RANK[actual] >= ROLE_RANK[minimum]
