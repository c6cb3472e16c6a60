"""Role hierarchy shared by every authorization call site."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from types import MappingProxyType


class Role(str, Enum):
    """Fixed set of user roles, ordered by privilege.

    Values are the wire names carried in token claims (``"User"``,
    ``"Moderator"``, ``"Administrator"``, ``"SuperAdmin"``).
    """

    USER = "User"
    MODERATOR = "Moderator"
    ADMINISTRATOR = "Administrator"
    SUPER_ADMIN = "SuperAdmin"

    @property
    def rank(self) -> int:
        """Position of the role in :data:`ROLE_RANK`."""
        return ROLE_RANK[self]

    @classmethod
    def parse(cls, value: object) -> Role | None:
        """Parse a claim value into a role, case-insensitively.

        :param value: Raw claim value (``"Administrator"``, ``"administrator"``,
            an existing :class:`Role`, ...).
        :returns: The matching role, or ``None`` when unparseable.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        needle = value.strip().lower()
        for role in cls:
            if needle in (role.value.lower(), role.name.lower()):
                return role
        return None


#: Single source of truth for role comparison.
ROLE_RANK: Mapping[Role, int] = MappingProxyType(
    {
        Role.USER: 1,
        Role.MODERATOR: 2,
        Role.ADMINISTRATOR: 3,
        Role.SUPER_ADMIN: 4,
    }
)


def highest_role(values: Iterable[object]) -> Role | None:
    """Return the highest-ranked parseable role among ``values``.

    Unparseable entries are ignored; ``None`` when nothing parses.
    """
    parsed = [role for role in (Role.parse(v) for v in values) if role is not None]
    if not parsed:
        return None
    return max(parsed, key=ROLE_RANK.__getitem__)


def hierarchy() -> list[dict[str, object]]:
    """Project the hierarchy for clients, lowest rank first."""
    return [
        {"name": role.value, "rank": rank}
        for role, rank in sorted(ROLE_RANK.items(), key=lambda item: item[1])
    ]
