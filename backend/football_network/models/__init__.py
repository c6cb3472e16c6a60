from football_network.models.role import ROLE_RANK, Role
from football_network.models.user import User

__all__ = ["ROLE_RANK", "Role", "User"]
