"""
Role Value Object
"""
from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence, Union


class Role(str, Enum):
    """Organization-scoped roles, most privileged first."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"

    @classmethod
    def parse(cls, value: "RoleLike") -> Optional["Role"]:
        """
        Coerce common inputs into a Role, or None when unrecognized:
          - Role instance -> as-is
          - "super_admin", "SUPER-ADMIN", "Super Admin" -> Role.SUPER_ADMIN
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return None


# Highest privilege first; each role's grants include every role after it.
ROLE_ORDER: tuple[Role, ...] = (Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER, Role.USER)

RoleLike = Union[str, Role]
RoleListLike = Union[RoleLike, Sequence[RoleLike]]
