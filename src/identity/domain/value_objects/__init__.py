# src/identity/domain/value_objects/__init__.py
"""Value objects for the identity domain."""

from .permission import Permission
from .role import ROLE_ORDER, Role

__all__ = [
    'Permission',
    'ROLE_ORDER',
    'Role',
]
