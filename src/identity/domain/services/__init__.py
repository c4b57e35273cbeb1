# src/identity/domain/services/__init__.py
"""Domain services for identity management."""

from .lockout_policy import LockoutPolicy
from .permission_evaluator import ROLE_PERMISSIONS, has_permission, has_role, permissions_for

__all__ = [
    'LockoutPolicy',
    'ROLE_PERMISSIONS',
    'has_permission',
    'has_role',
    'permissions_for',
]
