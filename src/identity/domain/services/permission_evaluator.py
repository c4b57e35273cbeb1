"""
Permission Evaluator
Static role -> permission matrix and the fail-closed checks consumers call.
"""
from __future__ import annotations

from typing import Final, Mapping, Optional

from identity.domain.entities.profile import Profile
from identity.domain.value_objects.permission import Permission as P
from identity.domain.value_objects.role import ROLE_ORDER, Role, RoleListLike


def _grants_for(role: Role) -> frozenset[P]:
    match role:
        case Role.USER:
            return frozenset({
                P.ASSETS_READ,
                P.INCIDENTS_READ,
                P.RISKS_READ,
                P.PERSONNEL_READ,
                P.TRAVEL_CREATE,
                P.TRAVEL_READ,
                P.MITIGATIONS_READ,
            })
        case Role.MANAGER:
            return _grants_for(Role.USER) | {
                P.ASSETS_UPDATE,
                P.INCIDENTS_CREATE,
                P.INCIDENTS_UPDATE,
                P.RISKS_CREATE,
                P.RISKS_UPDATE,
                P.PERSONNEL_UPDATE,
                P.TRAVEL_UPDATE,
                P.MITIGATIONS_CREATE,
            }
        case Role.ADMIN:
            return _grants_for(Role.MANAGER) | {
                P.USERS_CREATE,
                P.USERS_READ,
                P.USERS_UPDATE,
                P.ASSETS_CREATE,
                P.ASSETS_DELETE,
                P.INCIDENTS_DELETE,
                P.RISKS_DELETE,
                P.PERSONNEL_CREATE,
                P.PERSONNEL_DELETE,
                P.TRAVEL_DELETE,
                P.MITIGATIONS_UPDATE,
                P.MITIGATIONS_DELETE,
                P.AUDIT_READ,
                P.ORGANIZATIONS_READ,
            }
        case Role.SUPER_ADMIN:
            return _grants_for(Role.ADMIN) | {
                P.USERS_DELETE,
                P.ORGANIZATIONS_CREATE,
                P.ORGANIZATIONS_UPDATE,
                P.ORGANIZATIONS_DELETE,
                P.ROLES_ASSIGN,
                P.ROLES_REVOKE,
                P.SYSTEM_CONFIGURE,
            }


def _build_table() -> Mapping[Role, frozenset[P]]:
    table = {role: _grants_for(role) for role in Role}
    missing = [role for role in Role if not table.get(role)]
    if missing:
        raise RuntimeError(f"Roles without permission grants: {missing}")
    # Every role includes the grants of the role below it.
    for higher, lower in zip(ROLE_ORDER, ROLE_ORDER[1:]):
        if not table[lower] <= table[higher]:
            raise RuntimeError(f"{higher.value} must include every permission of {lower.value}")
    return table


ROLE_PERMISSIONS: Final[Mapping[Role, frozenset[P]]] = _build_table()


def permissions_for(role: Role) -> frozenset[P]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(profile: Optional[Profile], permission: object) -> bool:
    """
    True iff a profile is present and its role grants ``permission``.

    Unknown permission strings, unknown roles and a missing profile all
    yield False. Never raises.
    """
    if profile is None:
        return False
    parsed = P.parse(permission)
    if parsed is None:
        return False
    role = Role.parse(profile.role)
    if role is None:
        return False
    return parsed in ROLE_PERMISSIONS[role]


def has_role(profile: Optional[Profile], roles: RoleListLike) -> bool:
    """True iff the profile's role is ``roles`` or one of ``roles``."""
    if profile is None:
        return False
    role = Role.parse(profile.role)
    if role is None:
        return False
    candidates = [roles] if isinstance(roles, (str, Role)) else list(roles)
    return any(Role.parse(candidate) == role for candidate in candidates)
