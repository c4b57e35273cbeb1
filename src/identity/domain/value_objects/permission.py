"""
Permission Value Object
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


class Permission(str, Enum):
    """
    Permission strings for RBAC.

    Format: 'resource.action' (e.g. 'incidents.create'), plus the
    administrative grants roles.assign / roles.revoke / audit.read /
    system.configure.
    """

    USERS_CREATE = "users.create"
    USERS_READ = "users.read"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"

    ASSETS_CREATE = "assets.create"
    ASSETS_READ = "assets.read"
    ASSETS_UPDATE = "assets.update"
    ASSETS_DELETE = "assets.delete"

    INCIDENTS_CREATE = "incidents.create"
    INCIDENTS_READ = "incidents.read"
    INCIDENTS_UPDATE = "incidents.update"
    INCIDENTS_DELETE = "incidents.delete"

    RISKS_CREATE = "risks.create"
    RISKS_READ = "risks.read"
    RISKS_UPDATE = "risks.update"
    RISKS_DELETE = "risks.delete"

    PERSONNEL_CREATE = "personnel.create"
    PERSONNEL_READ = "personnel.read"
    PERSONNEL_UPDATE = "personnel.update"
    PERSONNEL_DELETE = "personnel.delete"

    TRAVEL_CREATE = "travel.create"
    TRAVEL_READ = "travel.read"
    TRAVEL_UPDATE = "travel.update"
    TRAVEL_DELETE = "travel.delete"

    ORGANIZATIONS_CREATE = "organizations.create"
    ORGANIZATIONS_READ = "organizations.read"
    ORGANIZATIONS_UPDATE = "organizations.update"
    ORGANIZATIONS_DELETE = "organizations.delete"

    MITIGATIONS_CREATE = "mitigations.create"
    MITIGATIONS_READ = "mitigations.read"
    MITIGATIONS_UPDATE = "mitigations.update"
    MITIGATIONS_DELETE = "mitigations.delete"

    ROLES_ASSIGN = "roles.assign"
    ROLES_REVOKE = "roles.revoke"
    AUDIT_READ = "audit.read"
    SYSTEM_CONFIGURE = "system.configure"

    @classmethod
    def parse(cls, value: object) -> Optional["Permission"]:
        if isinstance(value, Permission):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @property
    def resource(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(".", 1)[1]
