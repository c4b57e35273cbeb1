"""
Organization Entity
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class AccessControlSettings:
    """Per-organization lockout policy (settings.security.accessControl)."""

    auto_lock_account: bool = True
    max_failed_attempts: Optional[int] = None
    lockout_minutes: Optional[int] = None


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    description: Optional[str] = None
    head_count: Optional[int] = None
    security_level: Optional[str] = None


@dataclass(frozen=True)
class OrganizationSummary:
    id: str
    name: str


@dataclass(frozen=True)
class Organization:
    """
    A tenant. ``settings`` is the free-form JSON document the dashboard
    stores; the typed accessors below read the parts this core uses.
    """

    id: str
    name: str
    plan_type: str = "basic"
    settings: Mapping[str, Any] = field(default_factory=dict)

    def summary(self) -> OrganizationSummary:
        return OrganizationSummary(id=self.id, name=self.name)

    @property
    def access_control(self) -> AccessControlSettings:
        raw = _section(self.settings, "security", "accessControl")
        return AccessControlSettings(
            auto_lock_account=bool(raw.get("autoLockAccount", True)),
            max_failed_attempts=_positive_int(raw.get("maxFailedAttempts")),
            lockout_minutes=_positive_int(raw.get("lockoutDuration")),
        )

    @property
    def two_factor_required(self) -> bool:
        return bool(_section(self.settings, "twoFactorAuth").get("required", False))

    @property
    def departments(self) -> list[Department]:
        raw = _section(self.settings, "departments").get("list") or []
        result: list[Department] = []
        for item in raw:
            if not isinstance(item, Mapping) or not item.get("name"):
                continue
            result.append(
                Department(
                    id=str(item.get("id") or item["name"]),
                    name=str(item["name"]),
                    description=item.get("description"),
                    head_count=_positive_int(item.get("headCount")),
                    security_level=item.get("securityLevel"),
                )
            )
        return result


def _section(settings: Mapping[str, Any], *path: str) -> Mapping[str, Any]:
    node: Any = settings
    for key in path:
        if not isinstance(node, Mapping):
            return {}
        node = node.get(key)
    return node if isinstance(node, Mapping) else {}


def _positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None
