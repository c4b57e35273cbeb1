from uuid import uuid4

import pytest

from identity.domain.entities.profile import Profile
from identity.domain.services.permission_evaluator import (
    ROLE_PERMISSIONS,
    has_permission,
    has_role,
    permissions_for,
)
from identity.domain.value_objects.permission import Permission
from identity.domain.value_objects.role import ROLE_ORDER, Role


def _profile(role):
    return Profile(id=str(uuid4()), identity_id=str(uuid4()), email="p@example.test", role=role, organization_id="org-1")


@pytest.mark.parametrize("role", list(Role))
def test_has_permission_matches_table_exactly(role):
    profile = _profile(role)
    for permission in Permission:
        assert has_permission(profile, permission) == (permission in ROLE_PERMISSIONS[role])
        assert has_permission(profile, permission.value) == (permission in ROLE_PERMISSIONS[role])


def test_roles_form_inclusion_chain():
    for higher, lower in zip(ROLE_ORDER, ROLE_ORDER[1:]):
        assert permissions_for(lower) <= permissions_for(higher)
        assert permissions_for(lower) != permissions_for(higher)


def test_missing_profile_fails_closed():
    for permission in Permission:
        assert has_permission(None, permission) is False
    assert has_role(None, Role.USER) is False
    assert has_role(None, [Role.ADMIN, Role.USER]) is False


def test_manager_can_create_incidents_but_not_delete_users():
    manager = _profile(Role.MANAGER)
    assert has_permission(manager, "incidents.create") is True
    assert has_permission(manager, "users.delete") is False


def test_unknown_permission_or_role_is_denied():
    admin = _profile(Role.ADMIN)
    assert has_permission(admin, "reactors.meltdown") is False
    assert has_permission(admin, None) is False
    assert has_permission(admin, 42) is False

    stranger = _profile("auditor")
    assert has_permission(stranger, Permission.ASSETS_READ) is False
    assert has_role(stranger, "auditor") is False


def test_has_role_accepts_single_role_or_list():
    admin = _profile(Role.ADMIN)
    assert has_role(admin, "admin")
    assert has_role(admin, Role.ADMIN)
    assert has_role(admin, ["manager", "admin"])
    assert not has_role(admin, [Role.SUPER_ADMIN, Role.USER])
    assert not has_role(admin, [])


def test_named_capabilities_only_for_super_admin():
    assert has_permission(_profile(Role.SUPER_ADMIN), Permission.SYSTEM_CONFIGURE)
    assert has_permission(_profile(Role.SUPER_ADMIN), "roles.assign")
    assert not has_permission(_profile(Role.ADMIN), "roles.assign")


def test_has_permission_does_not_mutate_profile():
    profile = _profile(Role.USER)
    before = profile
    has_permission(profile, Permission.RISKS_READ)
    assert profile == before
    assert profile.role == Role.USER
