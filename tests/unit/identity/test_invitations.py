import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from identity.application.services.invitation_join_flow import InvitationJoinFlow
from identity.domain.entities.audit_log import AuditAction
from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.exception import (
    InvitationAlreadyUsed,
    InvitationEmailMismatch,
    InvitationExpired,
    InvitationInvalid,
    NotAuthenticated,
    PermissionDenied,
)
from identity.domain.value_objects.role import Role
from shared.exceptions import ConflictError, ValidationError


@pytest.fixture
async def invite(data_store, organization, clock):
    async def _invite(email="invitee@example.test", role=Role.USER, days=7, **fields):
        invitation = Invitation.issue(
            organization_id="org-1",
            invited_email=email,
            role=role,
            expires_in=timedelta(days=days),
            now=clock(),
        )
        return await data_store.invitations.add(replace(invitation, **fields))

    return _invite


def _identity(email="invitee@example.test", name=None):
    return Identity(id=f"id-{email}", email=email, metadata={"full_name": name} if name else {})


async def test_accept_creates_profile_and_audits(invitation_service, invite, data_store):
    invitation = await invite(role=Role.MANAGER)
    identity = _identity(name="In Vitee")

    summary = await invitation_service.accept(invitation.code, identity)
    assert summary.id == "org-1"
    assert summary.name == "Acme Risk"

    stored = await data_store.invitations.get_by_code(invitation.code)
    assert stored.status == InvitationStatus.ACCEPTED
    assert stored.accepted_by == identity.id

    profile = await data_store.profiles.get_by_identity_id(identity.id)
    assert profile.organization_id == "org-1"
    assert profile.role == Role.MANAGER
    assert profile.full_name == "In Vitee"

    entry = data_store.audit_logs.entries[-1]
    assert entry.action == AuditAction.INVITATION_ACCEPTED
    assert entry.resource_id == invitation.id


async def test_accept_updates_existing_profile(invitation_service, invite, seed, data_store):
    identity = await seed("invitee@example.test", organization_id=None)
    invitation = await invite(role=Role.ADMIN)

    await invitation_service.accept(invitation.code, identity)
    profile = await data_store.profiles.get_by_identity_id(identity.id)
    assert profile.organization_id == "org-1"
    assert profile.role == Role.ADMIN
    assert profile.full_name == "Invitee"


async def test_failed_profile_write_leaves_invitation_pending(
    invitation_service, invite, seed, data_store, monkeypatch
):
    identity = await seed("invitee@example.test", organization_id=None)
    invitation = await invite(role=Role.MANAGER)

    async def failing_update(profile):
        raise RuntimeError("profile store offline")

    with monkeypatch.context() as patch:
        patch.setattr(data_store.profiles, "update", failing_update)
        with pytest.raises(RuntimeError):
            await invitation_service.accept(invitation.code, identity)

    stored = await data_store.invitations.get_by_code(invitation.code)
    assert stored.status == InvitationStatus.PENDING
    assert (await data_store.profiles.get_by_identity_id(identity.id)).organization_id is None

    await invitation_service.accept(invitation.code, identity)
    profile = await data_store.profiles.get_by_identity_id(identity.id)
    assert profile.organization_id == "org-1"
    assert profile.role == Role.MANAGER
    assert (await data_store.invitations.get_by_code(invitation.code)).status == InvitationStatus.ACCEPTED


async def test_concurrent_accepts_have_exactly_one_winner(invitation_service, invite, data_store):
    invitation = await invite()
    identity = _identity()

    results = await asyncio.gather(
        invitation_service.accept(invitation.code, identity),
        invitation_service.accept(invitation.code, identity),
        return_exceptions=True,
    )
    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], InvitationAlreadyUsed)
    accepted = [e for e in data_store.audit_logs.entries if e.action == AuditAction.INVITATION_ACCEPTED]
    assert len(accepted) == 1


async def test_accept_error_cases(invitation_service, invite, clock, data_store):
    with pytest.raises(InvitationInvalid):
        await invitation_service.accept("nope", _identity())
    with pytest.raises(ValidationError):
        await invitation_service.accept("   ", _identity())

    used = await invite(email="used@example.test")
    await invitation_service.accept(used.code, _identity("used@example.test"))
    with pytest.raises(InvitationAlreadyUsed):
        await invitation_service.accept(used.code, _identity("used@example.test"))

    mismatch = await invite(email="someone@example.test")
    with pytest.raises(InvitationEmailMismatch):
        await invitation_service.accept(mismatch.code, _identity("other@example.test"))
    assert (await data_store.invitations.get_by_code(mismatch.code)).status == InvitationStatus.PENDING

    stale = await invite(email="late@example.test", days=1)
    clock.advance(days=2)
    with pytest.raises(InvitationExpired):
        await invitation_service.accept(stale.code, _identity("late@example.test"))
    assert (await data_store.invitations.get_by_code(stale.code)).status == InvitationStatus.EXPIRED
    with pytest.raises(InvitationExpired):
        await invitation_service.accept(stale.code, _identity("late@example.test"))


async def test_accept_with_missing_organization(invitation_service, data_store, clock):
    ghost = await data_store.invitations.add(
        Invitation.issue(
            organization_id="org-gone",
            invited_email="ghost@example.test",
            role=Role.USER,
            expires_in=timedelta(days=1),
            now=clock(),
        )
    )
    with pytest.raises(InvitationInvalid):
        await invitation_service.accept(ghost.code, _identity("ghost@example.test"))


async def test_join_flow_reports_each_condition(data_store, gateway, invite, clock):
    flow = InvitationJoinFlow(data_store, gateway, clock=clock)
    pending = await invite(email="pending@example.test")

    details = await flow.check_code(pending.code, "Pending@Example.test")
    assert details.organization_name == "Acme Risk"
    assert details.role == "user"

    with pytest.raises(InvitationInvalid):
        await flow.check_code("missing")
    with pytest.raises(InvitationEmailMismatch):
        await flow.check_code(pending.code, "intruder@example.test")

    accepted = await invite(email="done@example.test", status=InvitationStatus.ACCEPTED)
    with pytest.raises(InvitationAlreadyUsed):
        await flow.check_code(accepted.code)

    expired = await invite(email="old@example.test", status=InvitationStatus.EXPIRED)
    with pytest.raises(InvitationExpired):
        await flow.check_code(expired.code)


async def test_details_only_for_pending_unexpired_codes(data_store, gateway, invite, clock):
    flow = InvitationJoinFlow(data_store, gateway, clock=clock)
    pending = await invite(email="pending@example.test", days=1)
    accepted = await invite(email="done@example.test", status=InvitationStatus.ACCEPTED)

    assert (await flow.get_invitation_details(pending.code)).invited_email == "pending@example.test"
    assert await flow.get_invitation_details(accepted.code) is None
    assert await flow.get_invitation_details("missing") is None
    assert await flow.get_invitation_details("") is None

    clock.advance(days=2)
    assert await flow.get_invitation_details(pending.code) is None


async def test_join_flow_accept_requires_token(data_store, gateway):
    flow = InvitationJoinFlow(data_store, gateway)
    with pytest.raises(NotAuthenticated):
        await flow.accept("code", None)


async def test_store_invitation_checks_use_caller_email(store, seed, invite):
    await seed("member@example.test")
    invitation = await invite(email="member@example.test")

    details = await store.get_invitation_details(invitation.code)
    assert details.organization_id == "org-1"

    await store.sign_in("member@example.test", "correct-horse-battery")
    await store.wait_until_settled()
    checked = await store.check_invitation_code(invitation.code)
    assert checked.code == invitation.code

    summary = await store.join_organization(invitation.code)
    assert summary.id == "org-1"
    with pytest.raises(InvitationAlreadyUsed):
        await store.check_invitation_code(invitation.code)


async def test_join_organization_requires_session(store):
    with pytest.raises(NotAuthenticated):
        await store.join_organization("code")


async def test_create_invitation(invitation_service, seed, data_store, organization, clock):
    admin = await seed("admin@example.test", role=Role.ADMIN)

    invitation = await invitation_service.create(
        admin, organization_id="org-1", email=" New.Hire@Example.test ", role=Role.MANAGER
    )
    assert invitation.invited_email == "new.hire@example.test"
    assert invitation.status == InvitationStatus.PENDING
    assert invitation.expires_at == clock() + timedelta(days=7)
    assert invitation.invited_by == admin.id
    assert len(invitation.code) >= 32
    assert (await data_store.invitations.get_by_code(invitation.code)) == invitation
    assert data_store.audit_logs.entries[-1].action == AuditAction.INVITATION_CREATED

    with pytest.raises(ConflictError):
        await invitation_service.create(admin, organization_id="org-1", email="new.hire@example.test")

    short = await invitation_service.create(
        admin, organization_id="org-1", email="temp@example.test", expires_in_days=1
    )
    assert short.expires_at == clock() + timedelta(days=1)


async def test_create_invitation_rules(invitation_service, seed, organization):
    admin = await seed("admin@example.test", role=Role.ADMIN)
    manager = await seed("manager@example.test", role=Role.MANAGER)
    await seed("member@example.test")

    with pytest.raises(PermissionDenied):
        await invitation_service.create(manager, organization_id="org-1", email="x@example.test")
    with pytest.raises(PermissionDenied):
        await invitation_service.create(admin, organization_id="org-other", email="x@example.test")
    with pytest.raises(ValidationError):
        await invitation_service.create(admin, organization_id="org-1", email="x@example.test", role=Role.SUPER_ADMIN)
    with pytest.raises(ConflictError):
        await invitation_service.create(admin, organization_id="org-1", email="member@example.test")
