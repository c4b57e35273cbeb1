import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from identity.application.services.invitation_service import InvitationService
from identity.domain.entities.audit_log import AuditLogEntry
from identity.domain.entities.identity import Identity
from identity.domain.entities.invitation import Invitation, InvitationStatus
from identity.domain.entities.organization import Organization
from identity.domain.entities.profile import Profile
from identity.domain.exception import InvitationAlreadyUsed
from identity.domain.value_objects.role import Role
from identity.infrastructure.persistence import SqlAlchemyIdentityDataStore, create_identity_schema
from identity.infrastructure.persistence.repositories import ProfileRepository
from shared.database.engine import close_database_engine, create_database_engine, create_session_factory
from shared.exceptions import ConflictError, NotFoundError


@pytest.fixture
async def sql_store(settings, tmp_path):
    engine = await create_database_engine(settings, database_url=f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}")
    await create_identity_schema(engine)
    store = SqlAlchemyIdentityDataStore(create_session_factory(engine))
    await store.organizations.add(
        Organization(
            id="org-1",
            name="Acme Risk",
            settings={"security": {"accessControl": {"maxFailedAttempts": 3}}},
        )
    )
    yield store
    await close_database_engine(engine)


async def test_organization_settings_survive_storage(sql_store):
    org = await sql_store.organizations.get_by_id("org-1")
    assert org.name == "Acme Risk"
    assert org.access_control.max_failed_attempts == 3
    assert await sql_store.organizations.get_by_id("missing") is None


async def test_profile_round_trip_keeps_aware_datetimes(sql_store, clock):
    locked_until = clock() + timedelta(minutes=30)
    await sql_store.profiles.add(
        Profile(
            id="p-1",
            identity_id="id-1",
            email="Mixed.Case@Example.test",
            role=Role.MANAGER,
            organization_id="org-1",
            backup_codes=("h1", "h2"),
            failed_login_attempts=3,
            account_locked_until=locked_until,
        )
    )

    profile = await sql_store.profiles.get_by_identity_id("id-1")
    assert profile.email == "mixed.case@example.test"
    assert profile.role == Role.MANAGER
    assert profile.backup_codes == ("h1", "h2")
    assert profile.account_locked_until == locked_until
    assert profile.account_locked_until.tzinfo is not None
    assert profile.is_locked(clock())

    assert (await sql_store.profiles.get_by_email("MIXED.case@example.test")).identity_id == "id-1"

    updated = await sql_store.profiles.update(profile.record_successful_login(clock()))
    assert updated.failed_login_attempts == 0
    assert updated.account_locked_until is None
    assert updated.last_login == clock()


async def test_profile_constraints(sql_store):
    profile = Profile(id="p-1", identity_id="id-1", email="a@example.test")
    await sql_store.profiles.add(profile)
    with pytest.raises(ConflictError):
        await sql_store.profiles.add(replace(profile, id="p-2"))
    with pytest.raises(NotFoundError):
        await sql_store.profiles.update(replace(profile, identity_id="id-unknown"))


async def test_audit_log_query(sql_store, clock):
    for minutes, action in enumerate(["signed_in", "logout", "signed_in"]):
        await sql_store.audit_logs.add(
            AuditLogEntry(
                organization_id="org-1",
                action=action,
                user_id="id-1",
                details={"n": minutes},
                created_at=clock() + timedelta(minutes=minutes),
            )
        )

    entries = await sql_store.audit_logs.find_by_organization("org-1")
    assert [e.details["n"] for e in entries] == [2, 1, 0]
    assert len(await sql_store.audit_logs.find_by_organization("org-1", action="signed_in")) == 2
    assert await sql_store.audit_logs.find_by_organization("org-2") == []


async def test_invitation_transitions_are_conditional(sql_store, clock):
    invitation = await sql_store.invitations.add(
        Invitation.issue(
            organization_id="org-1",
            invited_email="new@example.test",
            role=Role.ADMIN,
            expires_in=timedelta(days=7),
            now=clock(),
        )
    )
    assert (await sql_store.invitations.find_pending("org-1", "NEW@example.test")).id == invitation.id

    accepted, profile = await sql_store.invitations.accept(
        invitation.code, identity=Identity(id="id-1", email="new@example.test"), accepted_at=clock()
    )
    assert accepted.status == InvitationStatus.ACCEPTED
    assert profile.organization_id == "org-1"
    assert profile.role == Role.ADMIN
    assert accepted.accepted_at == clock()
    assert accepted.expires_at == invitation.expires_at

    second = Identity(id="id-2", email="new@example.test")
    assert await sql_store.invitations.accept(invitation.code, identity=second, accepted_at=clock()) is None
    assert await sql_store.profiles.get_by_identity_id("id-2") is None
    assert await sql_store.invitations.mark_expired(invitation.code) is False
    assert await sql_store.invitations.find_pending("org-1", "new@example.test") is None
    assert (await sql_store.invitations.get_by_code(invitation.code)).accepted_by == "id-1"


async def test_concurrent_acceptance_against_database(sql_store, clock):
    service = InvitationService(sql_store, clock=clock)
    invitation = await sql_store.invitations.add(
        Invitation.issue(
            organization_id="org-1",
            invited_email="racer@example.test",
            role=Role.USER,
            expires_in=timedelta(days=7),
            now=clock(),
        )
    )
    identity = Identity(id="id-racer", email="racer@example.test")

    results = await asyncio.gather(
        service.accept(invitation.code, identity),
        service.accept(invitation.code, identity),
        return_exceptions=True,
    )
    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert any(isinstance(r, InvitationAlreadyUsed) for r in results)

    profile = await sql_store.profiles.get_by_identity_id("id-racer")
    assert profile.organization_id == "org-1"


async def test_failed_profile_write_rolls_back_acceptance(sql_store, clock, monkeypatch):
    service = InvitationService(sql_store, clock=clock)
    invitation = await sql_store.invitations.add(
        Invitation.issue(
            organization_id="org-1",
            invited_email="joiner@example.test",
            role=Role.MANAGER,
            expires_in=timedelta(days=7),
            now=clock(),
        )
    )
    identity = Identity(id="id-joiner", email="joiner@example.test")

    def broken_apply(model, entity):
        raise RuntimeError("disk full")

    with monkeypatch.context() as patch:
        patch.setattr(ProfileRepository, "_apply", staticmethod(broken_apply))
        with pytest.raises(RuntimeError):
            await service.accept(invitation.code, identity)

    stored = await sql_store.invitations.get_by_code(invitation.code)
    assert stored.status == InvitationStatus.PENDING
    assert stored.accepted_by is None
    assert await sql_store.profiles.get_by_identity_id("id-joiner") is None

    summary = await service.accept(invitation.code, identity)
    assert summary.id == "org-1"
    profile = await sql_store.profiles.get_by_identity_id("id-joiner")
    assert profile.role == Role.MANAGER
