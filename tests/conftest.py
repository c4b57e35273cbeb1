import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from identity.application.factories import build_invitation_service, build_session_store
from identity.domain.entities.organization import Organization
from identity.domain.entities.profile import Profile
from identity.domain.exception import NotAuthenticated
from identity.domain.value_objects.role import Role
from identity.infrastructure.adapters.ip_lookup_client import StaticIpLookup
from identity.infrastructure.adapters.memory_identity_provider import InMemoryIdentityProvider
from identity.infrastructure.persistence.memory_store import InMemoryIdentityDataStore
from shared.config import Settings

PASSWORD = "correct-horse-battery"
CLIENT_IP = "203.0.113.7"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeSleep:
    """Records requested delays and only yields to the loop."""

    def __init__(self):
        self.calls = []

    async def __call__(self, delay):
        self.calls.append(delay)
        await asyncio.sleep(0)


class InProcessInvitationGateway:
    """Invitation gateway that calls the service directly, as the HTTP endpoint does."""

    def __init__(self, service, provider):
        self._service = service
        self._provider = provider

    async def accept_invitation(self, code, access_token):
        identity = await self._provider.get_user(access_token)
        if identity is None:
            raise NotAuthenticated()
        return await self._service.accept(code, identity)


@pytest.fixture
def settings():
    return Settings(environment="test", json_logs=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def data_store():
    return InMemoryIdentityDataStore()


@pytest.fixture
def provider(clock):
    return InMemoryIdentityProvider(clock=clock)


@pytest.fixture
async def organization(data_store):
    return await data_store.organizations.add(Organization(id="org-1", name="Acme Risk"))


@pytest.fixture
def invitation_service(settings, data_store, clock):
    return build_invitation_service(settings, data_store, clock=clock)


@pytest.fixture
def gateway(invitation_service, provider):
    return InProcessInvitationGateway(invitation_service, provider)


@pytest.fixture
async def store(settings, provider, data_store, gateway, fake_sleep, clock):
    session_store = build_session_store(
        settings,
        provider,
        data_store,
        gateway,
        StaticIpLookup(CLIENT_IP),
        sleep=fake_sleep,
        clock=clock,
    )
    await session_store.start()
    await session_store.wait_until_settled()
    yield session_store
    await session_store.close()


async def seed_member(
    provider,
    data_store,
    email,
    *,
    role=Role.USER,
    organization_id="org-1",
    password=PASSWORD,
    with_profile=True,
    **profile_fields,
):
    """Create an account in the provider and, optionally, its profile."""
    identity = provider.create_account(email, password, metadata={"full_name": email.split("@")[0].title()})
    if with_profile:
        await data_store.profiles.add(
            Profile(
                id=str(uuid4()),
                identity_id=identity.id,
                email=email,
                role=role,
                organization_id=organization_id,
                **profile_fields,
            )
        )
    return identity


@pytest.fixture
def seed(provider, data_store):
    async def _seed(email, **kwargs):
        return await seed_member(provider, data_store, email, **kwargs)

    return _seed
