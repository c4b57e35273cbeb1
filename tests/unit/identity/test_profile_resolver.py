import asyncio
from uuid import uuid4

import pytest

from identity.application.services.profile_resolver import ProfileResolver
from identity.domain.entities.organization import Organization
from identity.domain.entities.profile import Profile
from identity.domain.exception import BackendUnavailable, ProfileNotFoundTransient
from identity.domain.value_objects.role import Role


class FlakyProfiles:
    """Reports "not found" for the first ``misses`` lookups, then the profile."""

    def __init__(self, profile, misses):
        self.profile = profile
        self.misses = misses
        self.calls = 0

    async def get_by_identity_id(self, identity_id):
        self.calls += 1
        if self.calls <= self.misses:
            return None
        return self.profile


class RecordingOrganizations:
    def __init__(self, *organizations):
        self.items = {o.id: o for o in organizations}
        self.requested = []

    async def get_by_id(self, organization_id):
        self.requested.append(organization_id)
        return self.items.get(organization_id)


class StubStore:
    def __init__(self, profiles, organizations=None):
        self.profiles = profiles
        self.organizations = organizations or RecordingOrganizations()


def _admin_profile():
    return Profile(id=str(uuid4()), identity_id="id-1", email="a@example.test", role=Role.ADMIN, organization_id="org-1")


async def test_not_found_three_times_then_admin_and_org_fetched_next(fake_sleep):
    profiles = FlakyProfiles(_admin_profile(), misses=3)
    organizations = RecordingOrganizations(Organization(id="org-1", name="Acme Risk"))
    resolver = ProfileResolver(StubStore(profiles, organizations), sleep=fake_sleep)

    profile = await resolver.resolve("id-1")
    assert profile.role == Role.ADMIN
    assert profile.organization_id == "org-1"
    assert profiles.calls == 4
    assert fake_sleep.calls == [0.5, 0.5, 0.5]

    organization = await resolver.resolve_organization(profile.organization_id)
    assert organizations.requested == ["org-1"]
    assert organization.name == "Acme Risk"


@pytest.mark.parametrize("misses", [0, 1, 9])
async def test_profile_appearing_within_bound_is_returned(fake_sleep, misses):
    profiles = FlakyProfiles(_admin_profile(), misses=misses)
    resolver = ProfileResolver(StubStore(profiles), attempts=10, sleep=fake_sleep)

    assert await resolver.resolve("id-1") is not None
    assert profiles.calls == misses + 1


@pytest.mark.parametrize("misses", [10, 25])
async def test_profile_missing_past_bound_returns_none(fake_sleep, misses):
    profiles = FlakyProfiles(_admin_profile(), misses=misses)
    resolver = ProfileResolver(StubStore(profiles), attempts=10, sleep=fake_sleep)

    assert await resolver.resolve("id-1") is None
    assert profiles.calls == 10
    assert len(fake_sleep.calls) == 9


async def test_non_not_found_error_is_not_retried(fake_sleep):
    class BrokenProfiles:
        calls = 0

        async def get_by_identity_id(self, identity_id):
            BrokenProfiles.calls += 1
            raise BackendUnavailable("connection reset")

    resolver = ProfileResolver(StubStore(BrokenProfiles()), sleep=fake_sleep)
    assert await resolver.resolve("id-1") is None
    assert BrokenProfiles.calls == 1
    assert fake_sleep.calls == []


async def test_slow_attempt_times_out_and_is_retried(fake_sleep):
    class SlowThenFast:
        calls = 0

        async def get_by_identity_id(self, identity_id):
            SlowThenFast.calls += 1
            if SlowThenFast.calls == 1:
                await asyncio.sleep(1)
            return _admin_profile()

    resolver = ProfileResolver(StubStore(SlowThenFast()), attempt_timeout=0.01, sleep=fake_sleep)
    profile = await resolver.resolve("id-1")
    assert profile is not None
    assert SlowThenFast.calls == 2


async def test_superseded_resolution_stops_scheduling_attempts(fake_sleep):
    profiles = FlakyProfiles(_admin_profile(), misses=100)
    resolver = ProfileResolver(StubStore(profiles), attempts=10, sleep=fake_sleep)
    still_current = iter([True, True, False])

    assert await resolver.resolve("id-1", should_continue=lambda: next(still_current)) is None
    assert profiles.calls == 3


async def test_fetch_raises_transient_not_found(fake_sleep):
    resolver = ProfileResolver(StubStore(FlakyProfiles(None, misses=1)), sleep=fake_sleep)
    with pytest.raises(ProfileNotFoundTransient):
        await resolver.fetch("id-1")


async def test_resolve_organization_without_id_or_on_error_is_none():
    class BrokenOrganizations:
        async def get_by_id(self, organization_id):
            raise BackendUnavailable()

    resolver = ProfileResolver(StubStore(FlakyProfiles(None, 0), BrokenOrganizations()))
    assert await resolver.resolve_organization(None) is None
    assert await resolver.resolve_organization("org-1") is None


def test_from_settings_uses_configured_policy(settings, data_store):
    resolver = ProfileResolver.from_settings(data_store, settings)
    assert resolver._attempts == 10
    assert resolver._delay == 0.5
    assert resolver._attempt_timeout == 5.0
