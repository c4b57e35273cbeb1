import asyncio

from identity.application.services.audit_emitter import AuditContext, AuditEmitter
from identity.domain.entities.audit_log import AuditAction, AuditResource
from identity.infrastructure.adapters.ip_lookup_client import StaticIpLookup
from identity.infrastructure.persistence.memory_store import InMemoryAuditLogRepository


class FailingIpLookup:
    async def lookup(self):
        raise ConnectionError("lookup service down")


class SlowIpLookup:
    def __init__(self):
        self.release = asyncio.Event()

    async def lookup(self):
        await self.release.wait()
        return "198.51.100.4"


class BrokenAuditLogs:
    async def add(self, entry):
        raise RuntimeError("insert failed")


async def test_no_organization_is_a_silent_noop():
    logs = InMemoryAuditLogRepository()
    emitter = AuditEmitter(logs, StaticIpLookup("203.0.113.7"), user_agent="tests")

    assert await emitter.record(AuditAction.SIGNUP, user_id="id-1") is None
    emitter.log_auth(AuditAction.SIGNUP, user_id="id-1")
    await emitter.drain()
    assert logs.entries == []


async def test_ip_lookup_failure_records_entry_without_ip():
    logs = InMemoryAuditLogRepository()
    emitter = AuditEmitter(logs, FailingIpLookup(), user_agent="tests")

    entry = await emitter.record(AuditAction.SIGNED_IN, user_id="id-1", organization_id="org-1")
    assert entry is not None
    assert entry.ip_address is None
    assert entry.user_agent == "tests"
    assert logs.entries == [entry]


async def test_repository_failure_never_propagates():
    emitter = AuditEmitter(BrokenAuditLogs(), StaticIpLookup(), user_agent="tests")
    assert await emitter.record(AuditAction.LOGOUT, organization_id="org-1") is None

    emitter.log_auth(AuditAction.LOGOUT, organization_id="org-1")
    await emitter.drain()


async def test_emit_does_not_wait_for_the_write():
    logs = InMemoryAuditLogRepository()
    ip_lookup = SlowIpLookup()
    emitter = AuditEmitter(logs, ip_lookup, user_agent="tests")

    emitter.log_organization(AuditAction.ORGANIZATION_UPDATED, "org-1", {"field": "name"})
    assert logs.entries == []

    ip_lookup.release.set()
    await emitter.drain()
    entry = logs.entries[0]
    assert entry.resource_type == AuditResource.ORGANIZATION
    assert entry.resource_id == "org-1"
    assert entry.ip_address == "198.51.100.4"
    assert entry.details == {"field": "name"}


async def test_ambient_context_fills_missing_ids():
    logs = InMemoryAuditLogRepository()
    emitter = AuditEmitter(
        logs,
        StaticIpLookup(),
        user_agent="tests",
        context=lambda: AuditContext(user_id="id-9", organization_id="org-9"),
    )

    emitter.log_user(AuditAction.USER_PROFILE_UPDATED, "id-3")
    await emitter.drain()
    entry = logs.entries[0]
    assert entry.organization_id == "org-9"
    assert entry.user_id == "id-9"
    assert entry.resource_type == AuditResource.USER
    assert entry.resource_id == "id-3"


async def test_find_by_organization_is_newest_first_and_filtered():
    logs = InMemoryAuditLogRepository()
    emitter = AuditEmitter(logs, StaticIpLookup(), user_agent="tests")
    for action in (AuditAction.SIGNED_IN, AuditAction.LOGOUT, AuditAction.SIGNED_IN):
        await emitter.record(action, organization_id="org-1")
    await emitter.record(AuditAction.SIGNED_IN, organization_id="org-2")

    entries = await logs.find_by_organization("org-1")
    assert [e.action for e in entries] == ["signed_in", "logout", "signed_in"]
    assert entries[0] is logs.entries[2]
    assert len(await logs.find_by_organization("org-1", action="signed_in")) == 2
    assert len(await logs.find_by_organization("org-1", limit=1)) == 1
