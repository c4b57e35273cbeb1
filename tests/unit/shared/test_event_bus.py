from identity.domain.events.auth_events import AuthStateChanged
from shared.infrastructure.messaging.event_bus import EventBus


async def test_handlers_run_in_order_and_failures_are_isolated():
    bus = EventBus()
    seen = []

    async def first(event):
        seen.append(("first", event.state))

    async def broken(event):
        raise RuntimeError("boom")

    async def last(event):
        seen.append(("last", event.state))

    bus.subscribe("AuthStateChanged", first)
    bus.subscribe("AuthStateChanged", broken)
    bus.subscribe("AuthStateChanged", last)

    await bus.publish(AuthStateChanged(state="authenticated"))
    assert seen == [("first", "authenticated"), ("last", "authenticated")]


async def test_unsubscribe_callable_removes_handler():
    bus = EventBus()
    seen = []

    async def handler(event):
        seen.append(event.state)

    unsubscribe = bus.subscribe("AuthStateChanged", handler)
    await bus.publish(AuthStateChanged(state="a"))
    unsubscribe()
    unsubscribe()
    await bus.publish(AuthStateChanged(state="b"))
    assert seen == ["a"]


async def test_clear_handlers():
    bus = EventBus()
    seen = []

    async def handler(event):
        seen.append(event)

    bus.subscribe("AuthStateChanged", handler)
    bus.clear_handlers()
    await bus.publish(AuthStateChanged(state="x"))
    assert seen == []


def test_event_to_dict_includes_state_fields():
    event = AuthStateChanged(state="locked", identity_id="id-1", role="user")
    data = event.to_dict()
    assert data["state"] == "locked"
    assert data["identity_id"] == "id-1"
    assert data["event_type"] == "AuthStateChanged"
