import structlog

from shared.infrastructure.observability.logger import bind_context, clear_context, redact_secrets


def test_credentials_are_masked():
    event = redact_secrets(
        None,
        "info",
        {"event": "Provider call", "password": "hunter2", "Access_Token": "at", "identity_id": "id-1", "secret": None},
    )
    assert event["password"] == "***"
    assert event["Access_Token"] == "***"
    assert event["identity_id"] == "id-1"
    assert event["secret"] is None


def test_bound_context_accumulates_until_cleared():
    clear_context()
    bind_context(identity_id="id-1")
    bind_context(organization_id="org-1")
    assert structlog.contextvars.get_contextvars() == {"identity_id": "id-1", "organization_id": "org-1"}
    clear_context()
    assert structlog.contextvars.get_contextvars() == {}
