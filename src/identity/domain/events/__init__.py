"""Identity Domain Events"""
from identity.domain.events.auth_events import AuthStateChanged, SessionChanged, SessionEventType

__all__ = [
    "AuthStateChanged",
    "SessionChanged",
    "SessionEventType",
]
