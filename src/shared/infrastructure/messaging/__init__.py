"""
Shared Messaging Infrastructure
In-process event bus
"""
from shared.infrastructure.messaging.event_bus import EventBus

__all__ = ["EventBus"]
