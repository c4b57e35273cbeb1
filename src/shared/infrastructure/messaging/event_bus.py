"""
Domain Event Bus
In-memory event bus for publishing and subscribing to domain events
"""
from __future__ import annotations

from collections import defaultdict
from typing import Awaitable, Callable

from shared.domain.domain_event import DomainEvent
from shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """
    In-memory event bus for domain event publication and subscription.

    Handlers subscribe to an event class name and are awaited in
    subscription order. A failing handler is logged and skipped; the
    remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """
        Subscribe a handler to an event type.

        Args:
            event_type: Event class name, e.g. "AuthStateChanged"
            handler: Async callable that accepts the event

        Returns:
            A callable that removes the subscription
        """
        self._handlers[event_type].append(handler)
        logger.debug("Handler subscribed", event_type=event_type, handler=_name_of(handler))

        def _unsubscribe() -> None:
            self.unsubscribe(event_type, handler)

        return _unsubscribe

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)
            logger.debug("Handler unsubscribed", event_type=event_type, handler=_name_of(handler))

    async def publish(self, event: DomainEvent) -> None:
        """
        Publish a domain event to all subscribed handlers.

        Args:
            event: Domain event to publish
        """
        event_type = event.__class__.__name__
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("No handlers for event", event_type=event_type, event_id=str(event.event_id))
            return

        logger.debug(
            "Publishing event",
            event_type=event_type,
            event_id=str(event.event_id),
            handler_count=len(handlers),
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    handler=_name_of(handler),
                    event_type=event_type,
                    event_id=str(event.event_id),
                    error=str(e),
                )
                # Continue processing other handlers even if one fails

    def clear_handlers(self, event_type: str | None = None) -> None:
        if event_type:
            self._handlers[event_type].clear()
        else:
            self._handlers.clear()


def _name_of(handler: Callable) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
