import logging
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

from league_service.consumers.membership_consumer import handle_member_event, log_member_event
from league_service.core.exceptions import UnknownEventTypeError
from league_service.events.event_types import DEPRECATED_EVENT_TYPES, MEMBERSHIP_EVENT_TYPES, OutboxEventType
from league_service.models.outbox import OutboxEvent

log = logging.getLogger("event_router")

EventHandler = Callable[[Dict[str, Any], UUID], Awaitable[None]]


class OutboxEventRouter:
    """
    Routes an OutboxEvent to the handler registered for its type.

    Retired types are acknowledged as no-ops. Anything else without a handler
    raises UnknownEventTypeError so the event ends up FAILED, not COMPLETED.
    """

    def __init__(self, handlers: Optional[Dict[OutboxEventType, EventHandler]] = None):
        self._handlers: Dict[OutboxEventType, EventHandler] = dict(handlers or {})

    def register(self, event_type: OutboxEventType, handler: EventHandler) -> None:
        self._handlers[event_type] = handler

    def missing_handlers(self):
        """Live event types that have no handler registered."""
        return {t for t in OutboxEventType if t not in DEPRECATED_EVENT_TYPES and t not in self._handlers}

    async def dispatch(self, event: OutboxEvent) -> None:
        try:
            event_type = OutboxEventType(event.event_type)
        except ValueError:
            raise UnknownEventTypeError(event.event_type) from None

        if event_type in DEPRECATED_EVENT_TYPES:
            log.info(f"Skipping deprecated event type {event_type.value} (ID: {event.id})")
            return

        handler = self._handlers.get(event_type)
        if handler is None:
            raise UnknownEventTypeError(event_type.value)

        log.debug(f"Router DISPATCHING: {event_type.value} (ID: {str(event.id)[:8]}...)")
        await handler(event.payload, event.id)


def build_default_router(publish=log_member_event) -> OutboxEventRouter:
    """Router wired for every live event type; refuses to build with a gap."""
    router = OutboxEventRouter({
        event_type: partial(handle_member_event, event_type, publish=publish)
        for event_type in MEMBERSHIP_EVENT_TYPES
    })
    missing = router.missing_handlers()
    if missing:
        raise RuntimeError(f"No handler registered for event types: {sorted(t.value for t in missing)}")
    return router
