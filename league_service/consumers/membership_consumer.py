import logging
from typing import Any, Awaitable, Callable, Dict
from uuid import UUID

from tortoise.transactions import in_transaction

from league_service.events.event_types import OutboxEventType
from league_service.models.processed_event import ProcessedEvent

log = logging.getLogger("membership_consumer")

MemberEventPublisher = Callable[[OutboxEventType, Dict[str, Any]], Awaitable[None]]


async def log_member_event(event_type: OutboxEventType, payload: Dict[str, Any]) -> None:
    """Default publisher: Notification/Analytics/External System (Simulated here)."""
    log.info(
        f"EXTERNAL NOTIFICATION: {event_type.value} member={payload.get('member_id')} "
        f"player={payload.get('player_id')} league={payload.get('league_id')} status={payload.get('status')}"
    )


async def handle_member_event(
    event_type: OutboxEventType,
    event_payload: Dict[str, Any],
    event_id: UUID,
    publish: MemberEventPublisher = log_member_event,
):
    """
    Consumer logic for every LEAGUE_MEMBER_* event.
    Delivery and the idempotency record commit together, so a redelivered
    event (at-least-once dispatch) is acknowledged without publishing twice.
    Errors propagate: the dispatcher owns retries.
    """
    event_key = str(event_id)

    # Idempotency Check
    if await ProcessedEvent.filter(event_key=event_key).exists():
        log.info(f"Idempotency: Event {event_key} already processed.")
        return

    async with in_transaction() as conn:
        await publish(event_type, event_payload)
        await ProcessedEvent.create(
            event_key=event_key,
            entity_type="league_member",
            entity_id=event_payload.get("member_id"),
            using_db=conn,
        )
    log.info(f"Event {event_key} ({event_type.value}) marked as processed.")
