from typing import Dict, Any, Union
from league_service.models.outbox import OutboxEvent, OutboxStatus
from league_service.events.event_types import OutboxEventType


async def append_outbox_event(
    conn: Any,
    source_type: str,
    source_id: Any,
    event_type: Union[OutboxEventType, str],
    payload: Dict[str, Any],
) -> OutboxEvent:
    """
    Creates a new Outbox event record using the provided database connection (transaction).

    CRITICAL: Passing 'conn' ensures the event is created atomically with the business data.
    Nothing is dispatched here; the dispatcher picks the row up after commit.
    """
    if isinstance(event_type, OutboxEventType):
        event_type = event_type.value

    return await OutboxEvent.create(
        source_type=source_type,
        source_id=str(source_id),
        event_type=event_type,
        payload=payload,
        status=OutboxStatus.PENDING,
        retry_count=0,
        using_db=conn,
    )
