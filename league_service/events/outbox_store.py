"""
Reads and status transitions for the outbox table.

The dispatcher is the only writer after creation. Every transition is a
conditional UPDATE on the status the caller observed, so two processes racing
on the same row cannot both win.
"""
import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from league_service.core.clock import utcnow
from league_service.core.exceptions import InvalidOutboxStatusError, OutboxEventNotFoundError
from league_service.models.outbox import OutboxEvent, OutboxStatus, TERMINAL_OUTBOX_STATUSES

log = logging.getLogger("outbox_store")

ALLOWED_TRANSITIONS = {
    OutboxStatus.PENDING: {OutboxStatus.PROCESSING},
    OutboxStatus.PROCESSING: {OutboxStatus.COMPLETED, OutboxStatus.PENDING, OutboxStatus.FAILED},
    OutboxStatus.COMPLETED: set(),
    OutboxStatus.FAILED: set(),
}


def validate_transition(event_id, current: OutboxStatus, requested: OutboxStatus) -> None:
    """Raises InvalidOutboxStatusError unless current -> requested is allowed."""
    if current in TERMINAL_OUTBOX_STATUSES:
        raise InvalidOutboxStatusError(
            event_id, current, requested,
            reason=f"Outbox event {event_id} is in terminal state {current.value}",
        )
    if requested == current:
        return
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidOutboxStatusError(event_id, current, requested)


async def find_pending_events(source_type: Optional[str] = None, limit: int = 10) -> List[OutboxEvent]:
    """PENDING events, oldest first."""
    query = OutboxEvent.filter(status=OutboxStatus.PENDING)
    if source_type:
        query = query.filter(source_type=source_type)
    return await query.order_by("created_at").limit(limit)


async def find_by_source(source_type: str, source_id: str) -> List[OutboxEvent]:
    return await OutboxEvent.filter(source_type=source_type, source_id=str(source_id)).order_by("created_at")


async def get_event(event_id: UUID) -> OutboxEvent:
    event = await OutboxEvent.get_or_none(id=event_id)
    if not event:
        raise OutboxEventNotFoundError(str(event_id))
    return event


async def claim_event(event_id: UUID) -> bool:
    """
    Atomically moves a PENDING event to PROCESSING.
    Returns False when another dispatcher already claimed it.
    """
    updated = await OutboxEvent.filter(id=event_id, status=OutboxStatus.PENDING).update(
        status=OutboxStatus.PROCESSING,
        updated_at=utcnow(),
    )
    return updated == 1


async def update_event_status(
    event_id: UUID,
    status: OutboxStatus,
    error_message: Optional[str] = None,
) -> OutboxEvent:
    """
    Applies a validated status transition.

    PROCESSING -> PENDING/FAILED counts as a failed attempt (retry_count + 1,
    error_message recorded). -> COMPLETED stamps processed_at.
    """
    event = await get_event(event_id)
    validate_transition(event_id, event.status, status)

    now = utcnow()
    changes = {"status": status, "updated_at": now}
    if status == OutboxStatus.COMPLETED:
        changes["processed_at"] = now
    if event.status == OutboxStatus.PROCESSING and status in (OutboxStatus.PENDING, OutboxStatus.FAILED):
        changes["retry_count"] = event.retry_count + 1
        changes["error_message"] = error_message
    elif error_message is not None:
        changes["error_message"] = error_message

    updated = await OutboxEvent.filter(id=event_id, status=event.status).update(**changes)
    if updated != 1:
        raise InvalidOutboxStatusError(
            event_id, event.status, status,
            reason=f"Outbox event {event_id} changed status concurrently",
        )
    return await get_event(event_id)


async def release_stale_claims(older_than_seconds: int) -> int:
    """
    Returns PROCESSING events whose claim is older than the threshold to PENDING.
    Those were claimed by a process that stopped mid-batch; the attempt is not counted.
    """
    cutoff = utcnow() - timedelta(seconds=older_than_seconds)
    released = await OutboxEvent.filter(status=OutboxStatus.PROCESSING, updated_at__lt=cutoff).update(
        status=OutboxStatus.PENDING,
        updated_at=utcnow(),
    )
    if released:
        log.warning(f"Released {released} stale outbox claim(s) older than {older_than_seconds}s")
    return released
