from enum import Enum
from tortoise import fields, models
import uuid


class OutboxStatus(str, Enum):
    PENDING = "PENDING"        # Waiting to be claimed by the dispatcher
    PROCESSING = "PROCESSING"  # Claimed, handler running
    COMPLETED = "COMPLETED"    # Terminal: delivered, processed_at is set
    FAILED = "FAILED"          # Terminal: retry ceiling reached, needs manual triage


TERMINAL_OUTBOX_STATUSES = frozenset({OutboxStatus.COMPLETED, OutboxStatus.FAILED})


class OutboxEvent(models.Model):
    """
    The Outbox table stores events atomically with the database transaction.
    This is the core of the Transactional Outbox Pattern.
    Rows are never deleted; they are the audit trail of every announced change.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    source_type = fields.CharField(max_length=50) # e.g., 'league_member'
    source_id = fields.CharField(max_length=128) # ID of the entity that generated the event
    event_type = fields.CharField(max_length=100) # e.g., 'LEAGUE_MEMBER_JOINED'
    payload = fields.JSONField() # The actual event data, immutable after creation
    status = fields.CharEnumField(OutboxStatus, max_length=16, default=OutboxStatus.PENDING)
    retry_count = fields.IntField(default=0)
    error_message = fields.TextField(null=True)
    processed_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "outbox_events"
        indexes = [
            ("status", "created_at"),       # Dispatcher polling, oldest first
            ("source_type", "source_id"),   # Events for one entity
            ("source_type", "status"),
        ]
