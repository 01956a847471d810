from tortoise import fields, models
import uuid


class ProcessedEvent(models.Model):
    """
    Table used for Idempotency in Consumers. Stores the key of an OutboxEvent
    to ensure it's delivered only once by any consumer.
    """
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    event_key = fields.CharField(max_length=128, unique=True)
    entity_type = fields.CharField(max_length=50, null=True)
    entity_id = fields.CharField(max_length=128, null=True)
    processed_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "processed_events"
