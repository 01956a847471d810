from tortoise import fields, models
import uuid


class ActivityLog(models.Model):
    """Append-only audit trail written in the same transaction as the change it records."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    entity_type = fields.CharField(max_length=50)
    entity_id = fields.CharField(max_length=128)
    event_type = fields.CharField(max_length=100) # e.g., 'LEAGUE_MEMBER_APPROVED'
    action = fields.CharField(max_length=50) # create / update / delete
    user_id = fields.CharField(max_length=20, null=True)
    guild_id = fields.CharField(max_length=20, null=True)
    metadata = fields.JSONField(null=True)
    timestamp = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "activity_logs"
        indexes = [
            ("entity_type", "entity_id"),
            ("event_type", "timestamp"),
        ]
