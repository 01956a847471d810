from tortoise import fields, models
import uuid


class Tracker(models.Model):
    """External skill-tracker profile linked to a Discord user."""
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    user_id = fields.CharField(max_length=20)
    url = fields.CharField(max_length=512)
    is_active = fields.BooleanField(default=True)
    is_deleted = fields.BooleanField(default=False)
    last_scraped_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "trackers"
        indexes = [
            ("user_id", "is_active"),
        ]


class TrackerSeason(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    tracker = fields.ForeignKeyField("models.Tracker", related_name="seasons")
    season_number = fields.IntField()
    season_name = fields.CharField(max_length=64, null=True)
    # {"playlist2v2": {"rating": 1500, "peak_rating": 1560, "tier": 17}, ...}
    playlists = fields.JSONField(default=dict)
    scraped_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "tracker_seasons"
        indexes = [
            ("tracker_id", "season_number"),
        ]
