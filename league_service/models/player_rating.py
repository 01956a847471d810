from tortoise import fields, models
import uuid


class PlayerLeagueRating(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    player_id = fields.CharField(max_length=64)
    league_id = fields.CharField(max_length=64)
    rating_system = fields.CharField(max_length=32, default="DEFAULT")
    current_rating = fields.FloatField()
    initial_rating = fields.FloatField()
    rating_data = fields.JSONField(default=dict)
    matches_played = fields.IntField(default=0)
    wins = fields.IntField(default=0)
    losses = fields.IntField(default=0)
    draws = fields.IntField(default=0)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "player_league_ratings"
        unique_together = (("player_id", "league_id"),)
