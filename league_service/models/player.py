from enum import Enum
from tortoise import fields, models


class PlayerStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    BANNED = "BANNED"


class Player(models.Model):
    id = fields.CharField(max_length=64, primary_key=True)
    user_id = fields.CharField(max_length=20) # Discord user id
    guild_id = fields.CharField(max_length=20)
    status = fields.CharEnumField(PlayerStatus, max_length=16, default=PlayerStatus.ACTIVE)
    # Cooldown bookkeeping, stamped when leaving a league that has a cooldown
    last_left_league_at = fields.DatetimeField(null=True)
    last_left_league_id = fields.CharField(max_length=64, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "players"
        unique_together = (("user_id", "guild_id"),)
