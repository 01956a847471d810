from tortoise import fields, models


class League(models.Model):
    id = fields.CharField(max_length=64, primary_key=True)
    guild_id = fields.CharField(max_length=20) # Owning Discord guild
    name = fields.CharField(max_length=255)
    # Raw settings document; merged with defaults by league_settings_service
    settings = fields.JSONField(default=dict)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "leagues"
        indexes = [
            ("guild_id",),
        ]


class GuildMember(models.Model):
    id = fields.IntField(primary_key=True)
    user_id = fields.CharField(max_length=20)
    guild_id = fields.CharField(max_length=20)
    joined_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "guild_members"
        unique_together = (("user_id", "guild_id"),)
