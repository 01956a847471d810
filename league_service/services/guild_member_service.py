from league_service.models.league import GuildMember


async def is_guild_member(user_id: str, guild_id: str) -> bool:
    return await GuildMember.filter(user_id=user_id, guild_id=guild_id).exists()
