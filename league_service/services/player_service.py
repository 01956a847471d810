from datetime import datetime
from typing import Any

from league_service.core.exceptions import PlayerNotFoundError
from league_service.models.player import Player


async def get_player(player_id: str, conn: Any = None) -> Player:
    player = await Player.get_or_none(id=player_id).using_db(conn)
    if not player:
        raise PlayerNotFoundError(player_id)
    return player


async def stamp_cooldown(conn: Any, player: Player, league_id: str, left_at: datetime) -> None:
    """Records when and where the player last left, inside the caller's transaction."""
    player.last_left_league_at = left_at
    player.last_left_league_id = league_id
    await player.save(update_fields=["last_left_league_at", "last_left_league_id", "updated_at"], using_db=conn)
