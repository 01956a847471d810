from dataclasses import dataclass
from typing import Any, Optional

from league_service.core.config import DEFAULT_STARTING_RATING
from league_service.models.player_rating import PlayerLeagueRating


@dataclass(frozen=True)
class RatingBootstrapResult:
    """
    Outcome of the best-effort rating initialization that follows a membership
    becoming ACTIVE. A failure here is soft: the membership still commits.
    """
    succeeded: bool
    rating: Optional[PlayerLeagueRating] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, rating: PlayerLeagueRating) -> "RatingBootstrapResult":
        return cls(succeeded=True, rating=rating)

    @classmethod
    def soft_failure(cls, error: Exception) -> "RatingBootstrapResult":
        return cls(succeeded=False, error=str(error) or error.__class__.__name__)


async def initialize_rating(conn: Any, player_id: str, league_id: str) -> PlayerLeagueRating:
    """Creates the starting rating for (player, league); an existing rating is kept."""
    existing = await PlayerLeagueRating.get_or_none(player_id=player_id, league_id=league_id).using_db(conn)
    if existing:
        return existing
    return await PlayerLeagueRating.create(
        player_id=player_id,
        league_id=league_id,
        rating_system="DEFAULT",
        current_rating=DEFAULT_STARTING_RATING,
        initial_rating=DEFAULT_STARTING_RATING,
        rating_data={},
        using_db=conn,
    )
