from league_service.core.exceptions import LeagueNotFoundError
from league_service.models.league import League
from league_service.schemas.league_settings import LeagueSettings


async def get_league(league_id: str) -> League:
    league = await League.get_or_none(id=league_id)
    if not league:
        raise LeagueNotFoundError(league_id)
    return league


def settings_of(league: League) -> LeagueSettings:
    """Stored settings document of an already-loaded league, merged over the defaults."""
    return LeagueSettings.model_validate(league.settings or {})


async def get_settings(league_id: str) -> LeagueSettings:
    return settings_of(await get_league(league_id))
