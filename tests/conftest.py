import pytest
import pytest_asyncio

from league_service.core.db import close_db, init_db
from league_service.models.league import GuildMember, League
from league_service.models.player import Player


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory SQLite database with every model's table."""
    await init_db("sqlite://:memory:")
    yield
    await close_db()


@pytest.fixture
def league_factory():
    async def _create(league_id="league-1", guild_id="guild-1", membership=None, skill=None):
        settings = {}
        if membership is not None:
            settings["membership"] = membership
        if skill is not None:
            settings["skill"] = skill
        return await League.create(id=league_id, guild_id=guild_id, name=f"League {league_id}", settings=settings)
    return _create


@pytest.fixture
def player_factory():
    async def _create(player_id="player-1", user_id="user-1", guild_id="guild-1", in_guild=True, **fields):
        player = await Player.create(id=player_id, user_id=user_id, guild_id=guild_id, **fields)
        if in_guild:
            await GuildMember.create(user_id=user_id, guild_id=guild_id)
        return player
    return _create
