import logging
from types import ModuleType
from typing import Any, Union

from league_service.core.exceptions import LeagueJoinValidationError
from league_service.schemas.league_settings import JoinMethod, LeagueSettings
from league_service.services import (
    guild_member_service,
    league_member_store,
    league_settings_service,
    player_service,
    tracker_service,
)
from league_service.services.capacity_validator import validate_capacity
from league_service.services.cooldown_validator import validate_cooldown
from league_service.services.league_settings_service import settings_of
from league_service.services.player_validator import validate_player_status
from league_service.services.registration_window_validator import validate_registration_window
from league_service.services.skill_validator import validate_skill_requirements

log = logging.getLogger("join_validation")

RESTRICTED_JOIN_METHODS = frozenset({JoinMethod.INVITE_ONLY, JoinMethod.APPLICATION})

Collaborator = Union[ModuleType, Any]


class LeagueJoinValidator:
    """
    Decides whether a player may join (or rejoin) a league.

    Rules run in a fixed order and the first failing one raises
    LeagueJoinValidationError with a user-facing reason. The registration window
    and capacity are league-level gates and always run before the cross-league
    exclusivity check.

    Collaborators are duck-typed; the defaults are the ORM-backed service modules.
      league_settings: get_league(league_id)
      players:         get_player(player_id)
      guild_members:   is_guild_member(user_id, guild_id)
      trackers:        find_best_tracker_for_user(user_id)
      members:         count_active_members(league_id), count_active_memberships(player_id, exclude_league_id)
    """

    def __init__(
        self,
        league_settings: Collaborator = league_settings_service,
        players: Collaborator = player_service,
        guild_members: Collaborator = guild_member_service,
        trackers: Collaborator = tracker_service,
        members: Collaborator = league_member_store,
    ):
        self.league_settings = league_settings
        self.players = players
        self.guild_members = guild_members
        self.trackers = trackers
        self.members = members

    async def validate_join(self, player_id: str, league_id: str) -> None:
        league = await self.league_settings.get_league(league_id)
        player = await self.players.get_player(player_id)
        await self.check_eligibility(league, settings_of(league), player)

    async def check_eligibility(self, league: Any, settings: LeagueSettings, player: Any) -> None:
        """Same rules as validate_join for a league and player the caller already loaded."""
        league_id, player_id = league.id, player.id
        membership = settings.membership

        if membership.require_guild_membership:
            if not await self.guild_members.is_guild_member(player.user_id, league.guild_id):
                raise LeagueJoinValidationError(
                    "Player must be a member of the league's Discord server to join"
                )

        if membership.require_player_status:
            validate_player_status(player.status)

        tracker = None
        if settings.skill.require_tracker or membership.skill_requirements:
            tracker = await self.trackers.find_best_tracker_for_user(player.user_id)

        if settings.skill.require_tracker and tracker is None:
            raise LeagueJoinValidationError(
                "Player must have at least one active tracker to join this league"
            )

        if membership.skill_requirements:
            validate_skill_requirements(tracker, membership.skill_requirements)

        validate_registration_window(membership)

        if membership.max_players is not None:
            active_count = await self.members.count_active_members(league_id)
            validate_capacity(active_count, membership)

        if not membership.allow_multiple_leagues:
            other_memberships = await self.members.count_active_memberships(player_id, exclude_league_id=league_id)
            if other_memberships > 0:
                raise LeagueJoinValidationError(
                    "Player is already a member of another league and multiple leagues are not allowed"
                )

        if membership.cooldown_after_leave and membership.cooldown_after_leave > 0:
            validate_cooldown(player.last_left_league_at, membership.cooldown_after_leave)

        if membership.join_method in RESTRICTED_JOIN_METHODS and not membership.allow_self_registration:
            raise LeagueJoinValidationError("This league does not allow self-registration")

        log.debug(f"Player {player_id} is eligible to join league {league_id}")
