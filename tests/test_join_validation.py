import pytest
from datetime import timedelta

from league_service.core.clock import utcnow
from league_service.core.exceptions import LeagueJoinValidationError, PlayerNotFoundError
from league_service.models.player import PlayerStatus
from league_service.services.join_validation_service import LeagueJoinValidator
from league_service.testing.testing_mocks import build_collaborators, make_league, make_player, make_tracker


def _validator(collaborators):
    return LeagueJoinValidator(
        league_settings=collaborators.league_settings,
        players=collaborators.players,
        guild_members=collaborators.guild_members,
        trackers=collaborators.trackers,
        members=collaborators.members,
    )


@pytest.mark.asyncio
async def test_open_league_with_defaults_passes():
    collaborators = build_collaborators()

    await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.guild_members.is_guild_member.assert_awaited_once_with("user-1", "guild-1")
    collaborators.trackers.find_best_tracker_for_user.assert_not_awaited()
    collaborators.members.count_active_members.assert_not_awaited()
    collaborators.members.count_active_memberships.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_player_propagates():
    collaborators = build_collaborators()
    collaborators.players.get_player.side_effect = PlayerNotFoundError("player-404")

    with pytest.raises(PlayerNotFoundError):
        await _validator(collaborators).validate_join("player-404", "league-1")


@pytest.mark.asyncio
async def test_non_guild_member_is_rejected_first():
    collaborators = build_collaborators(
        settings={"membership": {"registration_open": False}},
        is_guild_member=False,
    )

    with pytest.raises(LeagueJoinValidationError, match="member of the league's Discord server"):
        await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_guild_check_can_be_disabled():
    collaborators = build_collaborators(
        settings={"membership": {"require_guild_membership": False}},
        is_guild_member=False,
    )

    await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.guild_members.is_guild_member.assert_not_awaited()


@pytest.mark.asyncio
async def test_banned_player_rejected_when_status_required():
    collaborators = build_collaborators(
        settings={"membership": {"require_player_status": True}},
        player=make_player(status=PlayerStatus.BANNED),
    )

    with pytest.raises(LeagueJoinValidationError, match="Player status 'BANNED'"):
        await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_banned_player_ignored_when_status_not_required():
    collaborators = build_collaborators(player=make_player(status=PlayerStatus.BANNED))

    await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_required_tracker_missing():
    collaborators = build_collaborators(settings={"skill": {"require_tracker": True}}, tracker=None)

    with pytest.raises(LeagueJoinValidationError, match="at least one active tracker to join this league"):
        await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_skill_requirements_use_best_tracker():
    collaborators = build_collaborators(
        settings={"membership": {"skill_requirements": {"skill_metric": "MMR", "min_skill": 1500}}},
        tracker=make_tracker((5, {"playlist2v2": {"rating": 1200}})),
    )

    with pytest.raises(LeagueJoinValidationError, match="Player MMR 1200 is below the minimum required 1500"):
        await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.trackers.find_best_tracker_for_user.assert_awaited_once_with("user-1")


@pytest.mark.asyncio
async def test_registration_checked_before_capacity():
    collaborators = build_collaborators(
        settings={"membership": {"registration_open": False, "max_players": 5}},
        active_members=5,
    )

    with pytest.raises(LeagueJoinValidationError, match="currently closed"):
        await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.members.count_active_members.assert_not_awaited()


@pytest.mark.asyncio
async def test_full_league_rejected():
    collaborators = build_collaborators(settings={"membership": {"max_players": 5}}, active_members=5)

    with pytest.raises(LeagueJoinValidationError, match="5/5"):
        await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.members.count_active_members.assert_awaited_once_with("league-1")


@pytest.mark.asyncio
async def test_capacity_checked_before_exclusivity():
    collaborators = build_collaborators(
        settings={"membership": {"max_players": 10, "allow_multiple_leagues": False}},
        active_members=10,
        other_memberships=1,
    )

    with pytest.raises(LeagueJoinValidationError, match="League is full"):
        await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.members.count_active_memberships.assert_not_awaited()


@pytest.mark.asyncio
async def test_exclusive_league_rejects_member_of_another_league():
    collaborators = build_collaborators(
        league=make_league("league-b", settings={"membership": {"allow_multiple_leagues": False}}),
        other_memberships=1,
    )

    with pytest.raises(LeagueJoinValidationError, match="already a member of another league"):
        await _validator(collaborators).validate_join("player-1", "league-b")

    collaborators.members.count_active_memberships.assert_awaited_once_with("player-1", exclude_league_id="league-b")


@pytest.mark.asyncio
async def test_cooldown_applies_to_last_leave():
    collaborators = build_collaborators(
        settings={"membership": {"cooldown_after_leave": 3}},
        player=make_player(last_left_league_at=utcnow() - timedelta(days=1)),
    )

    with pytest.raises(LeagueJoinValidationError, match="cooldown period"):
        await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_invite_only_league_without_self_registration():
    collaborators = build_collaborators(
        settings={"membership": {"join_method": "INVITE_ONLY", "allow_self_registration": False}},
    )

    with pytest.raises(LeagueJoinValidationError, match="does not allow self-registration"):
        await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_application_league_with_self_registration_passes():
    collaborators = build_collaborators(
        settings={"membership": {"join_method": "APPLICATION", "allow_self_registration": True}},
    )

    await _validator(collaborators).validate_join("player-1", "league-1")


@pytest.mark.asyncio
async def test_league_is_loaded_once_and_settings_come_from_it():
    collaborators = build_collaborators(settings={"membership": {"max_players": 4}}, active_members=4)

    with pytest.raises(LeagueJoinValidationError, match=r"League is full \(4/4 players\)"):
        await _validator(collaborators).validate_join("player-1", "league-1")

    collaborators.league_settings.get_league.assert_awaited_once_with("league-1")
    collaborators.league_settings.get_settings.assert_not_called()
