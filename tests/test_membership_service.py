import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from league_service.core.exceptions import (
    InternalServiceError,
    InvalidStatusTransitionError,
    LeagueJoinValidationError,
    LeagueNotFoundError,
    MemberAlreadyExistsError,
    MemberNotFoundError,
)
from league_service.models.activity_log import ActivityLog
from league_service.models.league_member import LeagueMember, MemberRole, MemberStatus
from league_service.models.outbox import OutboxEvent
from league_service.models.player import Player
from league_service.models.player_rating import PlayerLeagueRating
from league_service.services import league_settings_service
from league_service.services.membership_service import MembershipService
from league_service.testing.testing_mocks import create_mock_queryset


@pytest.fixture
def service():
    return MembershipService()


async def _event_types(member_id):
    events = await OutboxEvent.filter(source_type="league_member", source_id=str(member_id)).order_by("created_at")
    return [e.event_type for e in events]


# --- Join ---

@pytest.mark.asyncio
async def test_join_open_league_activates_member(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()

    change = await service.join_league("league-1", "player-1", notes="first season")

    member = await LeagueMember.get(id=change.member.id)
    assert member.status == MemberStatus.ACTIVE
    assert member.role == MemberRole.MEMBER
    assert member.notes == "first season"
    assert await _event_types(member.id) == ["LEAGUE_MEMBER_JOINED"]
    assert await ActivityLog.filter(entity_id=str(member.id), event_type="LEAGUE_MEMBER_JOINED").count() == 1

    assert change.rating_bootstrap.succeeded is True
    rating = await PlayerLeagueRating.get(player_id="player-1", league_id="league-1")
    assert rating.current_rating == 1000


@pytest.mark.asyncio
async def test_join_event_payload(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()

    change = await service.join_league("league-1", "player-1")

    event = await OutboxEvent.get(source_id=str(change.member.id))
    assert event.payload["member_id"] == str(change.member.id)
    assert event.payload["player_id"] == "player-1"
    assert event.payload["league_id"] == "league-1"
    assert event.payload["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_join_approval_league_is_pending(db, service, league_factory, player_factory):
    await league_factory(membership={"requires_approval": True})
    await player_factory()

    change = await service.join_league("league-1", "player-1")

    assert change.member.status == MemberStatus.PENDING_APPROVAL
    assert change.rating_bootstrap is None
    assert await _event_types(change.member.id) == ["LEAGUE_MEMBER_PENDING"]
    assert not await PlayerLeagueRating.filter(player_id="player-1").exists()


@pytest.mark.asyncio
async def test_join_reads_the_league_row_once(db, service, league_factory, player_factory):
    await league_factory(membership={"requires_approval": True, "max_players": 5})
    await player_factory()

    with patch(
        "league_service.services.league_settings_service.League.get_or_none",
        wraps=league_settings_service.League.get_or_none,
    ) as mock_get_league:
        change = await service.join_league("league-1", "player-1")

    assert change.member.status == MemberStatus.PENDING_APPROVAL
    mock_get_league.assert_called_once_with(id="league-1")


@pytest.mark.asyncio
async def test_join_unknown_league(db, service, player_factory):
    await player_factory()

    with pytest.raises(LeagueNotFoundError):
        await service.join_league("league-404", "player-1")


@pytest.mark.asyncio
async def test_join_twice_conflicts(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    await service.join_league("league-1", "player-1")

    with pytest.raises(MemberAlreadyExistsError) as exc_info:
        await service.join_league("league-1", "player-1")

    assert exc_info.value.status_code == 409
    assert await LeagueMember.filter(player_id="player-1").count() == 1


@pytest.mark.asyncio
async def test_join_with_pending_request_conflicts(db, service, league_factory, player_factory):
    await league_factory(membership={"requires_approval": True})
    await player_factory()
    await service.join_league("league-1", "player-1")

    with pytest.raises(MemberAlreadyExistsError, match="pending request"):
        await service.join_league("league-1", "player-1")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [MemberStatus.SUSPENDED, MemberStatus.BANNED])
async def test_join_blocked_for_sanctioned_membership(db, service, league_factory, player_factory, status):
    await league_factory()
    await player_factory()
    await LeagueMember.create(player_id="player-1", league_id="league-1", status=status)

    with pytest.raises(InvalidStatusTransitionError, match=status.value):
        await service.join_league("league-1", "player-1")


@pytest.mark.asyncio
async def test_exclusive_league_rejects_before_creating_row(db, service, league_factory, player_factory):
    await league_factory("league-a")
    await league_factory("league-b", membership={"allow_multiple_leagues": False})
    await player_factory()
    await service.join_league("league-a", "player-1")

    with pytest.raises(LeagueJoinValidationError, match="multiple leagues are not allowed"):
        await service.join_league("league-b", "player-1")

    assert not await LeagueMember.filter(player_id="player-1", league_id="league-b").exists()
    assert await OutboxEvent.all().count() == 1


@pytest.mark.asyncio
async def test_concurrent_insert_becomes_conflict(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    # Another request committed the row after both existence checks ran
    await LeagueMember.create(player_id="player-1", league_id="league-1", status=MemberStatus.ACTIVE)

    with patch(
        "league_service.services.membership_service.league_member_store.find_by_player_and_league",
        AsyncMock(return_value=None),
    ):
        with pytest.raises(MemberAlreadyExistsError):
            await service.join_league("league-1", "player-1")

    assert await LeagueMember.filter(player_id="player-1").count() == 1
    assert await OutboxEvent.all().count() == 0


@pytest.mark.asyncio
async def test_unexpected_failure_is_wrapped_and_rolled_back(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()

    with patch(
        "league_service.services.membership_service.append_outbox_event",
        AsyncMock(side_effect=RuntimeError("outbox table missing")),
    ):
        with pytest.raises(InternalServiceError) as exc_info:
            await service.join_league("league-1", "player-1")

    assert exc_info.value.message == "Failed to join league"
    assert not await LeagueMember.filter(player_id="player-1").exists()
    assert await ActivityLog.all().count() == 0


@pytest.mark.asyncio
async def test_rating_failure_does_not_block_membership(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()

    with patch(
        "league_service.services.membership_service.initialize_rating",
        AsyncMock(side_effect=RuntimeError("ratings unavailable")),
    ):
        change = await service.join_league("league-1", "player-1")

    assert change.rating_bootstrap.succeeded is False
    assert change.rating_bootstrap.error == "ratings unavailable"
    assert (await LeagueMember.get(id=change.member.id)).status == MemberStatus.ACTIVE
    assert await _event_types(change.member.id) == ["LEAGUE_MEMBER_JOINED"]


@pytest.mark.asyncio
async def test_rating_insert_conflict_keeps_membership(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    # A rating written concurrently that the existence check did not see
    await PlayerLeagueRating.create(
        player_id="player-1", league_id="league-1", current_rating=1200, initial_rating=1000,
    )

    with patch(
        "league_service.services.rating_service.PlayerLeagueRating.get_or_none",
        MagicMock(return_value=create_mock_queryset(None)),
    ):
        change = await service.join_league("league-1", "player-1")

    assert change.rating_bootstrap.succeeded is False
    assert (await LeagueMember.get(id=change.member.id)).status == MemberStatus.ACTIVE
    assert await _event_types(change.member.id) == ["LEAGUE_MEMBER_JOINED"]
    ratings = await PlayerLeagueRating.filter(player_id="player-1", league_id="league-1")
    assert [r.current_rating for r in ratings] == [1200]


@pytest.mark.asyncio
async def test_failed_rating_bootstrap_rolls_back_only_its_own_writes(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()

    async def write_then_fail(conn, player_id, league_id):
        await PlayerLeagueRating.create(
            player_id=player_id, league_id=league_id, current_rating=1000, initial_rating=1000, using_db=conn,
        )
        raise RuntimeError("rating history write failed")

    with patch("league_service.services.membership_service.initialize_rating", write_then_fail):
        change = await service.join_league("league-1", "player-1")

    assert change.rating_bootstrap.succeeded is False
    assert change.rating_bootstrap.error == "rating history write failed"
    assert (await LeagueMember.get(id=change.member.id)).status == MemberStatus.ACTIVE
    assert not await PlayerLeagueRating.filter(player_id="player-1").exists()


# --- Approve / reject ---

@pytest.mark.asyncio
async def test_join_then_approve(db, service, league_factory, player_factory):
    await league_factory(membership={"requires_approval": True})
    await player_factory()
    pending = await service.join_league("league-1", "player-1")

    change = await service.approve_member(pending.member.id, "admin-7")

    member = await LeagueMember.get(id=pending.member.id)
    assert member.status == MemberStatus.ACTIVE
    assert member.approved_by == "admin-7"
    assert member.approved_at is not None
    assert change.rating_bootstrap.succeeded is True
    assert await ActivityLog.filter(event_type="LEAGUE_MEMBER_APPROVED").count() == 1
    assert await _event_types(member.id) == ["LEAGUE_MEMBER_PENDING", "LEAGUE_MEMBER_APPROVED"]


@pytest.mark.asyncio
async def test_approve_requires_pending(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    active = await service.join_league("league-1", "player-1")

    with pytest.raises(InvalidStatusTransitionError, match="Cannot approve"):
        await service.approve_member(active.member.id, "admin-7")


@pytest.mark.asyncio
async def test_approve_unknown_member(db, service):
    with pytest.raises(MemberNotFoundError):
        await service.approve_member(uuid4(), "admin-7")


@pytest.mark.asyncio
async def test_reject_deletes_pending_request(db, service, league_factory, player_factory):
    await league_factory(membership={"requires_approval": True})
    await player_factory()
    pending = await service.join_league("league-1", "player-1")

    await service.reject_member(pending.member.id)

    assert not await LeagueMember.filter(id=pending.member.id).exists()
    assert await _event_types(pending.member.id) == ["LEAGUE_MEMBER_PENDING", "LEAGUE_MEMBER_REJECTED"]
    assert await ActivityLog.filter(event_type="LEAGUE_MEMBER_REJECTED", action="delete").count() == 1


# --- Leave / rejoin ---

@pytest.mark.asyncio
async def test_leave_with_cooldown_stamps_player(db, service, league_factory, player_factory):
    await league_factory(membership={"cooldown_after_leave": 3})
    await player_factory()
    joined = await service.join_league("league-1", "player-1")

    change = await service.leave_league("player-1", "league-1")

    member = await LeagueMember.get(id=joined.member.id)
    assert member.status == MemberStatus.INACTIVE
    assert member.left_at is not None
    player = await Player.get(id="player-1")
    assert player.last_left_league_at is not None
    assert player.last_left_league_id == "league-1"
    assert change.member.status == MemberStatus.INACTIVE
    assert await _event_types(member.id) == ["LEAGUE_MEMBER_JOINED", "LEAGUE_MEMBER_LEFT"]


@pytest.mark.asyncio
async def test_leave_without_cooldown_leaves_player_untouched(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    await service.join_league("league-1", "player-1")

    await service.leave_league("player-1", "league-1")

    assert (await Player.get(id="player-1")).last_left_league_at is None


@pytest.mark.asyncio
async def test_failed_leave_rolls_back_member_and_cooldown(db, service, league_factory, player_factory):
    await league_factory(membership={"cooldown_after_leave": 3})
    await player_factory()
    joined = await service.join_league("league-1", "player-1")

    with patch(
        "league_service.services.membership_service.log_activity",
        AsyncMock(side_effect=RuntimeError("audit write failed")),
    ):
        with pytest.raises(InternalServiceError):
            await service.leave_league("player-1", "league-1")

    member = await LeagueMember.get(id=joined.member.id)
    assert member.status == MemberStatus.ACTIVE
    assert member.left_at is None
    assert (await Player.get(id="player-1")).last_left_league_at is None
    assert await _event_types(member.id) == ["LEAGUE_MEMBER_JOINED"]


@pytest.mark.asyncio
async def test_leave_requires_membership(db, service):
    with pytest.raises(MemberNotFoundError):
        await service.leave_league("player-1", "league-1")


@pytest.mark.asyncio
async def test_leave_twice_is_rejected(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    await service.join_league("league-1", "player-1")
    await service.leave_league("player-1", "league-1")

    with pytest.raises(InvalidStatusTransitionError, match="Cannot leave"):
        await service.leave_league("player-1", "league-1")


@pytest.mark.asyncio
async def test_rejoin_reactivates_existing_row(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    joined = await service.join_league("league-1", "player-1")
    await service.leave_league("player-1", "league-1")

    change = await service.join_league("league-1", "player-1")

    assert change.member.id == joined.member.id
    member = await LeagueMember.get(id=joined.member.id)
    assert member.status == MemberStatus.ACTIVE
    assert member.left_at is None
    assert await _event_types(member.id) == [
        "LEAGUE_MEMBER_JOINED",
        "LEAGUE_MEMBER_LEFT",
        "LEAGUE_MEMBER_REACTIVATED",
    ]
    assert change.rating_bootstrap.succeeded is True
    assert await PlayerLeagueRating.filter(player_id="player-1", league_id="league-1").count() == 1


@pytest.mark.asyncio
async def test_rejoin_inside_cooldown_is_rejected(db, service, league_factory, player_factory):
    await league_factory(membership={"cooldown_after_leave": 3})
    await player_factory()
    await service.join_league("league-1", "player-1")
    await service.leave_league("player-1", "league-1")

    with pytest.raises(LeagueJoinValidationError, match="cooldown period. 3 day"):
        await service.join_league("league-1", "player-1")

    member = await LeagueMember.get(player_id="player-1", league_id="league-1")
    assert member.status == MemberStatus.INACTIVE


# --- Reads and updates ---

@pytest.mark.asyncio
async def test_update_member_role_and_notes(db, service, league_factory, player_factory):
    await league_factory()
    await player_factory()
    joined = await service.join_league("league-1", "player-1")

    updated = await service.update_member(joined.member.id, role=MemberRole.CAPTAIN, notes="team lead")

    assert updated.role == MemberRole.CAPTAIN
    stored = await service.get_member(joined.member.id)
    assert stored.role == MemberRole.CAPTAIN
    assert stored.notes == "team lead"
    assert stored.status == MemberStatus.ACTIVE


@pytest.mark.asyncio
async def test_get_member_unknown(db, service):
    with pytest.raises(MemberNotFoundError):
        await service.get_member(uuid4())


@pytest.mark.asyncio
async def test_find_helpers(db, service, league_factory, player_factory):
    await league_factory("league-a")
    await league_factory("league-b", membership={"requires_approval": True})
    await player_factory("player-1", "user-1")
    await player_factory("player-2", "user-2")
    await service.join_league("league-a", "player-1")
    await service.join_league("league-a", "player-2")
    await service.join_league("league-b", "player-1")

    assert len(await service.find_by_league("league-a")) == 2
    assert len(await service.find_by_player("player-1")) == 2
    assert len(await service.find_by_player("player-1", MemberStatus.PENDING_APPROVAL)) == 1
    assert (await service.find_by_player_and_league("player-2", "league-a")).status == MemberStatus.ACTIVE
    assert await service.find_by_player_and_league("player-2", "league-b") is None
