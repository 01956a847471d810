import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import UUID

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from league_service.core.clock import utcnow
from league_service.core.exceptions import (
    InternalServiceError,
    InvalidStatusTransitionError,
    LeagueServiceError,
    MemberAlreadyExistsError,
    MemberNotFoundError,
)
from league_service.events.event_types import OutboxEventType
from league_service.events.outbox_writer import append_outbox_event
from league_service.models.league_member import LeagueMember, MemberRole, MemberStatus
from league_service.services import league_member_store, league_settings_service, player_service
from league_service.services.activity_log_service import log_activity
from league_service.services.join_validation_service import LeagueJoinValidator
from league_service.services.league_settings_service import settings_of
from league_service.services.rating_service import RatingBootstrapResult, initialize_rating

log = logging.getLogger("membership_service")

SOURCE_TYPE = "league_member"

NON_REJOINABLE_STATUSES = frozenset({MemberStatus.SUSPENDED, MemberStatus.BANNED})


@dataclass(frozen=True)
class MembershipChange:
    """Result of a membership command: the row as committed plus the rating bootstrap outcome, if one ran."""
    member: LeagueMember
    rating_bootstrap: Optional[RatingBootstrapResult] = None


@contextmanager
def _translate_errors(action: str, player_id: str = None, league_id: str = None):
    """
    Domain errors pass through. A unique-constraint violation on the membership
    natural key becomes MemberAlreadyExistsError. Anything else is logged with
    context and surfaced as a generic InternalServiceError.
    """
    try:
        yield
    except LeagueServiceError:
        raise
    except IntegrityError as exc:
        if player_id is None:
            log.exception(f"Failed to {action}")
            raise InternalServiceError(f"Failed to {action}") from exc
        raise MemberAlreadyExistsError(player_id, league_id) from exc
    except Exception as exc:
        log.exception(f"Failed to {action} (player={player_id}, league={league_id})")
        raise InternalServiceError(f"Failed to {action}") from exc


def _event_payload(member: LeagueMember, guild_id: str, **extra) -> Dict[str, Any]:
    payload = {
        "member_id": str(member.id),
        "player_id": member.player_id,
        "league_id": member.league_id,
        "guild_id": guild_id,
        "status": MemberStatus(member.status).value,
        "role": MemberRole(member.role).value,
    }
    payload.update(extra)
    return payload


class MembershipService:
    """
    Owns the league membership state machine:

        (none)   --join-->     PENDING_APPROVAL | ACTIVE
        INACTIVE --join-->     ACTIVE (reactivation, full validation again)
        PENDING_APPROVAL --approve--> ACTIVE
        PENDING_APPROVAL --reject-->  (deleted)
        ACTIVE   --leave-->    INACTIVE

    Each transition commits the row, an activity entry and an outbox event in
    one transaction. Becoming ACTIVE also attempts a rating bootstrap whose
    failure is reported, never raised.
    """

    def __init__(
        self,
        validator: Optional[LeagueJoinValidator] = None,
        league_settings=league_settings_service,
        players=player_service,
    ):
        self.validator = validator or LeagueJoinValidator()
        self.league_settings = league_settings
        self.players = players

    # ----------- Reads -----------

    async def get_member(self, member_id: UUID) -> LeagueMember:
        member = await league_member_store.find_by_id(member_id)
        if not member:
            raise MemberNotFoundError(str(member_id))
        return member

    async def find_by_player_and_league(self, player_id: str, league_id: str) -> Optional[LeagueMember]:
        return await league_member_store.find_by_player_and_league(player_id, league_id)

    async def find_by_league(self, league_id: str, status: Optional[MemberStatus] = None) -> List[LeagueMember]:
        return await league_member_store.find_by_league(league_id, status)

    async def find_by_player(self, player_id: str, status: Optional[MemberStatus] = None) -> List[LeagueMember]:
        return await league_member_store.find_by_player(player_id, status)

    # ----------- Commands -----------

    async def join_league(self, league_id: str, player_id: str, notes: Optional[str] = None) -> MembershipChange:
        with _translate_errors("join league", player_id, league_id):
            league = await self.league_settings.get_league(league_id)
            player = await self.players.get_player(player_id)

            existing = await league_member_store.find_by_player_and_league(player_id, league_id)
            if existing:
                self._check_can_rejoin(existing)

            # Reads happen outside the write transaction
            settings = settings_of(league)
            await self.validator.check_eligibility(league, settings, player)
            initial_status = (
                MemberStatus.PENDING_APPROVAL if settings.membership.requires_approval else MemberStatus.ACTIVE
            )

            rating = None
            async with in_transaction() as conn:
                # Re-check inside the transaction
                current = await league_member_store.find_by_player_and_league(player_id, league_id, conn)
                if current:
                    self._check_can_rejoin(current)
                    member = await self._reactivate(conn, current, notes)
                    event_type, action = OutboxEventType.LEAGUE_MEMBER_REACTIVATED, "update"
                else:
                    member = await LeagueMember.create(
                        player_id=player_id,
                        league_id=league_id,
                        status=initial_status,
                        role=MemberRole.MEMBER,
                        notes=notes,
                        using_db=conn,
                    )
                    event_type = (
                        OutboxEventType.LEAGUE_MEMBER_PENDING
                        if initial_status == MemberStatus.PENDING_APPROVAL
                        else OutboxEventType.LEAGUE_MEMBER_JOINED
                    )
                    action = "create"

                await log_activity(
                    conn, SOURCE_TYPE, member.id, event_type.value, action,
                    player.user_id, league.guild_id,
                    {"status": MemberStatus(member.status).value, "league_id": league_id},
                )
                await append_outbox_event(conn, SOURCE_TYPE, member.id, event_type, _event_payload(member, league.guild_id))

                if member.status == MemberStatus.ACTIVE:
                    rating = await self._bootstrap_rating(player_id, league_id)

            log.info(f"{event_type.value}: player {player_id} in league {league_id} is {MemberStatus(member.status).value}")
            return MembershipChange(member, rating)

    async def approve_member(self, member_id: UUID, approved_by: str) -> MembershipChange:
        with _translate_errors("approve member"):
            member = await self.get_member(member_id)
            self._require_status(member, MemberStatus.PENDING_APPROVAL, "approve")
            league = await self.league_settings.get_league(member.league_id)
            player = await self.players.get_player(member.player_id)

            async with in_transaction() as conn:
                current = await self._reload_member(conn, member_id)
                self._require_status(current, MemberStatus.PENDING_APPROVAL, "approve")

                current.status = MemberStatus.ACTIVE
                current.approved_by = approved_by
                current.approved_at = utcnow()
                await current.save(update_fields=["status", "approved_by", "approved_at", "updated_at"], using_db=conn)

                await log_activity(
                    conn, SOURCE_TYPE, current.id, OutboxEventType.LEAGUE_MEMBER_APPROVED.value, "update",
                    player.user_id, league.guild_id, {"approved_by": approved_by},
                )
                await append_outbox_event(
                    conn, SOURCE_TYPE, current.id, OutboxEventType.LEAGUE_MEMBER_APPROVED,
                    _event_payload(current, league.guild_id, approved_by=approved_by),
                )
                rating = await self._bootstrap_rating(current.player_id, current.league_id)

            log.info(f"Member {member_id} approved by {approved_by}")
            return MembershipChange(current, rating)

    async def reject_member(self, member_id: UUID) -> MembershipChange:
        """Rejecting a pending request removes the row entirely."""
        with _translate_errors("reject member"):
            member = await self.get_member(member_id)
            self._require_status(member, MemberStatus.PENDING_APPROVAL, "reject")
            league = await self.league_settings.get_league(member.league_id)
            player = await self.players.get_player(member.player_id)

            async with in_transaction() as conn:
                current = await self._reload_member(conn, member_id)
                self._require_status(current, MemberStatus.PENDING_APPROVAL, "reject")

                payload = _event_payload(current, league.guild_id)
                await current.delete(using_db=conn)
                await log_activity(
                    conn, SOURCE_TYPE, current.id, OutboxEventType.LEAGUE_MEMBER_REJECTED.value, "delete",
                    player.user_id, league.guild_id, {"league_id": current.league_id},
                )
                await append_outbox_event(conn, SOURCE_TYPE, current.id, OutboxEventType.LEAGUE_MEMBER_REJECTED, payload)

            log.info(f"Member {member_id} rejected")
            return MembershipChange(current)

    async def leave_league(self, player_id: str, league_id: str) -> MembershipChange:
        """Soft leave: status INACTIVE and left_at set; cooldown stamped on the player when configured."""
        with _translate_errors("leave league", player_id, league_id):
            member = await league_member_store.find_by_player_and_league(player_id, league_id)
            if not member:
                raise MemberNotFoundError(f"{player_id}-{league_id}")
            self._require_status(member, MemberStatus.ACTIVE, "leave")

            league = await self.league_settings.get_league(league_id)
            cooldown_days = settings_of(league).membership.cooldown_after_leave

            async with in_transaction() as conn:
                current = await self._reload_member(conn, member.id)
                self._require_status(current, MemberStatus.ACTIVE, "leave")
                player = await self.players.get_player(player_id, conn)

                left_at = utcnow()
                current.status = MemberStatus.INACTIVE
                current.left_at = left_at
                await current.save(update_fields=["status", "left_at", "updated_at"], using_db=conn)

                if cooldown_days and cooldown_days > 0:
                    await self.players.stamp_cooldown(conn, player, league_id, left_at)

                await log_activity(
                    conn, SOURCE_TYPE, current.id, OutboxEventType.LEAGUE_MEMBER_LEFT.value, "update",
                    player.user_id, league.guild_id,
                    {"status": MemberStatus.INACTIVE.value, "cooldown_days": cooldown_days},
                )
                await append_outbox_event(
                    conn, SOURCE_TYPE, current.id, OutboxEventType.LEAGUE_MEMBER_LEFT,
                    _event_payload(current, league.guild_id, cooldown_days=cooldown_days),
                )

            log.info(f"Player {player_id} left league {league_id}")
            return MembershipChange(current)

    async def update_member(
        self,
        member_id: UUID,
        role: Optional[MemberRole] = None,
        notes: Optional[str] = None,
    ) -> LeagueMember:
        """Role and notes only; status changes go through the commands above."""
        member = await self.get_member(member_id)
        update_fields = ["updated_at"]
        if role is not None:
            member.role = MemberRole(role)
            update_fields.append("role")
        if notes is not None:
            member.notes = notes
            update_fields.append("notes")
        await member.save(update_fields=update_fields)
        return member

    # ----------- Internals -----------

    @staticmethod
    def _check_can_rejoin(member: LeagueMember) -> None:
        status = MemberStatus(member.status)
        if status == MemberStatus.ACTIVE:
            raise MemberAlreadyExistsError(member.player_id, member.league_id)
        if status == MemberStatus.PENDING_APPROVAL:
            raise MemberAlreadyExistsError(
                member.player_id, member.league_id,
                f"Player {member.player_id} already has a pending request to join league {member.league_id}",
            )
        if status in NON_REJOINABLE_STATUSES:
            raise InvalidStatusTransitionError(
                f"Cannot rejoin league {member.league_id}: membership is {status.value}"
            )

    @staticmethod
    def _require_status(member: LeagueMember, expected: MemberStatus, action: str) -> None:
        status = MemberStatus(member.status)
        if status != expected:
            raise InvalidStatusTransitionError(
                f"Cannot {action} member {member.id}: status is {status.value}, expected {expected.value}"
            )

    @staticmethod
    async def _reload_member(conn: Any, member_id: UUID) -> LeagueMember:
        """Re-reads the member inside the transaction."""
        member = await league_member_store.find_by_id(member_id, conn)
        if not member:
            raise MemberNotFoundError(str(member_id))
        return member

    @staticmethod
    async def _reactivate(conn: Any, member: LeagueMember, notes: Optional[str]) -> LeagueMember:
        member.status = MemberStatus.ACTIVE
        member.left_at = None
        update_fields = ["status", "left_at", "updated_at"]
        if notes is not None:
            member.notes = notes
            update_fields.append("notes")
        await member.save(update_fields=update_fields, using_db=conn)
        return member

    @staticmethod
    async def _bootstrap_rating(player_id: str, league_id: str) -> RatingBootstrapResult:
        """
        Runs inside the caller's transaction. The nested in_transaction() is a
        savepoint, so a failed rating write rolls back alone and the outer
        transaction stays usable.
        """
        try:
            async with in_transaction() as savepoint:
                rating = await initialize_rating(savepoint, player_id, league_id)
        except Exception as exc:
            log.warning(f"Failed to initialize rating for player {player_id} in league {league_id}: {exc}")
            return RatingBootstrapResult.soft_failure(exc)
        return RatingBootstrapResult.ok(rating)
