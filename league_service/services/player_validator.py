from league_service.core.exceptions import LeagueJoinValidationError
from league_service.models.player import PlayerStatus

BLOCKED_PLAYER_STATUSES = frozenset({PlayerStatus.BANNED, PlayerStatus.SUSPENDED})


def validate_player_status(status: PlayerStatus) -> None:
    if status in BLOCKED_PLAYER_STATUSES:
        raise LeagueJoinValidationError(
            f"Player status '{PlayerStatus(status).value}' does not allow league operations"
        )
