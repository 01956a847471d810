from league_service.core.exceptions import LeagueJoinValidationError
from league_service.schemas.league_settings import MembershipConfig


def validate_capacity(active_count: int, membership: MembershipConfig) -> None:
    """
    Rejects the join when the league already holds max_players ACTIVE members.
    With auto_close_on_full the league is reported as closed (an admin has to
    reopen it); otherwise the numbers are reported since the state is transient.
    """
    max_players = membership.max_players
    if max_players is None or active_count < max_players:
        return

    if membership.auto_close_on_full:
        raise LeagueJoinValidationError("League is full and registration has been closed")
    raise LeagueJoinValidationError(f"League is full ({active_count}/{max_players} players)")
