from datetime import datetime
from typing import Optional

from league_service.core.clock import as_utc, utcnow
from league_service.core.exceptions import LeagueJoinValidationError
from league_service.schemas.league_settings import MembershipConfig


def validate_registration_window(membership: MembershipConfig, now: Optional[datetime] = None) -> None:
    if not membership.registration_open:
        raise LeagueJoinValidationError("League registration is currently closed")

    now = as_utc(now or utcnow())
    start = membership.registration_start_date
    end = membership.registration_end_date

    if start is not None and now < as_utc(start):
        raise LeagueJoinValidationError(f"League registration opens on {as_utc(start).isoformat()}")
    if end is not None and now > as_utc(end):
        raise LeagueJoinValidationError(f"League registration closed on {as_utc(end).isoformat()}")
