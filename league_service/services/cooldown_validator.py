import math
from datetime import datetime, timedelta
from typing import Optional

from league_service.core.clock import as_utc, utcnow
from league_service.core.exceptions import LeagueJoinValidationError

SECONDS_PER_DAY = 24 * 60 * 60


def validate_cooldown(
    last_left_league_at: Optional[datetime],
    cooldown_days: Optional[int],
    now: Optional[datetime] = None,
) -> None:
    """The time elapsed since leaving must exceed the cooldown window."""
    if not last_left_league_at or not cooldown_days or cooldown_days <= 0:
        return

    now = as_utc(now or utcnow())
    cooldown_end = as_utc(last_left_league_at) + timedelta(days=cooldown_days)
    if now > cooldown_end:
        return

    remaining = (cooldown_end - now).total_seconds()
    days_remaining = max(1, math.ceil(remaining / SECONDS_PER_DAY))
    raise LeagueJoinValidationError(
        f"Player is in cooldown period. {days_remaining} day(s) remaining."
    )
