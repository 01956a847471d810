from enum import Enum


class OutboxEventType(str, Enum):
    """Closed set of event kinds the outbox may carry."""
    LEAGUE_MEMBER_JOINED = "LEAGUE_MEMBER_JOINED"
    LEAGUE_MEMBER_PENDING = "LEAGUE_MEMBER_PENDING"
    LEAGUE_MEMBER_APPROVED = "LEAGUE_MEMBER_APPROVED"
    LEAGUE_MEMBER_REJECTED = "LEAGUE_MEMBER_REJECTED"
    LEAGUE_MEMBER_LEFT = "LEAGUE_MEMBER_LEFT"
    LEAGUE_MEMBER_REACTIVATED = "LEAGUE_MEMBER_REACTIVATED"

    # Retired: tracker registration moved to its own queue; rows may still be pending
    TRACKER_REGISTRATION_CREATED = "TRACKER_REGISTRATION_CREATED"


# Acknowledged without a handler so old rows do not poison the retry loop
DEPRECATED_EVENT_TYPES = frozenset({
    OutboxEventType.TRACKER_REGISTRATION_CREATED,
})

MEMBERSHIP_EVENT_TYPES = frozenset({
    OutboxEventType.LEAGUE_MEMBER_JOINED,
    OutboxEventType.LEAGUE_MEMBER_PENDING,
    OutboxEventType.LEAGUE_MEMBER_APPROVED,
    OutboxEventType.LEAGUE_MEMBER_REJECTED,
    OutboxEventType.LEAGUE_MEMBER_LEFT,
    OutboxEventType.LEAGUE_MEMBER_REACTIVATED,
})
