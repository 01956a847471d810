# league_service/models/__init__.py
from .activity_log import ActivityLog
from .league import League, GuildMember
from .league_member import LeagueMember, MemberRole, MemberStatus
from .outbox import OutboxEvent, OutboxStatus, TERMINAL_OUTBOX_STATUSES
from .player import Player, PlayerStatus
from .player_rating import PlayerLeagueRating
from .processed_event import ProcessedEvent
from .tracker import Tracker, TrackerSeason

# Export all models
__all__ = [
    "ActivityLog",
    "GuildMember",
    "League",
    "LeagueMember",
    "MemberRole",
    "MemberStatus",
    "OutboxEvent",
    "OutboxStatus",
    "TERMINAL_OUTBOX_STATUSES",
    "Player",
    "PlayerLeagueRating",
    "PlayerStatus",
    "ProcessedEvent",
    "Tracker",
    "TrackerSeason",
]
