from enum import Enum
from tortoise import fields, models
import uuid


class MemberStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL" # Waiting for an admin decision
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"   # Left the league, can rejoin
    SUSPENDED = "SUSPENDED" # Administrative, not reactivatable by self-service join
    BANNED = "BANNED"       # Administrative, not reactivatable by self-service join


class MemberRole(str, Enum):
    MEMBER = "MEMBER"
    CAPTAIN = "CAPTAIN"
    ADMIN = "ADMIN"


class LeagueMember(models.Model):
    id = fields.UUIDField(primary_key=True, default=uuid.uuid4)
    player_id = fields.CharField(max_length=64)
    league_id = fields.CharField(max_length=64)
    status = fields.CharEnumField(MemberStatus, max_length=20, default=MemberStatus.ACTIVE)
    role = fields.CharEnumField(MemberRole, max_length=16, default=MemberRole.MEMBER)
    joined_at = fields.DatetimeField(auto_now_add=True)
    left_at = fields.DatetimeField(null=True)
    approved_by = fields.CharField(max_length=64, null=True)
    approved_at = fields.DatetimeField(null=True)
    notes = fields.TextField(null=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "league_members"
        # One row per (player, league); violations mean "already exists"
        unique_together = (("player_id", "league_id"),)
        indexes = [
            ("league_id", "status"),  # Capacity counts
            ("player_id", "status"),  # Cross-league exclusivity
        ]
