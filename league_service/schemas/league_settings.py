from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class JoinMethod(str, Enum):
    OPEN = "OPEN"
    INVITE_ONLY = "INVITE_ONLY"
    APPLICATION = "APPLICATION"


class SkillMetric(str, Enum):
    MMR = "MMR"
    RANK = "RANK"
    ELO = "ELO"       # Not implemented for join validation, fails closed
    CUSTOM = "CUSTOM" # Not implemented for join validation, fails closed


class SkillRequirements(BaseModel):
    """Skill bounds a player must satisfy to join."""
    skill_metric: SkillMetric
    min_skill: Optional[float] = Field(None, ge=0)
    max_skill: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min_skill is not None and self.max_skill is not None and self.max_skill < self.min_skill:
            raise ValueError("max_skill must be greater than or equal to min_skill")
        return self


class MembershipConfig(BaseModel):
    # Access control
    join_method: JoinMethod = JoinMethod.OPEN
    requires_approval: bool = False
    allow_self_registration: bool = True

    # Capacity (None = unlimited)
    max_players: Optional[int] = Field(None, ge=1)

    # Registration window
    registration_open: bool = True
    registration_start_date: Optional[datetime] = None
    registration_end_date: Optional[datetime] = None
    auto_close_on_full: bool = False

    # Eligibility
    require_guild_membership: bool = True
    require_player_status: bool = False
    skill_requirements: Optional[SkillRequirements] = None

    # Restrictions
    allow_multiple_leagues: bool = True
    cooldown_after_leave: Optional[int] = Field(None, ge=0, description="Days before a player who left may join again.")

    @model_validator(mode="after")
    def check_window(self):
        start, end = self.registration_start_date, self.registration_end_date
        if start is not None and end is not None and end < start:
            raise ValueError("registration_end_date must not be before registration_start_date")
        return self


class SkillConfig(BaseModel):
    require_tracker: bool = False


class LeagueSettings(BaseModel):
    """
    Effective league settings: the stored document merged over these defaults.
    Keys the join rules do not read (team sizing, display fields) are ignored.
    """
    membership: MembershipConfig = Field(default_factory=MembershipConfig)
    skill: SkillConfig = Field(default_factory=SkillConfig)
