from typing import Any, List, Optional
from uuid import UUID

from league_service.models.league_member import LeagueMember, MemberStatus


async def find_by_id(member_id: UUID, conn: Any = None) -> Optional[LeagueMember]:
    return await LeagueMember.get_or_none(id=member_id).using_db(conn)


async def find_by_player_and_league(player_id: str, league_id: str, conn: Any = None) -> Optional[LeagueMember]:
    """Lookup by the natural key; pass conn to read inside a transaction."""
    return await LeagueMember.get_or_none(player_id=player_id, league_id=league_id).using_db(conn)


async def find_by_league(league_id: str, status: Optional[MemberStatus] = None) -> List[LeagueMember]:
    query = LeagueMember.filter(league_id=league_id)
    if status:
        query = query.filter(status=status)
    return await query.order_by("-joined_at")


async def find_by_player(player_id: str, status: Optional[MemberStatus] = None) -> List[LeagueMember]:
    query = LeagueMember.filter(player_id=player_id)
    if status:
        query = query.filter(status=status)
    return await query.order_by("-joined_at")


async def count_active_members(league_id: str) -> int:
    return await LeagueMember.filter(league_id=league_id, status=MemberStatus.ACTIVE).count()


async def count_active_memberships(player_id: str, exclude_league_id: Optional[str] = None) -> int:
    """ACTIVE memberships of the player, optionally ignoring one league."""
    query = LeagueMember.filter(player_id=player_id, status=MemberStatus.ACTIVE)
    if exclude_league_id:
        query = query.exclude(league_id=exclude_league_id)
    return await query.count()
