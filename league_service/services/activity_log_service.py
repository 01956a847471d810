from typing import Any, Dict, Optional

from league_service.models.activity_log import ActivityLog


async def log_activity(
    conn: Any,
    entity_type: str,
    entity_id: Any,
    event_type: str,
    action: str,
    user_id: Optional[str] = None,
    guild_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """Writes an activity entry inside the caller's transaction."""
    return await ActivityLog.create(
        entity_type=entity_type,
        entity_id=str(entity_id),
        event_type=event_type,
        action=action,
        user_id=user_id,
        guild_id=guild_id,
        metadata=metadata,
        using_db=conn,
    )
