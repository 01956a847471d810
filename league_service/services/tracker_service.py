from typing import Optional

from league_service.models.tracker import Tracker


async def find_best_tracker_for_user(user_id: str) -> Optional[Tracker]:
    """
    Most recently scraped active tracker of the user, seasons prefetched.
    Used for skill validation when checking league requirements.
    """
    return await (
        Tracker.filter(user_id=user_id, is_active=True, is_deleted=False)
        .order_by("-last_scraped_at", "-updated_at")
        .prefetch_related("seasons")
        .first()
    )
