# fitsocial/notifications/pending_counter.py
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from fitsocial.core.errors import translate_store_errors
from fitsocial.db.mongodb import get_mongodb, FOLLOW_EDGES
from fitsocial.follow.models import FollowStatus

logger = logging.getLogger(__name__)

BadgeListener = Callable[[str, int], None]

class PendingRequestCounter:
    """
    Count of inbound pending follow requests per user.

    The follow graph is the only writer: it calls refresh() after every
    mutation touching a user's inbound edges. Badge consumers subscribe and
    receive the recomputed count; nothing is pushed from the server.
    Only subscribed users have a cached count.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self.mongodb = db if db is not None else get_mongodb()
        self.edges = self.mongodb.get_collection(FOLLOW_EDGES)
        self._counts: Dict[str, int] = {}
        self._listeners: Dict[str, List[BadgeListener]] = defaultdict(list)

    @translate_store_errors
    async def pending_count(self, user_id: str) -> int:
        return await self.edges.count_documents({
            "following_id": user_id,
            "status": FollowStatus.PENDING.value,
        })

    async def refresh(self, user_id: str) -> int:
        """Recompute the count for user_id and publish it"""
        count = await self.pending_count(user_id)
        self._publish(user_id, count)
        return count

    def current(self, user_id: str) -> Optional[int]:
        """Last count published to subscribers, None when nobody is subscribed"""
        return self._counts.get(user_id)

    def subscribe(self, user_id: str, listener: BadgeListener) -> Callable[[], None]:
        self._listeners[user_id].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(user_id, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(user_id, None)
                self._counts.pop(user_id, None)

        return unsubscribe

    def _publish(self, user_id: str, count: int) -> None:
        listeners = list(self._listeners.get(user_id, []))
        if not listeners:
            return
        self._counts[user_id] = count
        for listener in listeners:
            try:
                listener(user_id, count)
            except Exception as e:
                logger.error(f"Badge listener failed for user {user_id}: {e}", exc_info=True)
