import asyncio
import logging
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from fitsocial.core.config import settings
from fitsocial.core.errors import ValidationError, translate_store_errors
from fitsocial.db.mongodb import get_mongodb, require_user_id, WORKOUT_SESSIONS, CARDIO_SESSIONS
from fitsocial.follow.service import FollowGraphService
from fitsocial.reactions.models import TargetType, empty_tally
from fitsocial.reactions.service import ReactionLedger
from fitsocial.users.identity_service import IdentityService
from .models import CardioActivity, FeedItem, WorkoutActivity, merge_by_recency

logger = logging.getLogger(__name__)

class ActivityAggregator:
    """
    Builds the community feed from the activity of followed users.

    Independent reads are issued together and joined once: names and both
    activity kinds first, then the caller's reactions and the tallies.
    The window caps each kind across the whole followed set, not per user,
    so with many follows the merged feed is not an exact global top-N.
    """

    def __init__(
        self,
        follow_graph: FollowGraphService,
        ledger: ReactionLedger,
        identity: IdentityService,
        db: Optional[AsyncIOMotorDatabase] = None,
    ):
        self.follow_graph = follow_graph
        self.ledger = ledger
        self.identity = identity
        self.mongodb = db if db is not None else get_mongodb()
        self.workouts = self.mongodb.get_collection(WORKOUT_SESSIONS)
        self.cardio = self.mongodb.get_collection(CARDIO_SESSIONS)

    async def build_feed(self, user_id: str, kind_window: Optional[int] = None) -> List[FeedItem]:
        window = settings.FEED_KIND_WINDOW if kind_window is None else kind_window
        require_user_id(user_id)
        if window < 1:
            raise ValidationError("kind_window must be at least 1")

        followed_ids = await self.follow_graph.accepted_following(user_id)
        if not followed_ids:
            logger.debug(f"User {user_id} follows nobody, empty feed")
            return []

        names, workouts, cardio = await asyncio.gather(
            self.identity.get_names(followed_ids),
            self.recent_workouts(followed_ids, window),
            self.recent_cardio(followed_ids, window),
        )

        activities = merge_by_recency(workouts, cardio)
        if not activities:
            return []

        targets = [(activity.id, TargetType(activity.kind)) for activity in activities]
        mine, tallies = await asyncio.gather(
            self.ledger.my_reactions(user_id, targets),
            self.ledger.tally(targets),
        )

        logger.debug(
            f"Feed for {user_id}: {len(workouts)} workouts, {len(cardio)} cardio "
            f"from {len(followed_ids)} followed users"
        )
        return [
            FeedItem(
                activity=activity,
                actor_name=names.get(activity.user_id, self.identity.placeholder),
                reaction_counts=tallies.get(target) or empty_tally(),
                my_reaction=mine.get(target),
            )
            for activity, target in zip(activities, targets)
        ]

    @translate_store_errors
    async def recent_workouts(self, user_ids: List[str], limit: int) -> List[WorkoutActivity]:
        """Most recent completed workout sessions of user_ids, newest first"""
        cursor = self.workouts.find(
            {"user_id": {"$in": user_ids}, "completed": True},
            sort=[("created_at", -1)],
            limit=limit,
        )
        docs = await cursor.to_list(length=None)
        return [WorkoutActivity.from_document(doc) for doc in docs]

    @translate_store_errors
    async def recent_cardio(self, user_ids: List[str], limit: int) -> List[CardioActivity]:
        """Most recent cardio sessions of user_ids, newest first"""
        cursor = self.cardio.find(
            {"user_id": {"$in": user_ids}},
            sort=[("created_at", -1)],
            limit=limit,
        )
        docs = await cursor.to_list(length=None)
        return [CardioActivity.from_document(doc) for doc in docs]
