# fitsocial/db/mongodb.py
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from functools import lru_cache
from typing import Optional, cast
from pymongo import ASCENDING, DESCENDING
from fitsocial.core.config import settings
from fitsocial.core.errors import ValidationError
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

# Collection names
FOLLOW_EDGES = "follow_edges"
REACTIONS = "reactions"
WORKOUT_SESSIONS = "workout_sessions"
CARDIO_SESSIONS = "cardio_sessions"
PROFILES = "profiles"

@lru_cache()
def get_mongodb() -> AsyncIOMotorDatabase:
    """
    Get MongoDB database connection with proper typing.
    Uses LRU cache to reuse the same connection.
    
    Returns:
        AsyncIOMotorDatabase: MongoDB database connection
    """
    client = AsyncIOMotorClient(
        settings.MONGODB_URL,
        maxPoolSize=settings.MONGODB_POOL_SIZE,
        maxIdleTimeMS=settings.MONGODB_MAX_IDLE_TIME_MS,
    )
    return cast(AsyncIOMotorDatabase, client[settings.MONGODB_DB_NAME])

def parse_object_id(id_value: str, field: str = "id") -> ObjectId:
    """
    Convert a string id to ObjectId.
    Raises ValidationError for malformed ids so no store call is made.
    """
    if isinstance(id_value, ObjectId):
        return id_value
    if not id_value:
        raise ValidationError(f"Missing {field}")
    try:
        return ObjectId(id_value)
    except (InvalidId, TypeError) as e:
        logger.debug(f"Invalid ObjectId format for {field}: {e}")
        raise ValidationError(f"Invalid {field} format") from e

def require_user_id(user_id: Optional[str], field: str = "user_id") -> str:
    """Reject empty or non-string user ids before any store call."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError(f"Invalid {field}")
    return user_id


# MongoDB indexes creation
async def create_mongodb_indexes(db: Optional[AsyncIOMotorDatabase] = None) -> None:
    """
    Create all necessary MongoDB indexes for the application.
    This function should be called during application startup.

    The follow and reaction indexes carry the uniqueness rules, so a failure
    there propagates and startup fails. The read indexes only affect speed.
    """
    if db is None:
        db = get_mongodb()
    logger.info("Creating MongoDB indexes...")

    try:
        await _create_follow_indexes(db)
        await _create_reaction_indexes(db)
    except Exception as e:
        logger.critical("Error creating unique MongoDB indexes: %s", str(e))
        raise

    try:
        await _create_activity_indexes(db)
        await _create_profile_indexes(db)
    except Exception as e:
        logger.error("Error creating MongoDB read indexes: %s", str(e))
        # Feed and directory still work without them
        return

    logger.info("MongoDB indexes created successfully")

async def _create_follow_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for the follow_edges collection"""
    edges = db[FOLLOW_EDGES]
    
    # One edge per ordered pair; this is the concurrency boundary for requests
    await edges.create_index([("follower_id", ASCENDING), ("following_id", ASCENDING)],
                             unique=True,
                             background=True,
                             name="follow_edge_pair")
    
    # Inbound pending requests (badge count, request list)
    await edges.create_index([("following_id", ASCENDING), ("status", ASCENDING)],
                             background=True,
                             name="follow_edge_inbound")
    
    # Outbound edges by status (feed, following list, directory)
    await edges.create_index([("follower_id", ASCENDING), ("status", ASCENDING)],
                             background=True,
                             name="follow_edge_outbound")

async def _create_reaction_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for the reactions collection"""
    reactions = db[REACTIONS]
    
    # At most one reaction per user per target
    await reactions.create_index([("user_id", ASCENDING), ("target_id", ASCENDING),
                                  ("target_type", ASCENDING)],
                                 unique=True,
                                 background=True,
                                 name="reaction_user_target")
    
    # Tallies
    await reactions.create_index([("target_id", ASCENDING), ("reaction_kind", ASCENDING)],
                                 background=True,
                                 name="reaction_target_kind")

async def _create_activity_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for the activity collections read by the feed"""
    workouts = db[WORKOUT_SESSIONS]
    await workouts.create_index([("user_id", ASCENDING), ("completed", ASCENDING),
                                 ("created_at", DESCENDING)],
                                background=True,
                                name="workout_user_timeline")
    
    cardio = db[CARDIO_SESSIONS]
    await cardio.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)],
                              background=True,
                              name="cardio_user_timeline")

async def _create_profile_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create indexes for the profiles collection"""
    profiles = db[PROFILES]
    await profiles.create_index("name", background=True)
