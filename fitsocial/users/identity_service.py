# fitsocial/users/identity_service.py
from typing import Dict, Any, Optional, List
import logging
from motor.motor_asyncio import AsyncIOMotorDatabase

from fitsocial.core.config import settings
from fitsocial.core.errors import translate_store_errors
from fitsocial.db.mongodb import get_mongodb, PROFILES

logger = logging.getLogger(__name__)

class IdentityService:
    """
    Read-only access to user profiles owned by the profile subsystem.
    Names may be missing; callers always get the placeholder instead.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self.mongodb = db if db is not None else get_mongodb()
        self.profiles = self.mongodb.get_collection(PROFILES)
        self.placeholder = settings.PLACEHOLDER_NAME

    def full_name(self, name: Optional[str]) -> str:
        if not name or not name.strip():
            return self.placeholder
        return name.strip()

    def display_name(self, name: Optional[str]) -> str:
        """First name only, as shown on feed cards and request lists"""
        return self.full_name(name).split()[0]

    @translate_store_errors
    async def get_names(self, user_ids: List[str]) -> Dict[str, str]:
        """
        Map user ids to display names.
        Every requested id is present in the result.
        """
        unique_ids = list(dict.fromkeys(user_ids))
        if not unique_ids:
            return {}

        cursor = self.profiles.find({"_id": {"$in": unique_ids}}, {"name": 1})
        docs = await cursor.to_list(length=None)
        found = {doc["_id"]: doc.get("name") for doc in docs}

        missing = len(unique_ids) - len(found)
        if missing:
            logger.debug(f"{missing} of {len(unique_ids)} profiles missing, using placeholder")

        return {user_id: self.display_name(found.get(user_id)) for user_id in unique_ids}

    @translate_store_errors
    async def list_profiles(self, exclude_id: str, limit: int) -> List[Dict[str, Any]]:
        """Profiles other than exclude_id ordered by name"""
        cursor = self.profiles.find(
            {"_id": {"$ne": exclude_id}},
            {"name": 1},
            sort=[("name", 1)],
            limit=limit,
        )
        docs = await cursor.to_list(length=None)
        return [
            {"user_id": doc["_id"], "name": self.full_name(doc.get("name"))}
            for doc in docs
        ]
