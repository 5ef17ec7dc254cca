import asyncio
import logging
from typing import Iterable, List, Optional

from fitsocial.core.config import settings
from fitsocial.core.errors import ValidationError
from fitsocial.db.mongodb import require_user_id
from fitsocial.follow.models import RelationshipStatus
from fitsocial.follow.service import FollowGraphService
from fitsocial.users.identity_service import IdentityService
from .schemas import DirectoryCandidate

logger = logging.getLogger(__name__)

def filter_candidates(candidates: Iterable[DirectoryCandidate], query: Optional[str]) -> List[DirectoryCandidate]:
    """Case-insensitive substring match on name over an already fetched page"""
    if not query:
        return list(candidates)
    needle = query.lower()
    return [c for c in candidates if needle in c.name.lower()]

class DirectoryService:
    """Lists other users with the caller's outbound relationship to each"""

    def __init__(self, follow_graph: FollowGraphService, identity: IdentityService):
        self.follow_graph = follow_graph
        self.identity = identity

    async def list_candidates(
        self,
        user_id: str,
        name_filter: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[DirectoryCandidate]:
        require_user_id(user_id)
        limit = settings.DIRECTORY_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")

        profiles, statuses = await asyncio.gather(
            self.identity.list_profiles(user_id, limit),
            self.follow_graph.outbound_statuses(user_id),
        )

        candidates = [
            DirectoryCandidate(
                user_id=profile["user_id"],
                name=profile["name"],
                status=RelationshipStatus(statuses[profile["user_id"]].value)
                if profile["user_id"] in statuses
                else RelationshipStatus.NONE,
            )
            for profile in profiles
        ]
        return filter_candidates(candidates, name_filter)
