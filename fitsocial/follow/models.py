from enum import Enum
from typing import TypedDict, Optional
from datetime import datetime
from bson import ObjectId

class FollowStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"

class RelationshipStatus(str, Enum):
    """Relationship as seen from one user's outbound edge; NONE means no row"""
    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"

class FollowEdgeDocument(TypedDict, total=False):

    _id: ObjectId
    follower_id: str
    following_id: str
    status: str  # pending, accepted
    created_at: datetime
    accepted_at: Optional[datetime]
