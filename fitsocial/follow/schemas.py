from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, field_validator

from .models import FollowStatus

class FollowRequestCreate(BaseModel):
    """Schema for sending a follow request"""
    following_id: str

    @field_validator('following_id')
    def validate_following_id(cls, v):
        if not v or not v.strip():
            raise ValueError('User id cannot be empty')
        if len(v) > 64:
            raise ValueError('User id cannot be longer than 64 characters')
        return v

class FollowEdgeRead(BaseModel):
    """Schema for reading follow edges"""
    id: str
    follower_id: str
    following_id: str
    status: FollowStatus
    created_at: datetime
    accepted_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "FollowEdgeRead":
        return cls(
            id=str(doc["_id"]),
            follower_id=doc["follower_id"],
            following_id=doc["following_id"],
            status=doc["status"],
            created_at=doc["created_at"],
            accepted_at=doc.get("accepted_at"),
        )

class FollowRequestUser(BaseModel):
    """A pending inbound request, shown to the recipient"""
    user_id: str
    name: str
    edge_id: str

class FollowingUser(BaseModel):
    """An accepted outbound edge, shown in the following list"""
    user_id: str
    name: str
    edge_id: str

class PendingCount(BaseModel):
    count: int

class DeclineResult(BaseModel):
    declined: bool
