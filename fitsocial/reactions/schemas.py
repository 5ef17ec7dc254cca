from typing import Dict, Optional
from pydantic import BaseModel, field_validator

from .models import ReactionKind, TargetType

class ReactionToggle(BaseModel):
    """Schema for toggling a reaction on an activity"""
    target_id: str
    target_type: TargetType
    kind: ReactionKind

    @field_validator('target_id')
    def validate_target_id(cls, v):
        if not v or not v.strip():
            raise ValueError('Target id cannot be empty')
        return v

class ReactionState(BaseModel):
    """The caller's reaction on a target after a toggle"""
    target_id: str
    target_type: TargetType
    my_reaction: Optional[ReactionKind] = None

class ReactionTally(BaseModel):
    target_id: str
    target_type: TargetType
    counts: Dict[ReactionKind, int]
