from enum import Enum
from typing import Dict, Optional, Tuple, TypedDict
from datetime import datetime
from bson import ObjectId

class ReactionKind(str, Enum):
    PRAISE = "praise"
    FIRE = "fire"
    ENCOURAGEMENT = "encouragement"

class TargetType(str, Enum):
    WORKOUT = "workout"
    CARDIO = "cardio"

class ReactionDocument(TypedDict, total=False):

    _id: ObjectId
    user_id: str
    target_id: str
    target_type: str  # workout, cardio
    reaction_kind: str  # praise, fire, encouragement
    created_at: datetime

Tally = Dict[ReactionKind, int]

# Reactions are keyed by id and type together
ReactionTarget = Tuple[str, TargetType]

def empty_tally() -> Tally:
    return {kind: 0 for kind in ReactionKind}

def apply_reaction_delta(
    counts: Tally,
    previous: Optional[ReactionKind],
    new: Optional[ReactionKind],
) -> Tally:
    """
    Tally after a user's reaction moves from previous to new.

    Used for optimistic display before the write is confirmed; the
    previous kind never drops below zero.
    """
    result = {**empty_tally(), **counts}
    if previous is not None:
        result[previous] = max(0, result[previous] - 1)
    if new is not None:
        result[new] = result[new] + 1
    return result
