from datetime import datetime, timezone
from itertools import chain
from operator import attrgetter
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from fitsocial.reactions.models import ReactionKind, TargetType

class _Activity(BaseModel):
    """Fields shared by every activity kind"""
    id: str
    user_id: str
    created_at: datetime

    @field_validator("created_at")
    def created_at_as_utc(cls, v: datetime) -> datetime:
        # Motor returns naive UTC unless the client is tz_aware
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    class Config:
        frozen = True

class WorkoutActivity(_Activity):
    kind: Literal["workout"] = "workout"
    duration_minutes: Optional[float] = None
    total_load_kg: Optional[float] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "WorkoutActivity":
        return cls(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            created_at=doc["created_at"],
            duration_minutes=doc.get("duration_minutes"),
            total_load_kg=doc.get("total_load_kg"),
        )

class CardioActivity(_Activity):
    kind: Literal["cardio"] = "cardio"
    cardio_type: Optional[str] = None
    duration_minutes: Optional[float] = None
    distance_km: Optional[float] = None
    calories_burned: Optional[float] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CardioActivity":
        return cls(
            id=str(doc["_id"]),
            user_id=doc["user_id"],
            created_at=doc["created_at"],
            cardio_type=doc.get("cardio_type"),
            duration_minutes=doc.get("duration_minutes"),
            distance_km=doc.get("distance_km"),
            calories_burned=doc.get("calories_burned"),
        )

ActivityItem = Annotated[Union[WorkoutActivity, CardioActivity], Field(discriminator="kind")]

class FeedItem(BaseModel):
    """One activity joined with its actor and reactions. Built per load, never stored."""
    activity: ActivityItem
    actor_name: str
    reaction_counts: Dict[ReactionKind, int]
    my_reaction: Optional[ReactionKind] = None

    @property
    def id(self) -> str:
        return self.activity.id

    @property
    def created_at(self) -> datetime:
        return self.activity.created_at

    @property
    def target_type(self) -> TargetType:
        return TargetType(self.activity.kind)

def merge_by_recency(*streams: Iterable[_Activity]) -> List[_Activity]:
    """Merge activity lists, newest first"""
    return sorted(chain(*streams), key=attrgetter("created_at"), reverse=True)
