from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from fitsocial.core.errors import ValidationError, translate_store_errors
from fitsocial.db.mongodb import get_mongodb, require_user_id, REACTIONS
from .models import ReactionKind, ReactionTarget, TargetType, Tally, empty_tally

logger = logging.getLogger(__name__)

class ReactionLedger:
    """
    Owns the reactions collection.

    A user holds at most one reaction per (target_id, target_type).
    Repeating the current kind removes it; a different kind replaces it.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self.mongodb = db if db is not None else get_mongodb()
        self.reactions = self.mongodb.get_collection(REACTIONS)

    @translate_store_errors
    async def toggle_reaction(
        self,
        user_id: str,
        target_id: str,
        target_type: Union[TargetType, str],
        kind: Union[ReactionKind, str],
    ) -> Optional[ReactionKind]:
        """Toggle a reaction and return the caller's new reaction, or None"""
        require_user_id(user_id)
        require_user_id(target_id, "target_id")
        target_type = _parse(TargetType, target_type, "target_type")
        kind = _parse(ReactionKind, kind, "reaction kind")

        key = {
            "user_id": user_id,
            "target_id": target_id,
            "target_type": target_type.value,
        }
        current = await self.reactions.find_one(key)

        if current and current.get("reaction_kind") == kind.value:
            await self.reactions.delete_one(key)
            logger.debug(f"User {user_id} removed {kind.value} from {target_type.value} {target_id}")
            return None

        await self.reactions.update_one(
            key,
            {"$set": {"reaction_kind": kind.value, "created_at": datetime.now(timezone.utc)}},
            upsert=True,
        )
        logger.debug(f"User {user_id} reacted {kind.value} to {target_type.value} {target_id}")
        return kind

    @translate_store_errors
    async def tally(self, targets: Iterable[ReactionTarget]) -> Dict[ReactionTarget, Tally]:
        """
        Counts per kind for each (target_id, target_type).
        Every requested target gets every kind.
        """
        keys = _normalize_targets(targets)
        tallies = {key: empty_tally() for key in keys}
        if not keys:
            return tallies

        pipeline = [
            {"$match": {"target_id": {"$in": list({target_id for target_id, _ in keys})}}},
            {
                "$group": {
                    "_id": {
                        "target_id": "$target_id",
                        "target_type": "$target_type",
                        "kind": "$reaction_kind",
                    },
                    "count": {"$sum": 1},
                }
            },
        ]
        rows = await self.reactions.aggregate(pipeline).to_list(length=None)

        for row in rows:
            group = row["_id"]
            try:
                key = (group["target_id"], TargetType(group["target_type"]))
                kind = ReactionKind(group["kind"])
            except ValueError:
                logger.warning(f"Ignoring unknown reaction row {group!r}")
                continue
            # Same id under a type that was not asked for
            if key in tallies:
                tallies[key][kind] += row["count"]

        return tallies

    @translate_store_errors
    async def my_reactions(
        self,
        user_id: str,
        targets: Iterable[ReactionTarget],
    ) -> Dict[ReactionTarget, ReactionKind]:
        """(target_id, target_type) -> the caller's reaction, for targets the caller reacted to"""
        keys = set(_normalize_targets(targets))
        if not keys:
            return {}

        cursor = self.reactions.find(
            {"user_id": user_id, "target_id": {"$in": list({target_id for target_id, _ in keys})}},
            {"target_id": 1, "target_type": 1, "reaction_kind": 1},
        )
        docs = await cursor.to_list(length=None)

        mine: Dict[ReactionTarget, ReactionKind] = {}
        for doc in docs:
            try:
                key = (doc["target_id"], TargetType(doc.get("target_type")))
                kind = ReactionKind(doc["reaction_kind"])
            except ValueError:
                logger.warning(f"Ignoring unknown reaction {doc.get('reaction_kind')!r} on {doc['target_id']}")
                continue
            if key in keys:
                mine[key] = kind
        return mine

def _normalize_targets(targets: Iterable[ReactionTarget]) -> List[ReactionTarget]:
    """Deduplicated (target_id, TargetType) pairs in request order"""
    return list(dict.fromkeys(
        (target_id, _parse(TargetType, target_type, "target_type"))
        for target_id, target_type in targets
    ))

def _parse(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value}") from e
