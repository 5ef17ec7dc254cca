from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from fitsocial.core.config import settings
from fitsocial.core.errors import (
    ConflictError,
    InvalidStateError,
    SelfFollowError,
    SocialError,
    translate_store_errors,
)
from fitsocial.db.mongodb import get_mongodb, parse_object_id, require_user_id, FOLLOW_EDGES
from fitsocial.notifications.pending_counter import PendingRequestCounter
from fitsocial.users.identity_service import IdentityService
from .models import FollowStatus, RelationshipStatus, FollowEdgeDocument
from .schemas import FollowEdgeRead, FollowRequestUser, FollowingUser

logger = logging.getLogger(__name__)

PENDING = FollowStatus.PENDING.value
ACCEPTED = FollowStatus.ACCEPTED.value

class FollowGraphService:
    """
    Owns the follow_edges collection.

    Edges are directed (follower -> following) and unique per ordered pair.
    Accepting a request also accepts the reciprocal edge, so an accepted
    request always leaves a mutual relationship behind.
    """

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        counter: Optional[PendingRequestCounter] = None,
        identity: Optional[IdentityService] = None,
        use_transactions: Optional[bool] = None,
    ):
        self.mongodb = db if db is not None else get_mongodb()
        self.edges = self.mongodb.get_collection(FOLLOW_EDGES)
        self.counter = counter if counter is not None else PendingRequestCounter(self.mongodb)
        self.identity = identity if identity is not None else IdentityService(self.mongodb)
        self.use_transactions = (
            settings.MONGODB_USE_TRANSACTIONS if use_transactions is None else use_transactions
        )

    # Mutations

    @translate_store_errors
    async def request_follow(self, follower_id: str, following_id: str) -> FollowEdgeRead:
        """Create a pending edge follower -> following"""
        require_user_id(follower_id, "follower_id")
        require_user_id(following_id, "following_id")
        if follower_id == following_id:
            raise SelfFollowError()

        existing = await self.edges.find_one({
            "follower_id": follower_id,
            "following_id": following_id,
        })
        if existing:
            if existing["status"] == ACCEPTED:
                raise ConflictError("Already following")
            raise ConflictError("Follow request already sent")

        edge: FollowEdgeDocument = {
            "_id": ObjectId(),
            "follower_id": follower_id,
            "following_id": following_id,
            "status": PENDING,
            "created_at": datetime.now(timezone.utc),
        }
        # A concurrent request for the same pair fails here on the unique index
        await self.edges.insert_one(edge)
        logger.info(f"Follow request {edge['_id']} sent from {follower_id} to {following_id}")

        await self._refresh_badges(following_id)
        return FollowEdgeRead.from_document(edge)

    @translate_store_errors
    async def accept_request(self, edge_id: str, recipient_id: str) -> FollowEdgeRead:
        """
        Accept a pending request addressed to recipient_id.

        Also creates or updates the reciprocal edge recipient -> requester to
        accepted. Both writes share a transaction when transactions are
        enabled; otherwise a failed reciprocal write reverts the primary edge
        to pending before the error propagates.
        """
        oid = parse_object_id(edge_id, "edge_id")
        require_user_id(recipient_id, "recipient_id")

        edge = await self.edges.find_one({"_id": oid})
        if not edge or edge["status"] != PENDING or edge["following_id"] != recipient_id:
            raise InvalidStateError("Follow request is no longer pending")

        requester_id = edge["follower_id"]
        now = datetime.now(timezone.utc)

        if self.use_transactions:
            async with await self.mongodb.client.start_session() as session:
                async with session.start_transaction():
                    await self._accept_primary(oid, now, session=session)
                    await self._upsert_reciprocal(recipient_id, requester_id, now, session=session)
        else:
            await self._accept_primary(oid, now)
            try:
                await self._upsert_reciprocal(recipient_id, requester_id, now)
            except PyMongoError as e:
                logger.error(f"Reciprocal edge for request {edge_id} failed, reverting: {e}")
                await self.edges.update_one(
                    {"_id": oid, "status": ACCEPTED},
                    {"$set": {"status": PENDING}, "$unset": {"accepted_at": ""}},
                )
                raise

        logger.info(f"Follow request {edge_id} accepted; {recipient_id} and {requester_id} follow each other")

        # The reciprocal upsert may have promoted a pending request to the requester
        await self._refresh_badges(recipient_id, requester_id)

        edge["status"] = ACCEPTED
        edge["accepted_at"] = now
        return FollowEdgeRead.from_document(edge)

    @translate_store_errors
    async def decline_request(self, edge_id: str, recipient_id: str) -> bool:
        """
        Delete a pending request addressed to recipient_id.
        Returns False when the request was already gone.
        """
        oid = parse_object_id(edge_id, "edge_id")
        require_user_id(recipient_id, "recipient_id")

        result = await self.edges.delete_one({
            "_id": oid,
            "following_id": recipient_id,
            "status": PENDING,
        })
        if result.deleted_count == 0:
            existing = await self.edges.find_one({"_id": oid})
            if existing is not None:
                raise InvalidStateError("Follow request is no longer pending")
            logger.debug(f"Follow request {edge_id} already gone")
            declined = False
        else:
            logger.info(f"Follow request {edge_id} declined by {recipient_id}")
            declined = True

        await self._refresh_badges(recipient_id)
        return declined

    @translate_store_errors
    async def unfollow(self, edge_id: str, follower_id: str) -> None:
        """Remove one accepted edge owned by follower_id. The reverse edge is kept."""
        oid = parse_object_id(edge_id, "edge_id")
        require_user_id(follower_id, "follower_id")

        result = await self.edges.delete_one({
            "_id": oid,
            "follower_id": follower_id,
            "status": ACCEPTED,
        })
        if result.deleted_count == 0:
            raise InvalidStateError("Follow relationship not found")
        logger.info(f"User {follower_id} removed follow edge {edge_id}")

    # Projections

    @translate_store_errors
    async def accepted_following(self, user_id: str) -> List[str]:
        """Ids of users user_id follows with an accepted edge"""
        cursor = self.edges.find(
            {"follower_id": user_id, "status": ACCEPTED},
            {"following_id": 1},
        )
        docs = await cursor.to_list(length=None)
        return [doc["following_id"] for doc in docs]

    @translate_store_errors
    async def pending_inbound(self, user_id: str) -> List[FollowEdgeRead]:
        cursor = self.edges.find(
            {"following_id": user_id, "status": PENDING},
            sort=[("created_at", -1)],
        )
        docs = await cursor.to_list(length=None)
        return [FollowEdgeRead.from_document(doc) for doc in docs]

    @translate_store_errors
    async def outbound_statuses(self, user_id: str) -> Dict[str, FollowStatus]:
        """following_id -> status for every outbound edge of user_id"""
        cursor = self.edges.find(
            {"follower_id": user_id},
            {"following_id": 1, "status": 1},
        )
        docs = await cursor.to_list(length=None)
        return {doc["following_id"]: FollowStatus(doc["status"]) for doc in docs}

    @translate_store_errors
    async def relationship(self, follower_id: str, following_id: str) -> RelationshipStatus:
        edge = await self.edges.find_one({
            "follower_id": follower_id,
            "following_id": following_id,
        })
        if not edge:
            return RelationshipStatus.NONE
        return RelationshipStatus(edge["status"])

    async def list_requests(self, user_id: str) -> List[FollowRequestUser]:
        """Pending inbound requests with requester names"""
        require_user_id(user_id)
        requests = await self.pending_inbound(user_id)
        if not requests:
            return []

        names = await self.identity.get_names([r.follower_id for r in requests])
        return [
            FollowRequestUser(user_id=r.follower_id, name=names[r.follower_id], edge_id=r.id)
            for r in requests
        ]

    @translate_store_errors
    async def list_following(self, user_id: str) -> List[FollowingUser]:
        """Accepted outbound edges with followee names"""
        require_user_id(user_id)
        cursor = self.edges.find({"follower_id": user_id, "status": ACCEPTED})
        docs = await cursor.to_list(length=None)
        if not docs:
            return []

        names = await self.identity.get_names([doc["following_id"] for doc in docs])
        return [
            FollowingUser(
                user_id=doc["following_id"],
                name=names[doc["following_id"]],
                edge_id=str(doc["_id"]),
            )
            for doc in docs
        ]

    async def _accept_primary(self, oid: ObjectId, now: datetime, session=None) -> None:
        kwargs = {"session": session} if session is not None else {}
        result = await self.edges.update_one(
            {"_id": oid, "status": PENDING},
            {"$set": {"status": ACCEPTED, "accepted_at": now}},
            **kwargs,
        )
        if result.modified_count == 0:
            # Resolved by a concurrent accept or decline
            raise InvalidStateError("Follow request is no longer pending")

    async def _upsert_reciprocal(self, follower_id: str, following_id: str, now: datetime, session=None) -> None:
        kwargs = {"session": session} if session is not None else {}
        await self.edges.update_one(
            {"follower_id": follower_id, "following_id": following_id},
            {
                "$set": {"status": ACCEPTED, "accepted_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            **kwargs,
        )

    async def _refresh_badges(self, *user_ids: str) -> None:
        """Recompute pending counts after a mutation; the write itself already succeeded"""
        for user_id in dict.fromkeys(user_ids):
            try:
                await self.counter.refresh(user_id)
            except SocialError as e:
                logger.warning(f"Could not refresh pending count for {user_id}: {e.detail}")
