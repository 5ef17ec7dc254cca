# tests/test_follow_service.py
import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect, DuplicateKeyError

from fitsocial.core.errors import (
    ConflictError,
    InvalidStateError,
    SelfFollowError,
    TransientError,
    ValidationError,
)
from fitsocial.db.mongodb import FOLLOW_EDGES
from fitsocial.follow.models import FollowStatus, RelationshipStatus
from fitsocial.follow.service import FollowGraphService

from conftest import make_mutual


class TestRequestFollow:

    @pytest.mark.asyncio
    async def test_creates_pending_edge(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")

        assert edge.follower_id == "alice"
        assert edge.following_id == "bruno"
        assert edge.status == FollowStatus.PENDING
        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.PENDING
        assert await follow_service.relationship("bruno", "alice") == RelationshipStatus.NONE

    @pytest.mark.asyncio
    async def test_self_follow_rejected_before_store(self, follow_service):
        follow_service.edges = AsyncMock()

        with pytest.raises(SelfFollowError):
            await follow_service.request_follow("alice", "alice")

        follow_service.edges.find_one.assert_not_called()
        follow_service.edges.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_self_follow_is_a_validation_error(self, follow_service):
        with pytest.raises(ValidationError):
            await follow_service.request_follow("bruno", "bruno")

    @pytest.mark.asyncio
    async def test_empty_user_id_rejected(self, follow_service):
        with pytest.raises(ValidationError):
            await follow_service.request_follow("", "bruno")

    @pytest.mark.asyncio
    async def test_duplicate_request_conflicts(self, follow_service, db):
        await follow_service.request_follow("alice", "bruno")

        with pytest.raises(ConflictError):
            await follow_service.request_follow("alice", "bruno")

        assert await db[FOLLOW_EDGES].count_documents({}) == 1

    @pytest.mark.asyncio
    async def test_request_when_already_following_conflicts(self, follow_service):
        await make_mutual(follow_service, "alice", "bruno")

        with pytest.raises(ConflictError):
            await follow_service.request_follow("bruno", "alice")

    @pytest.mark.asyncio
    async def test_concurrent_requests_one_succeeds(self, follow_service, db):
        results = await asyncio.gather(
            follow_service.request_follow("alice", "carla"),
            follow_service.request_follow("alice", "carla"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], ConflictError)
        assert await db[FOLLOW_EDGES].count_documents({"follower_id": "alice"}) == 1

    @pytest.mark.asyncio
    async def test_pair_uniqueness_enforced_by_index(self, follow_service, db):
        await follow_service.request_follow("alice", "bruno")

        with pytest.raises(DuplicateKeyError):
            await db[FOLLOW_EDGES].insert_one({
                "follower_id": "alice",
                "following_id": "bruno",
                "status": "pending",
            })

    @pytest.mark.asyncio
    async def test_reverse_direction_is_a_separate_pair(self, follow_service):
        await follow_service.request_follow("alice", "bruno")
        edge = await follow_service.request_follow("bruno", "alice")

        assert edge.status == FollowStatus.PENDING


class TestAcceptRequest:

    @pytest.mark.asyncio
    async def test_accept_creates_mutual_follow(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")

        accepted = await follow_service.accept_request(edge.id, "bruno")

        assert accepted.status == FollowStatus.ACCEPTED
        assert accepted.accepted_at is not None
        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.ACCEPTED
        assert await follow_service.relationship("bruno", "alice") == RelationshipStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_accept_promotes_crossed_request(self, follow_service, db):
        edge = await follow_service.request_follow("alice", "bruno")
        await follow_service.request_follow("bruno", "alice")

        await follow_service.accept_request(edge.id, "bruno")

        assert await db[FOLLOW_EDGES].count_documents({}) == 2
        assert await follow_service.relationship("bruno", "alice") == RelationshipStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_only_recipient_can_accept(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")

        with pytest.raises(InvalidStateError):
            await follow_service.accept_request(edge.id, "alice")

        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.PENDING

    @pytest.mark.asyncio
    async def test_accept_twice_is_invalid_state(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")
        await follow_service.accept_request(edge.id, "bruno")

        with pytest.raises(InvalidStateError):
            await follow_service.accept_request(edge.id, "bruno")

    @pytest.mark.asyncio
    async def test_accept_declined_request_is_invalid_state(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")
        await follow_service.decline_request(edge.id, "bruno")

        with pytest.raises(InvalidStateError):
            await follow_service.accept_request(edge.id, "bruno")

    @pytest.mark.asyncio
    async def test_malformed_edge_id(self, follow_service):
        with pytest.raises(ValidationError):
            await follow_service.accept_request("not-an-object-id", "bruno")

    @pytest.mark.asyncio
    async def test_failed_reciprocal_write_reverts_primary(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")
        follow_service._upsert_reciprocal = AsyncMock(side_effect=AutoReconnect("connection reset"))

        with pytest.raises(TransientError):
            await follow_service.accept_request(edge.id, "bruno")

        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.PENDING
        assert await follow_service.relationship("bruno", "alice") == RelationshipStatus.NONE


def transactional_client():
    """A Motor-like client whose session and transaction are async context managers"""
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=transaction)
    transaction.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    session.start_transaction = MagicMock(return_value=transaction)

    client = MagicMock()
    client.start_session = AsyncMock(return_value=session)
    return client, session, transaction


class TestTransactionalAccept:

    @pytest.fixture
    def pending_edge(self):
        return {
            "_id": ObjectId(),
            "follower_id": "alice",
            "following_id": "bruno",
            "status": FollowStatus.PENDING.value,
            "created_at": datetime(2026, 3, 1, tzinfo=timezone.utc),
        }

    @pytest.fixture
    def tx(self):
        return transactional_client()

    @pytest.fixture
    def service(self, db, counter, identity, pending_edge, tx):
        client, _, _ = tx
        service = FollowGraphService(db, counter=counter, identity=identity, use_transactions=True)
        service.edges = MagicMock()
        service.edges.find_one = AsyncMock(return_value=pending_edge)
        service.edges.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
        service.mongodb = MagicMock(client=client)
        return service

    @pytest.mark.asyncio
    async def test_both_writes_share_the_session(self, service, pending_edge, tx):
        _, session, _ = tx
        edge = await service.accept_request(str(pending_edge["_id"]), "bruno")

        assert edge.status == FollowStatus.ACCEPTED
        session.start_transaction.assert_called_once()
        calls = service.edges.update_one.await_args_list
        assert len(calls) == 2
        assert all(call.kwargs["session"] is session for call in calls)
        assert calls[0].args[0] == {"_id": pending_edge["_id"], "status": "pending"}
        assert calls[1].args[0] == {"follower_id": "bruno", "following_id": "alice"}
        assert calls[1].kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_reciprocal_failure_aborts_the_transaction(self, service, pending_edge, tx):
        _, _, transaction = tx
        service.edges.update_one.side_effect = [
            MagicMock(modified_count=1),
            AutoReconnect("primary stepped down"),
        ]

        with pytest.raises(TransientError):
            await service.accept_request(str(pending_edge["_id"]), "bruno")

        # The transaction exits with the error; no compensating write is issued
        exc_type = transaction.__aexit__.await_args.args[0]
        assert exc_type is AutoReconnect
        assert service.edges.update_one.await_count == 2

    @pytest.mark.asyncio
    async def test_lost_race_inside_transaction(self, service, pending_edge):
        service.edges.update_one.return_value = MagicMock(modified_count=0)

        with pytest.raises(InvalidStateError):
            await service.accept_request(str(pending_edge["_id"]), "bruno")

        assert service.edges.update_one.await_count == 1


class TestDeclineRequest:

    @pytest.mark.asyncio
    async def test_decline_removes_edge(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")

        assert await follow_service.decline_request(edge.id, "bruno") is True
        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.NONE

    @pytest.mark.asyncio
    async def test_decline_already_gone_is_noop(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")
        await follow_service.decline_request(edge.id, "bruno")

        assert await follow_service.decline_request(edge.id, "bruno") is False

    @pytest.mark.asyncio
    async def test_decline_accepted_edge_is_invalid_state(self, follow_service):
        edge = await make_mutual(follow_service, "alice", "bruno")

        with pytest.raises(InvalidStateError):
            await follow_service.decline_request(edge.id, "bruno")

        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_refollow_after_decline_starts_pending(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")
        await follow_service.decline_request(edge.id, "bruno")

        again = await follow_service.request_follow("alice", "bruno")

        assert again.status == FollowStatus.PENDING
        assert again.id != edge.id


class TestUnfollow:

    @pytest.mark.asyncio
    async def test_unfollow_removes_one_direction_only(self, follow_service):
        edge = await make_mutual(follow_service, "alice", "bruno")

        await follow_service.unfollow(edge.id, "alice")

        assert await follow_service.relationship("alice", "bruno") == RelationshipStatus.NONE
        assert await follow_service.relationship("bruno", "alice") == RelationshipStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_unfollow_someone_elses_edge(self, follow_service):
        edge = await make_mutual(follow_service, "alice", "bruno")

        with pytest.raises(InvalidStateError):
            await follow_service.unfollow(edge.id, "bruno")

    @pytest.mark.asyncio
    async def test_unfollow_pending_edge_is_invalid_state(self, follow_service):
        edge = await follow_service.request_follow("alice", "bruno")

        with pytest.raises(InvalidStateError):
            await follow_service.unfollow(edge.id, "alice")

    @pytest.mark.asyncio
    async def test_refollow_after_unfollow_starts_pending(self, follow_service):
        edge = await make_mutual(follow_service, "alice", "bruno")
        await follow_service.unfollow(edge.id, "alice")

        again = await follow_service.request_follow("alice", "bruno")

        assert again.status == FollowStatus.PENDING


class TestProjections:

    @pytest.mark.asyncio
    async def test_accepted_following_excludes_pending(self, follow_service):
        await make_mutual(follow_service, "alice", "bruno")
        await follow_service.request_follow("alice", "carla")

        assert await follow_service.accepted_following("alice") == ["bruno"]

    @pytest.mark.asyncio
    async def test_pending_inbound(self, follow_service):
        await follow_service.request_follow("alice", "carla")
        await follow_service.request_follow("bruno", "carla")

        inbound = await follow_service.pending_inbound("carla")

        assert {edge.follower_id for edge in inbound} == {"alice", "bruno"}

    @pytest.mark.asyncio
    async def test_outbound_statuses(self, follow_service):
        await make_mutual(follow_service, "alice", "bruno")
        await follow_service.request_follow("alice", "carla")

        assert await follow_service.outbound_statuses("alice") == {
            "bruno": FollowStatus.ACCEPTED,
            "carla": FollowStatus.PENDING,
        }

    @pytest.mark.asyncio
    async def test_list_requests_uses_first_names(self, follow_service):
        edge = await follow_service.request_follow("alice", "carla")
        await follow_service.request_follow("diego", "carla")

        requests = await follow_service.list_requests("carla")
        by_user = {r.user_id: r for r in requests}

        assert by_user["alice"].name == "Alice"
        assert by_user["alice"].edge_id == edge.id
        assert by_user["diego"].name == "User"

    @pytest.mark.asyncio
    async def test_list_following(self, follow_service):
        await make_mutual(follow_service, "alice", "bruno")

        following = await follow_service.list_following("bruno")

        assert [(f.user_id, f.name) for f in following] == [("alice", "Alice")]
