"""
Shared fixtures: an in-process Motor-compatible database and the social
services wired against it.
"""
from datetime import datetime

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from fitsocial.db.mongodb import (
    create_mongodb_indexes,
    CARDIO_SESSIONS,
    PROFILES,
    WORKOUT_SESSIONS,
)
from fitsocial.directory.service import DirectoryService
from fitsocial.feed.service import ActivityAggregator
from fitsocial.follow.service import FollowGraphService
from fitsocial.notifications.pending_counter import PendingRequestCounter
from fitsocial.reactions.service import ReactionLedger
from fitsocial.users.identity_service import IdentityService


@pytest_asyncio.fixture
async def db():
    database = AsyncMongoMockClient()["fitsocial_test"]
    await create_mongodb_indexes(database)
    await database[PROFILES].insert_many([
        {"_id": "alice", "name": "Alice Moreira"},
        {"_id": "bruno", "name": "Bruno Lima"},
        {"_id": "carla", "name": "Carla Souza"},
        {"_id": "diego", "name": ""},
    ])
    return database


@pytest.fixture
def counter(db) -> PendingRequestCounter:
    return PendingRequestCounter(db)


@pytest.fixture
def identity(db) -> IdentityService:
    return IdentityService(db)


@pytest.fixture
def follow_service(db, counter, identity) -> FollowGraphService:
    return FollowGraphService(db, counter=counter, identity=identity, use_transactions=False)


@pytest.fixture
def ledger(db) -> ReactionLedger:
    return ReactionLedger(db)


@pytest.fixture
def aggregator(db, follow_service, ledger, identity) -> ActivityAggregator:
    return ActivityAggregator(follow_service, ledger, identity, db=db)


@pytest.fixture
def directory(follow_service, identity) -> DirectoryService:
    return DirectoryService(follow_service, identity)


@pytest.fixture
def seed_activity(db):
    """Insert workout and cardio sessions directly, as the tracking subsystem would"""

    async def _seed(workouts=(), cardio=()):
        if workouts:
            await db[WORKOUT_SESSIONS].insert_many([dict(doc) for doc in workouts])
        if cardio:
            await db[CARDIO_SESSIONS].insert_many([dict(doc) for doc in cardio])

    return _seed


async def make_mutual(follow_service: FollowGraphService, a: str, b: str):
    """a requests b and b accepts"""
    edge = await follow_service.request_follow(a, b)
    await follow_service.accept_request(edge.id, b)
    return edge


def at(day: int, hour: int = 8) -> datetime:
    return datetime(2026, 3, day, hour, 0)
