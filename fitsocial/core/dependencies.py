# fitsocial/core/dependencies.py
from functools import lru_cache
from fastapi import Depends

from fitsocial.db.mongodb import get_mongodb
from fitsocial.directory.service import DirectoryService
from fitsocial.feed.service import ActivityAggregator
from fitsocial.follow.service import FollowGraphService
from fitsocial.notifications.pending_counter import PendingRequestCounter
from fitsocial.reactions.service import ReactionLedger
from fitsocial.users.identity_service import IdentityService

@lru_cache()
def get_pending_counter() -> PendingRequestCounter:
    """One counter per process so badge subscribers see every refresh"""
    return PendingRequestCounter(get_mongodb())

def get_identity_service() -> IdentityService:
    return IdentityService(get_mongodb())

def get_reaction_ledger() -> ReactionLedger:
    return ReactionLedger(get_mongodb())

def get_follow_service(
    counter: PendingRequestCounter = Depends(get_pending_counter),
    identity: IdentityService = Depends(get_identity_service),
) -> FollowGraphService:
    return FollowGraphService(get_mongodb(), counter=counter, identity=identity)

def get_activity_aggregator(
    follow_graph: FollowGraphService = Depends(get_follow_service),
    ledger: ReactionLedger = Depends(get_reaction_ledger),
    identity: IdentityService = Depends(get_identity_service),
) -> ActivityAggregator:
    return ActivityAggregator(follow_graph, ledger, identity, db=get_mongodb())

def get_directory_service(
    follow_graph: FollowGraphService = Depends(get_follow_service),
    identity: IdentityService = Depends(get_identity_service),
) -> DirectoryService:
    return DirectoryService(follow_graph, identity)
