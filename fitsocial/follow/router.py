from typing import List
from fastapi import APIRouter, Depends, status

from fitsocial.auth.dependencies import current_user_id
from fitsocial.core.dependencies import get_follow_service, get_pending_counter
from fitsocial.notifications.pending_counter import PendingRequestCounter
from .service import FollowGraphService
from .schemas import (
    DeclineResult,
    FollowEdgeRead,
    FollowingUser,
    FollowRequestCreate,
    FollowRequestUser,
    PendingCount,
)

router = APIRouter(prefix="/follow", tags=["follow"])

@router.post("/requests", response_model=FollowEdgeRead, status_code=status.HTTP_201_CREATED)
async def send_follow_request(
    data: FollowRequestCreate,
    user_id: str = Depends(current_user_id),
    service: FollowGraphService = Depends(get_follow_service)
):
    """Send a follow request to another user"""
    return await service.request_follow(user_id, data.following_id)

@router.get("/requests", response_model=List[FollowRequestUser])
async def get_my_requests(
    user_id: str = Depends(current_user_id),
    service: FollowGraphService = Depends(get_follow_service)
):
    """Pending requests addressed to the current user"""
    return await service.list_requests(user_id)

@router.post("/requests/{edge_id}/accept", response_model=FollowEdgeRead)
async def accept_follow_request(
    edge_id: str,
    user_id: str = Depends(current_user_id),
    service: FollowGraphService = Depends(get_follow_service)
):
    """Accept a request; both users end up following each other"""
    return await service.accept_request(edge_id, user_id)

@router.delete("/requests/{edge_id}", response_model=DeclineResult)
async def decline_follow_request(
    edge_id: str,
    user_id: str = Depends(current_user_id),
    service: FollowGraphService = Depends(get_follow_service)
):
    """Decline a request. Declining an already removed request is not an error."""
    declined = await service.decline_request(edge_id, user_id)
    return DeclineResult(declined=declined)

@router.get("/following", response_model=List[FollowingUser])
async def get_my_following(
    user_id: str = Depends(current_user_id),
    service: FollowGraphService = Depends(get_follow_service)
):
    """Users the current user follows"""
    return await service.list_following(user_id)

@router.delete("/following/{edge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    edge_id: str,
    user_id: str = Depends(current_user_id),
    service: FollowGraphService = Depends(get_follow_service)
):
    """Stop following; the other user's edge is kept"""
    await service.unfollow(edge_id, user_id)

@router.get("/pending-count", response_model=PendingCount)
async def get_pending_count(
    user_id: str = Depends(current_user_id),
    counter: PendingRequestCounter = Depends(get_pending_counter)
):
    """Recompute the pending request badge for the current user"""
    return PendingCount(count=await counter.refresh(user_id))
