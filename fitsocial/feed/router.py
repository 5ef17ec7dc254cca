from fastapi import APIRouter, Depends, Query

from fitsocial.auth.dependencies import current_user_id
from fitsocial.core.config import settings
from fitsocial.core.dependencies import get_activity_aggregator
from .service import ActivityAggregator
from .schemas import FeedResponse

router = APIRouter(prefix="/feed", tags=["feed"])

@router.get("", response_model=FeedResponse)
async def get_feed(
    kind_window: int = Query(settings.FEED_KIND_WINDOW, ge=1, le=settings.MAX_FEED_WINDOW),
    user_id: str = Depends(current_user_id),
    aggregator: ActivityAggregator = Depends(get_activity_aggregator)
):
    """Recent activity of followed users, newest first"""
    items = await aggregator.build_feed(user_id, kind_window)
    return FeedResponse(items=items, count=len(items))
