# fitsocial/router.py
from fastapi import APIRouter

from fitsocial.follow.router import router as follow_router
from fitsocial.feed.router import router as feed_router
from fitsocial.reactions.router import router as reactions_router
from fitsocial.directory.router import router as directory_router

# Create main API router
api_router = APIRouter()

# Include all sub-routers WITHOUT /api/v1 prefix (it's added in main.py)
api_router.include_router(follow_router)            # Will be at /api/v1/follow/...
api_router.include_router(feed_router)              # Will be at /api/v1/feed
api_router.include_router(reactions_router)         # Will be at /api/v1/reactions/...
api_router.include_router(directory_router)         # Will be at /api/v1/directory
