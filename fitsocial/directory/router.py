from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from fitsocial.auth.dependencies import current_user_id
from fitsocial.core.config import settings
from fitsocial.core.dependencies import get_directory_service
from .service import DirectoryService
from .schemas import DirectoryCandidate

router = APIRouter(prefix="/directory", tags=["directory"])

@router.get("", response_model=List[DirectoryCandidate])
async def list_users(
    q: Optional[str] = None,
    limit: int = Query(settings.DIRECTORY_LIMIT, ge=1, le=settings.DIRECTORY_LIMIT),
    user_id: str = Depends(current_user_id),
    service: DirectoryService = Depends(get_directory_service)
):
    """Other users with the current user's follow status for each"""
    return await service.list_candidates(user_id, name_filter=q, limit=limit)
