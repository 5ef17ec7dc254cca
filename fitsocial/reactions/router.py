from typing import List
from fastapi import APIRouter, Depends, Query

from fitsocial.auth.dependencies import current_user_id
from fitsocial.core.dependencies import get_reaction_ledger
from .models import TargetType
from .service import ReactionLedger
from .schemas import ReactionState, ReactionTally, ReactionToggle

router = APIRouter(prefix="/reactions", tags=["reactions"])

@router.post("/toggle", response_model=ReactionState)
async def toggle_reaction(
    data: ReactionToggle,
    user_id: str = Depends(current_user_id),
    ledger: ReactionLedger = Depends(get_reaction_ledger)
):
    """React to an activity; repeating the same reaction removes it"""
    kind = await ledger.toggle_reaction(user_id, data.target_id, data.target_type, data.kind)
    return ReactionState(target_id=data.target_id, target_type=data.target_type, my_reaction=kind)

@router.get("/tally", response_model=List[ReactionTally])
async def get_tally(
    target_ids: List[str] = Query(...),
    target_type: TargetType = Query(...),
    user_id: str = Depends(current_user_id),
    ledger: ReactionLedger = Depends(get_reaction_ledger)
):
    """Reaction counts per kind for each target of one type"""
    tallies = await ledger.tally((target_id, target_type) for target_id in target_ids)
    return [
        ReactionTally(target_id=target_id, target_type=target_type, counts=counts)
        for (target_id, _), counts in tallies.items()
    ]
