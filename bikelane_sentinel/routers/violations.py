from typing import List

from fastapi import APIRouter, Depends

from bikelane_sentinel.core.dependencies import get_violation_store
from bikelane_sentinel.core.exceptions import ViolationNotFoundError
from bikelane_sentinel.db.store import ViolationStore
from bikelane_sentinel.schemas.common import ApiResponse
from bikelane_sentinel.schemas.violation import Violation, ViolationStatusUpdate

router = APIRouter(prefix="/violations", tags=["Violations"])


@router.get("", response_model=ApiResponse[List[Violation]], response_model_exclude_none=True)
async def list_violations(store: ViolationStore = Depends(get_violation_store)):
    """All recorded violations, newest first."""
    return ApiResponse(data=store.list())


@router.get("/{violation_id}", response_model=ApiResponse[Violation], response_model_exclude_none=True)
async def get_violation(violation_id: str, store: ViolationStore = Depends(get_violation_store)):
    violation = store.get(violation_id)
    if violation is None:
        raise ViolationNotFoundError(violation_id)
    return ApiResponse(data=violation)


@router.post("/{violation_id}/status", response_model=ApiResponse[Violation], response_model_exclude_none=True)
async def update_violation_status(
        violation_id: str,
        update: ViolationStatusUpdate,
        store: ViolationStore = Depends(get_violation_store),
):
    """Moves a violation to a new review status. Repeating the same status is allowed."""
    violation = store.update_status(violation_id, update.status)
    return ApiResponse(data=violation)
