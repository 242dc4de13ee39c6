"""Admin staged discovery approval routes."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.common import ApiResponse
from app.schemas.discoveries import ApproveRequest, ApproveResult
from app.services.discoveries import (
    DiscoveryApprovalError,
    DiscoveryNotFoundError,
    approve_discovery,
)

router = APIRouter(prefix="/admin/discoveries")


@router.post("/approve", response_model=ApiResponse[ApproveResult])
def post_approve_discovery(
    payload: ApproveRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[ApproveResult]:
    """Approve or reject one staged discovery."""

    try:
        result = approve_discovery(db, payload)
    except DiscoveryNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except DiscoveryApprovalError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(data=result)
