"""Admin duplicate review routes."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.dependencies import get_db
from app.schemas.common import ApiResponse
from app.schemas.data_change import DataChangeRead
from app.schemas.duplicates import (
    DuplicateGroupRead,
    KeepAllRequest,
    KeepAllResultRead,
    MergeRequest,
    MergeResultRead,
)
from app.services.audit import list_data_changes
from app.services.merge import MergeExecutionError, MergeNotFoundError, MergeValidationError
from app.services.review import keep_all, list_pending_groups, resolve_group_merge

EntityTypeParam = Literal["chef", "restaurant"]

router = APIRouter(prefix="/admin")


@router.get("/duplicates", response_model=ApiResponse[list[DuplicateGroupRead]])
def get_duplicate_groups(
    entity_type: EntityTypeParam | None = Query(default=None),
    db: Session = Depends(get_db),
) -> ApiResponse[list[DuplicateGroupRead]]:
    """List pending duplicate groups with recommended keepers."""

    return ApiResponse(data=list_pending_groups(db, entity_type))


@router.post("/duplicates/merge", response_model=ApiResponse[MergeResultRead])
def post_duplicate_merge(
    payload: MergeRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[MergeResultRead]:
    """Merge a reviewed group into the chosen keepers."""

    try:
        result = resolve_group_merge(db, payload)
    except MergeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except MergeValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except MergeExecutionError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.post("/duplicates/keep-all", response_model=ApiResponse[KeepAllResultRead])
def post_duplicate_keep_all(
    payload: KeepAllRequest,
    db: Session = Depends(get_db),
) -> ApiResponse[KeepAllResultRead]:
    """Mark a group as distinct records."""

    try:
        result = keep_all(db, payload.group_id, resolved_by=payload.resolved_by)
    except MergeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except MergeValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ApiResponse(data=result)


@router.get("/data-changes", response_model=ApiResponse[list[DataChangeRead]])
def get_data_changes(
    table_name: str | None = Query(default=None, min_length=1),
    record_id: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> ApiResponse[list[DataChangeRead]]:
    """List recent audit log entries."""

    rows = list_data_changes(db, table_name=table_name, record_id=record_id, limit=limit)
    return ApiResponse(data=[DataChangeRead.model_validate(row) for row in rows])
