"""
Reconciliation Endpoints - Review queue, corrections, soft deletes and history
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.session import get_db
from app.services.reconciliation_service import ReconciliationService
from app.services.classification_service import ClassificationService
from app.schemas import (
    GateEvent,
    ReconcileRequest,
    ApproveAllRequest,
    ApproveAllResult,
    ValidationStats,
    ReconciliationLogEntry,
    DataResponse,
    PaginationResponse
)
from app.api.deps import require_auth, require_min_role_level, get_facility_scope, operator_id
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()
reconciliation_service = ReconciliationService()
classification_service = ClassificationService()


@router.get(
    "/queue",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_unreconciled(
    date_from: str = Query(..., description="Start day (YYYY-MM-DD)"),
    date_to: str = Query(..., description="End day (YYYY-MM-DD)"),
    severity: Optional[str] = Query(None, description="Only records with an issue of this severity (info/warning/error)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Records awaiting operator review, newest first

    **Authentication:**
    - Requires role level >= 50 (Admin or above)

    **Includes:**
    - Not reconciled, not deleted, and status "unknown" or at least one validation issue
    """
    events, total = reconciliation_service.get_unreconciled(
        db, facility_id, date_from, date_to, severity=severity, skip=offset, limit=limit
    )

    response = PaginationResponse(
        success=True,
        message="Unreconciled gate events retrieved successfully",
        data=events,
        total=total,
        page=offset // limit + 1,
        size=limit,
        pages=(total + limit - 1) // limit
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/stats",
    response_model=DataResponse[ValidationStats],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_validation_stats(
    day: str = Query(..., description="Day in YYYY-MM-DD format"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Reconciliation progress and validation issue breakdown for a facility day
    """
    stats = classification_service.get_validation_stats(db, facility_id, day)

    response = DataResponse(
        success=True,
        message="Validation stats retrieved successfully",
        data=stats
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/events/{event_id}/reconcile",
    response_model=DataResponse[GateEvent],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def reconcile_gate_event(
    event_id: int,
    request: ReconcileRequest,
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Mark a gate event as reviewed

    **Body:**
    - notes: reconciliation notes
    - status: optional corrected attendance status
    - expected_version: optional ge_version the operator reviewed

    **Errors:**
    - 403: Event belongs to another facility
    - 409: Event deleted or modified since it was read
    """
    event = reconciliation_service.reconcile(
        db,
        facility_id,
        event_id,
        operator_id(current_user),
        notes=request.notes,
        status=request.status,
        expected_version=request.expected_version
    )

    return DataResponse(
        success=True,
        message="Gate event reconciled successfully",
        data=event
    )


@router.delete(
    "/events/{event_id}",
    response_model=DataResponse[GateEvent],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def soft_delete_gate_event(
    event_id: int,
    expected_version: Optional[int] = Query(None, description="ge_version the operator reviewed"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Soft-delete a gate event

    The record stays stored for audit but disappears from every default read,
    daily status and rollup.

    **Errors:**
    - 403: Event belongs to another facility
    - 409: Already deleted or modified since it was read
    """
    event = reconciliation_service.soft_delete(
        db, facility_id, event_id, operator_id(current_user), expected_version=expected_version
    )

    return DataResponse(
        success=True,
        message="Gate event deleted successfully",
        data=event
    )


@router.post(
    "/approve-all",
    response_model=DataResponse[ApproveAllResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def approve_all(
    request: ApproveAllRequest,
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Reconcile every unreconciled record of a day that has no error-severity issue
    """
    result = reconciliation_service.approve_all(
        db, facility_id, request.day, operator_id(current_user), notes=request.notes
    )

    return DataResponse(
        success=True,
        message=f"{result.approved_count} gate events approved",
        data=result
    )


@router.get(
    "/events/{event_id}/history",
    response_model=DataResponse[List[ReconciliationLogEntry]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_reconciliation_history(
    event_id: int,
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Every reconcile and delete action recorded against an event, oldest first
    """
    history = reconciliation_service.get_history(db, facility_id, event_id)

    response = DataResponse(
        success=True,
        message="Reconciliation history retrieved successfully",
        data=history
    )

    return encrypt_response_data(response, settings)
