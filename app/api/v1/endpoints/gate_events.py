"""
Gate Event Endpoints - Recording, history, presence and daily status
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.db.session import get_db
from app.services.gate_event_service import GateEventService
from app.services.classification_service import ClassificationService
from app.services.daily_status_service import DailyStatusService
from app.schemas import (
    GateEvent,
    GateEventCreate,
    PresenceState,
    ClassificationResult,
    ClassifyBatchRequest,
    DailySummary,
    StatusRollup,
    FacilityStatusRollup,
    DataResponse,
    PaginationResponse
)
from app.api.deps import require_auth, require_min_role_level, get_facility_scope, operator_id
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()
gate_event_service = GateEventService()
classification_service = ClassificationService()
daily_status_service = DailyStatusService()


@router.post(
    "/",
    response_model=DataResponse[GateEvent],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_min_role_level(1))]
)
async def record_gate_event(
    request: GateEventCreate,
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Record an ENTRY or EXIT at the hostel gate

    **Authentication:**
    - Requires valid user authentication (role level >= 1)

    **Headers:**
    - X-Facility-Id: facility the event belongs to

    **Process:**
    1. Validate kind (ENTRY/EXIT, IN/OUT accepted), source, status, timestamp
    2. Derive day and shift from the local time when not supplied
    3. Compare with the resident's last event of the day; a broken
       ENTRY/EXIT alternation stores the event with status "unknown"
    4. Attach validation issues and persist

    **Errors:**
    - 400: Invalid kind, status, source, day or timestamp
    - 404: Unknown facility
    """
    event = gate_event_service.record_event(db, facility_id, request, created_by=operator_id(current_user))

    return DataResponse(
        success=True,
        message="Gate event recorded successfully",
        data=event
    )


@router.get(
    "/",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def list_gate_events(
    resident_id: Optional[str] = Query(None, description="Filter by resident ID"),
    date_from: Optional[str] = Query(None, description="Start day (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="End day (YYYY-MM-DD)"),
    kind: Optional[str] = Query(None, description="ENTRY or EXIT"),
    status: Optional[str] = Query(None, description="Filter by attendance status"),
    source: Optional[str] = Query(None, description="Filter by source"),
    reconciled: Optional[bool] = Query(None, description="Filter by reconciliation state"),
    include_deleted: bool = Query(False, description="Include soft-deleted records (audit)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get gate events of the facility, newest first (Admin only)

    **Authentication:**
    - Requires role level >= 50 (Admin or above)

    **Query Parameters:**
    - resident_id, date_from/date_to, kind, status, source, reconciled
    - include_deleted: soft-deleted records are hidden unless true
    - limit: Max records (1-1000, default 100)
    - offset: Skip records (default 0)
    """
    events, total = gate_event_service.list_events(
        db,
        facility_id,
        resident_id=resident_id,
        date_from=date_from,
        date_to=date_to,
        kind=kind,
        status=status,
        source=source,
        reconciled=reconciled,
        include_deleted=include_deleted,
        skip=offset,
        limit=limit
    )

    response = PaginationResponse(
        success=True,
        message="Gate events retrieved successfully",
        data=events,
        total=total,
        page=offset // limit + 1,
        size=limit,
        pages=(total + limit - 1) // limit
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/status-counts",
    response_model=DataResponse[FacilityStatusRollup],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_facility_status_counts(
    date_from: str = Query(..., description="Start day (YYYY-MM-DD)"),
    date_to: str = Query(..., description="End day (YYYY-MM-DD)"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Facility-wide rollup of final daily statuses over (resident, day) pairs

    **Authentication:**
    - Requires role level >= 50 (Admin or above)
    """
    rollup = daily_status_service.get_facility_status_counts(db, facility_id, date_from, date_to)

    response = DataResponse(
        success=True,
        message="Facility status counts retrieved successfully",
        data=rollup
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/classify-batch",
    response_model=DataResponse[List[ClassificationResult]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def classify_gate_events(
    request: ClassifyBatchRequest,
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Compute validation issues for several stored events without modifying them

    **Authentication:**
    - Requires role level >= 50 (Admin or above)
    """
    results = classification_service.classify_batch(db, facility_id, request.event_ids)

    return DataResponse(
        success=True,
        message="Gate events classified successfully",
        data=results
    )


@router.get(
    "/residents/{resident_id}/presence",
    response_model=DataResponse[PresenceState],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_presence_state(
    resident_id: str,
    day: Optional[str] = Query(None, description="Day in YYYY-MM-DD format (default: facility today)"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Last gate action of a resident and the next expected action (ENTRY/EXIT)

    **Authentication:**
    - Requires valid user authentication (role level >= 1)
    """
    state = gate_event_service.get_presence_state(db, facility_id, resident_id, day)

    response = DataResponse(
        success=True,
        message="Presence state retrieved successfully",
        data=state
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/residents/{resident_id}/daily-status",
    response_model=DataResponse[List[DailySummary]],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_daily_status(
    resident_id: str,
    date_from: str = Query(..., description="Start day (YYYY-MM-DD)"),
    date_to: str = Query(..., description="End day (YYYY-MM-DD)"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    One summary per day with events, newest day first

    The last non-deleted event of each day decides that day's status.
    Days without events are not listed.

    **Authentication:**
    - Requires valid user authentication (role level >= 1)
    """
    summaries = daily_status_service.get_daily_status(db, facility_id, resident_id, date_from, date_to)

    response = DataResponse(
        success=True,
        message="Daily status retrieved successfully",
        data=summaries
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/residents/{resident_id}/status-counts",
    response_model=DataResponse[StatusRollup],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_status_counts(
    resident_id: str,
    date_from: str = Query(..., description="Start day (YYYY-MM-DD)"),
    date_to: str = Query(..., description="End day (YYYY-MM-DD)"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Days per final status plus totalDays and attendance percentage

    **Response:**
    - percentage = (present + late + half_day) / totalDays * 100, 0 when no days
    """
    rollup = daily_status_service.get_status_counts(db, facility_id, resident_id, date_from, date_to)

    response = DataResponse(
        success=True,
        message="Status counts retrieved successfully",
        data=rollup
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/{event_id}",
    response_model=DataResponse[GateEvent],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_gate_event(
    event_id: int,
    include_deleted: bool = Query(False, description="Allow reading a soft-deleted record"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get single gate event by ID

    **Errors:**
    - 403: Event belongs to another facility
    - 404: Unknown or deleted event
    """
    event = gate_event_service.get_event(db, facility_id, event_id, include_deleted=include_deleted)

    response = DataResponse(
        success=True,
        message="Gate event retrieved successfully",
        data=event
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/{event_id}/classification",
    response_model=DataResponse[ClassificationResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def classify_gate_event(
    event_id: int,
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Validation issues of a stored event, recomputed against the events before it
    """
    result = classification_service.classify(db, facility_id, event_id)

    response = DataResponse(
        success=True,
        message="Gate event classified successfully",
        data=result
    )

    return encrypt_response_data(response, settings)
