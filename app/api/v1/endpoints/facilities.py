"""
Facilities Endpoints - CRUD operations for hostels and their gate policy
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.db.session import get_db
from app.services.facility_service import FacilityService
from app.schemas import Facility, FacilityCreate, FacilityUpdate, GatePolicy, DataResponse, PaginationResponse
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from atams.encryption import encrypt_response_data

router = APIRouter()
facility_service = FacilityService()


@router.get(
    "/",
    response_model=PaginationResponse[Facility],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def list_facilities(
    search: str = Query("", description="Search facilities by name or code"),
    timezone: Optional[str] = Query(None, description="Only facilities in this IANA timezone"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get list of facilities with pagination and search

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Response:**
    - fa_gate_policy shows the effective thresholds, stored overrides over the configured defaults
    """
    facilities = facility_service.list_facilities(db, search=search, timezone=timezone, skip=skip, limit=limit)
    total = facility_service.count_facilities(db, search=search, timezone=timezone)

    response = PaginationResponse(
        success=True,
        message="Facilities retrieved successfully",
        data=facilities,
        total=total,
        page=skip // limit + 1,
        size=limit,
        pages=(total + limit - 1) // limit
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/{fa_id}",
    response_model=DataResponse[Facility],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def get_facility(
    fa_id: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get single facility by ID, including its gate policy

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    facility = facility_service.get_facility(db, fa_id)

    response = DataResponse(
        success=True,
        message="Facility retrieved successfully",
        data=facility
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/{fa_id}/policy",
    response_model=DataResponse[GatePolicy],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_gate_policy(
    fa_id: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Effective gate policy the classifier applies for this facility

    **Authentication:**
    - Requires valid user authentication (role level >= 1)

    **Response:**
    - short_duration_minutes, duplicate_window_seconds, max_daily_events
    - gate_open_hour / gate_close_hour: activity outside [open, close) is UNUSUAL_TIME
    - weekend_days, flag_weekend_entries: WEEKEND_ENTRY rule
    """
    policy = facility_service.get_gate_policy(db, fa_id)

    response = DataResponse(
        success=True,
        message="Gate policy retrieved successfully",
        data=policy
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/",
    response_model=DataResponse[Facility],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_min_role_level(50))]
)
async def create_facility(
    facility: FacilityCreate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Create new facility

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Validation:**
    - fa_id: required, unique, max 50 characters
    - fa_name: required
    - fa_timezone: IANA name (default DEFAULT_TIMEZONE)
    - fa_gate_policy: optional classifier thresholds, only the supplied fields are stored;
      the rest follow the configured DEFAULT_* settings
    - gate_open_hour must be earlier than gate_close_hour
    """
    new_facility = facility_service.create_facility(db, facility)

    return DataResponse(
        success=True,
        message="Facility created successfully",
        data=new_facility
    )


@router.put(
    "/{fa_id}",
    response_model=DataResponse[Facility],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def update_facility(
    fa_id: str,
    facility: FacilityUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Update existing facility

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Updateable fields:**
    - fa_name, fa_timezone, fa_gate_policy

    **Gate policy:**
    - Supplied fields are merged over the stored overrides
    - The merged policy is validated again (400 when open hour >= close hour)
    - New thresholds apply to events recorded or revalidated afterwards
    """
    updated_facility = facility_service.update_facility(db, fa_id, facility)

    return DataResponse(
        success=True,
        message="Facility updated successfully",
        data=updated_facility
    )


@router.delete(
    "/{fa_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_min_role_level(50))]
)
async def delete_facility(
    fa_id: str,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Delete facility

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Note:**
    - Deletion fails with 409 while gate events reference the facility
    """
    facility_service.delete_facility(db, fa_id)

    # 204 returns no content
