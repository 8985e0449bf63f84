"""
Maintenance Endpoints - Scheduled validation passes
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from app.db.session import get_db
from app.services.classification_service import ClassificationService
from app.schemas import DataResponse, RevalidationResult
from app.api.deps import require_min_role_level, get_facility_scope

router = APIRouter()
classification_service = ClassificationService()


@router.post(
    "/revalidate",
    response_model=DataResponse[RevalidationResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(50))]
)
async def revalidate(
    day: str = Query(..., description="Day in YYYY-MM-DD format"),
    resident_id: Optional[str] = Query(None, description="Limit the pass to one resident"),
    close_day: Optional[bool] = Query(None, description="Treat the day as finished (default: true for past days)"),
    facility_id: str = Depends(get_facility_scope),
    db: Session = Depends(get_db)
):
    """
    Recompute validation issues for a facility day and append missing ones

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Notes:**
    - Reconciled and deleted records are left untouched
    - Issue kinds already present on a record are not added twice
    - Should be run nightly for the previous day via scheduled job
    """
    if resident_id:
        result = classification_service.revalidate_day(db, facility_id, resident_id, day, close_day=close_day)
    else:
        result = classification_service.revalidate_facility_day(db, facility_id, day, close_day=close_day)

    response = DataResponse(
        success=True,
        message="Revalidation completed",
        data=result
    )

    return response
