"""
Facility Service - Business logic for facility management and gate policy
"""
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.repositories.facility_repository import FacilityRepository
from app.repositories.gate_event_repository import GateEventRepository
from app.models.facility import Facility as FacilityModel
from app.schemas.facility import FacilityCreate, FacilityUpdate, Facility, GatePolicy
from app.core.exceptions import NotFoundError, InvalidInputError, StateConflictError
from app.core.timeutils import load_timezone
from atams.logging import get_logger

logger = get_logger(__name__)


class FacilityService:
    def __init__(self) -> None:
        self.repo = FacilityRepository()
        self.event_repo = GateEventRepository()

    def list_facilities(
        self,
        db: Session,
        search: str = "",
        timezone: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Facility]:
        facilities = self.repo.get_facilities_with_search(db, search=search, timezone=timezone, skip=skip, limit=limit)
        return [Facility.model_validate(f) for f in facilities]

    def count_facilities(self, db: Session, search: str = "", timezone: Optional[str] = None) -> int:
        return self.repo.count_facilities_with_search(db, search=search, timezone=timezone)

    def get_facility_model(self, db: Session, fa_id: str) -> FacilityModel:
        facility = self.repo.get_by_id(db, fa_id)
        if not facility:
            raise NotFoundError("Facility not found", {"facility_id": fa_id})
        return facility

    def get_facility(self, db: Session, fa_id: str) -> Facility:
        return Facility.model_validate(self.get_facility_model(db, fa_id))

    def resolve_policy(self, facility: FacilityModel) -> GatePolicy:
        """Stored policy overrides merged over the configured defaults"""
        return GatePolicy.model_validate(facility.fa_gate_policy or {})

    def resolve_timezone(self, facility: FacilityModel) -> ZoneInfo:
        return load_timezone(facility.fa_timezone)

    def get_gate_policy(self, db: Session, fa_id: str) -> GatePolicy:
        """Effective policy of a facility: its overrides with the configured defaults filled in"""
        return self.resolve_policy(self.get_facility_model(db, fa_id))

    def _policy_overrides(self, policy: Optional[GatePolicy]) -> Optional[Dict[str, Any]]:
        # only explicitly supplied fields are stored, the rest follow the settings defaults
        if policy is None:
            return None
        return policy.model_dump(exclude_unset=True) or None

    def _merge_policy(self, facility: FacilityModel, policy: GatePolicy) -> Optional[Dict[str, Any]]:
        merged = {**(facility.fa_gate_policy or {}), **policy.model_dump(exclude_unset=True)}
        try:
            GatePolicy.model_validate(merged)
        except ValidationError as e:
            raise InvalidInputError("Invalid gate policy", {"errors": [err["msg"] for err in e.errors()]})
        return merged or None

    def create_facility(self, db: Session, payload: FacilityCreate) -> Facility:
        # validations
        if not payload.fa_id.strip():
            raise InvalidInputError("fa_id must not be empty")
        if len(payload.fa_id) > 50:
            raise InvalidInputError("fa_id max length is 50")
        if payload.fa_timezone:
            load_timezone(payload.fa_timezone)
        if self.repo.check_facility_exists(db, payload.fa_id):
            raise StateConflictError("Facility with this ID already exists", {"facility_id": payload.fa_id})

        obj = self.repo.create(db, {
            "fa_id": payload.fa_id,
            "fa_name": payload.fa_name,
            "fa_timezone": payload.fa_timezone,
            "fa_gate_policy": self._policy_overrides(payload.fa_gate_policy),
        })
        logger.info("Facility created", extra={'extra_data': {"facility_id": obj.fa_id}})
        return Facility.model_validate(obj)

    def update_facility(self, db: Session, fa_id: str, payload: FacilityUpdate) -> Facility:
        obj = self.get_facility_model(db, fa_id)
        update_data = payload.model_dump(exclude_unset=True)
        if update_data.get("fa_timezone"):
            load_timezone(update_data["fa_timezone"])
        if update_data.get("fa_gate_policy") is not None:
            update_data["fa_gate_policy"] = self._merge_policy(obj, payload.fa_gate_policy)
        obj = self.repo.update(db, obj, update_data)
        logger.info("Facility updated", extra={'extra_data': {"facility_id": fa_id, "fields": sorted(update_data)}})
        return Facility.model_validate(obj)

    def delete_facility(self, db: Session, fa_id: str) -> None:
        if self.event_repo.has_events_for_facility(db, fa_id):
            raise StateConflictError("Facility has gate events and cannot be deleted", {"facility_id": fa_id})
        deleted = self.repo.delete_by_id(db, fa_id)
        if not deleted:
            raise NotFoundError("Facility not found", {"facility_id": fa_id})
        logger.info("Facility deleted", extra={'extra_data': {"facility_id": fa_id}})
        return None
