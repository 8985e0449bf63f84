"""
Facility Repository - Data access layer for facilities
"""
from typing import Optional, List
from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from atams.db import BaseRepository
from app.models.facility import Facility


class FacilityRepository(BaseRepository[Facility]):
    def __init__(self):
        super().__init__(Facility)

    def get_by_id(self, db: Session, facility_id: str) -> Optional[Facility]:
        """Get facility by ID using ORM"""
        return db.query(Facility).filter(Facility.fa_id == facility_id).first()

    def _apply_filters(self, query: Query, search: str = "", timezone: Optional[str] = None) -> Query:
        # search matches the facility code as well as its display name
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Facility.fa_name.ilike(pattern), Facility.fa_id.ilike(pattern)))
        if timezone:
            query = query.filter(Facility.fa_timezone == timezone)
        return query

    def get_facilities_with_search(
        self,
        db: Session,
        search: str = "",
        timezone: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Facility]:
        """Get facilities filtered by name/code search and timezone"""
        query = self._apply_filters(db.query(Facility), search, timezone)
        return query.order_by(Facility.fa_id.asc()).offset(skip).limit(limit).all()

    def count_facilities_with_search(self, db: Session, search: str = "", timezone: Optional[str] = None) -> int:
        """Count facilities with the same filters as get_facilities_with_search"""
        query = self._apply_filters(db.query(func.count(Facility.fa_id)), search, timezone)
        return query.scalar() or 0

    def check_facility_exists(self, db: Session, facility_id: str) -> bool:
        """Check if facility exists using native SQL"""
        query = "SELECT 1 FROM facilities WHERE fa_id = :facility_id LIMIT 1"
        result = self.execute_raw_sql_scalar(db, query, {"facility_id": facility_id})
        return result is not None

    def delete_by_id(self, db: Session, facility_id: str) -> bool:
        """Delete facility by ID and return success status"""
        facility = self.get_by_id(db, facility_id)
        if facility:
            db.delete(facility)
            db.commit()
            return True
        return False
