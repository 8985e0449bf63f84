"""
Gate Event Repository - Data access layer for gate events
"""
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import String, cast, or_

from atams.db import BaseRepository
from app.models.gate_event import GateEvent


class GateEventRepository(BaseRepository[GateEvent]):
    def __init__(self):
        super().__init__(GateEvent)

    def get_by_id(self, db: Session, event_id: int, for_update: bool = False) -> Optional[GateEvent]:
        """Get event by ID using ORM (deleted rows included)"""
        query = db.query(GateEvent).filter(GateEvent.ge_id == event_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_last_event(
        self,
        db: Session,
        facility_id: str,
        resident_id: str,
        day: str,
        for_update: bool = False
    ) -> Optional[GateEvent]:
        """Most recent non-deleted event of a resident-day"""
        query = db.query(GateEvent).filter(
            GateEvent.ge_facility_id == facility_id,
            GateEvent.ge_resident_id == resident_id,
            GateEvent.ge_day == day,
            GateEvent.ge_deleted.is_(False)
        ).order_by(GateEvent.ge_occurred_at.desc(), GateEvent.ge_id.desc())

        if for_update:
            query = query.with_for_update()

        return query.first()

    def get_day_events(self, db: Session, facility_id: str, resident_id: str, day: str) -> List[GateEvent]:
        """Canonical sequence of a resident-day: non-deleted, ordered by (occurred_at, id)"""
        return db.query(GateEvent).filter(
            GateEvent.ge_facility_id == facility_id,
            GateEvent.ge_resident_id == resident_id,
            GateEvent.ge_day == day,
            GateEvent.ge_deleted.is_(False)
        ).order_by(GateEvent.ge_occurred_at.asc(), GateEvent.ge_id.asc()).all()

    def get_facility_day_events(self, db: Session, facility_id: str, day: str) -> List[GateEvent]:
        """All non-deleted events of a facility day, grouped by resident in canonical order"""
        return db.query(GateEvent).filter(
            GateEvent.ge_facility_id == facility_id,
            GateEvent.ge_day == day,
            GateEvent.ge_deleted.is_(False)
        ).order_by(
            GateEvent.ge_resident_id.asc(),
            GateEvent.ge_occurred_at.asc(),
            GateEvent.ge_id.asc()
        ).all()

    def get_range_events(
        self,
        db: Session,
        facility_id: str,
        resident_id: str,
        date_from: str,
        date_to: str
    ) -> List[GateEvent]:
        """Non-deleted events of a resident within [date_from, date_to], oldest first"""
        return db.query(GateEvent).filter(
            GateEvent.ge_facility_id == facility_id,
            GateEvent.ge_resident_id == resident_id,
            GateEvent.ge_day >= date_from,
            GateEvent.ge_day <= date_to,
            GateEvent.ge_deleted.is_(False)
        ).order_by(
            GateEvent.ge_day.asc(),
            GateEvent.ge_occurred_at.asc(),
            GateEvent.ge_id.asc()
        ).all()

    def get_events_with_filters(
        self,
        db: Session,
        facility_id: str,
        resident_id: str = None,
        date_from: str = None,
        date_to: str = None,
        kind: str = None,
        status: str = None,
        source: str = None,
        reconciled: bool = None,
        include_deleted: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[GateEvent]:
        """Get events with various filters using ORM, newest first"""
        query = db.query(GateEvent).filter(GateEvent.ge_facility_id == facility_id)

        if resident_id:
            query = query.filter(GateEvent.ge_resident_id == resident_id)
        if date_from:
            query = query.filter(GateEvent.ge_day >= date_from)
        if date_to:
            query = query.filter(GateEvent.ge_day <= date_to)
        if kind:
            query = query.filter(GateEvent.ge_kind == kind)
        if status:
            query = query.filter(GateEvent.ge_status == status)
        if source:
            query = query.filter(GateEvent.ge_source == source)
        if reconciled is not None:
            query = query.filter(GateEvent.ge_reconciled.is_(reconciled))
        if not include_deleted:
            query = query.filter(GateEvent.ge_deleted.is_(False))

        return query.order_by(
            GateEvent.ge_occurred_at.desc(),
            GateEvent.ge_id.desc()
        ).offset(skip).limit(limit).all()

    def count_events_with_filters(
        self,
        db: Session,
        facility_id: str,
        resident_id: str = None,
        date_from: str = None,
        date_to: str = None,
        kind: str = None,
        status: str = None,
        source: str = None,
        reconciled: bool = None,
        include_deleted: bool = False
    ) -> int:
        """Count events with filters using native SQL"""
        conditions = ["ge_facility_id = :facility_id"]
        params: Dict[str, Any] = {"facility_id": facility_id}

        if resident_id:
            conditions.append("ge_resident_id = :resident_id")
            params["resident_id"] = resident_id
        if date_from:
            conditions.append("ge_day >= :date_from")
            params["date_from"] = date_from
        if date_to:
            conditions.append("ge_day <= :date_to")
            params["date_to"] = date_to
        if kind:
            conditions.append("ge_kind = :kind")
            params["kind"] = kind
        if status:
            conditions.append("ge_status = :status")
            params["status"] = status
        if source:
            conditions.append("ge_source = :source")
            params["source"] = source
        if reconciled is not None:
            conditions.append("ge_reconciled = :reconciled")
            params["reconciled"] = reconciled
        if not include_deleted:
            conditions.append("NOT ge_deleted")

        query = f"""
            SELECT COUNT(*)
            FROM gate_events
            WHERE {' AND '.join(conditions)}
        """
        return self.execute_raw_sql_scalar(db, query, params)

    def get_unreconciled_events(
        self,
        db: Session,
        facility_id: str,
        date_from: str,
        date_to: str
    ) -> List[GateEvent]:
        """Active records still needing operator attention, newest first"""
        return db.query(GateEvent).filter(
            GateEvent.ge_facility_id == facility_id,
            GateEvent.ge_day >= date_from,
            GateEvent.ge_day <= date_to,
            GateEvent.ge_reconciled.is_(False),
            GateEvent.ge_deleted.is_(False),
            or_(
                GateEvent.ge_status == "unknown",
                cast(GateEvent.ge_validation_issues, String) != "[]"
            )
        ).order_by(GateEvent.ge_occurred_at.desc(), GateEvent.ge_id.desc()).all()

    def get_last_status_counts(
        self,
        db: Session,
        facility_id: str,
        date_from: str,
        date_to: str,
        resident_id: str = None
    ) -> List[Dict[str, Any]]:
        """
        Count (resident, day) pairs by the status of their last non-deleted event
        using native SQL. Returns [{"status": "present", "days": 3}, ...]
        """
        resident_filter = "AND ge_resident_id = :resident_id" if resident_id else ""
        query = f"""
            SELECT status, COUNT(*) AS days
            FROM (
                SELECT ge_status AS status,
                       ROW_NUMBER() OVER (
                           PARTITION BY ge_resident_id, ge_day
                           ORDER BY ge_occurred_at DESC, ge_id DESC
                       ) AS rn
                FROM gate_events
                WHERE ge_facility_id = :facility_id
                AND ge_day >= :date_from
                AND ge_day <= :date_to
                AND NOT ge_deleted
                {resident_filter}
            ) last_events
            WHERE rn = 1
            GROUP BY status
        """
        params = {"facility_id": facility_id, "date_from": date_from, "date_to": date_to}
        if resident_id:
            params["resident_id"] = resident_id
        return self.execute_raw_sql_dict(db, query, params)

    def count_residents(self, db: Session, facility_id: str, date_from: str, date_to: str) -> int:
        """Count distinct residents with at least one non-deleted event in range using native SQL"""
        query = """
            SELECT COUNT(DISTINCT ge_resident_id)
            FROM gate_events
            WHERE ge_facility_id = :facility_id
            AND ge_day >= :date_from
            AND ge_day <= :date_to
            AND NOT ge_deleted
        """
        return self.execute_raw_sql_scalar(
            db, query, {"facility_id": facility_id, "date_from": date_from, "date_to": date_to}
        )

    def get_day_keys(self, db: Session, facility_id: str, day: str) -> List[Tuple[str, str]]:
        """Distinct (resident, day) keys with non-deleted events on a facility day"""
        rows = db.query(GateEvent.ge_resident_id, GateEvent.ge_day).filter(
            GateEvent.ge_facility_id == facility_id,
            GateEvent.ge_day == day,
            GateEvent.ge_deleted.is_(False)
        ).distinct().order_by(GateEvent.ge_resident_id.asc()).all()
        return [(row[0], row[1]) for row in rows]

    def has_events_for_facility(self, db: Session, facility_id: str) -> bool:
        """Check if any event references the facility using native SQL"""
        query = "SELECT 1 FROM gate_events WHERE ge_facility_id = :facility_id LIMIT 1"
        result = self.execute_raw_sql_scalar(db, query, {"facility_id": facility_id})
        return result is not None
