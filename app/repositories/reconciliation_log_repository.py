"""
Reconciliation Log Repository - Append-only operator action history
"""
from typing import Any, Dict, List
from sqlalchemy.orm import Session

from atams.db import BaseRepository
from app.models.reconciliation_log import ReconciliationLog


class ReconciliationLogRepository(BaseRepository[ReconciliationLog]):
    def __init__(self):
        super().__init__(ReconciliationLog)

    def add_entry(self, db: Session, entry_data: Dict[str, Any]) -> ReconciliationLog:
        """Stage a log row in the caller's transaction (no commit)"""
        entry = ReconciliationLog(**entry_data)
        db.add(entry)
        return entry

    def get_event_history(self, db: Session, event_id: int) -> List[ReconciliationLog]:
        """Every action recorded against an event, oldest first"""
        return db.query(ReconciliationLog).filter(
            ReconciliationLog.rl_event_id == event_id
        ).order_by(ReconciliationLog.rl_created_at.asc(), ReconciliationLog.rl_id.asc()).all()
