"""
Reconciliation Log Model - Append-only history of operator corrections
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Text, JSON, ForeignKey
from sqlalchemy.sql import func
from atams.db import Base


class ReconciliationLog(Base):
    """Reconciliation Log model - Table: reconciliation_logs"""
    __tablename__ = "reconciliation_logs"

    rl_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    rl_event_id = Column(BigInteger, ForeignKey("gate_events.ge_id"), nullable=False, index=True)
    rl_facility_id = Column(String(50), nullable=False, index=True)
    rl_action = Column(String(16), nullable=False)  # 'reconcile', 'delete' or 'approve_all'
    rl_operator_id = Column(String(64), nullable=False)
    rl_notes = Column(Text, nullable=True)
    rl_before = Column(JSON, nullable=True)
    rl_after = Column(JSON, nullable=True)
    rl_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
