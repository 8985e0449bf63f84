"""
Gate Event Model - One ENTRY/EXIT occurrence of a resident at the hostel gate
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Boolean, Text, JSON, ForeignKey, Index
from sqlalchemy.sql import func
from atams.db import Base


class GateEvent(Base):
    """Gate Event model - Table: gate_events"""
    __tablename__ = "gate_events"
    __table_args__ = (
        Index("ix_gate_events_resident_day", "ge_facility_id", "ge_resident_id", "ge_day", "ge_occurred_at"),
        Index("ix_gate_events_facility_day_status", "ge_facility_id", "ge_day", "ge_status"),
        Index("ix_gate_events_reconciled_day", "ge_facility_id", "ge_reconciled", "ge_day"),
    )

    ge_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ge_resident_id = Column(String(64), nullable=False, index=True)
    ge_facility_id = Column(String(50), ForeignKey("facilities.fa_id"), nullable=False, index=True)
    ge_day = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD, local wall-clock day
    ge_kind = Column(String(5), nullable=False)  # 'ENTRY' or 'EXIT'
    ge_occurred_at = Column(DateTime, nullable=False, index=True)  # local wall-clock time
    ge_status = Column(String(12), nullable=False, default="present")
    ge_leave_id = Column(String(64), nullable=True)  # approved leave explaining an absence
    ge_source = Column(String(10), nullable=False, default="manual", index=True)
    ge_device_id = Column(String(255), nullable=True)
    ge_shift = Column(String(10), nullable=True)
    ge_notes = Column(Text, nullable=True)
    ge_validation_issues = Column(JSON, nullable=False, default=list)  # [{kind, severity, message, data}]

    ge_reconciled = Column(Boolean, nullable=False, default=False, index=True)
    ge_reconciled_by = Column(String(64), nullable=True)
    ge_reconciled_at = Column(DateTime(timezone=True), nullable=True)
    ge_reconciliation_notes = Column(Text, nullable=True)

    ge_deleted = Column(Boolean, nullable=False, default=False, index=True)
    ge_deleted_by = Column(String(64), nullable=True)
    ge_deleted_at = Column(DateTime(timezone=True), nullable=True)

    ge_created_by = Column(String(64), nullable=True)  # absent for device-sourced events
    ge_version = Column(Integer, nullable=False)
    ge_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ge_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    __mapper_args__ = {"version_id_col": ge_version}
