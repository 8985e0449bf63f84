"""
Facility Model - Hostel (tenant) partitioning every gate event
"""
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from atams.db import Base


class Facility(Base):
    """Facility model - Table: facilities"""
    __tablename__ = "facilities"

    fa_id = Column(String(50), primary_key=True, index=True)
    fa_name = Column(String(255), nullable=False)
    fa_timezone = Column(String(64), nullable=True)  # IANA name, e.g. "Asia/Kolkata"
    fa_gate_policy = Column(JSON, nullable=True)  # {"short_duration_minutes": 5, "weekend_days": ["Sunday"], ...}
    fa_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    fa_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
