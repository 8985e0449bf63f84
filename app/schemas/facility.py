"""
Facility Schemas for request/response validation
"""
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.config import settings

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _fix_timezone_suffix(v):
    """
    Fix datetime timezone format from PostgreSQL
    PostgreSQL returns: '2025-10-01 09:17:39.587802+00'
    Pydantic expects: '2025-10-01 09:17:39.587802+00:00'
    """
    if v == '' or v is None:
        return None

    if isinstance(v, str):
        import re
        pattern = r'([+-]\d{2})$'
        match = re.search(pattern, v)
        if match:
            v = v + ':00'

    return v


class GatePolicy(BaseModel):
    """Facility-configurable thresholds for the validation classifier"""
    short_duration_minutes: int = Field(default_factory=lambda: settings.DEFAULT_SHORT_DURATION_MINUTES, ge=0)
    duplicate_window_seconds: int = Field(default_factory=lambda: settings.DEFAULT_DUPLICATE_WINDOW_SECONDS, ge=0)
    max_daily_events: int = Field(default_factory=lambda: settings.DEFAULT_MAX_DAILY_EVENTS, ge=1)
    gate_open_hour: int = Field(default_factory=lambda: settings.DEFAULT_GATE_OPEN_HOUR, ge=0, le=23)
    gate_close_hour: int = Field(default_factory=lambda: settings.DEFAULT_GATE_CLOSE_HOUR, ge=1, le=24)
    weekend_days: List[str] = Field(default_factory=lambda: list(settings.DEFAULT_WEEKEND_DAYS))
    flag_weekend_entries: bool = Field(default_factory=lambda: settings.DEFAULT_FLAG_WEEKEND_ENTRIES)

    @field_validator('weekend_days')
    @classmethod
    def check_weekday_names(cls, v):
        normalized = [day.strip().capitalize() for day in v]
        unknown = [day for day in normalized if day not in WEEKDAY_NAMES]
        if unknown:
            raise ValueError(f"Unknown weekday name(s): {', '.join(unknown)}")
        return normalized

    @model_validator(mode='after')
    def check_gate_hours(self):
        # same-day window only, open hour inclusive and close hour exclusive
        if self.gate_open_hour >= self.gate_close_hour:
            raise ValueError(
                f"gate_open_hour ({self.gate_open_hour}) must be earlier than gate_close_hour ({self.gate_close_hour})"
            )
        return self


class FacilityBase(BaseModel):
    fa_name: str
    fa_timezone: Optional[str] = None
    fa_gate_policy: Optional[GatePolicy] = None


class FacilityCreate(FacilityBase):
    fa_id: str


class FacilityUpdate(BaseModel):
    fa_name: Optional[str] = None
    fa_timezone: Optional[str] = None
    fa_gate_policy: Optional[GatePolicy] = None


class FacilityInDB(FacilityBase):
    model_config = ConfigDict(from_attributes=True)

    fa_id: str
    fa_created_at: datetime
    fa_updated_at: Optional[datetime] = None

    @field_validator('fa_updated_at', 'fa_created_at', mode='before')
    @classmethod
    def fix_datetime_timezone(cls, v):
        return _fix_timezone_suffix(v)


class Facility(FacilityInDB):
    pass
