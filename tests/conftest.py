import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_gate_attendance.db")
os.environ.setdefault("ATLAS_APP_CODE", "HOSTEL_GATE_TEST")
os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from atams.db import Base
import app.models  # noqa: F401  registers tables on Base.metadata
from app.models.facility import Facility
from app.schemas.gate_event import GateEventCreate
from app.services.gate_event_service import GateEventService

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FACILITY_ID = "hostel-a"
OTHER_FACILITY_ID = "hostel-b"
DAY = "2025-01-06"  # Monday
SUNDAY = "2025-01-05"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def facilities(db):
    db.add_all([
        Facility(fa_id=FACILITY_ID, fa_name="Hostel A", fa_timezone="Asia/Kolkata"),
        Facility(fa_id=OTHER_FACILITY_ID, fa_name="Hostel B", fa_timezone="Asia/Kolkata"),
    ])
    db.commit()
    return FACILITY_ID, OTHER_FACILITY_ID


@pytest.fixture
def record(db, facilities):
    """Record an event through the service: record("R1", "ENTRY", "09:00")"""
    service = GateEventService()

    def _record(resident_id, kind, hhmm, day=DAY, facility_id=FACILITY_ID, **extra):
        occurred_at = datetime.fromisoformat(f"{day}T{hhmm}:00")
        request = GateEventCreate(ge_resident_id=resident_id, ge_kind=kind, ge_occurred_at=occurred_at, **extra)
        return service.record_event(db, facility_id, request, created_by="op-1")

    return _record


@pytest.fixture
def client(db, facilities):
    from app.main import app
    from app.db.session import get_db
    from app.api.deps import require_auth

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[require_auth] = lambda: {"user_id": 42, "username": "warden", "role_level": 100}
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
