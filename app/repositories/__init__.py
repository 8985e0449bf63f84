from .facility_repository import FacilityRepository
from .gate_event_repository import GateEventRepository
from .reconciliation_log_repository import ReconciliationLogRepository

__all__ = [
    "FacilityRepository",
    "GateEventRepository",
    "ReconciliationLogRepository"
]
