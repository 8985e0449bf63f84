from .facility_service import FacilityService
from .gate_event_service import GateEventService
from .classification_service import ClassificationService
from .daily_status_service import DailyStatusService
from .reconciliation_service import ReconciliationService

__all__ = [
    "FacilityService",
    "GateEventService",
    "ClassificationService",
    "DailyStatusService",
    "ReconciliationService"
]
