from .facility import Facility, FacilityCreate, FacilityUpdate, GatePolicy
from .gate_event import (
    GateEvent,
    GateEventCreate,
    ValidationIssue,
    ReconcileRequest,
    ClassifyBatchRequest,
    ApproveAllRequest,
    ApproveAllResult,
    PresenceState,
    ClassificationResult,
    ValidationStats,
    RevalidationResult,
    ReconciliationLogEntry
)
from .report import DailySummary, StatusRollup, FacilityStatusRollup
from .common import DataResponse, PaginationResponse

__all__ = [
    # Facility schemas
    "Facility",
    "FacilityCreate",
    "FacilityUpdate",
    "GatePolicy",
    # Gate event schemas
    "GateEvent",
    "GateEventCreate",
    "ValidationIssue",
    "ReconcileRequest",
    "ClassifyBatchRequest",
    "ApproveAllRequest",
    "ApproveAllResult",
    "PresenceState",
    "ClassificationResult",
    "ValidationStats",
    "RevalidationResult",
    "ReconciliationLogEntry",
    # Report schemas
    "DailySummary",
    "StatusRollup",
    "FacilityStatusRollup",
    # Common schemas
    "DataResponse",
    "PaginationResponse"
]
