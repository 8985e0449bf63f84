from .facility import Facility
from .gate_event import GateEvent
from .reconciliation_log import ReconciliationLog

__all__ = [
    "Facility",
    "GateEvent",
    "ReconciliationLog"
]
