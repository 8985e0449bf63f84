from fastapi import APIRouter
from app.api.v1.endpoints import facilities, gate_events, reconciliation, maintenance

api_router = APIRouter()

# Register routes
api_router.include_router(facilities.router, prefix="/facilities", tags=["Facilities"])
api_router.include_router(gate_events.router, prefix="/gate-events", tags=["Gate Events"])
api_router.include_router(reconciliation.router, prefix="/reconciliation", tags=["Reconciliation"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
