"""
API Dependencies
Provides authentication, authorization and facility scope dependencies
"""
from fastapi import Header

from atams.sso import create_atlas_client, create_auth_dependencies
from app.core.config import settings
from app.core.exceptions import InvalidInputError

# Initialize Atlas SSO client using factory
atlas_client = create_atlas_client(settings)

# Create auth dependencies using factory
get_current_user, require_auth, require_min_role_level, require_role_level = create_auth_dependencies(atlas_client)


def get_facility_scope(
    x_facility_id: str = Header(..., alias="X-Facility-Id", description="Facility (hostel) the caller operates on")
) -> str:
    """Facility id every gate event read and write is scoped to"""
    facility_id = x_facility_id.strip()
    if not facility_id:
        raise InvalidInputError("X-Facility-Id header must not be empty")
    return facility_id


def operator_id(current_user: dict) -> str:
    """Operator identity recorded in audit fields"""
    return str(current_user["user_id"])


# Export for use in endpoints
__all__ = [
    "atlas_client",
    "get_current_user",
    "require_auth",
    "require_min_role_level",
    "require_role_level",
    "get_facility_scope",
    "operator_id",
]
