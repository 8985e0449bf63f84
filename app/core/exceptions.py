"""
Domain Exceptions - Typed errors for the gate attendance core

Each error maps onto the ATAMS exception hierarchy so the global
exception handlers render it with the proper HTTP status code.
"""
from typing import Any, Dict, Optional

from atams.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)


class NotFoundError(NotFoundException):
    """Unknown event, resident or facility id"""

    def __init__(self, message: str = "Record not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class InvalidInputError(BadRequestException):
    """Malformed date, unsupported kind, or timestamp outside sane bounds"""

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class StateConflictError(ConflictException):
    """Record state changed since the caller last read it, or the transition is not allowed"""

    def __init__(self, message: str = "State conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ScopeViolationError(ForbiddenException):
    """Caller's facility differs from the target record's facility. Always fatal."""

    def __init__(self, message: str = "Facility scope violation", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
