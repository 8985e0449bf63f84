"""
Common Response Schemas
"""
from atams.schemas import DataResponse, PaginationResponse, ResponseBase

__all__ = [
    "ResponseBase",
    "DataResponse",
    "PaginationResponse"
]
