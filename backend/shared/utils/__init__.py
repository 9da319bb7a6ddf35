"""
Utilities module: Exceptions, schemas.
"""

from shared.utils.exceptions import (
    ErrorKind,
    AppException,
    NotFoundError,
    ValidationError,
    ConflictError,
    BusinessRuleError,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "ErrorKind",
    "AppException",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "BusinessRuleError",
    # schemas
    "ErrorResponse",
]
