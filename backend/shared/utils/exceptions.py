"""
Centralized HTTP exceptions for consistent error handling.

Every domain failure carries an ErrorKind so callers (and the JSON error
body) can tell a missing entity from a broken business rule without
parsing messages.

Usage:
    from shared.utils.exceptions import NotFoundError, BusinessRuleError

    raise NotFoundError("Product", product_id, tenant_id=ctx.tenant_id)
    raise BusinessRuleError("Group 'Size' requires at least 1 selection")
"""

from enum import Enum
from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Failure categories surfaced by the engine."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CONFLICTING_STATE = "conflicting_state"
    BUSINESS_RULE_VIOLATION = "business_rule_violation"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions inherit from this class to keep logging and the
    response format consistent.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, kind=self.kind.value, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Cross-tenant references are reported the same way as missing rows.

    Usage:
        raise NotFoundError("Product", 123)
        raise NotFoundError("Location", location_id, tenant_id=tenant_id)
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class OrderNotFoundError(NotFoundError):
    """Order not found."""

    def __init__(self, order_id: int | None = None, **log_context: Any):
        super().__init__("Order", order_id, **log_context)


class ProductNotFoundError(NotFoundError):
    """Product not found."""

    def __init__(self, product_id: int | None = None, **log_context: Any):
        super().__init__("Product", product_id, **log_context)


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Quantity must be positive", field="quantity", value=-1)
    """

    kind = ErrorKind.INVALID_INPUT

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class PaymentAmountError(ValidationError):
    """Payment or refund amount is not positive."""

    def __init__(self, amount: Any, reason: str, **log_context: Any):
        detail = f"Invalid amount ({amount}): {reason}"
        super().__init__(detail, amount=amount, **log_context)


# =============================================================================
# 401 Unauthorized
# =============================================================================


class UnauthorizedError(AppException):
    """Missing or invalid access token (401)."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, detail: str = "Not authenticated", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            log_level="info",
            headers={"WWW-Authenticate": "Bearer"},
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("Modifier group already linked to product")
    """

    kind = ErrorKind.CONFLICTING_STATE

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class InvalidTransitionError(ConflictError):
    """Status transition rejected by the active transition policy."""

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        detail = f"Invalid transition from '{from_status}' to '{to_status}' for {entity}"
        super().__init__(detail, entity=entity, from_status=from_status, to_status=to_status, **log_context)


class InvalidStateError(ConflictError):
    """Entity is in the wrong state for the operation."""

    def __init__(self, entity: str, current_state: str, expected_states: list[str] | None = None, **log_context: Any):
        if expected_states:
            states_str = ", ".join(expected_states)
            detail = f"{entity} is '{current_state}', expected: {states_str}"
        else:
            detail = f"{entity} cannot be '{current_state}' for this operation"

        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


class CategoryCycleError(ConflictError):
    """Parent assignment would create a cycle in the category hierarchy."""

    def __init__(self, category_id: int, parent_id: int, **log_context: Any):
        detail = f"Category {parent_id} cannot be a parent of category {category_id}: it would create a cycle"
        super().__init__(detail, category_id=category_id, parent_id=parent_id, **log_context)


# =============================================================================
# 422 Business Rule Errors
# =============================================================================


class BusinessRuleError(AppException):
    """
    A well-formed request that breaks a catalog or order rule (422).

    Usage:
        raise BusinessRuleError("Product is not available", product_id=5)
    """

    kind = ErrorKind.BUSINESS_RULE_VIOLATION

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """Internal server error (500)."""

    kind = ErrorKind.INTERNAL

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed."""

    def __init__(self, operation: str, **log_context: Any):
        detail = f"Database error during {operation}. Please try again."
        super().__init__(detail, operation=operation, **log_context)
