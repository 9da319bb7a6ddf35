"""
Centralized constants for the catalog and order engine.

Usage:
    from shared.config.constants import OrderStatus, PaymentStatus

    if order.order_status == OrderStatus.VOIDED:
        ...
"""

from typing import Final


# =============================================================================
# Catalog
# =============================================================================


class ProductType:
    """Product kind constants."""

    SIMPLE: Final[str] = "simple"
    VARIANT: Final[str] = "variant"
    COMBO: Final[str] = "combo"


class SelectionType:
    """Modifier group selection mode."""

    SINGLE: Final[str] = "single"
    MULTIPLE: Final[str] = "multiple"


class PriceType:
    """How a modifier changes the running price."""

    ADD: Final[str] = "add"
    REPLACE: Final[str] = "replace"
    MULTIPLY: Final[str] = "multiply"


# Label used for combo items without a selection group
DEFAULT_SELECTION_GROUP: Final[str] = "default"


# =============================================================================
# Orders
# =============================================================================


class OrderStatus:
    """Order status constants."""

    DRAFT: Final[str] = "draft"
    OPEN: Final[str] = "open"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"
    VOIDED: Final[str] = "voided"

    ALL: Final[list[str]] = [DRAFT, OPEN, PREPARING, READY, COMPLETED, CANCELLED, VOIDED]
    ACTIVE: Final[list[str]] = [OPEN, PREPARING, READY]
    # Targets that stamp voided_at / void_reason / voided_by_user_id
    VOIDING: Final[list[str]] = [CANCELLED, VOIDED]


class PaymentStatus:
    """Order payment status constants."""

    UNPAID: Final[str] = "unpaid"
    PARTIAL: Final[str] = "partial"
    PAID: Final[str] = "paid"
    REFUNDED: Final[str] = "refunded"
    VOID: Final[str] = "void"

    # Statuses that move to VOID when the order is voided
    VOIDABLE: Final[list[str]] = [UNPAID, PARTIAL]


class PaymentMethod:
    """Payment method constants."""

    CASH: Final[str] = "cash"
    CARD: Final[str] = "card"
    OTHER: Final[str] = "other"


class PaymentRecordStatus:
    """Status of an individual payment row."""

    CAPTURED: Final[str] = "captured"


# Forward transitions for the strict policy. Voiding is allowed from any
# non-terminal status.
ORDER_TRANSITIONS: Final[dict[str, list[str]]] = {
    OrderStatus.DRAFT: [OrderStatus.OPEN, OrderStatus.CANCELLED, OrderStatus.VOIDED],
    OrderStatus.OPEN: [OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.VOIDED],
    OrderStatus.PREPARING: [OrderStatus.READY, OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.VOIDED],
    OrderStatus.READY: [OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.VOIDED],
    OrderStatus.COMPLETED: [],  # Terminal state
    OrderStatus.CANCELLED: [],  # Terminal state
    OrderStatus.VOIDED: [],  # Terminal state
}


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 999

    # Pagination defaults
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200
    DEFAULT_OFFSET: Final[int] = 0
