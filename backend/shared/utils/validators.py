"""
Input validation helpers shared by services.
"""

from decimal import Decimal, ROUND_HALF_UP

from shared.config.constants import Limits
from shared.utils.exceptions import PaymentAmountError, ValidationError

CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize an amount to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_quantity(
    quantity: int,
    min_val: int = Limits.MIN_QUANTITY,
    max_val: int = Limits.MAX_QUANTITY,
) -> int:
    """
    Validate quantity is within the accepted range.

    Raises:
        ValidationError: If quantity is outside the range.
    """
    if quantity < min_val:
        raise ValidationError(f"Quantity must be at least {min_val}", field="quantity", value=quantity)
    if quantity > max_val:
        raise ValidationError(f"Quantity must be at most {max_val}", field="quantity", value=quantity)
    return quantity


def validate_positive_amount(amount: Decimal, field: str = "amount") -> Decimal:
    """Reject zero and negative amounts."""
    if amount <= 0:
        raise PaymentAmountError(str(amount), f"{field} must be positive", field=field)
    return amount


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards; escaping keeps user input literal.
    Use with `.ilike(f"%{escaped}%", escape="\\\\")`.
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str, max_length: int = 100) -> str:
    """Trim, cap length and escape a free-text search term."""
    return escape_like_pattern(term.strip()[:max_length])
