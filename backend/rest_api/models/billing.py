"""
Billing Models: Payment.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, IdType, Money

if TYPE_CHECKING:
    from .order import Order


class Payment(Base):
    """
    A captured payment against an order. cash_change is tendered minus
    amount and is kept as-is even when negative.
    """

    __tablename__ = "payment"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_order.id"), nullable=False, index=True
    )
    payment_method: Mapped[str] = mapped_column(Text, nullable=False)  # cash, card, other
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    cash_tendered: Mapped[Optional[Decimal]] = mapped_column(Money)
    cash_change: Mapped[Optional[Decimal]] = mapped_column(Money)
    payment_status: Mapped[str] = mapped_column(Text, default="captured", nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(Text)
    processed_by_user_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    order: Mapped["Order"] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_payment_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, order={self.order_id}, {self.payment_method} {self.amount})>"
