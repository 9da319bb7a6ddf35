"""
Order Models: Order, OrderItem, OrderItemModifier, OrderSequence.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, IdType, Money, Rate

if TYPE_CHECKING:
    from .billing import Payment


class Order(AuditMixin, Base):
    """
    A customer order at a location.

    Totals are computed once at creation; payments and refunds only move
    amount_paid / amount_due and payment_status afterwards.
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id/email from AuditMixin.
    """

    __tablename__ = "app_order"  # "order" is a reserved SQL keyword

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    location_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("location.id"), nullable=False, index=True
    )
    order_number: Mapped[str] = mapped_column(Text, nullable=False)
    display_number: Mapped[str] = mapped_column(Text, nullable=False)
    order_type: Mapped[str] = mapped_column(Text, default="dine_in", nullable=False)
    order_status: Mapped[str] = mapped_column(Text, default="open", nullable=False, index=True)
    payment_status: Mapped[str] = mapped_column(Text, default="unpaid", nullable=False, index=True)

    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"), nullable=False)
    amount_due: Mapped[Decimal] = mapped_column(Money, nullable=False)

    customer_name: Mapped[Optional[str]] = mapped_column(Text)
    customer_phone: Mapped[Optional[str]] = mapped_column(Text)
    customer_email: Mapped[Optional[str]] = mapped_column(Text)
    table_number: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Milestones stamped by status changes
    sent_to_kitchen_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    kitchen_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    voided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    void_reason: Mapped[Optional[str]] = mapped_column(Text)
    voided_by_user_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    created_by_user_id: Mapped[Optional[int]] = mapped_column(BigInteger)

    # Refund records
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        order_by="OrderItem.sort_order",
        cascade="all, delete-orphan",
    )
    payments: Mapped[list["Payment"]] = relationship(
        back_populates="order",
        order_by="Payment.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "location_id", "order_number", name="uq_order_location_number"
        ),
        Index("ix_order_location_created", "location_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, number='{self.order_number}', status='{self.order_status}', "
            f"payment='{self.payment_status}', total={self.total_amount})>"
        )


class OrderItem(Base):
    """
    A priced line of an order. Name and unit price are snapshots taken at
    creation time and never change.
    """

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    order_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_order.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_combo_item: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    combo_product_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("product.id")
    )
    selection_group: Mapped[Optional[str]] = mapped_column(Text)

    order: Mapped["Order"] = relationship(back_populates="items")
    modifiers: Mapped[list["OrderItemModifier"]] = relationship(
        back_populates="order_item",
        order_by="OrderItemModifier.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_order_item_quantity_positive"),
    )


class OrderItemModifier(Base):
    """Snapshot of a modifier applied to an order line."""

    __tablename__ = "order_item_modifier"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    order_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("order_item.id"), nullable=False, index=True
    )
    modifier_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier.id"), nullable=False
    )
    modifier_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier_group.id"), nullable=False
    )
    modifier_name: Mapped[str] = mapped_column(Text, nullable=False)
    price_type: Mapped[str] = mapped_column(Text, nullable=False)
    modifier_price: Mapped[Decimal] = mapped_column(Rate, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    order_item: Mapped["OrderItem"] = relationship(back_populates="modifiers")


class OrderSequence(Base):
    """
    Per-location order counter. The row is locked (SELECT ... FOR UPDATE)
    while the next number is taken, inside the order's transaction.
    """

    __tablename__ = "order_sequence"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    location_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("location.id"), nullable=False
    )
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "location_id", name="uq_order_sequence_location"),
    )
