"""
Modifier Models: ModifierGroup, Modifier, ProductModifierGroup.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, IdType, Rate

if TYPE_CHECKING:
    from .catalog import Product


class ModifierGroup(AuditMixin, Base):
    """
    A named set of options ("Size", "Extras") with selection rules.
    Products link to it through ProductModifierGroup, which may override the rules.
    """

    __tablename__ = "modifier_group"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text)
    selection_type: Mapped[str] = mapped_column(Text, default="single", nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    min_selections: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_selections: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    modifiers: Mapped[list["Modifier"]] = relationship(
        back_populates="group", order_by="Modifier.sort_order"
    )


class Modifier(AuditMixin, Base):
    """One option of a modifier group and how it changes the price."""

    __tablename__ = "modifier"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    modifier_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier_group.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text)
    price_type: Mapped[str] = mapped_column(Text, default="add", nullable=False)  # add, replace, multiply
    # Amount for add/replace, factor for multiply
    price_change: Mapped[Optional[Decimal]] = mapped_column(Rate)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    group: Mapped["ModifierGroup"] = relationship(back_populates="modifiers")

    def __repr__(self) -> str:
        return f"<Modifier(id={self.id}, name='{self.name}', {self.price_type} {self.price_change})>"


class ProductModifierGroup(Base):
    """
    Link between a product and a modifier group, with optional per-product
    overrides. meta["excluded_modifier_ids"] hides individual options.
    """

    __tablename__ = "product_modifier_group"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    modifier_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("modifier_group.id"), nullable=False, index=True
    )
    # None means "use the group's value"
    is_required: Mapped[Optional[bool]] = mapped_column(Boolean)
    min_selections: Mapped[Optional[int]] = mapped_column(Integer)
    max_selections: Mapped[Optional[int]] = mapped_column(Integer)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="modifier_links")
    group: Mapped["ModifierGroup"] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "modifier_group_id", name="uq_product_modifier_group"),
    )

    @property
    def excluded_modifier_ids(self) -> set[int]:
        return {int(mid) for mid in (self.meta or {}).get("excluded_modifier_ids", [])}
