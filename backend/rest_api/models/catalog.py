"""
Catalog Models: Category, CategoryRelationship, Product, ProductLocationPrice, ComboItem.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, IdType, Money

if TYPE_CHECKING:
    from .tenant import Location
    from .modifier import ProductModifierGroup


class Category(AuditMixin, Base):
    """
    Menu category. Nesting in the browse tree follows parent_id only;
    CategoryRelationship rows record additional parents.
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id/email from AuditMixin.
    """

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    color_hex: Mapped[Optional[str]] = mapped_column(Text)
    parent_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("category.id"), index=True
    )

    products: Mapped[list["Product"]] = relationship(back_populates="category")

    __table_args__ = (
        Index("ix_category_tenant_active", "tenant_id", "is_active"),
    )


class CategoryRelationship(Base):
    """Additional parent association (many-to-many between categories)."""

    __tablename__ = "category_relationship"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    parent_category_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("category.id"), nullable=False, index=True
    )
    subcategory_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("category.id"), nullable=False, index=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    parent: Mapped["Category"] = relationship(foreign_keys=[parent_category_id])
    subcategory: Mapped["Category"] = relationship(foreign_keys=[subcategory_id])

    __table_args__ = (
        UniqueConstraint(
            "parent_category_id", "subcategory_id", name="uq_category_relationship_pair"
        ),
    )


class Product(AuditMixin, Base):
    """
    Sellable item. Combos (product_type == "combo") own ComboItem rows; the
    meta JSON holds the availability window and the persisted combo
    regular_price / savings.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("category.id"), index=True
    )
    product_type: Mapped[str] = mapped_column(Text, default="simple", nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text)
    sku: Mapped[Optional[str]] = mapped_column(Text, index=True)
    base_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    cost_price: Mapped[Optional[Decimal]] = mapped_column(Money)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Column is named "metadata", which the declarative base reserves
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    category: Mapped[Optional["Category"]] = relationship(back_populates="products")
    combo_items: Mapped[list["ComboItem"]] = relationship(
        back_populates="combo_product",
        foreign_keys="ComboItem.combo_product_id",
        order_by="ComboItem.sort_order",
    )
    modifier_links: Mapped[list["ProductModifierGroup"]] = relationship(
        back_populates="product"
    )

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="chk_product_base_price_non_negative"),
        Index("ix_product_tenant_category", "tenant_id", "category_id"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', type='{self.product_type}', price={self.base_price})>"


class ProductLocationPrice(Base):
    """
    Per-location price override. At most one row per (product, location).
    """

    __tablename__ = "product_location_price"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    location_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("location.id"), nullable=False, index=True
    )
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)

    product: Mapped["Product"] = relationship()
    location: Mapped["Location"] = relationship(back_populates="product_prices")

    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_product_location_price"),
        CheckConstraint("price >= 0", name="chk_location_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<ProductLocationPrice(product={self.product_id}, location={self.location_id}, price={self.price})>"


class ComboItem(Base):
    """A component of a combo product."""

    __tablename__ = "combo_item"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    combo_product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    item_product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("product.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    price_override: Mapped[Optional[Decimal]] = mapped_column(Money)
    selection_group: Mapped[Optional[str]] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    combo_product: Mapped["Product"] = relationship(
        back_populates="combo_items", foreign_keys=[combo_product_id]
    )
    item_product: Mapped["Product"] = relationship(foreign_keys=[item_product_id])

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_combo_item_quantity_positive"),
    )
