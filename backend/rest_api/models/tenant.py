"""
Multi-Tenancy Models: Tenant and Location.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, IdType, Rate

if TYPE_CHECKING:
    from .catalog import ProductLocationPrice


class Tenant(AuditMixin, Base):
    """
    A merchant account. Every other row belongs to exactly one tenant.
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id/email from AuditMixin.
    """

    __tablename__ = "tenant"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    default_tax_rate: Mapped[Optional[Decimal]] = mapped_column(Rate)
    currency_code: Mapped[str] = mapped_column(Text, default="USD", nullable=False)

    locations: Mapped[list["Location"]] = relationship(back_populates="tenant")

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug='{self.slug}')>"


class Location(AuditMixin, Base):
    """
    A physical store belonging to a tenant. Carries its own tax rate and
    per-product price overrides.
    """

    __tablename__ = "location"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tenant.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    tax_rate: Mapped[Optional[Decimal]] = mapped_column(Rate)
    currency_code: Mapped[str] = mapped_column(Text, default="USD", nullable=False)
    timezone: Mapped[str] = mapped_column(Text, default="UTC", nullable=False)

    tenant: Mapped["Tenant"] = relationship(back_populates="locations")
    product_prices: Mapped[list["ProductLocationPrice"]] = relationship(
        back_populates="location"
    )

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, tenant_id={self.tenant_id}, name='{self.name}')>"
