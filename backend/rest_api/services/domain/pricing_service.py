"""
Pricing Domain Service.

Resolves the price actually charged for a product at a location and
manages per-location overrides. Also answers whether a product is inside
its availability window.

Usage:
    service = PricingService(db)
    result = service.get_effective_price(ctx, product_id=5, location_id=2)
    result.price, result.is_location_specific
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import Location, Product, ProductLocationPrice
from rest_api.services.base_service import BaseService
from rest_api.services.crud.repository import TenantRepository
from shared.config.logging import get_logger
from shared.security.auth import RequestContext
from shared.utils.exceptions import NotFoundError, ValidationError

logger = get_logger(__name__)


class _Priced(Protocol):
    base_price: Decimal


class _Override(Protocol):
    price: Decimal


def effective_price(product: _Priced, location_price: _Override | None = None) -> Decimal:
    """The location override when one exists, otherwise the base price."""
    if location_price is not None:
        return location_price.price
    return product.base_price


def is_product_available(product: Any, at: datetime | None = None) -> bool:
    """
    Check product.meta["availability"] against a moment in time.

    Keys (all optional):
    - available_days: weekdays with 0 = Sunday ... 6 = Saturday
    - available_time_start / available_time_end: "HH:MM", both ends inclusive,
      only applied when both are set
    - unavailable_dates: ISO dates (a time part is ignored)
    """
    availability = (product.meta or {}).get("availability")
    if not availability:
        return True

    at = at or datetime.now(timezone.utc)

    days = availability.get("available_days") or []
    if days and at.isoweekday() % 7 not in days:
        return False

    start = availability.get("available_time_start")
    end = availability.get("available_time_end")
    if start and end:
        current = at.strftime("%H:%M")
        if current < start or current > end:
            return False

    blackout = availability.get("unavailable_dates") or []
    if blackout:
        today = at.date().isoformat()
        if any(str(d).split("T")[0] == today for d in blackout):
            return False

    return True


@dataclass(frozen=True)
class EffectivePrice:
    product_id: int
    location_id: int | None
    price: Decimal
    base_price: Decimal
    is_location_specific: bool


class PricingService(BaseService[Product]):
    """
    Price resolution and per-location overrides.

    Reads are tenant-scoped: a product or location from another tenant is
    reported as not found.
    """

    def __init__(self, db: Session):
        super().__init__(db, Product, entity_name="Product")
        self._locations = TenantRepository(Location, db)

    def get_location(self, tenant_id: int, location_id: int, *, include_inactive: bool = True) -> Location:
        location = self._locations.find_by_id(location_id, tenant_id, include_inactive=include_inactive)
        if location is None:
            raise NotFoundError("Location", location_id, tenant_id=tenant_id)
        return location

    def find_location_price(
        self, tenant_id: int, product_id: int, location_id: int
    ) -> ProductLocationPrice | None:
        return self._db.scalar(
            select(ProductLocationPrice).where(
                ProductLocationPrice.tenant_id == tenant_id,
                ProductLocationPrice.product_id == product_id,
                ProductLocationPrice.location_id == location_id,
            )
        )

    def location_prices_for(
        self, tenant_id: int, product_ids: Iterable[int], location_id: int | None
    ) -> dict[int, ProductLocationPrice]:
        """Batch load overrides for several products at one location."""
        ids = set(product_ids)
        if location_id is None or not ids:
            return {}
        rows = self._db.scalars(
            select(ProductLocationPrice).where(
                ProductLocationPrice.tenant_id == tenant_id,
                ProductLocationPrice.location_id == location_id,
                ProductLocationPrice.product_id.in_(ids),
            )
        ).all()
        return {row.product_id: row for row in rows}

    def resolve(self, tenant_id: int, product: Product, location_id: int | None) -> EffectivePrice:
        """Price an already-loaded product. The location is not validated here."""
        override = None
        if location_id is not None:
            override = self.find_location_price(tenant_id, product.id, location_id)
        return EffectivePrice(
            product_id=product.id,
            location_id=location_id,
            price=effective_price(product, override),
            base_price=product.base_price,
            is_location_specific=override is not None,
        )

    def get_effective_price(
        self,
        ctx: RequestContext,
        product_id: int,
        location_id: int | None = None,
    ) -> EffectivePrice:
        """
        Effective price of a product, optionally at a location.

        Raises:
            NotFoundError: Product or location missing in the caller's tenant.
        """
        product = self.get_or_404(product_id, ctx.tenant_id, include_inactive=True)
        if location_id is not None:
            self.get_location(ctx.tenant_id, location_id)
        return self.resolve(ctx.tenant_id, product, location_id)

    def set_location_price(
        self,
        ctx: RequestContext,
        product_id: int,
        location_id: int,
        price: Decimal,
    ) -> ProductLocationPrice:
        """Create or update the override for (product, location)."""
        if price < 0:
            raise ValidationError("Price must not be negative", field="price", value=str(price))

        self.get_or_404(product_id, ctx.tenant_id, include_inactive=True)
        self.get_location(ctx.tenant_id, location_id)

        row = self.find_location_price(ctx.tenant_id, product_id, location_id)
        if row is None:
            row = ProductLocationPrice(
                tenant_id=ctx.tenant_id,
                product_id=product_id,
                location_id=location_id,
                price=price,
            )
            self._db.add(row)
        else:
            row.price = price

        self._commit("set location price", product_id=product_id, location_id=location_id)
        self._db.refresh(row)

        logger.info(
            "Location price set",
            product_id=product_id,
            location_id=location_id,
            price=str(price),
            user_id=ctx.user_id,
        )
        return row

    def remove_location_price(self, ctx: RequestContext, product_id: int, location_id: int) -> None:
        """Drop the override so the base price applies again."""
        row = self.find_location_price(ctx.tenant_id, product_id, location_id)
        if row is None:
            raise NotFoundError(
                "Location price",
                f"{product_id}@{location_id}",
                tenant_id=ctx.tenant_id,
            )
        self._db.delete(row)
        self._commit("remove location price", product_id=product_id, location_id=location_id)
        logger.info("Location price removed", product_id=product_id, location_id=location_id)

    def is_available(self, ctx: RequestContext, product_id: int, at: datetime | None = None) -> bool:
        product = self.get_or_404(product_id, ctx.tenant_id, include_inactive=True)
        return product.is_active and is_product_available(product, at)
