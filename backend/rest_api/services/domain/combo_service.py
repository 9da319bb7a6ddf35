"""
Combo Domain Service.

Expands combo products into billable component lines and keeps the
combo's regular price and savings in its metadata.

Savings are signed: a combo priced above the sum of its parts has negative
savings, and that value is persisted as-is. Only display_savings is floored
at zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import ComboItem, Product
from rest_api.services.base_service import BaseService
from rest_api.services.domain.pricing_service import PricingService, effective_price
from shared.config.constants import DEFAULT_SELECTION_GROUP, ProductType
from shared.config.logging import get_logger
from shared.security.auth import RequestContext
from shared.utils.exceptions import NotFoundError, ValidationError

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ExpandedItem:
    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    selection_group: str | None
    combo_product_id: int
    sort_order: int
    is_combo_item: bool = True


@dataclass(frozen=True)
class ComboExpansion:
    combo_product_id: int
    combo_name: str
    combo_price: Decimal
    quantity: int
    items: list[ExpandedItem]

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


@dataclass(frozen=True)
class ComboSavings:
    regular_price: Decimal
    savings: Decimal

    @property
    def display_savings(self) -> Decimal:
        return max(ZERO, self.savings)


@dataclass(frozen=True)
class ComboItemSpec:
    """One component when (re)defining a combo."""

    item_product_id: int
    quantity: int = 1
    price_override: Decimal | None = None
    selection_group: str | None = None
    sort_order: int | None = None


@dataclass(frozen=True)
class ComboSummary:
    combo_product_id: int
    price: Decimal
    regular_price: Decimal
    savings: Decimal
    groups: dict[str, list[ExpandedItem]]

    @property
    def display_savings(self) -> Decimal:
        return max(ZERO, self.savings)


def compute_savings(combo_price: Decimal, item_prices: Iterable[Decimal]) -> ComboSavings:
    """regular_price is the sum of the item prices; savings = regular - combo."""
    regular = sum((Decimal(p) for p in item_prices), ZERO)
    return ComboSavings(regular_price=regular, savings=regular - Decimal(combo_price))


def group_by_selection_group(items: Iterable[Any]) -> dict[str, list[Any]]:
    """Group items by selection_group, keeping input order inside each group."""
    groups: dict[str, list[Any]] = {}
    for item in items:
        groups.setdefault(item.selection_group or DEFAULT_SELECTION_GROUP, []).append(item)
    return groups


def savings_from_meta(meta: dict[str, Any] | None) -> ComboSavings | None:
    """Read persisted savings back. Values are stored as decimal strings."""
    meta = meta or {}
    if "regular_price" not in meta or "savings" not in meta:
        return None
    return ComboSavings(
        regular_price=Decimal(str(meta["regular_price"])),
        savings=Decimal(str(meta["savings"])),
    )


class ComboService(BaseService[Product]):
    """Combo expansion and combo definition."""

    def __init__(self, db: Session):
        super().__init__(db, Product, entity_name="Combo")
        self._pricing = PricingService(db)

    def get_combo(self, tenant_id: int, combo_product_id: int) -> Product:
        """
        Raises:
            NotFoundError: Missing or cross-tenant.
            ValidationError: The product is not a combo.
        """
        product = self.get_or_404(combo_product_id, tenant_id, include_inactive=True)
        if product.product_type != ProductType.COMBO:
            raise ValidationError(
                f"Product {combo_product_id} is not a combo",
                product_id=combo_product_id,
                product_type=product.product_type,
            )
        return product

    def _combo_items(self, tenant_id: int, combo_product_id: int) -> list[ComboItem]:
        return list(
            self._db.scalars(
                select(ComboItem)
                .where(
                    ComboItem.tenant_id == tenant_id,
                    ComboItem.combo_product_id == combo_product_id,
                )
                .order_by(ComboItem.sort_order, ComboItem.id)
            ).all()
        )

    def _item_products(self, tenant_id: int, product_ids: Sequence[int]) -> dict[int, Product]:
        products = self._repo.find_by_ids(product_ids, tenant_id, include_inactive=True)
        for product_id in product_ids:
            if product_id not in products:
                raise NotFoundError("Product", product_id, tenant_id=tenant_id)
        return products

    def expand(self, tenant_id: int, combo: Product, quantity: int, location_id: int | None) -> ComboExpansion:
        """Expand an already-loaded combo."""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive", field="quantity", value=quantity)

        combo_items = self._combo_items(tenant_id, combo.id)
        product_ids = [ci.item_product_id for ci in combo_items]
        products = self._item_products(tenant_id, product_ids)
        overrides = self._pricing.location_prices_for(tenant_id, [combo.id, *product_ids], location_id)

        items = []
        for combo_item in combo_items:
            product = products[combo_item.item_product_id]
            if combo_item.price_override is not None:
                unit_price = combo_item.price_override
            else:
                unit_price = effective_price(product, overrides.get(product.id))
            items.append(
                ExpandedItem(
                    product_id=product.id,
                    product_name=product.display_name or product.name,
                    quantity=combo_item.quantity * quantity,
                    unit_price=unit_price,
                    selection_group=combo_item.selection_group,
                    combo_product_id=combo.id,
                    sort_order=combo_item.sort_order,
                )
            )

        return ComboExpansion(
            combo_product_id=combo.id,
            combo_name=combo.name,
            combo_price=effective_price(combo, overrides.get(combo.id)),
            quantity=quantity,
            items=items,
        )

    def expand_for_order(
        self,
        ctx: RequestContext,
        combo_product_id: int,
        quantity: int = 1,
        location_id: int | None = None,
    ) -> ComboExpansion:
        """
        Component lines for `quantity` combos, in combo sort order.

        unit_price is the item's price_override when set, otherwise the item
        product's effective price at the location.
        """
        combo = self.get_combo(ctx.tenant_id, combo_product_id)
        if location_id is not None:
            self._pricing.get_location(ctx.tenant_id, location_id)
        return self.expand(ctx.tenant_id, combo, quantity, location_id)

    def replace_combo_items(
        self,
        ctx: RequestContext,
        combo_product_id: int,
        items: Sequence[ComboItemSpec],
    ) -> ComboSavings:
        """
        Replace every component of a combo in one transaction and persist
        regular_price / savings (signed) into the combo's metadata.
        """
        combo = self.get_combo(ctx.tenant_id, combo_product_id)

        for spec in items:
            if spec.quantity <= 0:
                raise ValidationError("Combo item quantity must be positive", field="quantity", value=spec.quantity)
            if spec.item_product_id == combo_product_id:
                raise ValidationError("A combo cannot contain itself", product_id=combo_product_id)
        products = self._item_products(ctx.tenant_id, [spec.item_product_id for spec in items])

        for existing in self._combo_items(ctx.tenant_id, combo_product_id):
            self._db.delete(existing)
        self._db.flush()

        self._db.add_all(
            [
                ComboItem(
                    tenant_id=ctx.tenant_id,
                    combo_product_id=combo_product_id,
                    item_product_id=spec.item_product_id,
                    quantity=spec.quantity,
                    price_override=spec.price_override,
                    selection_group=spec.selection_group,
                    sort_order=spec.sort_order if spec.sort_order is not None else index,
                )
                for index, spec in enumerate(items)
            ]
        )

        result = compute_savings(
            combo.base_price,
            [products[spec.item_product_id].base_price for spec in items],
        )
        combo.meta = {
            **(combo.meta or {}),
            "regular_price": str(result.regular_price),
            "savings": str(result.savings),
        }
        combo.set_updated_by(ctx.user_id, ctx.user_email)
        self._commit("replace combo items", combo_product_id=combo_product_id)

        logger.info(
            "Combo items replaced",
            combo_product_id=combo_product_id,
            items_count=len(items),
            regular_price=str(result.regular_price),
            savings=str(result.savings),
        )
        return result

    def get_combo_summary(
        self,
        ctx: RequestContext,
        combo_product_id: int,
        location_id: int | None = None,
    ) -> ComboSummary:
        """
        Price, regular price and savings of a combo with its items grouped by
        selection group. Without a location the persisted figures are used
        when present; with one they are recomputed from location prices.
        """
        combo = self.get_combo(ctx.tenant_id, combo_product_id)
        if location_id is not None:
            self._pricing.get_location(ctx.tenant_id, location_id)
        expansion = self.expand(ctx.tenant_id, combo, 1, location_id)

        persisted = savings_from_meta(combo.meta) if location_id is None else None
        if persisted is not None:
            savings = persisted
        else:
            overrides = self._pricing.location_prices_for(
                ctx.tenant_id, [item.product_id for item in expansion.items], location_id
            )
            products = self._item_products(ctx.tenant_id, [item.product_id for item in expansion.items])
            savings = compute_savings(
                expansion.combo_price,
                [effective_price(products[item.product_id], overrides.get(item.product_id)) for item in expansion.items],
            )

        return ComboSummary(
            combo_product_id=combo.id,
            price=expansion.combo_price,
            regular_price=savings.regular_price,
            savings=savings.savings,
            groups=group_by_selection_group(expansion.items),
        )
