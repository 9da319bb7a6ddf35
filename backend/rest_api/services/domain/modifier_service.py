"""
Modifier Domain Service.

Resolves which modifier groups a product offers (with per-product
overrides and exclusions), validates a selection against them and prices
it.

Pricing applies modifiers in ascending sort_order:
- add:      price += price_change
- replace:  price  = price_change (a later replace overwrites earlier changes)
- multiply: price *= price_change
A modifier whose price_change is zero or missing leaves the price unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Modifier, ModifierGroup, Product, ProductModifierGroup
from rest_api.services.base_service import BaseService
from shared.config.constants import PriceType, SelectionType
from shared.config.logging import get_logger
from shared.security.auth import RequestContext
from shared.utils.exceptions import BusinessRuleError, ConflictError, NotFoundError, ValidationError

logger = get_logger(__name__)


@dataclass
class ResolvedGroup:
    """A modifier group as offered for one product."""

    id: int
    link_id: int
    name: str
    display_name: str | None
    selection_type: str
    is_required: bool
    min_selections: int
    max_selections: int
    sort_order: int
    modifiers: list[Modifier] = field(default_factory=list)

    def offers(self, modifier_id: int) -> bool:
        return any(m.id == modifier_id for m in self.modifiers)


def price_selection(base_price: Decimal, modifiers: Iterable[Any]) -> Decimal:
    """Apply modifiers to a base price in ascending sort_order (stable)."""
    price = Decimal(base_price)
    for modifier in sorted(modifiers, key=lambda m: m.sort_order or 0):
        change = modifier.price_change
        if not change:
            continue
        change = Decimal(change)
        if modifier.price_type == PriceType.ADD:
            price += change
        elif modifier.price_type == PriceType.REPLACE:
            price = change
        elif modifier.price_type == PriceType.MULTIPLY:
            price *= change
    return price


def normalize_selection(groups: Sequence[ResolvedGroup], selected_ids: Sequence[int]) -> list[int]:
    """
    Collapse single-select groups to their last chosen modifier.

    Choosing a second option in a single-select group evicts the first.
    Order of the remaining ids is preserved; duplicates are dropped.
    """
    group_of: dict[int, ResolvedGroup] = {}
    for group in groups:
        for modifier in group.modifiers:
            group_of[modifier.id] = group

    last_single: dict[int, int] = {}
    for modifier_id in selected_ids:
        group = group_of.get(modifier_id)
        if group is not None and group.selection_type == SelectionType.SINGLE:
            last_single[group.id] = modifier_id

    result: list[int] = []
    for modifier_id in selected_ids:
        if modifier_id in result:
            continue
        group = group_of.get(modifier_id)
        if group is not None and group.selection_type == SelectionType.SINGLE:
            if last_single[group.id] != modifier_id:
                continue
        result.append(modifier_id)
    return result


def validate_selection(groups: Sequence[ResolvedGroup], selected_ids: Sequence[int]) -> None:
    """
    Check selection counts per group.

    Required groups need min_selections..max_selections choices; optional
    groups only enforce max_selections when it is positive.

    Raises:
        BusinessRuleError: A modifier is not offered, or a count is out of range.
    """
    for modifier_id in selected_ids:
        if not any(group.offers(modifier_id) for group in groups):
            raise BusinessRuleError(
                f"Modifier {modifier_id} is not offered for this product",
                modifier_id=modifier_id,
            )

    for group in groups:
        count = sum(1 for modifier_id in selected_ids if group.offers(modifier_id))
        label = group.display_name or group.name
        if group.is_required:
            if count < group.min_selections:
                raise BusinessRuleError(
                    f"Group '{label}' requires at least {group.min_selections} selection(s)",
                    modifier_group_id=group.id,
                    selected=count,
                )
            if count > group.max_selections:
                raise BusinessRuleError(
                    f"Group '{label}' allows at most {group.max_selections} selection(s)",
                    modifier_group_id=group.id,
                    selected=count,
                )
        elif group.max_selections > 0 and count > group.max_selections:
            raise BusinessRuleError(
                f"Group '{label}' allows at most {group.max_selections} selection(s)",
                modifier_group_id=group.id,
                selected=count,
            )


def _pick(override: Any, default: Any) -> Any:
    return default if override is None else override


class ModifierService(BaseService[ModifierGroup]):
    """Modifier group resolution, selection checks and product links."""

    def __init__(self, db: Session):
        super().__init__(db, ModifierGroup, entity_name="Modifier group")

    # =========================================================================
    # Query Methods
    # =========================================================================

    def _get_product(self, tenant_id: int, product_id: int) -> Product:
        product = self._db.scalar(
            select(Product).where(
                Product.id == product_id,
                Product.tenant_id == tenant_id,
                Product.deleted_at.is_(None),
            )
        )
        if product is None:
            raise NotFoundError("Product", product_id, tenant_id=tenant_id)
        return product

    def resolve_for_product(self, tenant_id: int, product_id: int) -> list[ResolvedGroup]:
        """Groups for an already-validated product id."""
        links = self._db.scalars(
            select(ProductModifierGroup)
            .join(ModifierGroup, ModifierGroup.id == ProductModifierGroup.modifier_group_id)
            .where(
                ProductModifierGroup.tenant_id == tenant_id,
                ProductModifierGroup.product_id == product_id,
                ProductModifierGroup.is_active.is_(True),
                ModifierGroup.deleted_at.is_(None),
                ModifierGroup.is_active.is_(True),
            )
            .options(selectinload(ProductModifierGroup.group).selectinload(ModifierGroup.modifiers))
            .order_by(ProductModifierGroup.sort_order, ProductModifierGroup.id)
        ).all()

        resolved: list[ResolvedGroup] = []
        for link in links:
            group = link.group
            excluded = link.excluded_modifier_ids
            modifiers = sorted(
                (
                    m
                    for m in group.modifiers
                    if m.is_active and m.deleted_at is None and m.id not in excluded
                ),
                key=lambda m: (m.sort_order or 0, m.id),
            )
            resolved.append(
                ResolvedGroup(
                    id=group.id,
                    link_id=link.id,
                    name=group.name,
                    display_name=group.display_name,
                    selection_type=group.selection_type,
                    is_required=_pick(link.is_required, group.is_required),
                    min_selections=_pick(link.min_selections, group.min_selections),
                    max_selections=_pick(link.max_selections, group.max_selections),
                    sort_order=link.sort_order,
                    modifiers=modifiers,
                )
            )
        return resolved

    def resolve_groups(self, ctx: RequestContext, product_id: int) -> list[ResolvedGroup]:
        """
        Modifier groups a product offers, in link sort order, with overrides
        applied and excluded modifiers removed.
        """
        self._get_product(ctx.tenant_id, product_id)
        return self.resolve_for_product(ctx.tenant_id, product_id)

    def load_modifiers(self, tenant_id: int, modifier_ids: Iterable[int]) -> dict[int, Modifier]:
        """
        Batch load modifiers by id within tenant.

        Raises:
            NotFoundError: Any id missing, soft-deleted or cross-tenant.
        """
        ids = list(dict.fromkeys(modifier_ids))
        if not ids:
            return {}
        rows = self._db.scalars(
            select(Modifier).where(
                Modifier.tenant_id == tenant_id,
                Modifier.id.in_(ids),
                Modifier.deleted_at.is_(None),
            )
        ).all()
        found = {m.id: m for m in rows}
        for modifier_id in ids:
            if modifier_id not in found:
                raise NotFoundError("Modifier", modifier_id, tenant_id=tenant_id)
        return found

    def price_for_selection(
        self,
        tenant_id: int,
        product_id: int,
        base_price: Decimal,
        selected_ids: Sequence[int],
    ) -> tuple[Decimal, list[tuple[ResolvedGroup, Modifier]]]:
        """
        Validate a selection for a product and price it.

        Returns the unit price and the applied (group, modifier) pairs.
        """
        modifiers = self.load_modifiers(tenant_id, selected_ids)
        groups = self.resolve_for_product(tenant_id, product_id)
        chosen = normalize_selection(groups, list(dict.fromkeys(selected_ids)))
        validate_selection(groups, chosen)

        applied: list[tuple[ResolvedGroup, Modifier]] = []
        for modifier_id in chosen:
            group = next(g for g in groups if g.offers(modifier_id))
            applied.append((group, modifiers[modifier_id]))

        return price_selection(base_price, [m for _, m in applied]), applied

    # =========================================================================
    # Link Management
    # =========================================================================

    def _find_link(self, tenant_id: int, product_id: int, group_id: int) -> ProductModifierGroup | None:
        return self._db.scalar(
            select(ProductModifierGroup).where(
                ProductModifierGroup.tenant_id == tenant_id,
                ProductModifierGroup.product_id == product_id,
                ProductModifierGroup.modifier_group_id == group_id,
            )
        )

    def link_group(
        self,
        ctx: RequestContext,
        product_id: int,
        group_id: int,
        *,
        is_required: bool | None = None,
        min_selections: int | None = None,
        max_selections: int | None = None,
        sort_order: int = 0,
        excluded_modifier_ids: Sequence[int] | None = None,
    ) -> ProductModifierGroup:
        """
        Attach a modifier group to a product.

        Raises:
            ConflictError: The group is already linked to the product.
        """
        self._get_product(ctx.tenant_id, product_id)
        self.get_or_404(group_id, ctx.tenant_id, include_inactive=True)
        if min_selections is not None and max_selections is not None and min_selections > max_selections:
            raise ValidationError("min_selections cannot exceed max_selections")
        if self._find_link(ctx.tenant_id, product_id, group_id) is not None:
            raise ConflictError(
                "Modifier group already linked to product",
                product_id=product_id,
                modifier_group_id=group_id,
            )

        link = ProductModifierGroup(
            tenant_id=ctx.tenant_id,
            product_id=product_id,
            modifier_group_id=group_id,
            is_required=is_required,
            min_selections=min_selections,
            max_selections=max_selections,
            sort_order=sort_order,
            meta={"excluded_modifier_ids": list(excluded_modifier_ids or [])},
        )
        self._db.add(link)
        self._commit("link modifier group", product_id=product_id, modifier_group_id=group_id)
        self._db.refresh(link)

        logger.info("Modifier group linked", product_id=product_id, modifier_group_id=group_id)
        return link

    def update_link(
        self,
        ctx: RequestContext,
        product_id: int,
        group_id: int,
        **changes: Any,
    ) -> ProductModifierGroup:
        """
        Update overrides on a link. excluded_modifier_ids is merged into the
        existing metadata; other metadata keys are kept.
        """
        link = self._find_link(ctx.tenant_id, product_id, group_id)
        if link is None:
            raise NotFoundError("Modifier group link", f"{product_id}/{group_id}", tenant_id=ctx.tenant_id)

        excluded = changes.pop("excluded_modifier_ids", None)
        for key in ("is_required", "min_selections", "max_selections", "sort_order", "is_active"):
            if key in changes:
                setattr(link, key, changes.pop(key))
        if changes:
            raise ValidationError(f"Unknown link fields: {', '.join(sorted(changes))}")

        if excluded is not None:
            # Reassign so the JSON change is detected
            link.meta = {**(link.meta or {}), "excluded_modifier_ids": list(excluded)}

        self._commit("update modifier group link", product_id=product_id, modifier_group_id=group_id)
        self._db.refresh(link)
        return link

    def unlink_group(self, ctx: RequestContext, product_id: int, group_id: int) -> None:
        link = self._find_link(ctx.tenant_id, product_id, group_id)
        if link is None:
            raise NotFoundError("Modifier group link", f"{product_id}/{group_id}", tenant_id=ctx.tenant_id)
        self._db.delete(link)
        self._commit("unlink modifier group", product_id=product_id, modifier_group_id=group_id)
        logger.info("Modifier group unlinked", product_id=product_id, modifier_group_id=group_id)
