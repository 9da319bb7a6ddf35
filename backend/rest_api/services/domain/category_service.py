"""
Category Domain Service.

Builds the browse tree from flat category rows and guards parent
assignments against cycles.

Two parent representations coexist:
- Category.parent_id: the primary parent; the only thing that drives nesting.
- CategoryRelationship rows: additional parents, reported as parent_ids on
  each node and listed by list_subcategories(), never used for nesting.

Usage:
    service = CategoryService(db)
    roots = service.get_category_tree(ctx, include_products=True)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from rest_api.models import (
    Category,
    CategoryRelationship,
    ComboItem,
    Product,
    ProductModifierGroup,
)
from rest_api.services.base_service import BaseService
from rest_api.services.domain.pricing_service import (
    PricingService,
    effective_price,
    is_product_available,
)
from shared.config.constants import ProductType
from shared.config.logging import get_logger
from shared.security.auth import RequestContext
from shared.utils.exceptions import CategoryCycleError

logger = get_logger(__name__)


@dataclass
class CategoryProduct:
    id: int
    name: str
    display_name: str | None
    product_type: str
    base_price: Decimal
    price: Decimal
    sku: str | None
    is_available: bool
    has_modifiers: bool = False
    is_combo: bool = False


@dataclass
class CategoryNode:
    id: int
    name: str
    display_name: str | None
    sort_order: int
    color_hex: str | None
    is_active: bool
    parent_id: int | None
    parent_ids: list[int] = field(default_factory=list)
    children: list["CategoryNode"] = field(default_factory=list)
    products: list[CategoryProduct] | None = None


@dataclass(frozen=True)
class SubcategoryLink:
    id: int
    name: str
    display_name: str | None
    parent_id: int
    sort_order: int


def _sort_key(category: Any) -> tuple:
    return (category.sort_order or 0, category.name or "", category.id)


def _closes_cycle(child_id: int, parent_id: int, accepted: Mapping[int, int]) -> bool:
    """True if child_id is reachable walking up from parent_id."""
    current: int | None = parent_id
    while current is not None:
        if current == child_id:
            return True
        current = accepted.get(current)
    return False


def build_tree(
    categories: Iterable[Any],
    parent_ids_by_category: Mapping[int, list[int]] | None = None,
    products_by_category: Mapping[int, list[CategoryProduct]] | None = None,
) -> list[CategoryNode]:
    """
    Nest categories by parent_id and return the roots.

    A category becomes a root when its parent_id is empty, points outside
    the given set, points at itself, or would close a cycle with links
    already placed (links are placed in (sort_order, name) order).
    Siblings and roots are ordered by (sort_order, name).
    """
    ordered = sorted(categories, key=_sort_key)
    parent_ids_by_category = parent_ids_by_category or {}

    nodes: dict[int, CategoryNode] = {}
    for category in ordered:
        nodes[category.id] = CategoryNode(
            id=category.id,
            name=category.name,
            display_name=category.display_name,
            sort_order=category.sort_order or 0,
            color_hex=category.color_hex,
            is_active=category.is_active,
            parent_id=category.parent_id,
            parent_ids=list(parent_ids_by_category.get(category.id, [])),
            products=(
                list(products_by_category.get(category.id, []))
                if products_by_category is not None
                else None
            ),
        )

    accepted: dict[int, int] = {}
    for category in ordered:
        parent_id = category.parent_id
        if parent_id is None or parent_id not in nodes:
            continue
        if _closes_cycle(category.id, parent_id, accepted):
            logger.warning(
                "Category parent ignored to avoid a cycle",
                category_id=category.id,
                parent_id=parent_id,
            )
            continue
        accepted[category.id] = parent_id

    roots: list[CategoryNode] = []
    for category in ordered:
        node = nodes[category.id]
        if category.id in accepted:
            nodes[accepted[category.id]].children.append(node)
        else:
            roots.append(node)
    return roots


class CategoryService(BaseService[Category]):
    """
    Category tree reads and parent management.

    Business rules:
    - Soft-deleted categories never appear
    - Inactive categories appear only with include_inactive
    - No category may become its own ancestor through either parent kind
    """

    def __init__(self, db: Session):
        super().__init__(db, Category, entity_name="Category")

    # =========================================================================
    # Query Methods
    # =========================================================================

    def _parent_ids_by_category(self, tenant_id: int, category_ids: Sequence[int]) -> dict[int, list[int]]:
        if not category_ids:
            return {}
        parent = aliased(Category)
        rows = self._db.scalars(
            select(CategoryRelationship)
            .join(parent, parent.id == CategoryRelationship.parent_category_id)
            .where(
                CategoryRelationship.tenant_id == tenant_id,
                CategoryRelationship.subcategory_id.in_(category_ids),
                parent.deleted_at.is_(None),
            )
            .order_by(CategoryRelationship.sort_order, CategoryRelationship.id)
        ).all()
        result: dict[int, list[int]] = {}
        for row in rows:
            result.setdefault(row.subcategory_id, []).append(row.parent_category_id)
        return result

    def _linked_product_ids(self, column: Any, product_ids: Sequence[int], *criteria: Any) -> set[int]:
        """Subset of product_ids that appear in column under the given criteria."""
        if not product_ids:
            return set()
        return set(
            self._db.scalars(
                select(column).where(column.in_(product_ids), *criteria).distinct()
            ).all()
        )

    def _products_by_category(
        self,
        tenant_id: int,
        category_ids: Sequence[int],
        at: datetime | None,
        location_id: int | None,
    ) -> dict[int, list[CategoryProduct]]:
        products = self._db.scalars(
            select(Product)
            .where(
                Product.tenant_id == tenant_id,
                Product.category_id.in_(category_ids),
                Product.deleted_at.is_(None),
                Product.is_active.is_(True),
            )
            .order_by(Product.sort_order, Product.name)
        ).all()
        product_ids = [p.id for p in products]

        overrides = PricingService(self._db).location_prices_for(tenant_id, product_ids, location_id)
        with_modifiers = self._linked_product_ids(
            ProductModifierGroup.product_id,
            product_ids,
            ProductModifierGroup.tenant_id == tenant_id,
            ProductModifierGroup.is_active.is_(True),
        )
        with_combo_items = self._linked_product_ids(
            ComboItem.combo_product_id,
            product_ids,
            ComboItem.tenant_id == tenant_id,
        )

        result: dict[int, list[CategoryProduct]] = {cid: [] for cid in category_ids}
        for product in products:
            result[product.category_id].append(
                CategoryProduct(
                    id=product.id,
                    name=product.name,
                    display_name=product.display_name,
                    product_type=product.product_type,
                    base_price=product.base_price,
                    price=effective_price(product, overrides.get(product.id)),
                    sku=product.sku,
                    is_available=is_product_available(product, at),
                    has_modifiers=product.id in with_modifiers,
                    is_combo=(
                        product.product_type == ProductType.COMBO
                        and product.id in with_combo_items
                    ),
                )
            )
        return result

    def get_category_tree(
        self,
        ctx: RequestContext,
        *,
        include_inactive: bool = False,
        include_products: bool = False,
        at: datetime | None = None,
        location_id: int | None = None,
    ) -> list[CategoryNode]:
        """
        Tenant-scoped category tree, optionally with each category's products.

        With a location, product prices include that location's overrides.

        Raises:
            NotFoundError: location_id is not a location of the tenant.
        """
        if location_id is not None:
            PricingService(self._db).get_location(ctx.tenant_id, location_id)

        categories = self._repo.find_all(ctx.tenant_id, include_inactive=include_inactive)
        ids = [c.id for c in categories]

        products = (
            self._products_by_category(ctx.tenant_id, ids, at, location_id)
            if include_products
            else None
        )
        return build_tree(categories, self._parent_ids_by_category(ctx.tenant_id, ids), products)

    def list_categories(self, ctx: RequestContext, *, include_inactive: bool = False) -> list[CategoryNode]:
        """Flat list in (sort_order, name) order, each with its parent_ids."""
        categories = sorted(
            self._repo.find_all(ctx.tenant_id, include_inactive=include_inactive),
            key=_sort_key,
        )
        parents = self._parent_ids_by_category(ctx.tenant_id, [c.id for c in categories])
        return [
            CategoryNode(
                id=c.id,
                name=c.name,
                display_name=c.display_name,
                sort_order=c.sort_order or 0,
                color_hex=c.color_hex,
                is_active=c.is_active,
                parent_id=c.parent_id,
                parent_ids=parents.get(c.id, []),
            )
            for c in categories
        ]

    def list_subcategories(self, ctx: RequestContext) -> list[SubcategoryLink]:
        """Every junction row with its subcategory, ordered by parent then sort_order."""
        parent = aliased(Category)
        rows = self._db.execute(
            select(CategoryRelationship, Category)
            .join(Category, Category.id == CategoryRelationship.subcategory_id)
            .join(parent, parent.id == CategoryRelationship.parent_category_id)
            .where(
                CategoryRelationship.tenant_id == ctx.tenant_id,
                Category.deleted_at.is_(None),
                parent.deleted_at.is_(None),
            )
            .order_by(
                CategoryRelationship.parent_category_id,
                CategoryRelationship.sort_order,
                Category.name,
            )
        ).all()
        return [
            SubcategoryLink(
                id=category.id,
                name=category.name,
                display_name=category.display_name,
                parent_id=link.parent_category_id,
                sort_order=link.sort_order,
            )
            for link, category in rows
        ]

    # =========================================================================
    # Command Methods
    # =========================================================================

    def _primary_parents(self, tenant_id: int) -> dict[int, int | None]:
        rows = self._db.execute(
            select(Category.id, Category.parent_id).where(
                Category.tenant_id == tenant_id,
                Category.deleted_at.is_(None),
            )
        ).all()
        return {row.id: row.parent_id for row in rows}

    def _is_ancestor(self, tenant_id: int, candidate_id: int, start_id: int) -> bool:
        """Walk primary parents up from start_id looking for candidate_id."""
        parents = self._primary_parents(tenant_id)
        seen: set[int] = set()
        current: int | None = start_id
        while current is not None and current not in seen:
            if current == candidate_id:
                return True
            seen.add(current)
            current = parents.get(current)
        return False

    def _check_parent(self, tenant_id: int, category_id: int, parent_id: int) -> None:
        if parent_id == category_id or self._is_ancestor(tenant_id, category_id, parent_id):
            raise CategoryCycleError(category_id, parent_id, tenant_id=tenant_id)

    def assign_primary_parent(
        self, ctx: RequestContext, category_id: int, parent_id: int | None
    ) -> Category:
        """
        Set or clear the primary parent.

        Raises:
            NotFoundError: Category or parent missing in tenant.
            CategoryCycleError: The parent is the category or one of its descendants.
        """
        category = self.get_or_404(category_id, ctx.tenant_id, include_inactive=True)
        if parent_id is not None:
            self.get_or_404(parent_id, ctx.tenant_id, include_inactive=True)
            self._check_parent(ctx.tenant_id, category_id, parent_id)

        category.parent_id = parent_id
        category.set_updated_by(ctx.user_id, ctx.user_email)
        self._commit("assign category parent", category_id=category_id, parent_id=parent_id)
        self._db.refresh(category)

        logger.info("Category parent assigned", category_id=category_id, parent_id=parent_id)
        return category

    def set_parent_categories(
        self, ctx: RequestContext, category_id: int, parent_ids: Sequence[int]
    ) -> list[int]:
        """
        Replace the additional parents of a category in one transaction.

        Each proposed parent is checked before anything is written; one bad
        parent rejects the whole set.
        """
        self.get_or_404(category_id, ctx.tenant_id, include_inactive=True)

        unique_ids = list(dict.fromkeys(parent_ids))
        for parent_id in unique_ids:
            self.get_or_404(parent_id, ctx.tenant_id, include_inactive=True)
            self._check_parent(ctx.tenant_id, category_id, parent_id)

        existing = self._db.scalars(
            select(CategoryRelationship).where(
                CategoryRelationship.tenant_id == ctx.tenant_id,
                CategoryRelationship.subcategory_id == category_id,
            )
        ).all()
        for row in existing:
            self._db.delete(row)
        self._db.flush()

        self._db.add_all(
            [
                CategoryRelationship(
                    tenant_id=ctx.tenant_id,
                    parent_category_id=parent_id,
                    subcategory_id=category_id,
                    sort_order=index,
                )
                for index, parent_id in enumerate(unique_ids)
            ]
        )
        self._commit("set parent categories", category_id=category_id)

        logger.info(
            "Category parents replaced",
            category_id=category_id,
            parent_ids=unique_ids,
            user_id=ctx.user_id,
        )
        return unique_ids
