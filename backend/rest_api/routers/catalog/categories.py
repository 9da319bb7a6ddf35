"""
Category tree endpoints.
"""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.services.domain import CategoryService
from shared.infrastructure.db import get_db
from shared.security.auth import RequestContext, current_user_context
from shared.utils.schemas import (
    AssignParentRequest,
    CategoryNodeOutput,
    CategoryOutput,
    SetParentsRequest,
    SubcategoryLinkOutput,
)


router = APIRouter(tags=["catalog-categories"])


@router.get("/categories/tree", response_model=list[CategoryNodeOutput])
def get_category_tree(
    include_inactive: bool = False,
    include_products: bool = False,
    at: datetime | None = None,
    location_id: int | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> list[CategoryNodeOutput]:
    """
    Category tree for the caller's tenant.

    Children nest by primary parent; additional parents are reported in
    parent_ids. Products carry an is_available flag evaluated at `at`
    (now by default) and a price that includes the overrides of
    `location_id` when one is given.
    """
    roots = CategoryService(db).get_category_tree(
        ctx,
        include_inactive=include_inactive,
        include_products=include_products,
        at=at,
        location_id=location_id,
    )
    return [CategoryNodeOutput.model_validate(node) for node in roots]


@router.get("/categories", response_model=list[CategoryNodeOutput])
def list_categories(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> list[CategoryNodeOutput]:
    """Flat category list ordered by (sort_order, name)."""
    nodes = CategoryService(db).list_categories(ctx, include_inactive=include_inactive)
    return [CategoryNodeOutput.model_validate(node) for node in nodes]


@router.get("/subcategories", response_model=list[SubcategoryLinkOutput])
def list_subcategories(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> list[SubcategoryLinkOutput]:
    links = CategoryService(db).list_subcategories(ctx)
    return [SubcategoryLinkOutput.model_validate(link) for link in links]


@router.put("/categories/{category_id}/parent", response_model=CategoryOutput)
def assign_primary_parent(
    category_id: int,
    body: AssignParentRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> CategoryOutput:
    """Set or clear the primary parent. Rejects assignments that form a cycle."""
    category = CategoryService(db).assign_primary_parent(ctx, category_id, body.parent_id)
    return CategoryOutput.model_validate(category)


@router.put("/categories/{category_id}/parents", response_model=list[int])
def set_parent_categories(
    category_id: int,
    body: SetParentsRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> list[int]:
    """Replace the additional parents of a category."""
    return CategoryService(db).set_parent_categories(ctx, category_id, body.parent_ids)
