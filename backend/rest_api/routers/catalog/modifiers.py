"""
Product modifier group endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.services.domain import ModifierService
from shared.infrastructure.db import get_db
from shared.security.auth import RequestContext, current_user_context
from shared.utils.schemas import (
    LinkModifierGroupRequest,
    ModifierLinkOutput,
    ResolvedGroupOutput,
    UpdateModifierLinkRequest,
)


router = APIRouter(tags=["catalog-modifiers"])


@router.get("/products/{product_id}/modifier-groups", response_model=list[ResolvedGroupOutput])
def get_modifier_groups(
    product_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> list[ResolvedGroupOutput]:
    """
    Modifier groups offered for a product.

    Per-product overrides of is_required / min / max are applied and
    excluded modifiers are left out.
    """
    groups = ModifierService(db).resolve_groups(ctx, product_id)
    return [ResolvedGroupOutput.model_validate(group) for group in groups]


@router.post(
    "/products/{product_id}/modifier-groups",
    response_model=ModifierLinkOutput,
    status_code=status.HTTP_201_CREATED,
)
def link_modifier_group(
    product_id: int,
    body: LinkModifierGroupRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> ModifierLinkOutput:
    link = ModifierService(db).link_group(
        ctx,
        product_id,
        body.modifier_group_id,
        is_required=body.is_required,
        min_selections=body.min_selections,
        max_selections=body.max_selections,
        sort_order=body.sort_order,
        excluded_modifier_ids=body.excluded_modifier_ids,
    )
    return ModifierLinkOutput.model_validate(link)


@router.patch(
    "/products/{product_id}/modifier-groups/{group_id}",
    response_model=ModifierLinkOutput,
)
def update_modifier_link(
    product_id: int,
    group_id: int,
    body: UpdateModifierLinkRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> ModifierLinkOutput:
    """Only fields present in the body are changed."""
    link = ModifierService(db).update_link(
        ctx, product_id, group_id, **body.model_dump(exclude_unset=True)
    )
    return ModifierLinkOutput.model_validate(link)


@router.delete(
    "/products/{product_id}/modifier-groups/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def unlink_modifier_group(
    product_id: int,
    group_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> None:
    ModifierService(db).unlink_group(ctx, product_id, group_id)
