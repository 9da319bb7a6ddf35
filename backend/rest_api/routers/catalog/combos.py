"""
Combo endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rest_api.services.domain import ComboItemSpec, ComboService
from shared.config.constants import Limits
from shared.infrastructure.db import get_db
from shared.security.auth import RequestContext, current_user_context
from shared.utils.schemas import (
    ComboExpansionOutput,
    ComboSavingsOutput,
    ComboSummaryOutput,
    ReplaceComboItemsRequest,
)


router = APIRouter(tags=["catalog-combos"])


@router.get("/combos/{combo_id}/expand", response_model=ComboExpansionOutput)
def expand_combo(
    combo_id: int,
    quantity: int = Query(default=1, le=Limits.MAX_QUANTITY),
    location_id: int | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> ComboExpansionOutput:
    """
    Component lines for `quantity` combos.

    Each line's quantity is the item quantity times `quantity`; its unit
    price is the item's price override or its effective price at the
    location.
    """
    expansion = ComboService(db).expand_for_order(ctx, combo_id, quantity, location_id)
    return ComboExpansionOutput.model_validate(expansion)


@router.get("/combos/{combo_id}/summary", response_model=ComboSummaryOutput)
def get_combo_summary(
    combo_id: int,
    location_id: int | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> ComboSummaryOutput:
    summary = ComboService(db).get_combo_summary(ctx, combo_id, location_id)
    return ComboSummaryOutput.model_validate(summary)


@router.put("/combos/{combo_id}/items", response_model=ComboSavingsOutput)
def replace_combo_items(
    combo_id: int,
    body: ReplaceComboItemsRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> ComboSavingsOutput:
    """Replace all components and recompute regular price and savings."""
    specs = [
        ComboItemSpec(
            item_product_id=item.item_product_id,
            quantity=item.quantity,
            price_override=item.price_override,
            selection_group=item.selection_group,
            sort_order=item.sort_order,
        )
        for item in body.items
    ]
    savings = ComboService(db).replace_combo_items(ctx, combo_id, specs)
    return ComboSavingsOutput.model_validate(savings)
