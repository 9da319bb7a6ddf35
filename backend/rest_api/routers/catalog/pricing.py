"""
Product price and availability endpoints.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.services.domain import PricingService
from shared.infrastructure.db import get_db
from shared.security.auth import RequestContext, current_user_context
from shared.utils.schemas import (
    AvailabilityOutput,
    EffectivePriceOutput,
    LocationPriceOutput,
    LocationPriceRequest,
)


router = APIRouter(tags=["catalog-pricing"])


@router.get("/products/{product_id}/price", response_model=EffectivePriceOutput)
def get_effective_price(
    product_id: int,
    location_id: int | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> EffectivePriceOutput:
    """Location override when one exists, otherwise the product's base price."""
    price = PricingService(db).get_effective_price(ctx, product_id, location_id)
    return EffectivePriceOutput.model_validate(price)


@router.put(
    "/products/{product_id}/locations/{location_id}/price",
    response_model=LocationPriceOutput,
)
def set_location_price(
    product_id: int,
    location_id: int,
    body: LocationPriceRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> LocationPriceOutput:
    row = PricingService(db).set_location_price(ctx, product_id, location_id, body.price)
    return LocationPriceOutput.model_validate(row)


@router.delete(
    "/products/{product_id}/locations/{location_id}/price",
    status_code=status.HTTP_204_NO_CONTENT,
)
def remove_location_price(
    product_id: int,
    location_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> None:
    PricingService(db).remove_location_price(ctx, product_id, location_id)


@router.get("/products/{product_id}/availability", response_model=AvailabilityOutput)
def get_availability(
    product_id: int,
    at: datetime | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> AvailabilityOutput:
    available = PricingService(db).is_available(ctx, product_id, at)
    return AvailabilityOutput(product_id=product_id, is_available=available)
