"""
Order router.
Handles order creation, status changes, payments and refunds.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.domain import OrderService
from shared.infrastructure.db import get_db
from shared.security.auth import RequestContext, current_user_context
from shared.utils.schemas import (
    ApplyPaymentRequest,
    CreateOrderRequest,
    OrderListOutput,
    OrderOutput,
    OrderStatsOutput,
    OrderStatus,
    OrderType,
    PaymentOutput,
    PaymentStatus,
    RefundRequest,
    UpdateOrderStatusRequest,
)


router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: CreateOrderRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> OrderOutput:
    """
    Create an order.

    Combo lines are expanded into their components; other lines are priced
    at the order's location with their modifiers applied. Nothing is written
    if any line fails.
    """
    order = OrderService(db).create_order(ctx, body)
    return OrderOutput.model_validate(order)


@router.get("", response_model=OrderListOutput)
def list_orders(
    order_status: OrderStatus | None = None,
    payment_status: PaymentStatus | None = None,
    order_type: OrderType | None = None,
    location_id: int | None = None,
    search: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> OrderListOutput:
    """Newest orders first."""
    orders, total = OrderService(db).list_orders(
        ctx,
        order_status=order_status,
        payment_status=payment_status,
        order_type=order_type,
        location_id=location_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return OrderListOutput(
        orders=[OrderOutput.model_validate(o) for o in orders],
        total=total,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get("/stats", response_model=OrderStatsOutput)
def get_order_stats(
    location_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> OrderStatsOutput:
    """Order counts and paid sales, today by default."""
    stats = OrderService(db).get_stats(
        ctx, location_id=location_id, date_from=date_from, date_to=date_to
    )
    return OrderStatsOutput(
        total_orders=stats.total_orders,
        open_orders=stats.open_orders,
        completed_orders=stats.completed_orders,
        total_sales=stats.total_sales,
    )


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> OrderOutput:
    order = OrderService(db).get_order(ctx, order_id)
    return OrderOutput.model_validate(order)


@router.patch("/{order_id}/status", response_model=OrderOutput)
def update_order_status(
    order_id: int,
    body: UpdateOrderStatusRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> OrderOutput:
    """
    Move an order to another status.

    Any transition is accepted, including backwards moves. Voiding or
    cancelling records the reason and the acting user.
    """
    service = OrderService(db)
    service.update_status(ctx, order_id, body.order_status, body.void_reason)
    return OrderOutput.model_validate(service.get_order(ctx, order_id))


@router.post(
    "/{order_id}/payments",
    response_model=PaymentOutput,
    status_code=status.HTTP_201_CREATED,
)
def apply_payment(
    order_id: int,
    body: ApplyPaymentRequest,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> PaymentOutput:
    payment = OrderService(db).apply_payment(ctx, order_id, body)
    return PaymentOutput.model_validate(payment)


@router.post("/{order_id}/refund", response_model=OrderOutput)
def refund_order(
    order_id: int,
    body: RefundRequest | None = None,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(current_user_context),
) -> OrderOutput:
    """Refund a paid order, fully unless an amount is given."""
    service = OrderService(db)
    amount = body.amount if body is not None else None
    service.refund(ctx, order_id, amount)
    return OrderOutput.model_validate(service.get_order(ctx, order_id))
