"""
Order Domain Service.

Creates priced orders atomically and moves them through their status and
payment state machines.

Order creation re-reads catalog state on every call:
- combo products expand into one line per component (ComboService)
- other products are priced at the order's location (PricingService) and
  then adjusted by the chosen modifiers (ModifierService)
Names and prices are copied onto the order lines so later catalog edits do
not change history.

Status transitions are permissive by default so staff can correct
mistakes; pass StrictTransitionPolicy to enforce forward-only moves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import (
    Modifier,
    Order,
    OrderItem,
    OrderItemModifier,
    OrderSequence,
    Payment,
    Product,
    Tenant,
)
from rest_api.services.base_service import BaseService
from rest_api.services.domain.combo_service import ComboService
from rest_api.services.domain.modifier_service import ModifierService, ResolvedGroup
from rest_api.services.domain.pricing_service import PricingService, effective_price
from shared.config.constants import (
    ORDER_TRANSITIONS,
    Limits,
    OrderStatus,
    PaymentMethod,
    PaymentRecordStatus,
    PaymentStatus,
    ProductType,
)
from shared.config.logging import get_logger
from shared.config.settings import Settings, get_settings
from shared.security.auth import RequestContext
from shared.utils.exceptions import (
    BusinessRuleError,
    InvalidStateError,
    InvalidTransitionError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from shared.utils.schemas import ApplyPaymentRequest, CreateOrderRequest
from shared.utils.validators import (
    sanitize_search_term,
    to_money,
    validate_positive_amount,
    validate_quantity,
)

logger = get_logger(__name__)


# =============================================================================
# Transition policies
# =============================================================================


class TransitionPolicy(Protocol):
    def check(self, current: str, target: str) -> None:
        """Raise InvalidTransitionError to reject a status change."""


class PermissiveTransitionPolicy:
    """Accept every transition, including backwards moves."""

    def check(self, current: str, target: str) -> None:
        return None


class StrictTransitionPolicy:
    """Only the forward moves listed in ORDER_TRANSITIONS."""

    def __init__(self, transitions: dict[str, list[str]] | None = None):
        self._transitions = transitions or ORDER_TRANSITIONS

    def check(self, current: str, target: str) -> None:
        if target not in self._transitions.get(current, []):
            raise InvalidTransitionError("Order", current, target)


# =============================================================================
# Priced lines
# =============================================================================


@dataclass
class PricedLine:
    product_id: int
    item_name: str
    unit_price: Decimal
    quantity: int
    special_instructions: str | None = None
    is_combo_item: bool = False
    combo_product_id: int | None = None
    selection_group: str | None = None
    modifiers: list[tuple[ResolvedGroup, Modifier]] = field(default_factory=list)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


def compute_totals(line_totals: list[Decimal], tax_rate: Decimal, discount: Decimal) -> OrderTotals:
    """subtotal = sum of lines; tax = subtotal x rate; total = subtotal + tax - discount."""
    subtotal = to_money(sum(line_totals, Decimal("0")))
    tax_amount = to_money(subtotal * tax_rate)
    discount_amount = to_money(discount)
    return OrderTotals(
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total_amount=subtotal + tax_amount - discount_amount,
    )


@dataclass(frozen=True)
class OrderStats:
    total_orders: int
    open_orders: int
    completed_orders: int
    total_sales: Decimal


class OrderService(BaseService[Order]):
    """
    Order lifecycle: creation, status changes, payments and refunds.

    Every write commits exactly once; any failure rolls the whole
    operation back.
    """

    def __init__(
        self,
        db: Session,
        *,
        transition_policy: TransitionPolicy | None = None,
        settings: Settings | None = None,
    ):
        super().__init__(db, Order, entity_name="Order")
        self._pricing = PricingService(db)
        self._modifiers = ModifierService(db)
        self._combos = ComboService(db)
        self._policy = transition_policy or PermissiveTransitionPolicy()
        self._settings = settings or get_settings()

    _load_options = [
        selectinload(Order.items).selectinload(OrderItem.modifiers),
        selectinload(Order.payments),
    ]

    # =========================================================================
    # Creation
    # =========================================================================

    def _next_order_number(self, tenant_id: int, location_id: int) -> tuple[str, str]:
        """Take the next value of the location's counter under a row lock."""
        sequence = self._db.scalar(
            select(OrderSequence)
            .where(
                OrderSequence.tenant_id == tenant_id,
                OrderSequence.location_id == location_id,
            )
            .with_for_update()
        )
        if sequence is None:
            sequence = OrderSequence(tenant_id=tenant_id, location_id=location_id, last_value=0)
            self._db.add(sequence)
            self._db.flush()

        sequence.last_value += 1
        value = sequence.last_value
        order_number = f"{self._settings.order_number_prefix}{value:0{self._settings.order_number_width}d}"
        display_number = f"#{self._settings.display_number_base + value}"
        return order_number, display_number

    def _resolve_tax_rate(self, tenant_id: int, requested: Decimal | None, location_rate: Decimal | None) -> Decimal:
        if requested is not None:
            return Decimal(requested)
        if location_rate is not None:
            return Decimal(location_rate)
        tenant = self._db.get(Tenant, tenant_id)
        if tenant is not None and tenant.default_tax_rate is not None:
            return Decimal(tenant.default_tax_rate)
        return Decimal(self._settings.default_tax_rate)

    def _price_lines(
        self, ctx: RequestContext, payload: CreateOrderRequest, location_id: int
    ) -> list[PricedLine]:
        for item in payload.items:
            validate_quantity(item.quantity)

        product_ids = [item.product_id for item in payload.items]
        products = self._pricing.repo.find_by_ids(product_ids, ctx.tenant_id, include_inactive=True)
        for product_id in product_ids:
            if product_id not in products:
                raise ProductNotFoundError(product_id, tenant_id=ctx.tenant_id)
            if not products[product_id].is_active:
                raise BusinessRuleError(
                    f"Product {product_id} is not available",
                    product_id=product_id,
                )
        overrides = self._pricing.location_prices_for(ctx.tenant_id, product_ids, location_id)

        lines: list[PricedLine] = []
        for item in payload.items:
            product: Product = products[item.product_id]

            if product.product_type == ProductType.COMBO:
                if item.modifier_ids:
                    raise ValidationError(
                        "Modifiers cannot be applied to a combo line",
                        product_id=product.id,
                    )
                expansion = self._combos.expand(ctx.tenant_id, product, item.quantity, location_id)
                for expanded in expansion.items:
                    lines.append(
                        PricedLine(
                            product_id=expanded.product_id,
                            item_name=expanded.product_name,
                            unit_price=to_money(expanded.unit_price),
                            quantity=expanded.quantity,
                            special_instructions=item.special_instructions,
                            is_combo_item=True,
                            combo_product_id=expanded.combo_product_id,
                            selection_group=expanded.selection_group,
                        )
                    )
                continue

            base = effective_price(product, overrides.get(product.id))
            unit_price, applied = self._modifiers.price_for_selection(
                ctx.tenant_id, product.id, base, item.modifier_ids
            )
            lines.append(
                PricedLine(
                    product_id=product.id,
                    item_name=product.display_name or product.name,
                    unit_price=to_money(unit_price),
                    quantity=item.quantity,
                    special_instructions=item.special_instructions,
                    modifiers=applied,
                )
            )
        return lines

    def create_order(self, ctx: RequestContext, payload: CreateOrderRequest) -> Order:
        """
        Create an order with all of its lines in one transaction.

        Raises:
            ValidationError: No location, bad quantity, modifiers on a combo,
                or a discount larger than subtotal + tax.
            NotFoundError: Location, product or modifier missing in tenant.
            BusinessRuleError: Inactive product or a modifier selection that
                breaks its group's rules.
        """
        location_id = payload.location_id or ctx.location_id
        if location_id is None:
            raise ValidationError("location_id is required", field="location_id")

        try:
            location = self._pricing.get_location(ctx.tenant_id, location_id, include_inactive=False)
            lines = self._price_lines(ctx, payload, location_id)

            tax_rate = self._resolve_tax_rate(ctx.tenant_id, payload.tax_rate, location.tax_rate)
            totals = compute_totals([line.line_total for line in lines], tax_rate, payload.discount_amount)
            if totals.total_amount < 0:
                raise ValidationError(
                    "Discount exceeds the order total",
                    discount=str(totals.discount_amount),
                    subtotal=str(totals.subtotal),
                )

            order_number, display_number = self._next_order_number(ctx.tenant_id, location_id)

            order = Order(
                tenant_id=ctx.tenant_id,
                location_id=location_id,
                order_number=order_number,
                display_number=display_number,
                order_type=payload.order_type,
                order_status=OrderStatus.OPEN,
                payment_status=PaymentStatus.UNPAID,
                subtotal=totals.subtotal,
                tax_rate=totals.tax_rate,
                tax_amount=totals.tax_amount,
                discount_amount=totals.discount_amount,
                total_amount=totals.total_amount,
                amount_paid=Decimal("0"),
                amount_due=totals.total_amount,
                customer_name=payload.customer_name,
                customer_phone=payload.customer_phone,
                customer_email=payload.customer_email,
                table_number=payload.table_number,
                notes=payload.notes,
                created_by_user_id=ctx.user_id,
                meta={},
            )
            order.set_created_by(ctx.user_id, ctx.user_email)

            for index, line in enumerate(lines):
                order_item = OrderItem(
                    tenant_id=ctx.tenant_id,
                    product_id=line.product_id,
                    item_name=line.item_name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    line_total=line.line_total,
                    special_instructions=line.special_instructions,
                    sort_order=index,
                    is_combo_item=line.is_combo_item,
                    combo_product_id=line.combo_product_id,
                    selection_group=line.selection_group,
                )
                for group, modifier in line.modifiers:
                    order_item.modifiers.append(
                        OrderItemModifier(
                            tenant_id=ctx.tenant_id,
                            modifier_id=modifier.id,
                            modifier_group_id=group.id,
                            modifier_name=modifier.display_name or modifier.name,
                            price_type=modifier.price_type,
                            modifier_price=modifier.price_change or Decimal("0"),
                            quantity=1,
                        )
                    )
                order.items.append(order_item)

            self._db.add(order)
        except Exception:
            self._db.rollback()
            raise

        self._commit("create order", tenant_id=ctx.tenant_id, location_id=location_id)
        self._db.refresh(order)

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            location_id=location_id,
            items_count=len(lines),
            total=str(order.total_amount),
            user_id=ctx.user_id,
        )
        return order

    # =========================================================================
    # Reads
    # =========================================================================

    def get_order(self, ctx: RequestContext, order_id: int) -> Order:
        order = self._repo.find_by_id(order_id, ctx.tenant_id, options=self._load_options, include_inactive=True)
        if order is None:
            raise OrderNotFoundError(order_id, tenant_id=ctx.tenant_id)
        return order

    def list_orders(
        self,
        ctx: RequestContext,
        *,
        order_status: str | None = None,
        payment_status: str | None = None,
        order_type: str | None = None,
        location_id: int | None = None,
        search: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int = Limits.DEFAULT_PAGE_SIZE,
        offset: int = Limits.DEFAULT_OFFSET,
    ) -> tuple[list[Order], int]:
        """Newest first. Returns (page, total matching)."""
        filters = []
        if order_status:
            filters.append(Order.order_status == order_status)
        if payment_status:
            filters.append(Order.payment_status == payment_status)
        if order_type:
            filters.append(Order.order_type == order_type)
        if location_id is not None:
            filters.append(Order.location_id == location_id)
        if search:
            pattern = f"%{sanitize_search_term(search)}%"
            filters.append(
                or_(
                    Order.order_number.ilike(pattern, escape="\\"),
                    Order.display_number.ilike(pattern, escape="\\"),
                    Order.customer_name.ilike(pattern, escape="\\"),
                    Order.customer_phone.ilike(pattern, escape="\\"),
                    Order.table_number.ilike(pattern, escape="\\"),
                )
            )
        if date_from is not None:
            filters.append(Order.created_at >= date_from)
        if date_to is not None:
            filters.append(Order.created_at <= date_to)

        orders = self._repo.find_all(
            ctx.tenant_id,
            filters=filters,
            options=self._load_options,
            include_inactive=True,
            limit=limit,
            offset=offset,
            order_by=[Order.created_at.desc(), Order.id.desc()],
        )
        total = self._repo.count(ctx.tenant_id, filters=filters, include_inactive=True)
        return list(orders), total

    def get_stats(
        self,
        ctx: RequestContext,
        *,
        location_id: int | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> OrderStats:
        """Counts and paid sales for [date_from, date_to), today (UTC) by default."""
        today = datetime.combine(datetime.now(timezone.utc).date(), time.min, tzinfo=timezone.utc)
        start = date_from or today
        end = date_to or today + timedelta(days=1)

        base = [
            Order.tenant_id == ctx.tenant_id,
            Order.deleted_at.is_(None),
            Order.created_at >= start,
            Order.created_at < end,
        ]
        if location_id is not None:
            base.append(Order.location_id == location_id)

        def count(*extra) -> int:
            return self._db.scalar(select(func.count(Order.id)).where(*base, *extra)) or 0

        total_sales = self._db.scalar(
            select(func.sum(Order.total_amount)).where(*base, Order.payment_status == PaymentStatus.PAID)
        )
        return OrderStats(
            total_orders=count(),
            open_orders=count(Order.order_status.in_(OrderStatus.ACTIVE)),
            completed_orders=count(Order.order_status == OrderStatus.COMPLETED),
            total_sales=to_money(Decimal(str(total_sales or 0))),
        )

    # =========================================================================
    # Status
    # =========================================================================

    def update_status(
        self,
        ctx: RequestContext,
        order_id: int,
        new_status: str,
        void_reason: str | None = None,
    ) -> Order:
        """
        Change the order status and stamp the matching milestone.

        preparing -> sent_to_kitchen_at, ready -> kitchen_completed_at,
        completed -> completed_at, voided/cancelled -> voided_at, void_reason
        and voided_by_user_id. Voiding an unpaid or partly paid order moves
        its payment status to void.
        """
        if new_status not in OrderStatus.ALL:
            raise ValidationError(f"Unknown order status '{new_status}'", field="order_status")

        order = self.get_or_404(order_id, ctx.tenant_id, include_inactive=True, for_update=True)
        previous = order.order_status
        self._policy.check(previous, new_status)

        now = datetime.now(timezone.utc)
        if new_status == OrderStatus.PREPARING:
            order.sent_to_kitchen_at = now
        elif new_status == OrderStatus.READY:
            order.kitchen_completed_at = now
        elif new_status == OrderStatus.COMPLETED:
            order.completed_at = now
        elif new_status in OrderStatus.VOIDING:
            order.voided_at = now
            order.void_reason = void_reason
            order.voided_by_user_id = ctx.user_id
            if order.payment_status in PaymentStatus.VOIDABLE:
                order.payment_status = PaymentStatus.VOID

        order.order_status = new_status
        order.set_updated_by(ctx.user_id, ctx.user_email)
        self._commit("update order status", order_id=order_id)
        self._db.refresh(order)

        logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=previous,
            to_status=new_status,
            user_id=ctx.user_id,
        )
        return order

    # =========================================================================
    # Payments
    # =========================================================================

    def apply_payment(self, ctx: RequestContext, order_id: int, payload: ApplyPaymentRequest) -> Payment:
        """
        Record a payment and recompute amount_paid, amount_due and status.

        Over- and under-payments are accepted. For cash, change is tendered
        minus amount and may be negative.
        """
        amount = to_money(validate_positive_amount(payload.amount))

        order = self.get_or_404(order_id, ctx.tenant_id, include_inactive=True, for_update=True)
        if order.payment_status == PaymentStatus.VOID:
            raise InvalidStateError("Order payment", order.payment_status)

        order.amount_paid = order.amount_paid + amount
        order.amount_due = order.total_amount - order.amount_paid
        if order.amount_paid >= order.total_amount:
            order.payment_status = PaymentStatus.PAID
        elif order.amount_paid > 0:
            order.payment_status = PaymentStatus.PARTIAL

        cash_change = None
        if payload.payment_method == PaymentMethod.CASH and payload.cash_tendered is not None:
            cash_change = to_money(payload.cash_tendered) - amount

        payment = Payment(
            tenant_id=ctx.tenant_id,
            order_id=order.id,
            payment_method=payload.payment_method,
            amount=amount,
            cash_tendered=payload.cash_tendered,
            cash_change=cash_change,
            payment_status=PaymentRecordStatus.CAPTURED,
            reference=payload.reference,
            processed_by_user_id=ctx.user_id,
        )
        self._db.add(payment)
        order.set_updated_by(ctx.user_id, ctx.user_email)
        self._commit("apply payment", order_id=order_id)
        self._db.refresh(payment)

        logger.info(
            "Payment applied",
            order_id=order_id,
            payment_id=payment.id,
            amount=str(amount),
            method=payload.payment_method,
            payment_status=order.payment_status,
        )
        return payment

    def refund(self, ctx: RequestContext, order_id: int, amount: Decimal | None = None) -> Order:
        """
        Refund a paid order, fully by default.

        Raises:
            InvalidStateError: The order is not paid.
            ValidationError: A given amount is not positive.
        """
        order = self.get_or_404(order_id, ctx.tenant_id, include_inactive=True, for_update=True)
        if order.payment_status != PaymentStatus.PAID:
            raise InvalidStateError(
                "Order payment",
                order.payment_status,
                [PaymentStatus.PAID],
                order_id=order_id,
            )

        refund_amount = order.total_amount if amount is None else to_money(validate_positive_amount(amount))

        order.payment_status = PaymentStatus.REFUNDED
        order.amount_paid = order.amount_paid - refund_amount
        order.amount_due = refund_amount
        order.meta = {
            **(order.meta or {}),
            "refunded_at": datetime.now(timezone.utc).isoformat(),
            "refunded_by_user_id": ctx.user_id,
            "refund_amount": str(refund_amount),
        }
        order.set_updated_by(ctx.user_id, ctx.user_email)
        self._commit("refund order", order_id=order_id)
        self._db.refresh(order)

        logger.info(
            "Order refunded",
            order_id=order_id,
            amount=str(refund_amount),
            user_id=ctx.user_id,
        )
        return order
