"""
Tests for OrderService: creation, numbering, totals, status changes and reads.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from rest_api.models import Location, Order, OrderSequence
from rest_api.services.domain import (
    OrderService,
    PricingService,
    StrictTransitionPolicy,
    compute_totals,
)
from shared.security.auth import RequestContext
from shared.utils.exceptions import (
    BusinessRuleError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from shared.utils.schemas import ApplyPaymentRequest, CreateOrderRequest, OrderItemInput


def _order(*items, **fields) -> CreateOrderRequest:
    return CreateOrderRequest(
        items=[OrderItemInput(**item) for item in items],
        **fields,
    )


def _count_orders(db_session) -> int:
    return db_session.scalar(select(func.count(Order.id)))


class TestComputeTotals:
    def test_tax_on_subtotal_then_discount(self):
        totals = compute_totals([Decimal("20.00")], Decimal("0.08"), Decimal("2"))

        assert totals.subtotal == Decimal("20.00")
        assert totals.tax_amount == Decimal("1.60")
        assert totals.total_amount == Decimal("19.60")

    def test_tax_rounds_half_up_to_cents(self):
        totals = compute_totals([Decimal("0.25")], Decimal("0.10"), Decimal("0"))
        assert totals.tax_amount == Decimal("0.03")

    def test_empty_lines(self):
        totals = compute_totals([], Decimal("0.08"), Decimal("0"))
        assert totals.total_amount == Decimal("0.00")


class TestCreateOrder:
    def test_totals_and_defaults(self, db_session, ctx, seed_products):
        order = OrderService(db_session).create_order(
            ctx, _order({"product_id": seed_products["burger"].id, "quantity": 2}, discount_amount=Decimal("2"))
        )

        assert order.order_status == "open"
        assert order.payment_status == "unpaid"
        assert order.subtotal == Decimal("20.00")
        assert order.tax_amount == Decimal("1.60")
        assert order.total_amount == Decimal("19.60")
        assert order.amount_paid == Decimal("0")
        assert order.amount_due == Decimal("19.60")
        assert order.created_by_user_id == ctx.user_id
        assert order.location_id == ctx.location_id

    def test_order_numbers_increase_per_location(self, db_session, ctx, second_location, seed_products):
        service = OrderService(db_session)
        item = {"product_id": seed_products["soda"].id}

        first = service.create_order(ctx, _order(item))
        second = service.create_order(ctx, _order(item))
        elsewhere = service.create_order(ctx, _order(item, location_id=second_location.id))

        assert (first.order_number, first.display_number) == ("ORD-00001", "#10001")
        assert (second.order_number, second.display_number) == ("ORD-00002", "#10002")
        assert elsewhere.order_number == "ORD-00001"

    def test_lines_copy_names_and_prices(self, db_session, ctx, seed_products):
        burger = seed_products["burger"]
        order = OrderService(db_session).create_order(ctx, _order({"product_id": burger.id}))

        burger.name = "Renamed"
        burger.base_price = Decimal("99.00")
        db_session.commit()
        db_session.refresh(order)

        assert order.items[0].item_name == "Burger"
        assert order.items[0].unit_price == Decimal("10.00")

    def test_location_price_is_used(self, db_session, ctx, seed_location, seed_products):
        burger = seed_products["burger"]
        PricingService(db_session).set_location_price(ctx, burger.id, seed_location.id, Decimal("8.00"))

        order = OrderService(db_session).create_order(ctx, _order({"product_id": burger.id}))

        assert order.items[0].unit_price == Decimal("8.00")
        assert order.subtotal == Decimal("8.00")

    def test_modifiers_are_priced_and_snapshotted(self, db_session, ctx, seed_modifiers, seed_products):
        order = OrderService(db_session).create_order(
            ctx,
            _order({
                "product_id": seed_products["burger"].id,
                "quantity": 2,
                "modifier_ids": [seed_modifiers["large"].id, seed_modifiers["bacon"].id],
                "special_instructions": "no pickles",
            }),
        )

        line = order.items[0]
        assert line.unit_price == Decimal("13.50")
        assert line.line_total == Decimal("27.00")
        assert line.special_instructions == "no pickles"
        assert [(m.modifier_name, m.price_type) for m in line.modifiers] == [("Large", "add"), ("Bacon", "add")]
        assert line.modifiers[0].modifier_group_id == seed_modifiers["size"].id

    def test_default_modifier_without_price_change(self, db_session, ctx, seed_modifiers, seed_products):
        order = OrderService(db_session).create_order(
            ctx, _order({"product_id": seed_products["burger"].id, "modifier_ids": [seed_modifiers["regular"].id]})
        )

        assert order.items[0].unit_price == Decimal("10.00")
        assert order.items[0].modifiers[0].modifier_price == Decimal("0")

    def test_combo_expands_to_component_lines(self, db_session, ctx, seed_combo):
        order = OrderService(db_session).create_order(ctx, _order({"product_id": seed_combo.id, "quantity": 2}))

        assert [(i.item_name, i.quantity, i.unit_price) for i in order.items] == [
            ("Burger", 2, Decimal("10.00")),
            ("Fries", 2, Decimal("4.00")),
            ("Soda", 2, Decimal("2.00")),
        ]
        assert all(i.is_combo_item and i.combo_product_id == seed_combo.id for i in order.items)
        assert order.subtotal == Decimal("32.00")

    def test_combo_and_plain_lines_snapshot_display_names(self, db_session, ctx, seed_combo, seed_products):
        seed_products["fries"].display_name = "Crispy Fries"
        db_session.commit()

        order = OrderService(db_session).create_order(
            ctx, _order({"product_id": seed_combo.id}, {"product_id": seed_products["fries"].id})
        )

        assert [(i.item_name, i.is_combo_item) for i in order.items] == [
            ("Burger", True),
            ("Crispy Fries", True),
            ("Soda", True),
            ("Crispy Fries", False),
        ]

    def test_modifiers_on_combo_line_are_rejected(self, db_session, ctx, seed_combo, seed_modifiers):
        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(
                ctx, _order({"product_id": seed_combo.id, "modifier_ids": [seed_modifiers["large"].id]})
            )

    def test_failure_creates_nothing(self, db_session, ctx, seed_products):
        service = OrderService(db_session)

        with pytest.raises(ProductNotFoundError):
            service.create_order(ctx, _order({"product_id": seed_products["soda"].id}, {"product_id": 9999}))

        assert _count_orders(db_session) == 0
        order = service.create_order(ctx, _order({"product_id": seed_products["soda"].id}))
        assert order.order_number == "ORD-00001"

    def test_broken_modifier_rule_rolls_back_sequence(self, db_session, ctx, seed_modifiers, seed_products):
        service = OrderService(db_session)
        service.create_order(ctx, _order({"product_id": seed_products["soda"].id}))

        with pytest.raises(BusinessRuleError):
            service.create_order(ctx, _order({"product_id": seed_products["burger"].id, "modifier_ids": []}))

        sequence = db_session.scalar(select(OrderSequence))
        assert sequence.last_value == 1
        assert _count_orders(db_session) == 1

    def test_inactive_product(self, db_session, ctx, seed_products):
        seed_products["fries"].is_active = False
        db_session.commit()

        with pytest.raises(BusinessRuleError):
            OrderService(db_session).create_order(ctx, _order({"product_id": seed_products["fries"].id}))

    def test_quantity_bounds(self, db_session, ctx, seed_products):
        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(ctx, _order({"product_id": seed_products["soda"].id, "quantity": 0}))

    def test_location_is_required(self, db_session, seed_tenant, seed_products):
        no_location = RequestContext(tenant_id=seed_tenant.id, user_id=7)

        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(no_location, _order({"product_id": seed_products["soda"].id}))

    def test_inactive_location(self, db_session, ctx, second_location, seed_products):
        second_location.is_active = False
        db_session.commit()

        with pytest.raises(NotFoundError):
            OrderService(db_session).create_order(
                ctx, _order({"product_id": seed_products["soda"].id}, location_id=second_location.id)
            )

    def test_product_of_other_tenant(self, db_session, other_ctx, other_tenant, seed_products):
        location = Location(tenant_id=other_tenant.id, name="Theirs")
        db_session.add(location)
        db_session.commit()

        with pytest.raises(ProductNotFoundError):
            OrderService(db_session).create_order(
                other_ctx, _order({"product_id": seed_products["soda"].id}, location_id=location.id)
            )

    def test_tax_rate_fallbacks(self, db_session, ctx, seed_tenant, seed_location, second_location, seed_products):
        service = OrderService(db_session)
        soda = {"product_id": seed_products["soda"].id}
        seed_tenant.default_tax_rate = Decimal("0.05")
        db_session.commit()

        requested = service.create_order(ctx, _order(soda, tax_rate=Decimal("0")))
        from_location = service.create_order(ctx, _order(soda))
        from_tenant = service.create_order(ctx, _order(soda, location_id=second_location.id))

        seed_tenant.default_tax_rate = None
        db_session.commit()
        from_settings = service.create_order(ctx, _order(soda, location_id=second_location.id))

        assert requested.tax_amount == Decimal("0.00")
        assert from_location.tax_rate == Decimal("0.08")
        assert from_tenant.tax_rate == Decimal("0.05")
        assert from_tenant.tax_amount == Decimal("0.10")
        assert from_settings.tax_rate == Decimal("0.08")

    def test_discount_larger_than_total(self, db_session, ctx, seed_products):
        with pytest.raises(ValidationError):
            OrderService(db_session).create_order(
                ctx, _order({"product_id": seed_products["soda"].id}, discount_amount=Decimal("5.00"))
            )
        assert _count_orders(db_session) == 0

    def test_discount_equal_to_total(self, db_session, ctx, seed_products):
        order = OrderService(db_session).create_order(
            ctx, _order({"product_id": seed_products["soda"].id}, discount_amount=Decimal("2.16"))
        )
        assert order.total_amount == Decimal("0.00")


class TestOrderStatus:
    @pytest.fixture
    def order(self, db_session, ctx, seed_products):
        return OrderService(db_session).create_order(ctx, _order({"product_id": seed_products["burger"].id}))

    def test_milestones_are_stamped(self, db_session, ctx, order):
        service = OrderService(db_session)

        service.update_status(ctx, order.id, "preparing")
        service.update_status(ctx, order.id, "ready")
        done = service.update_status(ctx, order.id, "completed")

        assert done.order_status == "completed"
        assert done.sent_to_kitchen_at is not None
        assert done.kitchen_completed_at is not None
        assert done.completed_at is not None
        assert done.voided_at is None

    def test_void_unpaid_order(self, db_session, ctx, order):
        voided = OrderService(db_session).update_status(ctx, order.id, "voided", void_reason="wrong table")

        assert voided.payment_status == "void"
        assert voided.void_reason == "wrong table"
        assert voided.voided_by_user_id == ctx.user_id
        assert voided.voided_at is not None

    def test_cancel_paid_order_keeps_payment_status(self, db_session, ctx, order):
        service = OrderService(db_session)
        service.apply_payment(ctx, order.id, ApplyPaymentRequest(amount=order.total_amount))

        cancelled = service.update_status(ctx, order.id, "cancelled")

        assert cancelled.payment_status == "paid"
        assert cancelled.voided_at is not None

    def test_permissive_by_default(self, db_session, ctx, order):
        service = OrderService(db_session)
        service.update_status(ctx, order.id, "completed")

        reopened = service.update_status(ctx, order.id, "open")
        assert reopened.order_status == "open"

    def test_strict_policy_rejects_backwards_moves(self, db_session, ctx, order):
        service = OrderService(db_session, transition_policy=StrictTransitionPolicy())
        service.update_status(ctx, order.id, "completed")

        with pytest.raises(InvalidTransitionError):
            service.update_status(ctx, order.id, "open")

    def test_unknown_status(self, db_session, ctx, order):
        with pytest.raises(ValidationError):
            OrderService(db_session).update_status(ctx, order.id, "lost")

    def test_unknown_order(self, db_session, ctx, order):
        with pytest.raises(NotFoundError):
            OrderService(db_session).update_status(ctx, 9999, "ready")


class TestOrderReads:
    @pytest.fixture
    def orders(self, db_session, ctx, second_location, seed_products):
        service = OrderService(db_session)
        soda = {"product_id": seed_products["soda"].id}
        return [
            service.create_order(ctx, _order(soda, customer_name="Alice", table_number="4")),
            service.create_order(ctx, _order(soda, customer_name="Bob", order_type="takeaway")),
            service.create_order(ctx, _order(soda, customer_name="Carla", location_id=second_location.id)),
        ]

    def test_get_order(self, db_session, ctx, orders):
        order = OrderService(db_session).get_order(ctx, orders[0].id)
        assert order.customer_name == "Alice"
        assert len(order.items) == 1

    def test_get_order_other_tenant(self, db_session, other_ctx, orders):
        with pytest.raises(OrderNotFoundError):
            OrderService(db_session).get_order(other_ctx, orders[0].id)

    def test_list_newest_first(self, db_session, ctx, orders):
        page, total = OrderService(db_session).list_orders(ctx)

        assert total == 3
        assert [o.customer_name for o in page] == ["Carla", "Bob", "Alice"]

    def test_list_filters(self, db_session, ctx, second_location, orders):
        service = OrderService(db_session)

        takeaway, _ = service.list_orders(ctx, order_type="takeaway")
        at_airport, _ = service.list_orders(ctx, location_id=second_location.id)
        by_name, _ = service.list_orders(ctx, search="ali")
        by_table, _ = service.list_orders(ctx, search="4")

        assert [o.customer_name for o in takeaway] == ["Bob"]
        assert [o.customer_name for o in at_airport] == ["Carla"]
        assert [o.customer_name for o in by_name] == ["Alice"]
        assert "Alice" in [o.customer_name for o in by_table]

    def test_list_pagination(self, db_session, ctx, orders):
        page, total = OrderService(db_session).list_orders(ctx, limit=2, offset=2)

        assert total == 3
        assert [o.customer_name for o in page] == ["Alice"]

    def test_search_treats_wildcards_literally(self, db_session, ctx, orders):
        page, total = OrderService(db_session).list_orders(ctx, search="%")
        assert (page, total) == ([], 0)

    def test_stats_for_today(self, db_session, ctx, orders):
        service = OrderService(db_session)
        service.update_status(ctx, orders[0].id, "completed")
        service.apply_payment(ctx, orders[0].id, ApplyPaymentRequest(amount=orders[0].total_amount))

        stats = service.get_stats(ctx)

        assert stats.total_orders == 3
        assert stats.open_orders == 2
        assert stats.completed_orders == 1
        assert stats.total_sales == Decimal("2.16")

    def test_stats_outside_range(self, db_session, ctx, orders):
        tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
        stats = OrderService(db_session).get_stats(ctx, date_from=tomorrow, date_to=tomorrow + timedelta(days=1))

        assert stats.total_orders == 0
        assert stats.total_sales == Decimal("0.00")
