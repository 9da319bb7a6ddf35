"""
Property-based tests with Hypothesis.

Pricing, tree building and totals are pure and are exercised directly;
payment bookkeeping runs against the test database.
"""

from decimal import Decimal
from types import SimpleNamespace

from hypothesis import HealthCheck, given, settings, strategies as st

from rest_api.services.domain import (
    OrderService,
    build_tree,
    compute_savings,
    compute_totals,
    price_selection,
)
from shared.utils.schemas import ApplyPaymentRequest, CreateOrderRequest, OrderItemInput


def _cents(value: int) -> Decimal:
    return Decimal(value) / 100


money = st.integers(min_value=0, max_value=100_000_00).map(_cents)
positive_money = st.integers(min_value=1, max_value=500_00).map(_cents)

modifier = st.tuples(
    st.sampled_from(["add", "replace", "multiply"]),
    st.integers(min_value=0, max_value=50_00).map(_cents),
)


def _modifiers(specs):
    return [
        SimpleNamespace(price_type=price_type, price_change=change, sort_order=index)
        for index, (price_type, change) in enumerate(specs)
    ]


def _flatten(nodes):
    for node in nodes:
        yield node.id
        yield from _flatten(node.children)


def _edges(nodes):
    for node in nodes:
        for child in node.children:
            yield node.id, child.parent_id
        yield from _edges(node.children)


class TestPricingProperties:
    @given(base=money, specs=st.lists(modifier, max_size=6))
    @settings(max_examples=100)
    def test_pick_order_does_not_change_price(self, base, specs):
        """Modifiers apply by sort_order, not by the order they were picked."""
        mods = _modifiers(specs)
        assert price_selection(base, mods) == price_selection(base, list(reversed(mods)))

    @given(base=money, changes=st.lists(money, max_size=6))
    @settings(max_examples=100)
    def test_add_only_is_a_sum(self, base, changes):
        mods = _modifiers([("add", change) for change in changes])
        assert price_selection(base, mods) == base + sum(changes, Decimal("0"))

    @given(combo=money, items=st.lists(money, max_size=8))
    @settings(max_examples=100)
    def test_savings_are_signed_difference(self, combo, items):
        result = compute_savings(combo, items)

        assert result.regular_price - result.savings == combo
        assert result.display_savings >= 0
        assert result.display_savings == max(Decimal("0"), result.savings)


class TestTreeProperties:
    @given(parents=st.lists(st.one_of(st.none(), st.integers(min_value=1, max_value=15)), min_size=1, max_size=12))
    @settings(max_examples=100)
    def test_every_category_appears_once_under_its_parent(self, parents):
        rows = [
            SimpleNamespace(
                id=index,
                name=f"c{index}",
                display_name=None,
                sort_order=0,
                color_hex=None,
                is_active=True,
                parent_id=parent,
            )
            for index, parent in enumerate(parents, start=1)
        ]

        roots = build_tree(rows)
        ids = list(_flatten(roots))

        assert sorted(ids) == list(range(1, len(parents) + 1))
        for container_id, parent_id in _edges(roots):
            assert parent_id == container_id


class TestTotalsProperties:
    @given(
        lines=st.lists(st.integers(min_value=0, max_value=1_000_00).map(_cents), max_size=10),
        rate=st.integers(min_value=0, max_value=2500).map(lambda bp: Decimal(bp) / 10000),
        discount=st.integers(min_value=0, max_value=50_00).map(_cents),
    )
    @settings(max_examples=100)
    def test_total_identity(self, lines, rate, discount):
        totals = compute_totals(lines, rate, discount)

        assert totals.subtotal == sum(lines, Decimal("0"))
        assert totals.tax_amount.as_tuple().exponent == -2
        assert abs(totals.tax_amount - totals.subtotal * rate) <= Decimal("0.005")
        assert totals.total_amount == totals.subtotal + totals.tax_amount - totals.discount_amount


class TestPaymentProperties:
    @given(amounts=st.lists(positive_money, min_size=1, max_size=5))
    @settings(max_examples=15, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_payments_accumulate(self, amounts, db_session, ctx, seed_products):
        service = OrderService(db_session)
        order = service.create_order(
            ctx,
            CreateOrderRequest(items=[OrderItemInput(product_id=seed_products["burger"].id)]),
        )

        paid = Decimal("0")
        for amount in amounts:
            service.apply_payment(ctx, order.id, ApplyPaymentRequest(amount=amount))
            db_session.refresh(order)

            assert order.amount_paid >= paid
            paid = order.amount_paid
            assert order.amount_paid + order.amount_due == order.total_amount
            expected = "paid" if order.amount_paid >= order.total_amount else "partial"
            assert order.payment_status == expected

        assert paid == sum(amounts, Decimal("0"))
