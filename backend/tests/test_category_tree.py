"""
Tests for the category tree and parent management.
"""

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from rest_api.models import Category
from rest_api.services.domain import CategoryService, PricingService, build_tree
from shared.utils.exceptions import CategoryCycleError, NotFoundError


def _cat(id, name, parent_id=None, sort_order=0):
    return SimpleNamespace(
        id=id,
        name=name,
        display_name=None,
        sort_order=sort_order,
        color_hex=None,
        is_active=True,
        parent_id=parent_id,
    )


def _flatten(nodes):
    for node in nodes:
        yield node
        yield from _flatten(node.children)


class TestBuildTree:
    """Pure tree building from flat rows."""

    def test_nests_by_parent_and_orders_siblings(self):
        roots = build_tree([
            _cat(1, "Food", sort_order=1),
            _cat(2, "Drinks", sort_order=2),
            _cat(3, "Sides", parent_id=1, sort_order=2),
            _cat(4, "Burgers", parent_id=1, sort_order=1),
        ])

        assert [r.name for r in roots] == ["Food", "Drinks"]
        assert [c.name for c in roots[0].children] == ["Burgers", "Sides"]

    def test_equal_sort_order_falls_back_to_name(self):
        roots = build_tree([_cat(1, "Wine"), _cat(2, "Beer"), _cat(3, "Juice")])
        assert [r.name for r in roots] == ["Beer", "Juice", "Wine"]

    def test_missing_parent_makes_a_root(self):
        roots = build_tree([_cat(1, "Orphan", parent_id=404)])
        assert [r.name for r in roots] == ["Orphan"]

    def test_self_parent_makes_a_root(self):
        roots = build_tree([_cat(1, "Loop", parent_id=1)])
        assert [r.id for r in roots] == [1]
        assert roots[0].children == []

    def test_cycle_is_broken_and_every_node_appears_once(self):
        roots = build_tree([
            _cat(1, "A", parent_id=2),
            _cat(2, "B", parent_id=3),
            _cat(3, "C", parent_id=1),
        ])

        ids = [n.id for n in _flatten(roots)]
        assert sorted(ids) == [1, 2, 3]
        assert len(roots) == 1

    def test_additional_parents_are_reported_not_nested(self):
        roots = build_tree(
            [_cat(1, "Food"), _cat(2, "Specials"), _cat(3, "Burgers", parent_id=1)],
            parent_ids_by_category={3: [2]},
        )

        food, specials = roots
        assert [c.id for c in food.children] == [3]
        assert specials.children == []
        assert food.children[0].parent_ids == [2]

    def test_products_are_none_unless_requested(self):
        roots = build_tree([_cat(1, "Food")])
        assert roots[0].products is None


class TestCategoryService:
    """Tenant-scoped tree reads and parent management."""

    def test_get_category_tree(self, db_session, ctx, seed_categories):
        roots = CategoryService(db_session).get_category_tree(ctx)

        assert [r.name for r in roots] == ["Food", "Drinks"]
        assert [c.name for c in roots[0].children] == ["Burgers", "Sides"]

    def test_inactive_categories_are_hidden_by_default(self, db_session, ctx, seed_categories):
        seed_categories["drinks"].is_active = False
        db_session.commit()

        service = CategoryService(db_session)
        assert [r.name for r in service.get_category_tree(ctx)] == ["Food"]
        assert [r.name for r in service.get_category_tree(ctx, include_inactive=True)] == ["Food", "Drinks"]

    def test_soft_deleted_categories_never_appear(self, db_session, ctx, seed_categories):
        seed_categories["drinks"].soft_delete(ctx.user_id, ctx.user_email)
        db_session.commit()

        roots = CategoryService(db_session).get_category_tree(ctx, include_inactive=True)
        assert [r.name for r in roots] == ["Food"]

    def test_tree_with_products_and_availability(self, db_session, ctx, seed_categories, make_product):
        make_product("Burger", "10.00", category_id=seed_categories["burgers"].id)
        make_product(
            "Breakfast Burger",
            "9.00",
            category_id=seed_categories["burgers"].id,
            meta={"availability": {"available_time_start": "06:00", "available_time_end": "11:00"}},
        )

        roots = CategoryService(db_session).get_category_tree(
            ctx, include_products=True, at=datetime(2026, 3, 4, 15, 0)
        )
        burgers = roots[0].children[0]
        availability = {p.name: p.is_available for p in burgers.products}

        assert availability == {"Breakfast Burger": False, "Burger": True}
        assert roots[0].products == []

    def test_tree_products_priced_at_location(
        self, db_session, ctx, second_location, seed_categories, seed_modifiers, seed_combo, make_product
    ):
        PricingService(db_session).set_location_price(
            ctx, seed_combo.id, second_location.id, Decimal("12.00")
        )
        seed_combo.category_id = seed_categories["sides"].id
        make_product("Empty Deal", "5.00", product_type="combo", category_id=seed_categories["sides"].id)
        db_session.commit()
        service = CategoryService(db_session)

        at_airport = service.get_category_tree(ctx, include_products=True, location_id=second_location.id)
        default = service.get_category_tree(ctx, include_products=True)

        sides = {p.name: p for p in at_airport[0].children[1].products}
        burger = at_airport[0].children[0].products[0]
        assert sides["Burger Meal"].price == Decimal("12.00")
        assert sides["Burger Meal"].base_price == Decimal("13.00")
        assert sides["Burger Meal"].is_combo is True
        assert sides["Empty Deal"].is_combo is False
        assert sides["Fries"].price == Decimal("4.00")
        assert (burger.name, burger.has_modifiers) == ("Burger", True)
        assert sides["Fries"].has_modifiers is False
        assert {p.name: p.price for p in default[0].children[1].products}["Burger Meal"] == Decimal("13.00")

    def test_tree_with_unknown_location_is_not_found(self, db_session, ctx, seed_categories):
        with pytest.raises(NotFoundError):
            CategoryService(db_session).get_category_tree(ctx, include_products=True, location_id=9999)

    def test_soft_deleted_parent_is_dropped_from_parent_links(self, db_session, ctx, seed_categories):
        service = CategoryService(db_session)
        sides = seed_categories["sides"]
        drinks = seed_categories["drinks"]
        service.set_parent_categories(ctx, sides.id, [drinks.id])

        drinks.soft_delete(ctx.user_id, ctx.user_email)
        db_session.commit()

        flat = {c.id: c for c in service.list_categories(ctx, include_inactive=True)}
        roots = service.get_category_tree(ctx, include_inactive=True)
        assert drinks.id not in flat
        assert flat[sides.id].parent_ids == []
        assert roots[0].children[1].parent_ids == []
        assert service.list_subcategories(ctx) == []

    def test_other_tenant_sees_nothing(self, db_session, other_ctx, seed_categories):
        assert CategoryService(db_session).get_category_tree(other_ctx) == []

    def test_set_parent_categories(self, db_session, ctx, seed_categories):
        service = CategoryService(db_session)
        sides = seed_categories["sides"]
        drinks = seed_categories["drinks"]

        result = service.set_parent_categories(ctx, sides.id, [drinks.id, drinks.id])

        assert result == [drinks.id]
        links = service.list_subcategories(ctx)
        assert [(l.id, l.parent_id) for l in links] == [(sides.id, drinks.id)]

        # Nesting still follows the primary parent
        roots = service.get_category_tree(ctx)
        assert [c.name for c in roots[0].children] == ["Burgers", "Sides"]
        assert roots[0].children[1].parent_ids == [drinks.id]

    def test_set_parent_categories_replaces_previous_set(self, db_session, ctx, seed_categories):
        service = CategoryService(db_session)
        sides = seed_categories["sides"]

        service.set_parent_categories(ctx, sides.id, [seed_categories["drinks"].id])
        service.set_parent_categories(ctx, sides.id, [])

        assert service.list_subcategories(ctx) == []

    def test_parent_that_is_a_descendant_is_rejected(self, db_session, ctx, seed_categories):
        service = CategoryService(db_session)
        food = seed_categories["food"]
        burgers = seed_categories["burgers"]

        with pytest.raises(CategoryCycleError):
            service.set_parent_categories(ctx, food.id, [burgers.id])
        with pytest.raises(CategoryCycleError):
            service.assign_primary_parent(ctx, food.id, burgers.id)

        assert service.list_subcategories(ctx) == []
        db_session.refresh(food)
        assert food.parent_id is None

    def test_self_parent_is_rejected(self, db_session, ctx, seed_categories):
        food = seed_categories["food"]
        with pytest.raises(CategoryCycleError):
            CategoryService(db_session).assign_primary_parent(ctx, food.id, food.id)

    def test_assign_and_clear_primary_parent(self, db_session, ctx, seed_categories):
        service = CategoryService(db_session)
        sides = seed_categories["sides"]

        moved = service.assign_primary_parent(ctx, sides.id, seed_categories["drinks"].id)
        assert moved.parent_id == seed_categories["drinks"].id

        cleared = service.assign_primary_parent(ctx, sides.id, None)
        assert cleared.parent_id is None
        assert "Sides" in [r.name for r in service.get_category_tree(ctx)]

    def test_cross_tenant_parent_is_not_found(self, db_session, ctx, other_tenant, seed_categories):
        foreign = Category(tenant_id=other_tenant.id, name="Foreign")
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(NotFoundError):
            CategoryService(db_session).set_parent_categories(ctx, seed_categories["sides"].id, [foreign.id])


class TestCategoryEndpoints:
    def test_tree_endpoint(self, client, auth_headers, seed_categories):
        response = client.get("/api/catalog/categories/tree", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [n["name"] for n in data] == ["Food", "Drinks"]
        assert [c["name"] for c in data[0]["children"]] == ["Burgers", "Sides"]
        assert data[0]["products"] is None

    def test_tree_endpoint_with_location_prices(
        self, client, db_session, ctx, auth_headers, second_location, seed_categories, seed_products
    ):
        PricingService(db_session).set_location_price(
            ctx, seed_products["fries"].id, second_location.id, Decimal("3.00")
        )

        response = client.get(
            "/api/catalog/categories/tree",
            params={"include_products": "true", "location_id": second_location.id},
            headers=auth_headers,
        )

        assert response.status_code == 200
        fries = response.json()[0]["children"][1]["products"][0]
        assert fries["name"] == "Fries"
        assert Decimal(fries["price"]) == Decimal("3.00")
        assert Decimal(fries["base_price"]) == Decimal("4.00")
        assert fries["has_modifiers"] is False
        assert fries["is_combo"] is False

    def test_tree_requires_token(self, client, seed_categories):
        response = client.get("/api/catalog/categories/tree")

        assert response.status_code == 401
        assert response.json()["kind"] == "unauthorized"

    def test_cycle_is_conflict(self, client, auth_headers, seed_categories):
        response = client.put(
            f"/api/catalog/categories/{seed_categories['food'].id}/parents",
            json={"parent_ids": [seed_categories["burgers"].id]},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "conflicting_state"
