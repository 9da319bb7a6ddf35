"""
Tests for combo expansion, savings and combo definition.
"""

from decimal import Decimal

import pytest

from rest_api.services.domain import ComboItemSpec, ComboService, PricingService, compute_savings
from rest_api.services.domain.combo_service import savings_from_meta
from shared.utils.exceptions import NotFoundError, ValidationError


class TestComputeSavings:
    def test_positive_savings(self):
        result = compute_savings(Decimal("9"), [Decimal("5"), Decimal("7")])
        assert result.regular_price == Decimal("12")
        assert result.savings == Decimal("3")
        assert result.display_savings == Decimal("3")

    def test_negative_savings_are_kept(self):
        result = compute_savings(Decimal("13"), [Decimal("5"), Decimal("7")])
        assert result.savings == Decimal("-1")
        assert result.display_savings == Decimal("0")

    def test_savings_from_meta(self):
        assert savings_from_meta({}) is None
        assert savings_from_meta({"regular_price": "12"}) is None
        stored = savings_from_meta({"regular_price": "12.00", "savings": "-1.00"})
        assert stored.savings == Decimal("-1.00")


class TestComboExpansion:
    def test_expand_in_sort_order(self, db_session, ctx, seed_combo):
        expansion = ComboService(db_session).expand_for_order(ctx, seed_combo.id)

        assert expansion.combo_price == Decimal("13.00")
        assert [i.product_name for i in expansion.items] == ["Burger", "Fries", "Soda"]
        assert [i.selection_group for i in expansion.items] == ["main", "side", "drink"]
        assert all(i.is_combo_item and i.combo_product_id == seed_combo.id for i in expansion.items)

    def test_quantity_multiplies_item_quantity(self, db_session, ctx, seed_combo):
        expansion = ComboService(db_session).expand_for_order(ctx, seed_combo.id, quantity=3)

        assert [i.quantity for i in expansion.items] == [3, 3, 3]
        assert expansion.total_quantity == 9

    def test_item_price_uses_location_price(self, db_session, ctx, seed_location, seed_combo, seed_products):
        PricingService(db_session).set_location_price(
            ctx, seed_products["fries"].id, seed_location.id, Decimal("3.00")
        )

        service = ComboService(db_session)
        at_location = service.expand_for_order(ctx, seed_combo.id, location_id=seed_location.id)
        default = service.expand_for_order(ctx, seed_combo.id)

        assert at_location.items[1].unit_price == Decimal("3.00")
        assert default.items[1].unit_price == Decimal("4.00")

    def test_price_override_wins(self, db_session, ctx, seed_combo, seed_products):
        service = ComboService(db_session)
        service.replace_combo_items(ctx, seed_combo.id, [
            ComboItemSpec(item_product_id=seed_products["burger"].id, price_override=Decimal("8.50")),
        ])

        expansion = service.expand_for_order(ctx, seed_combo.id)
        assert expansion.items[0].unit_price == Decimal("8.50")

    def test_zero_quantity_is_rejected(self, db_session, ctx, seed_combo):
        with pytest.raises(ValidationError):
            ComboService(db_session).expand_for_order(ctx, seed_combo.id, quantity=0)

    def test_non_combo_is_rejected(self, db_session, ctx, seed_products):
        with pytest.raises(ValidationError):
            ComboService(db_session).expand_for_order(ctx, seed_products["burger"].id)

    def test_other_tenant_cannot_expand(self, db_session, other_ctx, seed_combo):
        with pytest.raises(NotFoundError):
            ComboService(db_session).expand_for_order(other_ctx, seed_combo.id)


class TestReplaceComboItems:
    def test_savings_are_persisted_signed(self, db_session, ctx, make_product, seed_combo):
        five = make_product("Nuggets", "5.00")
        seven = make_product("Shake", "7.00")
        service = ComboService(db_session)
        items = [ComboItemSpec(item_product_id=five.id), ComboItemSpec(item_product_id=seven.id)]

        seed_combo.base_price = Decimal("9.00")
        db_session.commit()
        cheaper = service.replace_combo_items(ctx, seed_combo.id, items)

        seed_combo.base_price = Decimal("13.00")
        db_session.commit()
        pricier = service.replace_combo_items(ctx, seed_combo.id, items)

        assert cheaper.savings == Decimal("3.00")
        assert pricier.savings == Decimal("-1.00")
        db_session.refresh(seed_combo)
        assert seed_combo.meta["regular_price"] == "12.00"
        assert seed_combo.meta["savings"] == "-1.00"

    def test_replace_drops_previous_items(self, db_session, ctx, seed_combo, seed_products):
        service = ComboService(db_session)
        service.replace_combo_items(ctx, seed_combo.id, [
            ComboItemSpec(item_product_id=seed_products["soda"].id, quantity=2, selection_group="drink"),
        ])

        expansion = service.expand_for_order(ctx, seed_combo.id)
        assert [(i.product_name, i.quantity) for i in expansion.items] == [("Soda", 2)]

    def test_unknown_item_leaves_combo_untouched(self, db_session, ctx, seed_combo):
        service = ComboService(db_session)
        with pytest.raises(NotFoundError):
            service.replace_combo_items(ctx, seed_combo.id, [ComboItemSpec(item_product_id=9999)])

        assert len(service.expand_for_order(ctx, seed_combo.id).items) == 3

    def test_combo_cannot_contain_itself(self, db_session, ctx, seed_combo):
        with pytest.raises(ValidationError):
            ComboService(db_session).replace_combo_items(
                ctx, seed_combo.id, [ComboItemSpec(item_product_id=seed_combo.id)]
            )

    def test_item_quantity_must_be_positive(self, db_session, ctx, seed_combo, seed_products):
        with pytest.raises(ValidationError):
            ComboService(db_session).replace_combo_items(
                ctx, seed_combo.id, [ComboItemSpec(item_product_id=seed_products["soda"].id, quantity=0)]
            )


class TestComboSummary:
    def test_summary_groups_and_savings(self, db_session, ctx, seed_combo):
        summary = ComboService(db_session).get_combo_summary(ctx, seed_combo.id)

        assert summary.price == Decimal("13.00")
        assert summary.regular_price == Decimal("16.00")
        assert summary.savings == Decimal("3.00")
        assert list(summary.groups) == ["main", "side", "drink"]

    def test_summary_prefers_persisted_figures(self, db_session, ctx, seed_combo):
        seed_combo.meta = {"regular_price": "20.00", "savings": "7.00"}
        db_session.commit()

        summary = ComboService(db_session).get_combo_summary(ctx, seed_combo.id)
        assert summary.regular_price == Decimal("20.00")
        assert summary.savings == Decimal("7.00")

    def test_summary_at_location_is_recomputed(self, db_session, ctx, seed_location, seed_combo, seed_products):
        seed_combo.meta = {"regular_price": "20.00", "savings": "7.00"}
        db_session.commit()
        PricingService(db_session).set_location_price(
            ctx, seed_products["burger"].id, seed_location.id, Decimal("8.00")
        )

        summary = ComboService(db_session).get_combo_summary(ctx, seed_combo.id, seed_location.id)

        assert summary.regular_price == Decimal("14.00")
        assert summary.savings == Decimal("1.00")

    def test_display_savings_floor(self, db_session, ctx, seed_combo):
        seed_combo.base_price = Decimal("20.00")
        seed_combo.meta = {}
        db_session.commit()

        summary = ComboService(db_session).get_combo_summary(ctx, seed_combo.id)
        assert summary.savings == Decimal("-4.00")
        assert summary.display_savings == Decimal("0")


class TestComboEndpoints:
    def test_expand_endpoint(self, client, auth_headers, seed_combo):
        response = client.get(
            f"/api/catalog/combos/{seed_combo.id}/expand",
            params={"quantity": 2},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_quantity"] == 6
        assert [i["product_name"] for i in data["items"]] == ["Burger", "Fries", "Soda"]

    def test_expand_non_combo_is_invalid_input(self, client, auth_headers, seed_products):
        response = client.get(
            f"/api/catalog/combos/{seed_products['burger'].id}/expand",
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_input"

    def test_replace_items_endpoint(self, client, auth_headers, seed_combo, seed_products):
        response = client.put(
            f"/api/catalog/combos/{seed_combo.id}/items",
            json={"items": [
                {"item_product_id": seed_products["burger"].id, "selection_group": "main"},
                {"item_product_id": seed_products["soda"].id, "selection_group": "drink"},
            ]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["regular_price"]) == Decimal("12.00")
        assert Decimal(data["savings"]) == Decimal("-1.00")
        assert Decimal(data["display_savings"]) == Decimal("0")

    def test_summary_endpoint(self, client, auth_headers, seed_combo):
        response = client.get(f"/api/catalog/combos/{seed_combo.id}/summary", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["display_savings"]) == Decimal("3.00")
        assert list(data["groups"]) == ["main", "side", "drink"]
