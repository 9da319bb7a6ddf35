"""
Seed data for development.
Creates a demo tenant with two locations, a small category tree, products,
a size modifier group and a burger combo.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from rest_api.models import (
    Category,
    ComboItem,
    Location,
    Modifier,
    ModifierGroup,
    Product,
    ProductLocationPrice,
    ProductModifierGroup,
    Tenant,
)
from rest_api.services.domain.combo_service import compute_savings
from shared.config.logging import get_logger

logger = get_logger(__name__)

DEMO_TENANT_SLUG = "demo-bistro"

# Display order constants
CATEGORY_ORDER_FOOD = 1
CATEGORY_ORDER_DRINKS = 2
CATEGORY_ORDER_COMBOS = 3


def seed(db: Session) -> Tenant:
    """
    Seed the demo tenant.
    Idempotent: returns the existing tenant when already seeded.
    """
    existing = db.scalar(select(Tenant).where(Tenant.slug == DEMO_TENANT_SLUG))
    if existing is not None:
        logger.info("Database already seeded, skipping", tenant_id=existing.id)
        return existing

    logger.info("Seeding database")

    tenant = Tenant(name="Demo Bistro", slug=DEMO_TENANT_SLUG, default_tax_rate=Decimal("0.08"))
    db.add(tenant)
    db.flush()

    downtown = Location(tenant_id=tenant.id, name="Downtown", tax_rate=Decimal("0.08"))
    airport = Location(tenant_id=tenant.id, name="Airport", tax_rate=Decimal("0.10"))
    db.add_all([downtown, airport])
    db.flush()

    food = Category(tenant_id=tenant.id, name="Food", sort_order=CATEGORY_ORDER_FOOD, color_hex="#f97316")
    drinks = Category(tenant_id=tenant.id, name="Drinks", sort_order=CATEGORY_ORDER_DRINKS, color_hex="#0ea5e9")
    combos = Category(tenant_id=tenant.id, name="Combos", sort_order=CATEGORY_ORDER_COMBOS, color_hex="#22c55e")
    db.add_all([food, drinks, combos])
    db.flush()

    burgers = Category(tenant_id=tenant.id, name="Burgers", sort_order=1, parent_id=food.id)
    sides = Category(tenant_id=tenant.id, name="Sides", sort_order=2, parent_id=food.id)
    db.add_all([burgers, sides])
    db.flush()

    burger = Product(tenant_id=tenant.id, category_id=burgers.id, name="Classic Burger", sku="BRG-001",
                     base_price=Decimal("10.00"), cost_price=Decimal("3.50"))
    fries = Product(tenant_id=tenant.id, category_id=sides.id, name="Fries", sku="SID-001",
                    base_price=Decimal("4.00"), cost_price=Decimal("0.80"))
    soda = Product(tenant_id=tenant.id, category_id=drinks.id, name="Soda", sku="DRK-001",
                   base_price=Decimal("2.00"), cost_price=Decimal("0.30"))
    coffee = Product(tenant_id=tenant.id, category_id=drinks.id, name="Coffee", sku="DRK-002",
                     base_price=Decimal("3.00"), meta={"availability": {"available_time_start": "06:00", "available_time_end": "12:00"}})
    db.add_all([burger, fries, soda, coffee])
    db.flush()

    db.add(ProductLocationPrice(tenant_id=tenant.id, product_id=burger.id, location_id=airport.id,
                                price=Decimal("12.00")))

    size = ModifierGroup(tenant_id=tenant.id, name="Size", selection_type="single",
                         is_required=True, min_selections=1, max_selections=1)
    extras = ModifierGroup(tenant_id=tenant.id, name="Extras", selection_type="multiple",
                           is_required=False, min_selections=0, max_selections=3, sort_order=1)
    db.add_all([size, extras])
    db.flush()

    db.add_all([
        Modifier(tenant_id=tenant.id, modifier_group_id=size.id, name="Regular", price_type="add",
                 price_change=None, is_default=True, sort_order=0),
        Modifier(tenant_id=tenant.id, modifier_group_id=size.id, name="Large", price_type="add",
                 price_change=Decimal("2.00"), sort_order=1),
        Modifier(tenant_id=tenant.id, modifier_group_id=extras.id, name="Bacon", price_type="add",
                 price_change=Decimal("1.50"), sort_order=0),
        Modifier(tenant_id=tenant.id, modifier_group_id=extras.id, name="Cheese", price_type="add",
                 price_change=Decimal("1.00"), sort_order=1),
    ])
    db.add_all([
        ProductModifierGroup(tenant_id=tenant.id, product_id=burger.id, modifier_group_id=size.id, sort_order=0),
        ProductModifierGroup(tenant_id=tenant.id, product_id=burger.id, modifier_group_id=extras.id, sort_order=1),
        ProductModifierGroup(tenant_id=tenant.id, product_id=soda.id, modifier_group_id=size.id, sort_order=0),
    ])

    combo = Product(tenant_id=tenant.id, category_id=combos.id, product_type="combo", name="Burger Meal",
                    sku="CMB-001", base_price=Decimal("13.00"))
    db.add(combo)
    db.flush()

    components = [(burger, "main"), (fries, "side"), (soda, "drink")]
    db.add_all([
        ComboItem(tenant_id=tenant.id, combo_product_id=combo.id, item_product_id=product.id,
                  quantity=1, selection_group=group, sort_order=index)
        for index, (product, group) in enumerate(components)
    ])
    result = compute_savings(combo.base_price, [product.base_price for product, _ in components])
    combo.meta = {"regular_price": str(result.regular_price), "savings": str(result.savings)}

    db.commit()

    logger.info(
        "Database seeded",
        tenant_id=tenant.id,
        locations=2,
        products=5,
    )
    return tenant
