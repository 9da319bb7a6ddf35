"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Settings are read at import time; point them at SQLite before the app loads
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import (
    Base,
    Category,
    ComboItem,
    Location,
    Modifier,
    ModifierGroup,
    Product,
    ProductModifierGroup,
    Tenant,
)
from shared.infrastructure.db import get_db
from shared.security.auth import RequestContext, sign_jwt


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_USER_ID = 7
TEST_USER_EMAIL = "cashier@test.com"


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Tenants and locations
# =============================================================================


@pytest.fixture
def seed_tenant(db_session):
    """Create a test tenant."""
    tenant = Tenant(name="Test Bistro", slug="test-bistro", default_tax_rate=Decimal("0.08"))
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session):
    """A second tenant for isolation checks."""
    tenant = Tenant(name="Other Diner", slug="other-diner")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def seed_location(db_session, seed_tenant):
    """Main location, taxed at 8%."""
    location = Location(tenant_id=seed_tenant.id, name="Downtown", tax_rate=Decimal("0.08"))
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


@pytest.fixture
def second_location(db_session, seed_tenant):
    """Location without its own tax rate."""
    location = Location(tenant_id=seed_tenant.id, name="Airport")
    db_session.add(location)
    db_session.commit()
    db_session.refresh(location)
    return location


# =============================================================================
# Request context and auth
# =============================================================================


@pytest.fixture
def ctx(seed_tenant, seed_location):
    return RequestContext(
        tenant_id=seed_tenant.id,
        user_id=TEST_USER_ID,
        location_id=seed_location.id,
        user_email=TEST_USER_EMAIL,
    )


@pytest.fixture
def other_ctx(other_tenant):
    return RequestContext(tenant_id=other_tenant.id, user_id=99)


def make_auth_headers(tenant_id: int, user_id: int = TEST_USER_ID, location_id: int | None = None) -> dict:
    claims = {"sub": str(user_id), "tenant_id": tenant_id, "email": TEST_USER_EMAIL}
    if location_id is not None:
        claims["location_id"] = location_id
    return {"Authorization": f"Bearer {sign_jwt(claims)}"}


@pytest.fixture
def auth_headers(seed_tenant, seed_location):
    """Bearer token for the test tenant, defaulting to the main location."""
    return make_auth_headers(seed_tenant.id, location_id=seed_location.id)


# =============================================================================
# Catalog
# =============================================================================


@pytest.fixture
def make_product(db_session, seed_tenant):
    """Factory for products in the test tenant."""
    def _make(name: str, price: str, **fields) -> Product:
        product = Product(
            tenant_id=fields.pop("tenant_id", seed_tenant.id),
            name=name,
            base_price=Decimal(price),
            **fields,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def seed_categories(db_session, seed_tenant):
    """Food (1) > Burgers, Food > Sides, Drinks (2)."""
    food = Category(tenant_id=seed_tenant.id, name="Food", sort_order=1)
    drinks = Category(tenant_id=seed_tenant.id, name="Drinks", sort_order=2)
    db_session.add_all([food, drinks])
    db_session.flush()

    burgers = Category(tenant_id=seed_tenant.id, name="Burgers", sort_order=1, parent_id=food.id)
    sides = Category(tenant_id=seed_tenant.id, name="Sides", sort_order=2, parent_id=food.id)
    db_session.add_all([burgers, sides])
    db_session.commit()
    return {"food": food, "drinks": drinks, "burgers": burgers, "sides": sides}


@pytest.fixture
def seed_products(make_product, seed_categories):
    """Burger 10.00, Fries 4.00, Soda 2.00."""
    return {
        "burger": make_product("Burger", "10.00", category_id=seed_categories["burgers"].id, sku="BRG"),
        "fries": make_product("Fries", "4.00", category_id=seed_categories["sides"].id, sku="FRY"),
        "soda": make_product("Soda", "2.00", category_id=seed_categories["drinks"].id, sku="SDA"),
    }


@pytest.fixture
def seed_modifiers(db_session, seed_tenant, seed_products):
    """
    Burger offers:
    - Size (single, required 1..1): Regular (no change), Large (+2.00)
    - Extras (multiple, optional, max 2): Bacon (+1.50), Cheese (+1.00)
    """
    tenant_id = seed_tenant.id
    size = ModifierGroup(tenant_id=tenant_id, name="Size", selection_type="single",
                         is_required=True, min_selections=1, max_selections=1)
    extras = ModifierGroup(tenant_id=tenant_id, name="Extras", selection_type="multiple",
                           is_required=False, min_selections=0, max_selections=2, sort_order=1)
    db_session.add_all([size, extras])
    db_session.flush()

    regular = Modifier(tenant_id=tenant_id, modifier_group_id=size.id, name="Regular",
                       price_type="add", price_change=None, is_default=True, sort_order=0)
    large = Modifier(tenant_id=tenant_id, modifier_group_id=size.id, name="Large",
                     price_type="add", price_change=Decimal("2.00"), sort_order=1)
    bacon = Modifier(tenant_id=tenant_id, modifier_group_id=extras.id, name="Bacon",
                     price_type="add", price_change=Decimal("1.50"), sort_order=0)
    cheese = Modifier(tenant_id=tenant_id, modifier_group_id=extras.id, name="Cheese",
                      price_type="add", price_change=Decimal("1.00"), sort_order=1)
    db_session.add_all([regular, large, bacon, cheese])

    burger_id = seed_products["burger"].id
    db_session.add_all([
        ProductModifierGroup(tenant_id=tenant_id, product_id=burger_id, modifier_group_id=size.id,
                             sort_order=0, meta={}),
        ProductModifierGroup(tenant_id=tenant_id, product_id=burger_id, modifier_group_id=extras.id,
                             sort_order=1, meta={}),
    ])
    db_session.commit()
    return {
        "size": size,
        "extras": extras,
        "regular": regular,
        "large": large,
        "bacon": bacon,
        "cheese": cheese,
    }


@pytest.fixture
def seed_combo(db_session, seed_tenant, make_product, seed_products):
    """Meal combo at 13.00: Burger (main), Fries (side), Soda (drink)."""
    combo = make_product("Burger Meal", "13.00", product_type="combo")
    components = [
        (seed_products["burger"], "main"),
        (seed_products["fries"], "side"),
        (seed_products["soda"], "drink"),
    ]
    db_session.add_all([
        ComboItem(
            tenant_id=seed_tenant.id,
            combo_product_id=combo.id,
            item_product_id=product.id,
            quantity=1,
            selection_group=group,
            sort_order=index,
        )
        for index, (product, group) in enumerate(components)
    ])
    db_session.commit()
    return combo
