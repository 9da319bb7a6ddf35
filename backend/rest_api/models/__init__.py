"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, column types and AuditMixin
- tenant: Tenant, Location
- catalog: Category, CategoryRelationship, Product, ProductLocationPrice, ComboItem
- modifier: ModifierGroup, Modifier, ProductModifierGroup
- order: Order, OrderItem, OrderItemModifier, OrderSequence
- billing: Payment
"""

# Base classes
from .base import Base, AuditMixin

# Core tenant models
from .tenant import Tenant, Location

# Catalog (menu structure and pricing)
from .catalog import Category, CategoryRelationship, Product, ProductLocationPrice, ComboItem

# Modifiers
from .modifier import ModifierGroup, Modifier, ProductModifierGroup

# Orders
from .order import Order, OrderItem, OrderItemModifier, OrderSequence

# Billing
from .billing import Payment

__all__ = [
    "Base",
    "AuditMixin",
    "Tenant",
    "Location",
    "Category",
    "CategoryRelationship",
    "Product",
    "ProductLocationPrice",
    "ComboItem",
    "ModifierGroup",
    "Modifier",
    "ProductModifierGroup",
    "Order",
    "OrderItem",
    "OrderItemModifier",
    "OrderSequence",
    "Payment",
]
