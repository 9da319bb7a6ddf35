"""
Domain Services - Application Layer.

Services contain business logic and orchestrate operations.
They use Repositories for data access.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from rest_api.services.domain import OrderService

    # In router
    service = OrderService(db)
    order = service.create_order(ctx, body)
"""

from .pricing_service import (
    EffectivePrice,
    PricingService,
    effective_price,
    is_product_available,
)
from .category_service import (
    CategoryNode,
    CategoryProduct,
    CategoryService,
    SubcategoryLink,
    build_tree,
)
from .modifier_service import (
    ModifierService,
    ResolvedGroup,
    normalize_selection,
    price_selection,
    validate_selection,
)
from .combo_service import (
    ComboExpansion,
    ComboItemSpec,
    ComboSavings,
    ComboService,
    ComboSummary,
    ExpandedItem,
    compute_savings,
    group_by_selection_group,
)
from .order_service import (
    OrderService,
    OrderStats,
    OrderTotals,
    PermissiveTransitionPolicy,
    StrictTransitionPolicy,
    TransitionPolicy,
    compute_totals,
)

__all__ = [
    # Pricing
    "EffectivePrice",
    "PricingService",
    "effective_price",
    "is_product_available",
    # Categories
    "CategoryNode",
    "CategoryProduct",
    "CategoryService",
    "SubcategoryLink",
    "build_tree",
    # Modifiers
    "ModifierService",
    "ResolvedGroup",
    "normalize_selection",
    "price_selection",
    "validate_selection",
    # Combos
    "ComboExpansion",
    "ComboItemSpec",
    "ComboSavings",
    "ComboService",
    "ComboSummary",
    "ExpandedItem",
    "compute_savings",
    "group_by_selection_group",
    # Orders
    "OrderService",
    "OrderStats",
    "OrderTotals",
    "PermissiveTransitionPolicy",
    "StrictTransitionPolicy",
    "TransitionPolicy",
    "compute_totals",
]
