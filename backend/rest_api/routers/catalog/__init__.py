"""
Catalog router - combines the catalog sub-routers.

- categories: Category tree and parent management
- pricing: Effective prices, location overrides, availability
- modifiers: Modifier groups offered per product
- combos: Combo expansion, summary and definition

All routes are prefixed with /api/catalog
"""

from fastapi import APIRouter

from .categories import router as categories_router
from .combos import router as combos_router
from .modifiers import router as modifiers_router
from .pricing import router as pricing_router


router = APIRouter(prefix="/api/catalog")

router.include_router(categories_router)
router.include_router(pricing_router)
router.include_router(modifiers_router)
router.include_router(combos_router)

__all__ = ["router"]
