"""
Services module for business logic.

- domain/: Application services (business logic) - USE THESE
- crud/: Tenant-scoped repository

Usage:
    from rest_api.services.domain import PricingService
    service = PricingService(db)
    price = service.get_effective_price(ctx, product_id, location_id)
"""

from .base_service import BaseService
from .crud import TenantRepository

__all__ = [
    "BaseService",
    "TenantRepository",
]
