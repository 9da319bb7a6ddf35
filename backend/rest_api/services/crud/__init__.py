"""
Data access helpers: tenant-scoped repository.
"""

from .repository import TenantRepository

__all__ = ["TenantRepository"]
