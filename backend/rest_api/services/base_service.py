"""
Base Service Class.

Architecture:
    Router (thin) → Service (business logic) → Repository (data access) → Model

Usage:
    from rest_api.services.base_service import BaseService

    class PricingService(BaseService[Product]):
        def __init__(self, db: Session):
            super().__init__(db, Product, entity_name="Product")

        def get_product(self, ctx: RequestContext, product_id: int) -> Product:
            return self.get_or_404(product_id, ctx.tenant_id, include_inactive=True)
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import Base
from rest_api.services.crud.repository import TenantRepository
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import DatabaseError, NotFoundError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class BaseService(Generic[ModelT]):
    """
    Base service for domain operations.

    Provides repository access, tenant-scoped lookups that raise NotFoundError,
    and a commit wrapper that turns driver failures into DatabaseError.
    """

    def __init__(self, db: Session, model: type[ModelT], *, entity_name: str):
        self._db = db
        self._model = model
        self._repo = TenantRepository(model, db)
        self._entity_name = entity_name

    @property
    def repo(self) -> TenantRepository[ModelT]:
        """Repository for data access."""
        return self._repo

    def get_or_404(
        self,
        entity_id: int,
        tenant_id: int,
        *,
        options: list[Any] | None = None,
        include_inactive: bool = False,
        for_update: bool = False,
    ) -> ModelT:
        """
        Tenant-scoped lookup.

        Raises:
            NotFoundError: If the row is missing, soft-deleted, inactive
                (unless include_inactive) or owned by another tenant.
        """
        entity = self._repo.find_by_id(
            entity_id,
            tenant_id,
            options=options,
            include_inactive=include_inactive,
            for_update=for_update,
        )
        if entity is None:
            raise NotFoundError(self._entity_name, entity_id, tenant_id=tenant_id)
        return entity

    def _commit(self, operation: str, **log_context: Any) -> None:
        """
        Commit the unit of work. The session is rolled back on failure and
        nothing from the operation is persisted.
        """
        try:
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error(f"Failed to {operation}", error=str(e), **log_context)
            raise DatabaseError(operation, **log_context)
