"""
Repository Pattern for database access.

Provides a thin layer between business logic and data access, with
built-in multi-tenant isolation and soft-delete filtering.

Usage:
    from rest_api.services.crud.repository import TenantRepository

    product_repo = TenantRepository(Product, db)

    products = product_repo.find_all(tenant_id=1)
    product = product_repo.find_by_id(42, tenant_id=1)
    product = product_repo.find_by_id(42, tenant_id=1, include_inactive=True)

    # With eager loading
    product_repo.find_all(
        tenant_id=1,
        options=[selectinload(Product.combo_items)],
    )

Soft-deleted rows (deleted_at set) are never returned. Inactive rows
(is_active False) are skipped unless include_inactive=True.
"""

from __future__ import annotations

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from rest_api.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class TenantRepository(Generic[ModelT]):
    """
    Repository with automatic multi-tenant isolation.

    All queries are filtered by tenant_id. A row belonging to another tenant
    is indistinguishable from a missing one.
    """

    def __init__(self, model: type[ModelT], session: Session):
        if not hasattr(model, "tenant_id"):
            raise AttributeError(f"Model {model.__name__} does not have tenant_id column.")
        self._model = model
        self._session = session

    def _tenant_query(self, tenant_id: int) -> Select:
        """Create tenant-filtered base query without soft-deleted rows."""
        query = select(self._model).where(self._model.tenant_id == tenant_id)
        if hasattr(self._model, "deleted_at"):
            query = query.where(self._model.deleted_at.is_(None))
        return query

    def _apply_active_filter(self, query: Select, include_inactive: bool) -> Select:
        if hasattr(self._model, "is_active") and not include_inactive:
            query = query.where(self._model.is_active.is_(True))
        return query

    @staticmethod
    def _apply_options(query: Select, options: list[Any] | None) -> Select:
        if options:
            query = query.options(*options)
        return query

    def find_by_id(
        self,
        entity_id: int,
        tenant_id: int,
        *,
        options: list[Any] | None = None,
        include_inactive: bool = False,
        for_update: bool = False,
    ) -> ModelT | None:
        """
        Find entity by ID within tenant scope.

        Returns:
            Entity or None if not found, soft-deleted or in another tenant.
        """
        query = self._tenant_query(tenant_id).where(self._model.id == entity_id)
        query = self._apply_active_filter(query, include_inactive)
        query = self._apply_options(query, options)
        if for_update:
            query = query.with_for_update()
        return self._session.scalar(query)

    def find_by_ids(
        self,
        entity_ids: Sequence[int],
        tenant_id: int,
        *,
        options: list[Any] | None = None,
        include_inactive: bool = False,
    ) -> dict[int, ModelT]:
        """Batch lookup keyed by id. Missing ids are simply absent."""
        if not entity_ids:
            return {}
        query = self._tenant_query(tenant_id).where(self._model.id.in_(set(entity_ids)))
        query = self._apply_active_filter(query, include_inactive)
        query = self._apply_options(query, options)
        return {row.id: row for row in self._session.scalars(query).all()}

    def find_all(
        self,
        tenant_id: int,
        *,
        filters: list[Any] | None = None,
        options: list[Any] | None = None,
        include_inactive: bool = False,
        limit: int | None = None,
        offset: int | None = None,
        order_by: Any | Sequence[Any] | None = None,
    ) -> Sequence[ModelT]:
        """
        Find all entities within tenant scope.

        Args:
            tenant_id: The tenant ID for isolation.
            filters: Extra WHERE clauses.
            options: SQLAlchemy loader options.
            include_inactive: Include rows with is_active False.
            limit: Maximum results.
            offset: Skip count.
            order_by: Order expression or list of expressions.
        """
        query = self._tenant_query(tenant_id)
        query = self._apply_active_filter(query, include_inactive)
        query = self._apply_options(query, options)
        if filters:
            query = query.where(*filters)

        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        if offset is not None:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        return self._session.scalars(query).all()

    def count(
        self,
        tenant_id: int,
        *,
        filters: list[Any] | None = None,
        include_inactive: bool = False,
    ) -> int:
        """Count entities within tenant scope."""
        query = select(func.count()).select_from(self._model).where(
            self._model.tenant_id == tenant_id
        )
        if hasattr(self._model, "deleted_at"):
            query = query.where(self._model.deleted_at.is_(None))
        if hasattr(self._model, "is_active") and not include_inactive:
            query = query.where(self._model.is_active.is_(True))
        if filters:
            query = query.where(*filters)
        return self._session.scalar(query) or 0
