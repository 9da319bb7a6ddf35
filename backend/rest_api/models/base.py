"""
Base class, column types and AuditMixin for all SQLAlchemy ORM models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# BIGINT keys on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer, "sqlite")

# Currency amounts and rates. Never stored as floats.
Money = Numeric(12, 2, asdecimal=True)
Rate = Numeric(8, 4, asdecimal=True)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AuditMixin:
    """
    Mixin providing availability, soft delete and audit trail fields.

    Fields added:
    - is_active: Availability toggle (inactive rows stay visible to admin reads)
    - created_at, updated_at, deleted_at: Audit timestamps; deleted_at marks a soft delete
    - created_by_id/email, updated_by_id/email, deleted_by_id/email: User tracking

    Methods:
    - soft_delete(user_id, user_email): Mark entity as deleted
    - restore(user_id, user_email): Restore a soft-deleted entity
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    # Users live in the external auth service, so no FK here
    created_by_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    created_by_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    updated_by_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    deleted_by_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    deleted_by_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def soft_delete(self, user_id: int | None, user_email: str | None) -> None:
        """Mark the row as deleted. Deleted rows are invisible to every read."""
        self.deleted_at = datetime.now(timezone.utc)
        self.deleted_by_id = user_id
        self.deleted_by_email = user_email

    def set_created_by(self, user_id: int | None, user_email: str | None) -> None:
        """Set created_by fields on new entity."""
        self.created_by_id = user_id
        self.created_by_email = user_email

    def set_updated_by(self, user_id: int | None, user_email: str | None) -> None:
        """Set updated_by fields on entity update."""
        self.updated_by_id = user_id
        self.updated_by_email = user_email
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        state = "deleted" if self.deleted_at is not None else ("active" if self.is_active else "inactive")
        return f"<{class_name}(id={id_val}, {state})>"
