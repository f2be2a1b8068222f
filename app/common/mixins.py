"""
Common mixins for billing models
"""
from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class AuditMixin:
    """Mixin que registra el usuario que crea y el último que modifica el registro"""

    @declared_attr
    def created_by_id(cls):
        return Column(Uuid, ForeignKey("users.id"), nullable=True)

    @declared_attr
    def modified_by_id(cls):
        return Column(Uuid, ForeignKey("users.id"), nullable=True)
