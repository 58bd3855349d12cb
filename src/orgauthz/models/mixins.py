"""
Mixins for SQLAlchemy models.
Provides reusable column sets for audit trails and soft deletion.
"""
from sqlalchemy import Column, DateTime, Integer

from orgauthz.utils.time_utils import utcnow


class AuditMixin:
    """
    Adds audit columns to any model.

    Provides:
    - created_at: UTC timestamp when the record is created
    - updated_at: UTC timestamp when the record is modified
    - created_by_user_id: id of the user who created the record
    - updated_by_user_id: id of the user who last modified it

    Usage:
        class MyModel(Base, AuditMixin):
            __tablename__ = "my_table"
            id = int_pk()
    """

    created_at = Column(
        DateTime,
        default=utcnow,
        nullable=False,
        comment="UTC timestamp when record was created"
    )

    updated_at = Column(
        DateTime,
        onupdate=utcnow,
        comment="UTC timestamp when record was last updated"
    )

    created_by_user_id = Column(
        Integer,
        comment="User id of the creator"
    )

    updated_by_user_id = Column(
        Integer,
        comment="User id of the last updater"
    )


class SoftDeleteMixin:
    """Rows are logically removed by stamping deleted_at, never physically erased."""

    deleted_at = Column(DateTime, nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
