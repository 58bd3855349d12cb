"""
Organization model - the tenant boundary.

Organizations are soft-deleted: deleted_at is stamped and the row is kept
for audit.
"""
from sqlalchemy import Column, String, JSON

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, status_column
from orgauthz.models.mixins import AuditMixin, SoftDeleteMixin


class Organization(Base, AuditMixin, SoftDeleteMixin):
    __tablename__ = "organizations"

    id = int_pk()
    name = Column(String(100), nullable=False)
    display_name = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)

    # Free-form settings blob, opaque to the authorization core
    settings = Column(JSON, nullable=False, default=dict)

    # 1: active, 0: disabled
    status = status_column()

    def __repr__(self):
        return f"<Organization(id={self.id}, name={self.name!r}, status={self.status})>"
