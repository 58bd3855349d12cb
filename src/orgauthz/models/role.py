"""
Role model - a named bundle of permissions.

organization_id NULL puts the role in the single global namespace, which
holds both system roles (is_system) and templates usable in any
organization. Otherwise the role belongs to one organization. Names are
unique per namespace; the registry enforces it because NULLs never collide
in a SQL unique index.
"""
from sqlalchemy import Column, String, Integer, Boolean, Index
from sqlalchemy.orm import relationship

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, int_fk, status_column
from orgauthz.models.mixins import AuditMixin


class Role(Base, AuditMixin):
    __tablename__ = "roles"

    id = int_pk()
    name = Column(String(100), nullable=False)
    display_name = Column(String(150), nullable=True)
    description = Column(String(255), nullable=True)

    organization_id = int_fk("organizations", nullable=True)

    # Compared by level checks: higher means more privileged
    level = Column(Integer, nullable=False, default=0, server_default="0")

    # System roles are seeded and can never be edited or deleted
    is_system = Column(Boolean, nullable=False, default=False, server_default="0")

    # Assigned to new members when no role is given
    is_default = Column(Boolean, nullable=False, default=False, server_default="0")

    # 1: active, 0: disabled
    status = status_column()

    permissions = relationship(
        "Permission",
        secondary="role_permissions",
        viewonly=True,
        order_by="Permission.name",
    )

    __table_args__ = (
        Index("ix_roles_org_name", "organization_id", "name"),
    )

    def __repr__(self):
        return f"<Role(id={self.id}, name={self.name!r}, org={self.organization_id}, system={self.is_system})>"
