"""
Permission model and the role -> permission link table.

The permission named WILDCARD_PERMISSION is the sentinel for "all
permissions": a role linked to it satisfies every permission check.
"""
from sqlalchemy import Column, String, Boolean, UniqueConstraint

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, int_fk, status_column
from orgauthz.models.mixins import AuditMixin

WILDCARD_PERMISSION = "*"


class Permission(Base, AuditMixin):
    __tablename__ = "permissions"

    id = int_pk()
    name = Column(String(100), nullable=False, unique=True, index=True)
    display_name = Column(String(150), nullable=True)
    description = Column(String(255), nullable=True)

    # Optional resource + action pair, e.g. "teams" / "create"
    resource = Column(String(50), nullable=True)
    action = Column(String(50), nullable=True)

    # Grouping for display
    category = Column(String(50), nullable=True)

    is_system = Column(Boolean, nullable=False, default=False, server_default="0")

    # 1: active, 0: disabled
    status = status_column()

    @property
    def is_wildcard(self) -> bool:
        return self.name == WILDCARD_PERMISSION

    def __repr__(self):
        return f"<Permission(id={self.id}, name={self.name!r})>"


class RolePermission(Base, AuditMixin):
    __tablename__ = "role_permissions"

    id = int_pk()
    role_id = int_fk("roles")
    permission_id = int_fk("permissions")

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_permission"),
    )

    @property
    def granted_by(self):
        return self.created_by_user_id

    def __repr__(self):
        return f"<RolePermission(role={self.role_id}, permission={self.permission_id})>"
