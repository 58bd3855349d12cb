"""
Role bindings - a user holds a role at one of three scopes.

- UserRole:         global scope
- OrganizationRole: inside one organization
- TeamRole:         inside one team

A (user, role, scope-instance) triple has at most one row. A binding counts
only while is_active is set and expires_at (if any) lies in the future;
expiry is checked at read time, nothing sweeps expired rows.
"""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declared_attr, relationship

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, int_fk
from orgauthz.models.mixins import AuditMixin


class Scope(str, enum.Enum):
    """Scope at which a role is bound."""
    GLOBAL = "global"
    ORGANIZATION = "organization"
    TEAM = "team"


class RoleBindingMixin(AuditMixin):
    """Columns shared by the three binding tables."""

    # External identity; no foreign key to a users table
    user_id = Column(Integer, nullable=False, index=True)

    @declared_attr
    def role_id(cls):
        return Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def role(cls):
        return relationship("Role", lazy="joined")

    assigned_by = Column(Integer, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")

    def is_effective(self, now: datetime) -> bool:
        """True while the binding is active and not past its expiry."""
        return bool(self.is_active) and (self.expires_at is None or self.expires_at > now)

    @property
    def scope_id(self) -> Optional[int]:
        return None


class UserRole(Base, RoleBindingMixin):
    __tablename__ = "user_roles"

    scope = Scope.GLOBAL

    id = int_pk()

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),
    )

    def __repr__(self):
        return f"<UserRole(user={self.user_id}, role={self.role_id}, active={self.is_active})>"


class OrganizationRole(Base, RoleBindingMixin):
    __tablename__ = "organization_user_roles"

    scope = Scope.ORGANIZATION

    id = int_pk()
    organization_id = int_fk("organizations")

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", "organization_id", name="uq_org_user_roles_user_role_org"),
    )

    @property
    def scope_id(self) -> Optional[int]:
        return self.organization_id

    def __repr__(self):
        return (
            f"<OrganizationRole(user={self.user_id}, role={self.role_id}, "
            f"org={self.organization_id}, active={self.is_active})>"
        )


class TeamRole(Base, RoleBindingMixin):
    __tablename__ = "team_user_roles"

    scope = Scope.TEAM

    id = int_pk()
    team_id = int_fk("teams")

    __table_args__ = (
        UniqueConstraint("user_id", "role_id", "team_id", name="uq_team_user_roles_user_role_team"),
    )

    @property
    def scope_id(self) -> Optional[int]:
        return self.team_id

    def __repr__(self):
        return f"<TeamRole(user={self.user_id}, role={self.role_id}, team={self.team_id}, active={self.is_active})>"


BINDING_MODELS = {
    Scope.GLOBAL: UserRole,
    Scope.ORGANIZATION: OrganizationRole,
    Scope.TEAM: TeamRole,
}

# Column holding the scope-instance id, None for global bindings
SCOPE_COLUMNS = {
    Scope.GLOBAL: None,
    Scope.ORGANIZATION: "organization_id",
    Scope.TEAM: "team_id",
}
