"""
OrganizationMember model - tracks which users belong to which organizations.

Each row binds one user to one organization (optionally pinned to one team
inside it) under exactly one role.
"""
import enum

from sqlalchemy import Column, DateTime, Integer, SmallInteger, Index
from sqlalchemy.orm import relationship

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, int_fk
from orgauthz.models.mixins import AuditMixin


class MemberStatus(enum.IntEnum):
    """Membership status."""
    PENDING = 0
    ACTIVE = 1
    DISABLED = 2


class OrganizationMember(Base, AuditMixin):
    """
    Tracks user membership in organizations.

    At most one ACTIVE row exists per (user, organization); the service layer
    enforces it so that disabled rows can be kept for history.
    """
    __tablename__ = "organization_members"

    id = int_pk()

    organization_id = int_fk("organizations")

    # External user id
    user_id = Column(Integer, nullable=False, index=True)

    # Optional team inside the organization
    team_id = int_fk("teams", nullable=True, ondelete="SET NULL")

    role_id = int_fk("roles", ondelete="RESTRICT")
    role = relationship("Role", lazy="joined")

    # 1: active, 0: pending, 2: disabled
    status = Column(
        SmallInteger,
        nullable=False,
        default=int(MemberStatus.ACTIVE),
        server_default=str(int(MemberStatus.ACTIVE))
    )

    joined_at = Column(DateTime, nullable=True)
    invited_by = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_org_members_org_user", "organization_id", "user_id"),
        Index("ix_org_members_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    def __repr__(self):
        return (
            f"<OrganizationMember(user={self.user_id}, org={self.organization_id}, "
            f"role={self.role_id}, status={self.status})>"
        )
