"""
OrganizationInvitation model - pending offers to join an organization.

Invitations expire after a fixed period (7 days by default) and move out of
PENDING exactly once: to ACCEPTED, REJECTED or EXPIRED.
"""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, String, DateTime, Integer, SmallInteger, Index

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, int_fk
from orgauthz.models.mixins import AuditMixin
from orgauthz.utils.time_utils import utcnow


class InvitationStatus(enum.IntEnum):
    PENDING = 0
    ACCEPTED = 1
    REJECTED = 2
    EXPIRED = 3


class OrganizationInvitation(Base, AuditMixin):
    """
    Invitation to join an organization, optionally a team inside it, under a role.

    The token is the only handle the invitee gets, so it is unique and
    unguessable.
    """
    __tablename__ = "organization_invitations"

    id = int_pk()

    # Which organization they're being invited to
    organization_id = int_fk("organizations")
    team_id = int_fk("teams", nullable=True, ondelete="SET NULL")

    # Email address of invitee
    email = Column(String(255), nullable=False, index=True)

    # Role they'll have when they join
    role_id = int_fk("roles", ondelete="RESTRICT")

    # Who sent the invitation
    invited_by = Column(Integer, nullable=True)

    # Secure token for accepting invitation
    token = Column(String(255), nullable=False, unique=True, index=True)

    # 0: pending, 1: accepted, 2: rejected, 3: expired
    status = Column(
        SmallInteger,
        nullable=False,
        default=int(InvitationStatus.PENDING),
        server_default=str(int(InvitationStatus.PENDING))
    )

    expires_at = Column(DateTime, nullable=False)
    processed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_org_invitations_email_status", "email", "status"),
        Index("ix_org_invitations_org_status", "organization_id", "status"),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if the invitation is past its expiry."""
        return (now or utcnow()) > self.expires_at

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    def __repr__(self):
        return f"<OrganizationInvitation(email={self.email}, org={self.organization_id}, status={self.status})>"
