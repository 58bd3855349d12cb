# src/orgauthz/repositories/invitation_repository.py

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from orgauthz.models.organization_invitation import InvitationStatus, OrganizationInvitation


class InvitationRepository:

    @staticmethod
    def create(
        db: Session,
        *,
        organization_id: int,
        email: str,
        role_id: int,
        token: str,
        expires_at: datetime,
        invited_by: int | None = None,
        team_id: int | None = None,
    ) -> OrganizationInvitation:
        invitation = OrganizationInvitation(
            organization_id=organization_id,
            team_id=team_id,
            email=email,
            role_id=role_id,
            invited_by=invited_by,
            token=token,
            status=InvitationStatus.PENDING,
            expires_at=expires_at,
            created_by_user_id=invited_by,
        )
        db.add(invitation)
        db.flush()
        return invitation

    @staticmethod
    def get_by_id(db: Session, invitation_id: int) -> OrganizationInvitation | None:
        return db.query(OrganizationInvitation).filter(OrganizationInvitation.id == invitation_id).first()

    @staticmethod
    def get_by_token(db: Session, token: str) -> OrganizationInvitation | None:
        return db.query(OrganizationInvitation).filter(OrganizationInvitation.token == token).first()

    @staticmethod
    def get_pending_for_email(
        db: Session,
        organization_id: int,
        email: str,
        now: datetime,
    ) -> OrganizationInvitation | None:
        """Unexpired pending invitation for an email. Emails compare case-insensitively."""
        return (
            db.query(OrganizationInvitation)
            .filter(
                OrganizationInvitation.organization_id == organization_id,
                func.lower(OrganizationInvitation.email) == email.lower(),
                OrganizationInvitation.status == InvitationStatus.PENDING,
                OrganizationInvitation.expires_at > now,
            )
            .first()
        )

    @staticmethod
    def list_for_organization(
        db: Session,
        organization_id: int,
        status: int | None = None,
    ) -> list[OrganizationInvitation]:
        query = db.query(OrganizationInvitation).filter(OrganizationInvitation.organization_id == organization_id)
        if status is not None:
            query = query.filter(OrganizationInvitation.status == status)
        return query.order_by(OrganizationInvitation.created_at.desc(), OrganizationInvitation.id.desc()).all()

    @staticmethod
    def count_for_role(db: Session, role_id: int) -> int:
        return db.query(OrganizationInvitation).filter(OrganizationInvitation.role_id == role_id).count()

    @staticmethod
    def set_status(db: Session, invitation: OrganizationInvitation, status: int, processed_at: datetime) -> OrganizationInvitation:
        invitation.status = status
        invitation.processed_at = processed_at
        db.flush()
        return invitation
