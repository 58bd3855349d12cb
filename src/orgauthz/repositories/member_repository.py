# src/orgauthz/repositories/member_repository.py

from __future__ import annotations

import logging

from opentelemetry import trace
from sqlalchemy.orm import Session

from orgauthz.models.organization_member import MemberStatus, OrganizationMember
from orgauthz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MemberRepository:
    """
    Data access for OrganizationMember.

    Disabled rows are kept for history, so "the member" of a user in an
    organization always means the ACTIVE row.
    """

    @staticmethod
    def create(
        db: Session,
        *,
        organization_id: int,
        user_id: int,
        role_id: int,
        team_id: int | None = None,
        invited_by: int | None = None,
        status: int = MemberStatus.ACTIVE,
    ) -> OrganizationMember:
        member = OrganizationMember(
            organization_id=organization_id,
            user_id=user_id,
            role_id=role_id,
            team_id=team_id,
            invited_by=invited_by,
            status=status,
            joined_at=utcnow() if status == MemberStatus.ACTIVE else None,
            created_by_user_id=invited_by or user_id,
        )

        with tracer.start_as_current_span("db.create_organization_member") as span:
            span.set_attribute("organization_id", organization_id)
            span.set_attribute("user_id", user_id)
            span.set_attribute("role.id", role_id)

            db.add(member)
            db.flush()

        return member

    @staticmethod
    def get_by_id(db: Session, member_id: int) -> OrganizationMember | None:
        return db.query(OrganizationMember).filter(OrganizationMember.id == member_id).first()

    @staticmethod
    def get_active(db: Session, organization_id: int, user_id: int) -> OrganizationMember | None:
        return (
            db.query(OrganizationMember)
            .filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
                OrganizationMember.status == MemberStatus.ACTIVE,
            )
            .first()
        )

    @staticmethod
    def list_for_organization(
        db: Session,
        organization_id: int,
        include_inactive: bool = False,
    ) -> list[OrganizationMember]:
        query = db.query(OrganizationMember).filter(OrganizationMember.organization_id == organization_id)
        if not include_inactive:
            query = query.filter(OrganizationMember.status == MemberStatus.ACTIVE)
        return query.order_by(OrganizationMember.id).all()

    @staticmethod
    def list_for_team(db: Session, team_id: int) -> list[OrganizationMember]:
        return (
            db.query(OrganizationMember)
            .filter(
                OrganizationMember.team_id == team_id,
                OrganizationMember.status == MemberStatus.ACTIVE,
            )
            .order_by(OrganizationMember.id)
            .all()
        )

    @staticmethod
    def count_for_role(db: Session, role_id: int) -> int:
        return db.query(OrganizationMember).filter(OrganizationMember.role_id == role_id).count()

    @staticmethod
    def update(db: Session, member: OrganizationMember, **kwargs) -> OrganizationMember:
        for key, value in kwargs.items():
            if hasattr(member, key):
                setattr(member, key, value)
        db.flush()
        return member
