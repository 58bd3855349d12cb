# src/orgauthz/repositories/organization_repository.py

from __future__ import annotations

import logging

from opentelemetry import trace
from sqlalchemy.orm import Session

from orgauthz.models.base_model import Status
from orgauthz.models.organization import Organization
from orgauthz.models.organization_member import MemberStatus, OrganizationMember
from orgauthz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class OrganizationRepository:

    @staticmethod
    def create(
        db: Session,
        *,
        name: str,
        display_name: str | None = None,
        description: str | None = None,
        settings: dict | None = None,
        created_by: int | None = None,
    ) -> Organization:
        organization = Organization(
            name=name,
            display_name=display_name or name,
            description=description,
            settings=settings or {},
            status=Status.ACTIVE,
            created_by_user_id=created_by,
        )

        with tracer.start_as_current_span("db.create_organization") as span:
            span.set_attribute("organization.name", name)
            db.add(organization)
            db.flush()

        return organization

    @staticmethod
    def get_by_id(db: Session, organization_id: int, include_deleted: bool = False) -> Organization | None:
        query = db.query(Organization).filter(Organization.id == organization_id)
        if not include_deleted:
            query = query.filter(Organization.deleted_at.is_(None))
        return query.first()

    @staticmethod
    def update(db: Session, organization: Organization, **kwargs) -> Organization:
        for key, value in kwargs.items():
            if hasattr(organization, key):
                setattr(organization, key, value)
        db.flush()
        return organization

    @staticmethod
    def soft_delete(db: Session, organization: Organization, deleted_by: int | None = None) -> Organization:
        organization.deleted_at = utcnow()
        organization.status = Status.DISABLED
        organization.updated_by_user_id = deleted_by
        db.flush()
        return organization

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Organization]:
        """Live organizations in which the user has an active membership."""
        with tracer.start_as_current_span("db.list_user_organizations") as span:
            span.set_attribute("user_id", user_id)

            return (
                db.query(Organization)
                .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
                .filter(
                    OrganizationMember.user_id == user_id,
                    OrganizationMember.status == MemberStatus.ACTIVE,
                    Organization.deleted_at.is_(None),
                )
                .order_by(Organization.id)
                .distinct()
                .all()
            )
