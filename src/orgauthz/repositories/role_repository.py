# src/orgauthz/repositories/role_repository.py

"""
Role data access layer.
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from sqlalchemy import or_
from sqlalchemy.orm import Session

from orgauthz.models.role import Role

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class RoleRepository:
    """
    Data access methods for the Role model.

    organization_id None addresses the global namespace (system roles and
    templates).
    """

    @staticmethod
    def create(
        db: Session,
        *,
        name: str,
        display_name: str | None = None,
        description: str | None = None,
        organization_id: int | None = None,
        level: int = 0,
        is_system: bool = False,
        is_default: bool = False,
        status: int = 1,
        created_by: int | None = None,
    ) -> Role:
        role = Role(
            name=name,
            display_name=display_name,
            description=description,
            organization_id=organization_id,
            level=level,
            is_system=is_system,
            is_default=is_default,
            status=status,
            created_by_user_id=created_by,
        )
        with tracer.start_as_current_span("db.create_role") as span:
            span.set_attribute("role.name", name)
            if organization_id is not None:
                span.set_attribute("organization_id", organization_id)

            db.add(role)
            db.flush()

        logger.info("Created role id=%s name=%s org=%s", role.id, name, organization_id)
        return role

    @staticmethod
    def get_by_id(db: Session, role_id: int) -> Role | None:
        return db.query(Role).filter(Role.id == role_id).first()

    @staticmethod
    def get_by_name(db: Session, name: str, organization_id: int | None = None) -> Role | None:
        """
        Get a role by name inside one namespace.

        Args:
            db: Database session
            name: Role name
            organization_id: Organization namespace, None for the global one

        Returns:
            Role or None
        """
        query = db.query(Role).filter(Role.name == name)
        if organization_id is None:
            query = query.filter(Role.organization_id.is_(None))
        else:
            query = query.filter(Role.organization_id == organization_id)
        return query.first()

    @staticmethod
    def find_for_organization(db: Session, name: str, organization_id: int) -> Role | None:
        """
        Resolve a role name as seen from inside an organization.

        The organization's own role wins over a global role of the same name.
        """
        with tracer.start_as_current_span("db.find_role_for_organization") as span:
            span.set_attribute("role.name", name)
            span.set_attribute("organization_id", organization_id)

            return (
                db.query(Role)
                .filter(
                    Role.name == name,
                    or_(Role.organization_id == organization_id, Role.organization_id.is_(None)),
                )
                .order_by(Role.organization_id.is_(None))
                .first()
            )

    @staticmethod
    def list_roles(
        db: Session,
        organization_id: int | None = None,
        include_global: bool = True,
    ) -> list[Role]:
        """
        List roles of an organization namespace, optionally with the global ones.

        With organization_id None only global roles are returned.
        """
        query = db.query(Role)
        if organization_id is None:
            query = query.filter(Role.organization_id.is_(None))
        elif include_global:
            query = query.filter(or_(Role.organization_id == organization_id, Role.organization_id.is_(None)))
        else:
            query = query.filter(Role.organization_id == organization_id)
        return query.order_by(Role.level.desc(), Role.name).all()

    @staticmethod
    def get_default_roles(db: Session, organization_id: int | None) -> list[Role]:
        """Default-flagged roles of exactly one namespace."""
        query = db.query(Role).filter(Role.is_default.is_(True))
        if organization_id is None:
            query = query.filter(Role.organization_id.is_(None))
        else:
            query = query.filter(Role.organization_id == organization_id)
        return query.order_by(Role.id).all()

    @staticmethod
    def update(db: Session, role: Role, **kwargs) -> Role:
        """
        Update role fields.

        Only keys present in kwargs are touched.
        """
        for key, value in kwargs.items():
            if hasattr(role, key):
                setattr(role, key, value)
        db.flush()
        return role

    @staticmethod
    def delete(db: Session, role: Role) -> None:
        db.delete(role)
        db.flush()
