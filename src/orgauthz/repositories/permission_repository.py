# src/orgauthz/repositories/permission_repository.py

"""
Permission and role -> permission link data access layer.
"""

from __future__ import annotations

import logging
from typing import Iterable

from opentelemetry import trace
from sqlalchemy.orm import Session

from orgauthz.models.permission import Permission, RolePermission

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PermissionRepository:
    """
    Data access methods for Permission and RolePermission.
    """

    @staticmethod
    def create(
        db: Session,
        *,
        name: str,
        display_name: str | None = None,
        description: str | None = None,
        resource: str | None = None,
        action: str | None = None,
        category: str | None = None,
        is_system: bool = False,
        status: int = 1,
        created_by: int | None = None,
    ) -> Permission:
        permission = Permission(
            name=name,
            display_name=display_name,
            description=description,
            resource=resource,
            action=action,
            category=category,
            is_system=is_system,
            status=status,
            created_by_user_id=created_by,
        )
        db.add(permission)
        db.flush()
        return permission

    @staticmethod
    def get_by_id(db: Session, permission_id: int) -> Permission | None:
        return db.query(Permission).filter(Permission.id == permission_id).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Permission | None:
        return db.query(Permission).filter(Permission.name == name).first()

    @staticmethod
    def get_by_ids(db: Session, permission_ids: Iterable[int]) -> list[Permission]:
        ids = list(permission_ids)
        if not ids:
            return []
        return db.query(Permission).filter(Permission.id.in_(ids)).all()

    @staticmethod
    def get_by_names(db: Session, names: Iterable[str]) -> list[Permission]:
        names = list(names)
        if not names:
            return []
        return db.query(Permission).filter(Permission.name.in_(names)).all()

    @staticmethod
    def list_permissions(
        db: Session,
        *,
        category: str | None = None,
        resource: str | None = None,
    ) -> list[Permission]:
        query = db.query(Permission)
        if category is not None:
            query = query.filter(Permission.category == category)
        if resource is not None:
            query = query.filter(Permission.resource == resource)
        return query.order_by(Permission.category, Permission.name).all()

    @staticmethod
    def update(db: Session, permission: Permission, **kwargs) -> Permission:
        for key, value in kwargs.items():
            if hasattr(permission, key):
                setattr(permission, key, value)
        db.flush()
        return permission

    @staticmethod
    def delete(db: Session, permission: Permission) -> None:
        """Delete a permission together with every role link to it."""
        db.query(RolePermission).filter(
            RolePermission.permission_id == permission.id
        ).delete(synchronize_session=False)
        db.delete(permission)
        db.flush()

    # ------------------------------------------------------------------
    # Role -> permission links
    # ------------------------------------------------------------------

    @staticmethod
    def replace_role_permissions(
        db: Session,
        role_id: int,
        permission_ids: Iterable[int],
        granted_by: int | None = None,
    ) -> None:
        """
        Drop every link of the role, then insert the new set.

        Callers run this inside a transaction so readers never see the
        intermediate empty set.
        """
        ids = list(dict.fromkeys(permission_ids))

        with tracer.start_as_current_span("db.replace_role_permissions") as span:
            span.set_attribute("role.id", role_id)
            span.set_attribute("permission.count", len(ids))

            db.query(RolePermission).filter(
                RolePermission.role_id == role_id
            ).delete(synchronize_session=False)

            for permission_id in ids:
                db.add(RolePermission(
                    role_id=role_id,
                    permission_id=permission_id,
                    created_by_user_id=granted_by,
                ))
            db.flush()

        logger.debug("Replaced permissions of role=%s with %s", role_id, ids)

    @staticmethod
    def add_role_permission(
        db: Session,
        role_id: int,
        permission_id: int,
        granted_by: int | None = None,
    ) -> RolePermission:
        """Link one permission to a role unless the link already exists."""
        existing = (
            db.query(RolePermission)
            .filter(RolePermission.role_id == role_id, RolePermission.permission_id == permission_id)
            .first()
        )
        if existing:
            return existing

        link = RolePermission(role_id=role_id, permission_id=permission_id, created_by_user_id=granted_by)
        db.add(link)
        db.flush()
        return link

    @staticmethod
    def remove_role_permissions(db: Session, role_id: int, permission_ids: Iterable[int]) -> int:
        """Delete the named links; returns how many rows went away."""
        ids = list(permission_ids)
        if not ids:
            return 0
        removed = db.query(RolePermission).filter(
            RolePermission.role_id == role_id,
            RolePermission.permission_id.in_(ids),
        ).delete(synchronize_session=False)
        db.flush()
        return removed

    @staticmethod
    def get_role_permissions(db: Session, role_id: int) -> list[Permission]:
        return (
            db.query(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id)
            .order_by(Permission.name)
            .all()
        )

    @staticmethod
    def delete_links_for_role(db: Session, role_id: int) -> None:
        db.query(RolePermission).filter(
            RolePermission.role_id == role_id
        ).delete(synchronize_session=False)
        db.flush()
