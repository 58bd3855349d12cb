"""
Seeding of the system permission catalogue and system roles.

Every function is idempotent: existing rows are left alone, missing ones are
created. Role -> permission links of system roles are only added, never
removed, so manual additions survive a re-seed.
"""
import logging
from typing import Dict

from sqlalchemy.orm import Session

from orgauthz.auth.permissions import (
    RESOURCE_CATEGORIES,
    ROLE_DESCRIPTIONS,
    ROLE_LEVELS,
    ROLE_PERMISSIONS,
    Permission as SystemPermission,
    Role as SystemRole,
    permission_display_name,
    split_permission_name,
)
from orgauthz.db.database import transaction
from orgauthz.models.permission import Permission
from orgauthz.models.role import Role
from orgauthz.repositories import PermissionRepository, RoleRepository

logger = logging.getLogger(__name__)

# Roles that are templates rather than system roles: editable, assigned by default
DEFAULT_TEMPLATE_ROLES = {SystemRole.MEMBER}


def seed_system_permissions(db: Session) -> Dict[str, Permission]:
    """Create any missing system permission. Returns every catalogue permission by name."""
    permissions = {}
    created = 0

    with transaction(db):
        for item in SystemPermission:
            permission = PermissionRepository.get_by_name(db, item.value)
            if permission is None:
                resource, action = split_permission_name(item.value)
                permission = PermissionRepository.create(
                    db,
                    name=item.value,
                    display_name=permission_display_name(item.value),
                    resource=resource,
                    action=action,
                    category=RESOURCE_CATEGORIES.get(resource, "system"),
                    is_system=True,
                )
                created += 1
            permissions[item.value] = permission

    logger.info(f"Seeded system permissions: {created} created, {len(permissions) - created} already present")
    return permissions


def seed_system_roles(db: Session) -> Dict[str, Role]:
    """
    Create any missing system role and link its catalogue permissions.

    Expects the permission catalogue to exist; seed_system_permissions runs first.
    """
    roles = {}
    created = 0

    with transaction(db):
        for item in SystemRole:
            role = RoleRepository.get_by_name(db, item.value, None)
            if role is None:
                is_template = item in DEFAULT_TEMPLATE_ROLES
                role = RoleRepository.create(
                    db,
                    name=item.value,
                    display_name=item.value.replace("_", " ").title(),
                    description=ROLE_DESCRIPTIONS[item],
                    organization_id=None,
                    level=ROLE_LEVELS[item],
                    is_system=not is_template,
                    is_default=is_template,
                )
                created += 1
            roles[item.value] = role

            for permission in PermissionRepository.get_by_names(db, [p.value for p in ROLE_PERMISSIONS[item]]):
                PermissionRepository.add_role_permission(db, role.id, permission.id)

    logger.info(f"Seeded system roles: {created} created, {len(roles) - created} already present")
    return roles


def seed_system(db: Session) -> Dict[str, Role]:
    """Seed permissions, then roles and their links."""
    seed_system_permissions(db)
    return seed_system_roles(db)
