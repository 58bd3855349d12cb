"""
System permission catalogue and system role definitions.

This module defines:
- The system permissions every deployment is seeded with
- The system roles and the permissions each one starts with
- Helpers for the "resource.action" naming convention

Roles (highest to lowest level):
- super_admin: universal override, passes every check at every scope
- admin: holds the wildcard permission
- moderator: read everything, manage teams
- user: read-only access
- member: default template handed to new organization members
"""
from enum import Enum
from typing import Optional, Set, Tuple

from orgauthz import config
from orgauthz.models.permission import WILDCARD_PERMISSION


class Permission(str, Enum):
    """System permissions, named "<resource>.<action>"."""

    ALL = WILDCARD_PERMISSION

    # User management
    CREATE_USERS = "users.create"
    READ_USERS = "users.read"
    UPDATE_USERS = "users.update"
    DELETE_USERS = "users.delete"

    # Organization management
    CREATE_ORGANIZATIONS = "organizations.create"
    READ_ORGANIZATIONS = "organizations.read"
    UPDATE_ORGANIZATIONS = "organizations.update"
    DELETE_ORGANIZATIONS = "organizations.delete"

    # Team management
    CREATE_TEAMS = "teams.create"
    READ_TEAMS = "teams.read"
    UPDATE_TEAMS = "teams.update"
    DELETE_TEAMS = "teams.delete"

    # Role management
    CREATE_ROLES = "roles.create"
    READ_ROLES = "roles.read"
    UPDATE_ROLES = "roles.update"
    DELETE_ROLES = "roles.delete"

    # Permission management
    CREATE_PERMISSIONS = "permissions.create"
    READ_PERMISSIONS = "permissions.read"
    UPDATE_PERMISSIONS = "permissions.update"
    DELETE_PERMISSIONS = "permissions.delete"


class Role(str, Enum):
    """System role names."""
    SUPER_ADMIN = config.SUPER_ADMIN_ROLE
    ADMIN = config.ADMIN_ROLE
    MODERATOR = "moderator"
    USER = "user"
    MEMBER = "member"


# Levels used by require_level comparisons
ROLE_LEVELS = {
    Role.SUPER_ADMIN: 1000,
    Role.ADMIN: 900,
    Role.MODERATOR: 500,
    Role.USER: 100,
    Role.MEMBER: 10,
}

ROLE_DESCRIPTIONS = {
    Role.SUPER_ADMIN: "Full access to everything, at every scope",
    Role.ADMIN: "Administrative access",
    Role.MODERATOR: "Reads everything and manages teams",
    Role.USER: "Read-only access",
    Role.MEMBER: "Default role for new organization members",
}

# Category of each resource in the catalogue
RESOURCE_CATEGORIES = {
    "users": "user_management",
    "organizations": "organization_management",
    "teams": "team_management",
    "roles": "role_management",
    "permissions": "permission_management",
}

_READ_ALL: Set[Permission] = {
    Permission.READ_USERS,
    Permission.READ_ORGANIZATIONS,
    Permission.READ_TEAMS,
    Permission.READ_ROLES,
    Permission.READ_PERMISSIONS,
}

# Permissions each system role starts with
ROLE_PERMISSIONS: dict[Role, Set[Permission]] = {
    Role.SUPER_ADMIN: {Permission.ALL},
    Role.ADMIN: {Permission.ALL},
    Role.MODERATOR: _READ_ALL | {
        Permission.CREATE_TEAMS,
        Permission.UPDATE_TEAMS,
        Permission.DELETE_TEAMS,
    },
    Role.USER: set(_READ_ALL),
    Role.MEMBER: {
        Permission.READ_ORGANIZATIONS,
        Permission.READ_TEAMS,
    },
}


def split_permission_name(name: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split "teams.read" into ("teams", "read").

    Names without a dot (including the wildcard) have no resource/action.
    """
    if "." not in name:
        return None, None
    resource, _, action = name.partition(".")
    return resource or None, action or None


def permission_display_name(name: str) -> str:
    """Human label for a permission name, e.g. "teams.read" -> "Read Teams"."""
    if name == WILDCARD_PERMISSION:
        return "All Permissions"
    resource, action = split_permission_name(name)
    if resource is None or action is None:
        return name
    return f"{action.replace('_', ' ').title()} {resource.replace('_', ' ').title()}"

