"""
Authorization module for orgauthz.

This module provides:
- System permission and role definitions (permissions.py)
- RBAC dependencies for FastAPI (rbac.py)

Usage:
    from orgauthz.auth import (
        Permission,
        Role,
        require_permission,
        require_role,
        require_level,
    )
"""

# Re-export from permissions.py
from orgauthz.auth.permissions import (
    Permission,
    Role,
    ROLE_LEVELS,
    ROLE_PERMISSIONS,
    split_permission_name,
)

# Re-export from rbac.py
from orgauthz.auth.rbac import (
    get_permission_resolver,
    require_permission,
    require_role,
    require_level,
    require_super_admin,
)

__all__ = [
    # Permissions
    "Permission",
    "Role",
    "ROLE_LEVELS",
    "ROLE_PERMISSIONS",
    "split_permission_name",

    # RBAC
    "get_permission_resolver",
    "require_permission",
    "require_role",
    "require_level",
    "require_super_admin",
]
