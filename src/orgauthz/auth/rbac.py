"""
Role-Based Access Control (RBAC) dependencies for FastAPI.

Provides FastAPI dependencies for:
- Checking a permission, scoped by the route's organization_id / team_id
- Requiring a global role
- Requiring a minimum role level

Usage:
    @router.delete("/organizations/{organization_id}")
    def delete_organization(
        organization_id: int,
        _: PermissionCheck = Depends(require_permission(Permission.DELETE_ORGANIZATIONS)),
        ...
    ):
        ...

    @router.get("/admin/stats")
    def stats(_: None = Depends(require_level(900))):
        ...
"""
import logging
from typing import Callable, Optional, Union

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from orgauthz.api.dependencies.identity import get_current_user_id
from orgauthz.auth.permissions import Permission, Role
from orgauthz.db.database import get_db
from orgauthz.services.permission_resolver import PermissionCheck, PermissionResolver

logger = logging.getLogger(__name__)


def get_permission_resolver(db: Session = Depends(get_db)) -> PermissionResolver:
    return PermissionResolver(db)


def _path_int(request: Request, name: str) -> Optional[int]:
    value = request.path_params.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def require_permission(permission: Union[Permission, str]) -> Callable:
    """
    FastAPI dependency that requires a specific permission.

    The check is scoped by the route's ``organization_id`` and ``team_id``
    path parameters when the route has them.

    Args:
        permission: Required permission name

    Returns:
        Dependency function that raises 403 if permission not granted
    """
    name = permission.value if isinstance(permission, Permission) else permission

    def check_permission(
        request: Request,
        user_id: int = Depends(get_current_user_id),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> PermissionCheck:
        organization_id = _path_int(request, "organization_id")
        team_id = _path_int(request, "team_id")

        result = resolver.check_permission(user_id, name, organization_id=organization_id, team_id=team_id)
        if not result.allowed:
            logger.warning(
                f"Permission denied: user={user_id} permission={name} "
                f"org={organization_id} team={team_id}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied. Required permission: {name}"
            )
        return result

    return check_permission


def require_role(role: Union[Role, str]) -> Callable:
    """
    FastAPI dependency that requires a global role (super-admins always pass).

    Args:
        role: Required role name

    Returns:
        Dependency function that raises 403 if the role is not held
    """
    name = role.value if isinstance(role, Role) else role

    def check_role(
        user_id: int = Depends(get_current_user_id),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> None:
        if not resolver.has_role(user_id, name):
            logger.warning(f"Role check failed: user={user_id} role={name}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient privileges: {name} role required"
            )

    return check_role


def require_level(threshold: int) -> Callable:
    """
    FastAPI dependency that requires the user's highest role level to reach ``threshold``.

    Global bindings always count; organization and team bindings count when
    the route carries a matching ``organization_id`` / ``team_id`` path parameter.
    """

    def check_level(
        request: Request,
        user_id: int = Depends(get_current_user_id),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> None:
        organization_id = _path_int(request, "organization_id")
        team_id = _path_int(request, "team_id")

        if not resolver.require_level(user_id, threshold, organization_id=organization_id, team_id=team_id):
            logger.warning(
                f"Level check failed: user={user_id} required={threshold} "
                f"org={organization_id} team={team_id}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient privileges: level {threshold} or higher required"
            )

    return check_level


def require_super_admin() -> Callable:
    return require_role(Role.SUPER_ADMIN)
