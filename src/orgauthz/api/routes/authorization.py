"""
API routes for permission checks and role bindings.

Endpoints:
- POST /authz/check - Check a permission for the caller
- GET /authz/me/permissions - Permission names of the caller at one scope
- GET /authz/users/{user_id}/summary - Roles and permissions of a user
- POST /authz/users/{user_id}/roles - Bind a role to a user
- DELETE /authz/users/{user_id}/roles/{role_id} - Unbind a role
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from orgauthz.api.dependencies.identity import get_current_user_id
from orgauthz.api.routes.schemas import (
    BindingResponse,
    BindRoleRequest,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionListResponse,
)
from orgauthz.auth.permissions import Permission
from orgauthz.auth.rbac import get_permission_resolver, require_permission
from orgauthz.db.database import get_db
from orgauthz.models.role_binding import Scope
from orgauthz.services.binding_service import BindingService
from orgauthz.services.permission_resolver import PermissionResolver

router = APIRouter(prefix="/authz", tags=["authorization"])


@router.post("/check", response_model=PermissionCheckResponse)
def check_permission(
    request: PermissionCheckRequest,
    user_id: int = Depends(get_current_user_id),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """Denials come back as allowed=false with status 200."""
    result = resolver.check_permission(
        user_id,
        request.permission,
        organization_id=request.organization_id,
        team_id=request.team_id,
    )
    return PermissionCheckResponse(
        allowed=result.allowed,
        user_id=result.user_id,
        permission=result.permission,
        source=result.source,
        roles=result.roles,
    )


@router.get("/me/permissions", response_model=PermissionListResponse)
def my_permissions(
    organization_id: Optional[int] = None,
    team_id: Optional[int] = None,
    user_id: int = Depends(get_current_user_id),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    permissions = resolver.all_permissions(user_id, organization_id=organization_id, team_id=team_id)
    return PermissionListResponse(user_id=user_id, permissions=sorted(permissions))


@router.get("/users/{user_id}/summary")
def user_permissions_summary(
    user_id: int,
    _=Depends(require_permission(Permission.READ_USERS)),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    return resolver.permissions_summary(user_id)


def _binding_response(binding) -> BindingResponse:
    return BindingResponse(
        id=binding.id,
        user_id=binding.user_id,
        role_id=binding.role_id,
        scope=binding.scope,
        scope_id=binding.scope_id,
        assigned_by=binding.assigned_by,
        expires_at=binding.expires_at,
        is_active=binding.is_active,
    )


@router.post("/users/{user_id}/roles", response_model=BindingResponse, status_code=status.HTTP_201_CREATED)
def bind_role(
    user_id: int,
    request: BindRoleRequest,
    current_user_id: int = Depends(get_current_user_id),
    _=Depends(require_permission(Permission.UPDATE_USERS)),
    db: Session = Depends(get_db),
):
    binding = BindingService(db).bind(
        request.scope,
        user_id,
        request.role_id,
        scope_id=request.scope_id,
        assigned_by=current_user_id,
        expires_at=request.expires_at,
    )
    return _binding_response(binding)


@router.delete("/users/{user_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def unbind_role(
    user_id: int,
    role_id: int,
    scope: Scope = Scope.GLOBAL,
    scope_id: Optional[int] = None,
    _=Depends(require_permission(Permission.UPDATE_USERS)),
    db: Session = Depends(get_db),
):
    """Idempotent: unbinding a role the user does not hold still returns 204."""
    BindingService(db).unbind(scope, user_id, role_id, scope_id=scope_id)
