"""Request/response models shared by the routers."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr

from orgauthz.models.role_binding import Scope


class CreateOrganizationRequest(BaseModel):
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "acme",
                "display_name": "Acme Inc.",
            }
        }


class OrganizationResponse(BaseModel):
    id: int
    name: str
    display_name: Optional[str]
    description: Optional[str]
    settings: Dict[str, Any]
    status: int
    created_at: datetime

    class Config:
        from_attributes = True


class InviteMemberRequest(BaseModel):
    """Request to invite a user to the organization."""
    email: EmailStr
    role_id: Optional[int] = None
    team_id: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "colleague@company.com",
                "role_id": 5
            }
        }


class InvitationResponse(BaseModel):
    id: int
    organization_id: int
    team_id: Optional[int]
    email: str
    role_id: int
    token: str
    status: int
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    id: int
    organization_id: int
    user_id: int
    team_id: Optional[int]
    role_id: int
    status: int
    joined_at: Optional[datetime]
    invited_by: Optional[int]

    class Config:
        from_attributes = True


class PermissionCheckRequest(BaseModel):
    permission: str
    organization_id: Optional[int] = None
    team_id: Optional[int] = None


class PermissionCheckResponse(BaseModel):
    allowed: bool
    user_id: int
    permission: str
    source: Optional[str]
    roles: List[str]


class PermissionListResponse(BaseModel):
    user_id: int
    permissions: List[str]


class BindRoleRequest(BaseModel):
    role_id: int
    scope: Scope = Scope.GLOBAL
    scope_id: Optional[int] = None
    expires_at: Optional[datetime] = None


class BindingResponse(BaseModel):
    id: int
    user_id: int
    role_id: int
    scope: Scope
    scope_id: Optional[int]
    assigned_by: Optional[int]
    expires_at: Optional[datetime]
    is_active: bool

    class Config:
        from_attributes = True
