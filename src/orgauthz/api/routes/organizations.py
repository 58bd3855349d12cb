"""
API routes for organization management.

Endpoints:
- POST /organizations - Create an organization (caller becomes admin)
- GET /organizations - List the caller's organizations
- DELETE /organizations/{organization_id} - Soft delete an organization
- GET /organizations/{organization_id}/members - List members
- POST /organizations/{organization_id}/invitations - Invite a user
- GET /organizations/{organization_id}/invitations - List invitations
- DELETE /organizations/{organization_id}/invitations/{invitation_id} - Cancel invitation
- POST /organizations/invitations/{token}/accept - Accept invitation
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from orgauthz.api.dependencies.identity import get_current_user_id
from orgauthz.api.routes.schemas import (
    CreateOrganizationRequest,
    InvitationResponse,
    InviteMemberRequest,
    MemberResponse,
    OrganizationResponse,
)
from orgauthz.auth.permissions import Permission
from orgauthz.auth.rbac import require_permission
from orgauthz.db.database import get_db
from orgauthz.services.organization_service import OrganizationService

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
def create_organization(
    request: CreateOrganizationRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Create an organization.

    The caller becomes an active member holding the admin role.
    """
    service = OrganizationService(db)
    return service.create_organization(
        request.name,
        user_id,
        display_name=request.display_name,
        description=request.description,
        settings=request.settings,
    )


@router.get("", response_model=List[OrganizationResponse])
def list_my_organizations(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return OrganizationService(db).get_user_organizations(user_id)


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_organization(
    organization_id: int,
    user_id: int = Depends(get_current_user_id),
    _=Depends(require_permission(Permission.DELETE_ORGANIZATIONS)),
    db: Session = Depends(get_db),
):
    OrganizationService(db).delete_organization(organization_id, deleted_by=user_id)


@router.get("/{organization_id}/members", response_model=List[MemberResponse])
def list_organization_members(
    organization_id: int,
    _=Depends(require_permission(Permission.READ_ORGANIZATIONS)),
    db: Session = Depends(get_db),
):
    return OrganizationService(db).list_members(organization_id)


@router.post(
    "/{organization_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
def invite_member(
    organization_id: int,
    request: InviteMemberRequest,
    user_id: int = Depends(get_current_user_id),
    _=Depends(require_permission(Permission.UPDATE_ORGANIZATIONS)),
    db: Session = Depends(get_db),
):
    """
    Invite a user to join the organization.

    The token is returned to the caller for out-of-band delivery.
    Invitation expires after 7 days.
    """
    return OrganizationService(db).invite_member(
        organization_id,
        request.email,
        invited_by=user_id,
        role_id=request.role_id,
        team_id=request.team_id,
    )


@router.get("/{organization_id}/invitations", response_model=List[InvitationResponse])
def list_invitations(
    organization_id: int,
    status_filter: Optional[int] = None,
    _=Depends(require_permission(Permission.READ_ORGANIZATIONS)),
    db: Session = Depends(get_db),
):
    return OrganizationService(db).list_invitations(organization_id, status_filter)


@router.delete("/{organization_id}/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def cancel_invitation(
    organization_id: int,
    invitation_id: int,
    user_id: int = Depends(get_current_user_id),
    _=Depends(require_permission(Permission.UPDATE_ORGANIZATIONS)),
    db: Session = Depends(get_db),
):
    service = OrganizationService(db)

    # Verify invitation belongs to this org
    invitation = service.get_invitation(invitation_id)
    if invitation.organization_id != organization_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invitation not found"
        )

    service.cancel_invitation(invitation_id, cancelled_by=user_id)


@router.post("/invitations/{token}/accept", response_model=MemberResponse)
def accept_invitation(
    token: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Accept an invitation to join an organization.

    User must be authenticated to accept.
    """
    return OrganizationService(db).process_invitation(token, user_id)
