"""
Organization service for managing organizations, teams, memberships and invitations.

Handles:
- Organization creation (organization + admin role + creator membership, atomically)
- Team hierarchy inside an organization
- User membership in organizations
- Organization-scoped roles
- Invitation creation, acceptance and cancellation
"""
import logging
import secrets
import threading
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from orgauthz import config, metrics
from orgauthz.db.database import transaction
from orgauthz.errors import (
    AlreadyMember,
    AlreadyProcessed,
    Expired,
    Immutable,
    InUse,
    InvalidState,
    InvalidTeamHierarchy,
    InvitationNotFound,
    MemberNotFound,
    OrganizationNotFound,
    RoleNotFound,
    TeamNotFound,
)
from orgauthz.models.base_model import Status
from orgauthz.models.organization import Organization
from orgauthz.models.organization_invitation import InvitationStatus, OrganizationInvitation
from orgauthz.models.organization_member import MemberStatus, OrganizationMember
from orgauthz.models.permission import WILDCARD_PERMISSION
from orgauthz.models.role import Role
from orgauthz.models.team import Team
from orgauthz.repositories import (
    InvitationRepository,
    MemberRepository,
    OrganizationRepository,
    PermissionRepository,
    RoleRepository,
    TeamRepository,
)
from orgauthz.services.role_registry_service import RoleRegistryService
from orgauthz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

ORGANIZATION_UPDATABLE_FIELDS = {"name", "display_name", "description", "settings", "status"}
TEAM_UPDATABLE_FIELDS = {"name", "display_name", "description", "status", "parent_team_id"}


class OrganizationService:
    """Service for managing organizations, teams, memberships and invitations."""

    def __init__(self, db: Session, cancel_event: Optional[threading.Event] = None):
        self.db = db
        self.cancel_event = cancel_event
        self.registry = RoleRegistryService(db, cancel_event)

    # ------------------------------------------------------------------
    # Lookups shared by the operations below
    # ------------------------------------------------------------------

    def _require_organization(self, organization_id: int) -> Organization:
        organization = OrganizationRepository.get_by_id(self.db, organization_id)
        if not organization:
            raise OrganizationNotFound(f"Organization {organization_id} not found")
        return organization

    def _require_team(self, organization_id: int, team_id: int) -> Team:
        team = TeamRepository.get_by_id(self.db, team_id)
        if not team or team.organization_id != organization_id:
            raise TeamNotFound(f"Team {team_id} not found in organization {organization_id}")
        return team

    def _require_role(self, organization_id: int, role_id: int) -> Role:
        """A role usable inside the organization: its own or a global one."""
        role = RoleRepository.get_by_id(self.db, role_id)
        if not role or role.organization_id not in (None, organization_id):
            raise RoleNotFound(f"Role {role_id} not found for organization {organization_id}")
        return role

    def _default_role(self, organization_id: int) -> Role:
        """The organization's default role, else the global default template."""
        for scope in (organization_id, None):
            for role in RoleRepository.get_default_roles(self.db, scope):
                if role.status == Status.ACTIVE:
                    return role
        raise RoleNotFound(f"No default role configured for organization {organization_id}")

    def _admin_role(self, organization_id: int, created_by: int) -> Role:
        """
        Resolve the admin role for a new organization.

        Looks for an "admin" role in the organization, then in the global
        namespace; otherwise creates one scoped to the organization and linked
        to the wildcard permission.
        """
        role = RoleRepository.find_for_organization(self.db, config.ADMIN_ROLE, organization_id)
        if role:
            return role

        wildcard = PermissionRepository.get_by_name(self.db, WILDCARD_PERMISSION)
        if not wildcard:
            wildcard = PermissionRepository.create(
                self.db,
                name=WILDCARD_PERMISSION,
                display_name="All Permissions",
                is_system=True,
                created_by=created_by,
            )

        role = RoleRepository.create(
            self.db,
            name=config.ADMIN_ROLE,
            display_name="Administrator",
            description="Full access to the organization",
            organization_id=organization_id,
            level=900,
            created_by=created_by,
        )
        PermissionRepository.add_role_permission(self.db, role.id, wildcard.id, granted_by=created_by)
        logger.info(f"Synthesized admin role for organization {organization_id}")
        return role

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def create_organization(
        self,
        name: str,
        user_id: int,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> Organization:
        """
        Create an organization and make its creator an admin member.

        The organization, the admin role lookup (or creation) and the
        creator's membership are one transaction; any failure rolls back all
        three.

        Args:
            name: Organization name
            user_id: Creating user, becomes an active admin member
            display_name: Human readable name (defaults to name)
            description: Free text
            settings: Opaque settings blob

        Returns:
            Organization object
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Organization name is required")

        with transaction(self.db, self.cancel_event):
            organization = OrganizationRepository.create(
                self.db,
                name=name,
                display_name=display_name,
                description=description,
                settings=settings,
                created_by=user_id,
            )
            admin_role = self._admin_role(organization.id, user_id)
            MemberRepository.create(
                self.db,
                organization_id=organization.id,
                user_id=user_id,
                role_id=admin_role.id,
                status=MemberStatus.ACTIVE,
            )

        self.db.refresh(organization)
        logger.info(f"User {user_id} created organization {organization.id} ({name})")
        return organization

    def get_organization(self, organization_id: int) -> Organization:
        return self._require_organization(organization_id)

    def update_organization(self, organization_id: int, updated_by: Optional[int] = None, **patch: Any) -> Organization:
        unknown = set(patch) - ORGANIZATION_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update organization fields: {', '.join(sorted(unknown))}")

        with transaction(self.db, self.cancel_event):
            organization = self._require_organization(organization_id)
            OrganizationRepository.update(self.db, organization, updated_by_user_id=updated_by, **patch)

        self.db.refresh(organization)
        return organization

    def delete_organization(self, organization_id: int, deleted_by: Optional[int] = None) -> None:
        """Soft delete: the row is kept with deleted_at set and status disabled."""
        with transaction(self.db, self.cancel_event):
            organization = self._require_organization(organization_id)
            OrganizationRepository.soft_delete(self.db, organization, deleted_by=deleted_by)

        logger.info(f"Deleted organization {organization_id}")

    def get_user_organizations(self, user_id: int) -> List[Organization]:
        """
        Get all organizations a user belongs to.

        Args:
            user_id: External user id

        Returns:
            List of Organization objects the user is an active member of
        """
        return OrganizationRepository.list_for_user(self.db, user_id)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def _check_parent(self, organization_id: int, parent_team_id: Optional[int], team_id: Optional[int] = None) -> None:
        """
        Validate a parent assignment.

        The parent must be a live team of the same organization, and walking up
        from it must never reach ``team_id``.
        """
        if parent_team_id is None:
            return
        if team_id is not None and parent_team_id == team_id:
            raise InvalidTeamHierarchy(f"Team {team_id} cannot be its own parent")

        parent = TeamRepository.get_by_id(self.db, parent_team_id)
        if not parent:
            raise TeamNotFound(f"Parent team {parent_team_id} not found")
        if parent.organization_id != organization_id:
            raise InvalidTeamHierarchy(f"Parent team {parent_team_id} belongs to another organization")

        seen = set()
        current = parent
        while current is not None and current.parent_team_id is not None:
            if current.id in seen:
                raise InvalidTeamHierarchy(f"Team hierarchy above {parent_team_id} already contains a cycle")
            seen.add(current.id)
            if current.parent_team_id == team_id:
                raise InvalidTeamHierarchy(f"Moving team {team_id} under {parent_team_id} would create a cycle")
            current = TeamRepository.get_by_id(self.db, current.parent_team_id, include_deleted=True)

    def create_team(
        self,
        organization_id: int,
        name: str,
        parent_team_id: Optional[int] = None,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> Team:
        name = (name or "").strip()
        if not name:
            raise ValueError("Team name is required")

        with transaction(self.db, self.cancel_event):
            self._require_organization(organization_id)
            self._check_parent(organization_id, parent_team_id)
            team = TeamRepository.create(
                self.db,
                organization_id=organization_id,
                name=name,
                parent_team_id=parent_team_id,
                display_name=display_name,
                description=description,
                created_by=created_by,
            )

        self.db.refresh(team)
        logger.info(f"Created team {team.id} ({name}) in organization {organization_id}")
        return team

    def get_team(self, team_id: int) -> Team:
        team = TeamRepository.get_by_id(self.db, team_id)
        if not team:
            raise TeamNotFound(f"Team {team_id} not found")
        return team

    def list_teams(self, organization_id: int) -> List[Team]:
        self._require_organization(organization_id)
        return TeamRepository.list_for_organization(self.db, organization_id)

    def update_team(self, team_id: int, updated_by: Optional[int] = None, **patch: Any) -> Team:
        """
        Partially update a team. Changing parent_team_id re-validates the hierarchy.

        Raises:
            TeamNotFound: If the team or the new parent does not exist
            InvalidTeamHierarchy: If the new parent is in another organization
                or would close a cycle
        """
        unknown = set(patch) - TEAM_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update team fields: {', '.join(sorted(unknown))}")

        with transaction(self.db, self.cancel_event):
            team = self.get_team(team_id)
            if "parent_team_id" in patch:
                self._check_parent(team.organization_id, patch["parent_team_id"], team.id)
            TeamRepository.update(self.db, team, updated_by_user_id=updated_by, **patch)

        self.db.refresh(team)
        return team

    def delete_team(self, team_id: int, deleted_by: Optional[int] = None) -> None:
        """Soft delete a team. Teams that still have live sub-teams cannot be deleted."""
        with transaction(self.db, self.cancel_event):
            team = self.get_team(team_id)
            children = TeamRepository.list_children(self.db, team.id)
            if children:
                raise InUse(f"Team {team_id} still has {len(children)} sub-teams")
            TeamRepository.soft_delete(self.db, team, deleted_by=deleted_by)

        logger.info(f"Deleted team {team_id}")

    def get_team_hierarchy(self, team_id: int) -> Dict[str, Any]:
        """
        The team and its live descendants as a nested dict:
        {"team": Team, "children": [{"team": ..., "children": [...]}, ...]}
        """
        root = self.get_team(team_id)

        def build(team: Team, seen: set) -> Dict[str, Any]:
            seen.add(team.id)
            children = [
                build(child, seen)
                for child in TeamRepository.list_children(self.db, team.id)
                if child.id not in seen
            ]
            return {"team": team, "children": children}

        return build(root, set())

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def add_member(
        self,
        organization_id: int,
        user_id: int,
        role_id: Optional[int] = None,
        team_id: Optional[int] = None,
        invited_by: Optional[int] = None,
    ) -> OrganizationMember:
        """
        Add a user to an organization directly, without an invitation.

        Args:
            organization_id: Target organization
            user_id: User to add
            role_id: Role for the membership; the default role when omitted
            team_id: Optional team inside the organization
            invited_by: User id of whoever added them

        Returns:
            OrganizationMember object

        Raises:
            OrganizationNotFound / RoleNotFound / TeamNotFound: Missing target
            AlreadyMember: If the user is already an active member
        """
        with transaction(self.db, self.cancel_event):
            self._require_organization(organization_id)
            role = self._require_role(organization_id, role_id) if role_id is not None else self._default_role(organization_id)
            if team_id is not None:
                self._require_team(organization_id, team_id)

            if MemberRepository.get_active(self.db, organization_id, user_id):
                raise AlreadyMember(f"User {user_id} is already a member of organization {organization_id}")

            member = MemberRepository.create(
                self.db,
                organization_id=organization_id,
                user_id=user_id,
                role_id=role.id,
                team_id=team_id,
                invited_by=invited_by,
            )

        self.db.refresh(member)
        logger.info(f"Added user {user_id} to organization {organization_id} as {role.name}")
        return member

    def get_member(self, organization_id: int, user_id: int) -> OrganizationMember:
        member = MemberRepository.get_active(self.db, organization_id, user_id)
        if not member:
            raise MemberNotFound(f"User {user_id} is not a member of organization {organization_id}")
        return member

    def list_members(self, organization_id: int, include_inactive: bool = False) -> List[OrganizationMember]:
        self._require_organization(organization_id)
        return MemberRepository.list_for_organization(self.db, organization_id, include_inactive)

    def list_team_members(self, team_id: int) -> List[OrganizationMember]:
        self.get_team(team_id)
        return MemberRepository.list_for_team(self.db, team_id)

    def is_member(self, organization_id: int, user_id: int) -> bool:
        """
        Check if a user is an active member of an organization.

        Returns:
            True if active member, False otherwise
        """
        return MemberRepository.get_active(self.db, organization_id, user_id) is not None

    def update_member_role(
        self,
        organization_id: int,
        user_id: int,
        role_id: int,
        updated_by: Optional[int] = None,
    ) -> OrganizationMember:
        with transaction(self.db, self.cancel_event):
            member = self.get_member(organization_id, user_id)
            role = self._require_role(organization_id, role_id)
            MemberRepository.update(self.db, member, role_id=role.id, updated_by_user_id=updated_by)

        self.db.refresh(member)
        logger.info(f"Updated role for user {user_id} in organization {organization_id} to {role.name}")
        return member

    def remove_member(self, organization_id: int, user_id: int, removed_by: Optional[int] = None) -> None:
        """
        Remove a user from an organization.

        The membership row is kept with status disabled.

        Raises:
            MemberNotFound: If the user is not an active member
        """
        with transaction(self.db, self.cancel_event):
            member = self.get_member(organization_id, user_id)
            MemberRepository.update(self.db, member, status=MemberStatus.DISABLED, updated_by_user_id=removed_by)

        logger.info(f"Removed user {user_id} from organization {organization_id}")

    # ------------------------------------------------------------------
    # Organization-scoped roles
    # ------------------------------------------------------------------

    def create_organization_role(
        self,
        organization_id: int,
        name: str,
        display_name: Optional[str] = None,
        description: Optional[str] = None,
        level: int = 0,
        is_default: bool = False,
        permission_ids: Optional[List[int]] = None,
        created_by: Optional[int] = None,
    ) -> Role:
        self._require_organization(organization_id)
        return self.registry.create_role(
            name,
            display_name=display_name,
            description=description,
            organization_id=organization_id,
            level=level,
            is_default=is_default,
            permission_ids=permission_ids,
            created_by=created_by,
        )

    def list_organization_roles(self, organization_id: int, include_global: bool = True) -> List[Role]:
        self._require_organization(organization_id)
        return self.registry.list_roles(organization_id, include_global)

    def delete_organization_role(self, role_id: int) -> None:
        """
        Delete a role through the organization path.

        Unlike the registry, a default role may be deleted here as long as
        another default role remains in the same scope.

        Raises:
            RoleNotFound: If the role does not exist
            Immutable: If the role is a system role
            InUse: If the role is referenced, or is the last default of its scope
        """
        with transaction(self.db, self.cancel_event):
            role = RoleRepository.get_by_id(self.db, role_id)
            if not role:
                raise RoleNotFound(f"Role {role_id} not found")
            if role.is_system:
                raise Immutable(f"System role {role.name} cannot be deleted")

            if role.is_default:
                defaults = RoleRepository.get_default_roles(self.db, role.organization_id)
                if not any(other.id != role.id for other in defaults):
                    raise InUse(f"Role {role.name} is the last default role of its scope")

            self.registry.ensure_role_unreferenced(role)

            name = role.name
            PermissionRepository.delete_links_for_role(self.db, role.id)
            RoleRepository.delete(self.db, role)

        logger.info(f"Deleted organization role {name} (id={role_id})")

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    def invite_member(
        self,
        organization_id: int,
        email: str,
        invited_by: Optional[int] = None,
        role_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> OrganizationInvitation:
        """
        Create an invitation for a new user to join the organization.

        Args:
            organization_id: Organization to join
            email: Email address of person to invite
            invited_by: User id of person sending invite
            role_id: Role they'll have; the default role when omitted
            team_id: Optional team they'll be pinned to

        Returns:
            OrganizationInvitation object (the token is handed out of band)

        Raises:
            OrganizationNotFound / RoleNotFound / TeamNotFound: Missing target
            InvalidState: If the email already has a pending invitation
        """
        email = (email or "").strip()
        if not email:
            raise ValueError("Email is required")

        with transaction(self.db, self.cancel_event):
            self._require_organization(organization_id)
            role = self._require_role(organization_id, role_id) if role_id is not None else self._default_role(organization_id)
            if team_id is not None:
                self._require_team(organization_id, team_id)

            now = utcnow()
            if InvitationRepository.get_pending_for_email(self.db, organization_id, email, now):
                raise InvalidState(f"{email} already has a pending invitation")

            invitation = InvitationRepository.create(
                self.db,
                organization_id=organization_id,
                email=email,
                role_id=role.id,
                team_id=team_id,
                invited_by=invited_by,
                token=secrets.token_urlsafe(config.INVITATION_TOKEN_BYTES),
                expires_at=now + timedelta(days=config.INVITATION_TTL_DAYS),
            )

        self.db.refresh(invitation)
        metrics.invitations_processed_total.labels(outcome="created").inc()
        logger.info(f"Created invitation for {email} to join organization {organization_id}")
        return invitation

    def get_invitation(self, invitation_id: int) -> OrganizationInvitation:
        invitation = InvitationRepository.get_by_id(self.db, invitation_id)
        if not invitation:
            raise InvitationNotFound(f"Invitation {invitation_id} not found")
        return invitation

    def get_invitation_by_token(self, token: str) -> OrganizationInvitation:
        invitation = InvitationRepository.get_by_token(self.db, token)
        if not invitation:
            raise InvitationNotFound("Invalid invitation token")
        return invitation

    def list_invitations(self, organization_id: int, status: Optional[int] = None) -> List[OrganizationInvitation]:
        self._require_organization(organization_id)
        return InvitationRepository.list_for_organization(self.db, organization_id, status)

    def process_invitation(self, token: str, user_id: int) -> OrganizationMember:
        """
        Accept an invitation and add the user to the organization.

        A pending invitation past its expiry is marked expired (and that is
        committed) before Expired is raised, so a repeated call reports
        AlreadyProcessed.

        Args:
            token: Invitation token
            user_id: Accepting user

        Returns:
            OrganizationMember object

        Raises:
            InvitationNotFound: If the token is unknown
            AlreadyProcessed: If the invitation is no longer pending
            Expired: If the invitation is past its expiry
            AlreadyMember: If the user is already an active member
        """
        invitation = self.get_invitation_by_token(token)

        if invitation.status != InvitationStatus.PENDING:
            raise AlreadyProcessed(
                f"Invitation already {InvitationStatus(invitation.status).name.lower()}"
            )

        now = utcnow()
        if invitation.is_expired(now):
            with transaction(self.db):
                InvitationRepository.set_status(self.db, invitation, InvitationStatus.EXPIRED, now)
            metrics.invitations_processed_total.labels(outcome="expired").inc()
            logger.info(f"Invitation {invitation.id} expired before user {user_id} accepted it")
            raise Expired("Invitation has expired")

        with transaction(self.db, self.cancel_event):
            if MemberRepository.get_active(self.db, invitation.organization_id, user_id):
                raise AlreadyMember(
                    f"User {user_id} is already a member of organization {invitation.organization_id}"
                )

            member = MemberRepository.create(
                self.db,
                organization_id=invitation.organization_id,
                user_id=user_id,
                role_id=invitation.role_id,
                team_id=invitation.team_id,
                invited_by=invitation.invited_by,
            )
            InvitationRepository.set_status(self.db, invitation, InvitationStatus.ACCEPTED, now)

        self.db.refresh(member)
        metrics.invitations_processed_total.labels(outcome="accepted").inc()
        logger.info(f"User {user_id} accepted invitation to join organization {member.organization_id}")
        return member

    def cancel_invitation(self, invitation_id: int, cancelled_by: Optional[int] = None) -> OrganizationInvitation:
        """
        Cancel a pending invitation (status becomes rejected).

        Raises:
            InvitationNotFound: If the invitation does not exist
            InvalidState: If it is not pending
        """
        with transaction(self.db, self.cancel_event):
            invitation = self.get_invitation(invitation_id)
            if invitation.status != InvitationStatus.PENDING:
                raise InvalidState(
                    f"Cannot cancel invitation with status: {InvitationStatus(invitation.status).name.lower()}"
                )
            invitation.updated_by_user_id = cancelled_by
            InvitationRepository.set_status(self.db, invitation, InvitationStatus.REJECTED, utcnow())

        self.db.refresh(invitation)
        metrics.invitations_processed_total.labels(outcome="rejected").inc()
        logger.info(f"Cancelled invitation {invitation_id}")
        return invitation
