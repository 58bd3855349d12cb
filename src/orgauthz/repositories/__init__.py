# src/orgauthz/repositories/__init__.py
from .role_repository import RoleRepository
from .permission_repository import PermissionRepository
from .binding_repository import BindingRepository
from .grant_repository import GrantRepository
from .organization_repository import OrganizationRepository
from .team_repository import TeamRepository
from .member_repository import MemberRepository
from .invitation_repository import InvitationRepository

__all__ = [
    "RoleRepository",
    "PermissionRepository",
    "BindingRepository",
    "GrantRepository",
    "OrganizationRepository",
    "TeamRepository",
    "MemberRepository",
    "InvitationRepository",
]
