from orgauthz.db.database import Base

# Import all models so metadata knows about every table
from .organization import Organization
from .team import Team
from .role import Role
from .permission import Permission, RolePermission, WILDCARD_PERMISSION
from .role_binding import Scope, UserRole, OrganizationRole, TeamRole, BINDING_MODELS, SCOPE_COLUMNS
from .organization_member import OrganizationMember, MemberStatus
from .organization_invitation import OrganizationInvitation, InvitationStatus
from .base_model import Status

__all__ = [
    "Base",
    "Organization",
    "Team",
    "Role",
    "Permission",
    "RolePermission",
    "WILDCARD_PERMISSION",
    "Scope",
    "UserRole",
    "OrganizationRole",
    "TeamRole",
    "BINDING_MODELS",
    "SCOPE_COLUMNS",
    "OrganizationMember",
    "MemberStatus",
    "OrganizationInvitation",
    "InvitationStatus",
    "Status",
]
