"""
Error kinds raised by the authorization core.

Every error derives from AuthorizationError, itself a ValueError, so callers
that only care about "the request was refused" can keep catching ValueError.
Each class carries a stable ``kind`` string that the HTTP layer maps to a
status code.

A denied permission check is not an error: the resolver returns False.
"""


class AuthorizationError(ValueError):
    """Base class for every error the core raises."""

    kind = "authorization_error"


class NotFound(AuthorizationError):
    kind = "not_found"


class RoleNotFound(NotFound):
    kind = "role_not_found"


class PermissionNotFound(NotFound):
    kind = "permission_not_found"


class OrganizationNotFound(NotFound):
    kind = "organization_not_found"


class TeamNotFound(NotFound):
    kind = "team_not_found"


class MemberNotFound(NotFound):
    kind = "member_not_found"


class InvitationNotFound(NotFound):
    kind = "invitation_not_found"


class DuplicateName(AuthorizationError):
    kind = "duplicate_name"


class Immutable(AuthorizationError):
    """Attempted mutation or deletion of a system role or permission."""

    kind = "immutable"


class InUse(AuthorizationError):
    """Deletion blocked by live references."""

    kind = "in_use"


class AlreadyBound(AuthorizationError):
    kind = "already_bound"


class AlreadyMember(AuthorizationError):
    kind = "already_member"


class Expired(AuthorizationError):
    """The invitation is past its expiry; its status has been set to expired."""

    kind = "expired"


class AlreadyProcessed(AuthorizationError):
    kind = "already_processed"


class InvalidState(AuthorizationError):
    kind = "invalid_state"


class InvalidPermissionFormat(AuthorizationError):
    kind = "invalid_permission_format"


class InvalidTeamHierarchy(AuthorizationError):
    kind = "invalid_team_hierarchy"


class OperationCancelled(AuthorizationError):
    """The caller cancelled the operation; the transaction was rolled back."""

    kind = "operation_cancelled"
