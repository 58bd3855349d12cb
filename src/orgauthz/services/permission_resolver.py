"""
Permission resolver.

Answers "may this user do X", optionally inside an organization or a team.
Scopes are tried in a fixed order and the first match wins:

1. global       - active global bindings
2. organization - organization bindings plus the role of the user's active
                  membership in that organization (only if organization_id given)
3. team         - team bindings plus the role of an active membership pinned
                  to that team (only if team_id given)

A role grants a permission when it is linked to it by name or to the
wildcard permission "*". A denied check returns False; it never raises.

Organizations and teams that are soft-deleted or disabled grant nothing.

Role levels come from bindings only: global bindings always, plus
organization or team bindings when the caller names that organization or
team. Membership roles never raise a level.

Holding the super-admin role at global scope passes every permission,
role and level check. That override lives here and nowhere else.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from opentelemetry import trace
from sqlalchemy.orm import Session

from orgauthz import config, metrics
from orgauthz.models.permission import WILDCARD_PERMISSION
from orgauthz.models.role_binding import Scope
from orgauthz.repositories import BindingRepository, GrantRepository
from orgauthz.utils.time_utils import utcnow

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class PermissionCheck:
    """Outcome of a permission check."""
    allowed: bool
    user_id: int
    permission: str
    source: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.allowed


def _matching_roles(pairs, permission: str) -> List[str]:
    return sorted({role for role, name in pairs if name == permission or name == WILDCARD_PERMISSION})


class PermissionResolver:
    """Read-only service evaluating permissions, roles and levels."""

    def __init__(self, db: Session, super_admin_role: Optional[str] = None):
        self.db = db
        self.super_admin_role = super_admin_role or config.SUPER_ADMIN_ROLE

    def is_super_admin(self, user_id: int) -> bool:
        return GrantRepository.has_global_role(self.db, user_id, self.super_admin_role, utcnow())

    def _scope_plan(self, organization_id: Optional[int], team_id: Optional[int]):
        plan = [(Scope.GLOBAL, None)]
        if organization_id is not None:
            plan.append((Scope.ORGANIZATION, organization_id))
        if team_id is not None:
            plan.append((Scope.TEAM, team_id))
        return plan

    def check_permission(
        self,
        user_id: int,
        permission: str,
        organization_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> PermissionCheck:
        """
        Evaluate one permission for a user.

        Args:
            user_id: User being checked
            permission: Permission name, e.g. "teams.create"
            organization_id: Also consider the user's roles in this organization
            team_id: Also consider the user's roles in this team

        Returns:
            PermissionCheck; source is "global", "organization" or "team" when
            allowed, None when denied
        """
        with tracer.start_as_current_span("authz.check_permission") as span:
            span.set_attribute("user_id", user_id)
            span.set_attribute("permission", permission or "")

            result = PermissionCheck(allowed=False, user_id=user_id, permission=permission)

            if not permission or not permission.strip():
                logger.warning(f"Empty permission name checked for user {user_id}; denying")
                metrics.permission_checks_total.labels(result="denied", source="none").inc()
                return result

            now = utcnow()

            if GrantRepository.has_global_role(self.db, user_id, self.super_admin_role, now):
                result.allowed = True
                result.source = Scope.GLOBAL.value
                result.roles = [self.super_admin_role]
                metrics.super_admin_overrides_total.inc()
            else:
                for scope, scope_id in self._scope_plan(organization_id, team_id):
                    pairs = GrantRepository.role_permission_pairs(self.db, user_id, scope, now, scope_id)
                    roles = _matching_roles(pairs, permission)
                    if roles:
                        result.allowed = True
                        result.source = scope.value
                        result.roles = roles
                        break

            span.set_attribute("allowed", result.allowed)
            metrics.permission_checks_total.labels(
                result="allowed" if result.allowed else "denied",
                source=result.source or "none",
            ).inc()

        if result.allowed:
            logger.debug(
                f"Permission granted: user={user_id} permission={permission} "
                f"source={result.source} roles={result.roles}"
            )
        else:
            logger.debug(
                f"Permission denied: user={user_id} permission={permission} "
                f"org={organization_id} team={team_id}"
            )
        return result

    def has_permission(self, user_id: int, permission: str) -> bool:
        """Global scope only."""
        return self.check_permission(user_id, permission).allowed

    def _has_scoped_permission(self, user_id: int, scope: Scope, scope_id: int, permission: str) -> bool:
        if not permission or not permission.strip():
            return False
        now = utcnow()
        if GrantRepository.has_global_role(self.db, user_id, self.super_admin_role, now):
            metrics.super_admin_overrides_total.inc()
            return True
        pairs = GrantRepository.role_permission_pairs(self.db, user_id, scope, now, scope_id)
        return bool(_matching_roles(pairs, permission))

    def has_organization_permission(self, user_id: int, organization_id: int, permission: str) -> bool:
        """Organization scope only; global roles are not consulted (super-admin aside)."""
        return self._has_scoped_permission(user_id, Scope.ORGANIZATION, organization_id, permission)

    def has_team_permission(self, user_id: int, team_id: int, permission: str) -> bool:
        """Team scope only; global roles are not consulted (super-admin aside)."""
        return self._has_scoped_permission(user_id, Scope.TEAM, team_id, permission)

    def all_permissions(
        self,
        user_id: int,
        organization_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Set[str]:
        """
        Permission names reachable at exactly one scope.

        No id: global. organization_id: that organization. team_id: that team
        (team_id wins if both are given). Scopes are not unioned; callers who
        want the union ask for each scope. A wildcard role contributes "*".
        """
        if team_id is not None:
            scope, scope_id = Scope.TEAM, team_id
        elif organization_id is not None:
            scope, scope_id = Scope.ORGANIZATION, organization_id
        else:
            scope, scope_id = Scope.GLOBAL, None

        pairs = GrantRepository.role_permission_pairs(self.db, user_id, scope, utcnow(), scope_id)
        return {name for _, name in pairs}

    def permissions_summary(self, user_id: int) -> Dict:
        """
        Everything a user holds, grouped by scope.

        Returns:
            {"user_id", "is_super_admin", "global_roles", "organization_roles",
             "team_roles", "global_permissions", "max_level"}
        """
        now = utcnow()

        def describe(bindings, scope_key=None):
            rows = []
            for binding in bindings:
                row = {
                    "role_id": binding.role_id,
                    "role": binding.role.name,
                    "level": binding.role.level,
                    "expires_at": binding.expires_at,
                }
                if scope_key:
                    row[scope_key] = binding.scope_id
                rows.append(row)
            return rows

        return {
            "user_id": user_id,
            "is_super_admin": GrantRepository.has_global_role(self.db, user_id, self.super_admin_role, now),
            "global_roles": describe(BindingRepository.list_effective(self.db, Scope.GLOBAL, user_id, now)),
            "organization_roles": describe(
                BindingRepository.list_effective(self.db, Scope.ORGANIZATION, user_id, now), "organization_id"
            ),
            "team_roles": describe(BindingRepository.list_effective(self.db, Scope.TEAM, user_id, now), "team_id"),
            "global_permissions": sorted(self.all_permissions(user_id)),
            "max_level": GrantRepository.max_level(self.db, user_id, now),
        }

    def max_level(
        self,
        user_id: int,
        organization_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> int:
        """
        Highest role level among the user's effective bindings; 0 if none.

        Global bindings always count. Organization and team bindings count
        only for the organization_id / team_id given. Memberships never count.
        """
        return GrantRepository.max_level(self.db, user_id, utcnow(), organization_id, team_id)

    def require_level(
        self,
        user_id: int,
        threshold: int,
        organization_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> bool:
        """True if max_level >= threshold for the given scope, or the user is a super-admin."""
        now = utcnow()
        if GrantRepository.has_global_role(self.db, user_id, self.super_admin_role, now):
            metrics.super_admin_overrides_total.inc()
            return True

        level = GrantRepository.max_level(self.db, user_id, now, organization_id, team_id)
        if level < threshold:
            logger.debug(
                f"Level check failed: user={user_id} level={level} required={threshold} "
                f"org={organization_id} team={team_id}"
            )
            return False
        return True

    def has_role(self, user_id: int, role_name: str) -> bool:
        """True if the user holds the named global role, or is a super-admin."""
        now = utcnow()
        if GrantRepository.has_global_role(self.db, user_id, self.super_admin_role, now):
            return True
        return GrantRepository.has_global_role(self.db, user_id, role_name, now)
