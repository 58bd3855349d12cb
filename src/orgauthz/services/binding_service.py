"""
Binding manager: grants and revokes roles at global, organization and team scope.

A (user, role, scope-instance) triple has at most one row. Expired or
deactivated rows stay in place and are switched back on by a later bind, so
the unique constraint never trips.
"""
import logging
import threading
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from orgauthz import metrics
from orgauthz.db.database import transaction
from orgauthz.errors import AlreadyBound, AuthorizationError, OrganizationNotFound, RoleNotFound, TeamNotFound
from orgauthz.models.role import Role
from orgauthz.models.role_binding import Scope
from orgauthz.repositories import BindingRepository, OrganizationRepository, RoleRepository, TeamRepository
from orgauthz.utils.time_utils import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class BindingService:
    """Service for role bindings at every scope."""

    def __init__(self, db: Session, cancel_event: Optional[threading.Event] = None):
        self.db = db
        self.cancel_event = cancel_event

    def _resolve_role(self, scope: Scope, role_id: int, scope_id: Optional[int]) -> Role:
        """
        Load the role and check that the scope target exists.

        A global binding needs a global role. Organization and team bindings
        accept a global role or a role of the owning organization.
        """
        role = RoleRepository.get_by_id(self.db, role_id)
        if not role:
            raise RoleNotFound(f"Role {role_id} not found")

        if scope is Scope.GLOBAL:
            if role.organization_id is not None:
                raise RoleNotFound(f"Role {role.name} is scoped to an organization")
            return role

        if scope_id is None:
            raise ValueError(f"A {scope.value} binding needs a scope id")

        if scope is Scope.ORGANIZATION:
            if not OrganizationRepository.get_by_id(self.db, scope_id):
                raise OrganizationNotFound(f"Organization {scope_id} not found")
            organization_id = scope_id
        else:
            team = TeamRepository.get_by_id(self.db, scope_id)
            if not team:
                raise TeamNotFound(f"Team {scope_id} not found")
            organization_id = team.organization_id

        if role.organization_id not in (None, organization_id):
            raise RoleNotFound(f"Role {role.name} is not available in organization {organization_id}")
        return role

    def bind(
        self,
        scope: Scope,
        user_id: int,
        role_id: int,
        scope_id: Optional[int] = None,
        assigned_by: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ):
        """
        Bind a role to a user at one scope.

        Args:
            scope: Scope.GLOBAL, Scope.ORGANIZATION or Scope.TEAM
            user_id: User receiving the role
            role_id: Role to bind
            scope_id: Organization id or team id (ignored for global scope)
            assigned_by: User id of the assigner
            expires_at: Optional expiry; the binding stops counting afterwards

        Returns:
            The binding row

        Raises:
            RoleNotFound / OrganizationNotFound / TeamNotFound: Missing target
            AlreadyBound: If an active, unexpired binding already exists
        """
        scope = Scope(scope)
        if scope is Scope.GLOBAL:
            scope_id = None
        expires_at = to_naive_utc(expires_at)

        with transaction(self.db, self.cancel_event):
            role = self._resolve_role(scope, role_id, scope_id)

            existing = BindingRepository.get(self.db, scope, user_id, role_id, scope_id)
            if existing and existing.is_effective(utcnow()):
                raise AlreadyBound(
                    f"User {user_id} already holds role {role.name} at {scope.value} scope"
                )

            if existing:
                binding = BindingRepository.reactivate(
                    self.db, existing, assigned_by=assigned_by, expires_at=expires_at
                )
                operation = "reactivate"
            else:
                binding = BindingRepository.create(
                    self.db,
                    scope,
                    user_id=user_id,
                    role_id=role_id,
                    scope_id=scope_id,
                    assigned_by=assigned_by,
                    expires_at=expires_at,
                )
                operation = "bind"

        metrics.role_bindings_total.labels(scope=scope.value, operation=operation).inc()
        logger.info(
            f"Bound role={role.name} to user={user_id} at {scope.value} scope "
            f"(scope_id={scope_id}, expires_at={expires_at})"
        )
        return binding

    def bind_many(
        self,
        scope: Scope,
        user_id: int,
        role_ids: Iterable[int],
        scope_id: Optional[int] = None,
        assigned_by: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> list:
        """
        Bind several roles, each in its own transaction.

        Roles that cannot be bound (missing, already bound) are skipped and
        logged; the successfully created bindings are returned.
        """
        bindings = []
        for role_id in role_ids:
            try:
                bindings.append(self.bind(scope, user_id, role_id, scope_id, assigned_by, expires_at))
            except AuthorizationError as e:
                logger.warning(f"Skipping role {role_id} for user {user_id}: {e}")
        return bindings

    def unbind(self, scope: Scope, user_id: int, role_id: int, scope_id: Optional[int] = None) -> bool:
        """
        Remove a binding. Removing a binding that does not exist is not an error.

        Returns:
            True if a row was deleted
        """
        scope = Scope(scope)
        if scope is Scope.GLOBAL:
            scope_id = None

        with transaction(self.db, self.cancel_event):
            removed = BindingRepository.delete(self.db, scope, user_id, role_id, scope_id)

        if removed:
            metrics.role_bindings_total.labels(scope=scope.value, operation="unbind").inc()
            logger.info(f"Unbound role {role_id} from user {user_id} at {scope.value} scope (scope_id={scope_id})")
        else:
            logger.debug(f"No {scope.value} binding of role {role_id} for user {user_id}; nothing to unbind")
        return bool(removed)

    def list_bindings(self, scope: Scope, user_id: int, scope_id: Optional[int] = None) -> list:
        """Active, unexpired bindings of a user at one scope (all instances when scope_id is None)."""
        scope = Scope(scope)
        return BindingRepository.list_effective(
            self.db, scope, user_id, utcnow(), None if scope is Scope.GLOBAL else scope_id
        )

    def is_bound(self, scope: Scope, user_id: int, role_id: int, scope_id: Optional[int] = None) -> bool:
        scope = Scope(scope)
        if scope is Scope.GLOBAL:
            scope_id = None
        binding = BindingRepository.get(self.db, scope, user_id, role_id, scope_id)
        return bool(binding and binding.is_effective(utcnow()))

    def list_role_bindings(self, role_id: int) -> List:
        """Every binding row of a role at any scope, including inactive and expired ones."""
        return BindingRepository.list_for_role(self.db, role_id)
