# src/orgauthz/repositories/grant_repository.py

"""
Read-side queries joining bindings and memberships to roles and permissions.

Every query here only sees effective grants: bindings that are active and
not expired, active memberships, active roles, active permissions, and
organizations and teams that are active and not soft-deleted.
"""

from __future__ import annotations

import logging
from datetime import datetime

from opentelemetry import trace
from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from orgauthz.models.base_model import Status
from orgauthz.models.organization import Organization
from orgauthz.models.organization_member import MemberStatus, OrganizationMember
from orgauthz.models.permission import Permission, RolePermission
from orgauthz.models.role import Role
from orgauthz.models.role_binding import BINDING_MODELS, SCOPE_COLUMNS, Scope, UserRole
from orgauthz.models.team import Team
from orgauthz.repositories.binding_repository import effective_filters

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _live_organization(query: Query, organization_column) -> Query:
    return query.join(Organization, Organization.id == organization_column).filter(
        Organization.deleted_at.is_(None),
        Organization.status == Status.ACTIVE,
    )


def _live_team(query: Query, team_column) -> Query:
    """The team and its organization must both be live."""
    return (
        query.join(Team, Team.id == team_column)
        .join(Organization, Organization.id == Team.organization_id)
        .filter(
            Team.deleted_at.is_(None),
            Team.status == Status.ACTIVE,
            Organization.deleted_at.is_(None),
            Organization.status == Status.ACTIVE,
        )
    )


def _scoped_bindings(query: Query, scope: Scope, model, scope_id: int | None) -> Query:
    """Restrict a binding query to one live scope instance."""
    if scope == Scope.ORGANIZATION:
        query = _live_organization(query, model.organization_id)
    elif scope == Scope.TEAM:
        query = _live_team(query, model.team_id)

    column = SCOPE_COLUMNS[scope]
    if column is not None:
        query = query.filter(getattr(model, column) == scope_id)
    return query


def _binding_pairs(db: Session, scope: Scope, user_id: int, scope_id: int | None, now: datetime):
    model = BINDING_MODELS[scope]
    query = (
        db.query(Role.name, Permission.name)
        .select_from(model)
        .join(Role, Role.id == model.role_id)
        .join(RolePermission, RolePermission.role_id == Role.id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(
            model.user_id == user_id,
            *effective_filters(model, now),
            Role.status == Status.ACTIVE,
            Permission.status == Status.ACTIVE,
        )
    )
    return _scoped_bindings(query, scope, model, scope_id).all()


def _membership_pairs(db: Session, user_id: int, scope: Scope, scope_id: int):
    query = (
        db.query(Role.name, Permission.name)
        .select_from(OrganizationMember)
        .join(Role, Role.id == OrganizationMember.role_id)
        .join(RolePermission, RolePermission.role_id == Role.id)
        .join(Permission, Permission.id == RolePermission.permission_id)
        .filter(
            OrganizationMember.user_id == user_id,
            OrganizationMember.status == MemberStatus.ACTIVE,
            Role.status == Status.ACTIVE,
            Permission.status == Status.ACTIVE,
        )
    )
    if scope == Scope.ORGANIZATION:
        query = _live_organization(query, OrganizationMember.organization_id).filter(
            OrganizationMember.organization_id == scope_id
        )
    else:
        query = _live_team(query, OrganizationMember.team_id).filter(OrganizationMember.team_id == scope_id)
    return query.all()


class GrantRepository:
    """Resolver-facing queries."""

    @staticmethod
    def role_permission_pairs(
        db: Session,
        user_id: int,
        scope: Scope,
        now: datetime,
        scope_id: int | None = None,
    ) -> set[tuple[str, str]]:
        """
        (role name, permission name) pairs reachable by a user at one scope.

        Organization scope adds the role of the user's active membership in
        that organization; team scope adds the role of an active membership
        pinned to that team. A soft-deleted or disabled organization or team
        grants nothing.
        """
        with tracer.start_as_current_span("db.role_permission_pairs") as span:
            span.set_attribute("user_id", user_id)
            span.set_attribute("scope", scope.value)
            if scope_id is not None:
                span.set_attribute("scope_id", scope_id)

            pairs = set(_binding_pairs(db, scope, user_id, scope_id, now))
            if scope != Scope.GLOBAL:
                pairs.update(_membership_pairs(db, user_id, scope, scope_id))

        return pairs

    @staticmethod
    def has_global_role(db: Session, user_id: int, role_name: str, now: datetime) -> bool:
        """True if the user holds an effective global binding to an active global role."""
        with tracer.start_as_current_span("db.has_global_role") as span:
            span.set_attribute("user_id", user_id)
            span.set_attribute("role.name", role_name)

            row = (
                db.query(UserRole.id)
                .join(Role, Role.id == UserRole.role_id)
                .filter(
                    UserRole.user_id == user_id,
                    *effective_filters(UserRole, now),
                    Role.name == role_name,
                    Role.organization_id.is_(None),
                    Role.status == Status.ACTIVE,
                )
                .first()
            )
        return row is not None

    @staticmethod
    def max_level(
        db: Session,
        user_id: int,
        now: datetime,
        organization_id: int | None = None,
        team_id: int | None = None,
    ) -> int:
        """
        Highest role level among the user's effective bindings.

        Global bindings always count. Organization and team bindings count
        only for the organization_id / team_id passed in. Memberships never
        count.
        """
        scopes = [(Scope.GLOBAL, None)]
        if organization_id is not None:
            scopes.append((Scope.ORGANIZATION, organization_id))
        if team_id is not None:
            scopes.append((Scope.TEAM, team_id))

        levels = []
        with tracer.start_as_current_span("db.max_role_level") as span:
            span.set_attribute("user_id", user_id)

            for scope, scope_id in scopes:
                model = BINDING_MODELS[scope]
                query = (
                    db.query(func.max(Role.level))
                    .select_from(model)
                    .join(Role, Role.id == model.role_id)
                    .filter(
                        model.user_id == user_id,
                        *effective_filters(model, now),
                        Role.status == Status.ACTIVE,
                    )
                )
                levels.append(_scoped_bindings(query, scope, model, scope_id).scalar())

        return max((level for level in levels if level is not None), default=0)
