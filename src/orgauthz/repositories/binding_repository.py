# src/orgauthz/repositories/binding_repository.py

"""
Role binding data access, one code path for the three binding tables.
"""

from __future__ import annotations

import logging
from datetime import datetime

from opentelemetry import trace
from sqlalchemy import or_
from sqlalchemy.orm import Session

from orgauthz.models.role_binding import BINDING_MODELS, SCOPE_COLUMNS, Scope

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _scope_filters(model, scope: Scope, scope_id: int | None) -> list:
    column = SCOPE_COLUMNS[scope]
    if column is None:
        return []
    return [getattr(model, column) == scope_id]


def effective_filters(model, now: datetime) -> list:
    """Filters selecting bindings that are active and not past their expiry."""
    return [
        model.is_active.is_(True),
        or_(model.expires_at.is_(None), model.expires_at > now),
    ]


class BindingRepository:
    """
    Data access for UserRole, OrganizationRole and TeamRole.

    ``scope_id`` is the organization id or team id; ignored for global scope.
    """

    @staticmethod
    def get(db: Session, scope: Scope, user_id: int, role_id: int, scope_id: int | None = None):
        """Fetch the row for a (user, role, scope-instance) triple, effective or not."""
        model = BINDING_MODELS[scope]
        return (
            db.query(model)
            .filter(
                model.user_id == user_id,
                model.role_id == role_id,
                *_scope_filters(model, scope, scope_id),
            )
            .first()
        )

    @staticmethod
    def create(
        db: Session,
        scope: Scope,
        *,
        user_id: int,
        role_id: int,
        scope_id: int | None = None,
        assigned_by: int | None = None,
        expires_at: datetime | None = None,
    ):
        model = BINDING_MODELS[scope]
        values = dict(
            user_id=user_id,
            role_id=role_id,
            assigned_by=assigned_by,
            expires_at=expires_at,
            is_active=True,
            created_by_user_id=assigned_by,
        )
        column = SCOPE_COLUMNS[scope]
        if column is not None:
            values[column] = scope_id

        binding = model(**values)

        with tracer.start_as_current_span("db.create_role_binding") as span:
            span.set_attribute("binding.scope", scope.value)
            span.set_attribute("user_id", user_id)
            span.set_attribute("role.id", role_id)

            db.add(binding)
            db.flush()

        return binding

    @staticmethod
    def reactivate(
        db: Session,
        binding,
        *,
        assigned_by: int | None = None,
        expires_at: datetime | None = None,
    ):
        """Turn a stale row back on with fresh assignment data."""
        binding.is_active = True
        binding.expires_at = expires_at
        binding.assigned_by = assigned_by
        binding.updated_by_user_id = assigned_by
        db.flush()
        return binding

    @staticmethod
    def delete(db: Session, scope: Scope, user_id: int, role_id: int, scope_id: int | None = None) -> int:
        model = BINDING_MODELS[scope]

        with tracer.start_as_current_span("db.delete_role_binding") as span:
            span.set_attribute("binding.scope", scope.value)
            span.set_attribute("user_id", user_id)
            span.set_attribute("role.id", role_id)

            removed = (
                db.query(model)
                .filter(
                    model.user_id == user_id,
                    model.role_id == role_id,
                    *_scope_filters(model, scope, scope_id),
                )
                .delete(synchronize_session="fetch")
            )
            db.flush()

        return removed

    @staticmethod
    def list_effective(
        db: Session,
        scope: Scope,
        user_id: int,
        now: datetime,
        scope_id: int | None = None,
    ) -> list:
        """
        Effective bindings of a user at one scope.

        For organization and team scope, scope_id None lists the bindings of
        every instance.
        """
        model = BINDING_MODELS[scope]
        query = db.query(model).filter(model.user_id == user_id, *effective_filters(model, now))
        if scope_id is not None:
            query = query.filter(*_scope_filters(model, scope, scope_id))
        return query.order_by(model.id).all()

    @staticmethod
    def list_for_role(db: Session, role_id: int) -> list:
        """Every binding row of a role at any scope, effective or not."""
        rows = []
        for model in BINDING_MODELS.values():
            rows.extend(db.query(model).filter(model.role_id == role_id).order_by(model.id).all())
        return rows

    @staticmethod
    def count_for_role(db: Session, role_id: int) -> int:
        return sum(
            db.query(model).filter(model.role_id == role_id).count()
            for model in BINDING_MODELS.values()
        )
