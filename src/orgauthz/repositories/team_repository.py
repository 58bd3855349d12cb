# src/orgauthz/repositories/team_repository.py

from __future__ import annotations

from sqlalchemy.orm import Session

from orgauthz.models.base_model import Status
from orgauthz.models.team import Team
from orgauthz.utils.time_utils import utcnow


class TeamRepository:

    @staticmethod
    def create(
        db: Session,
        *,
        organization_id: int,
        name: str,
        parent_team_id: int | None = None,
        display_name: str | None = None,
        description: str | None = None,
        created_by: int | None = None,
    ) -> Team:
        team = Team(
            organization_id=organization_id,
            parent_team_id=parent_team_id,
            name=name,
            display_name=display_name or name,
            description=description,
            status=Status.ACTIVE,
            created_by_user_id=created_by,
        )
        db.add(team)
        db.flush()
        return team

    @staticmethod
    def get_by_id(db: Session, team_id: int, include_deleted: bool = False) -> Team | None:
        query = db.query(Team).filter(Team.id == team_id)
        if not include_deleted:
            query = query.filter(Team.deleted_at.is_(None))
        return query.first()

    @staticmethod
    def list_for_organization(db: Session, organization_id: int) -> list[Team]:
        return (
            db.query(Team)
            .filter(Team.organization_id == organization_id, Team.deleted_at.is_(None))
            .order_by(Team.id)
            .all()
        )

    @staticmethod
    def list_children(db: Session, team_id: int) -> list[Team]:
        return (
            db.query(Team)
            .filter(Team.parent_team_id == team_id, Team.deleted_at.is_(None))
            .order_by(Team.id)
            .all()
        )

    @staticmethod
    def update(db: Session, team: Team, **kwargs) -> Team:
        for key, value in kwargs.items():
            if hasattr(team, key):
                setattr(team, key, value)
        db.flush()
        return team

    @staticmethod
    def soft_delete(db: Session, team: Team, deleted_by: int | None = None) -> Team:
        team.deleted_at = utcnow()
        team.status = Status.DISABLED
        team.updated_by_user_id = deleted_by
        db.flush()
        return team
