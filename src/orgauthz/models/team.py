"""
Team model - a sub-group inside exactly one organization.

parent_team_id is a plain foreign key; the service layer keeps the parent
chain acyclic and inside one organization.
"""
from sqlalchemy import Column, String, Index

from orgauthz.db.database import Base
from orgauthz.models.base_model import int_pk, int_fk, status_column
from orgauthz.models.mixins import AuditMixin, SoftDeleteMixin


class Team(Base, AuditMixin, SoftDeleteMixin):
    __tablename__ = "teams"

    id = int_pk()
    organization_id = int_fk("organizations")
    parent_team_id = int_fk("teams", nullable=True, ondelete="SET NULL")

    name = Column(String(100), nullable=False)
    display_name = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)

    # 1: active, 0: disabled
    status = status_column()

    __table_args__ = (
        Index("ix_teams_org_parent", "organization_id", "parent_team_id"),
    )

    def __repr__(self):
        return f"<Team(id={self.id}, org={self.organization_id}, parent={self.parent_team_id})>"
