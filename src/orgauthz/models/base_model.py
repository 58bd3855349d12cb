"""Standard column definitions and status codes for consistency."""
import enum

from sqlalchemy import Column, ForeignKey, Integer, SmallInteger


class Status(enum.IntEnum):
    """Status of organizations, teams, roles and permissions."""
    DISABLED = 0
    ACTIVE = 1


def int_pk():
    return Column(Integer, primary_key=True, autoincrement=True)


def int_fk(table: str, nullable: bool = False, ondelete: str = "CASCADE"):
    return Column(
        Integer,
        ForeignKey(f"{table}.id", ondelete=ondelete),
        nullable=nullable,
        index=True
    )


def status_column(default: int = Status.ACTIVE):
    return Column(SmallInteger, nullable=False, default=int(default), server_default=str(int(default)))
