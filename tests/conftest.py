# tests/conftest.py
import pytest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orgauthz.db.database import Base
from orgauthz.models.permission import Permission
from orgauthz.services.seed_service import seed_system

# Import models so metadata knows about all tables
import orgauthz.models  # noqa: F401


@pytest.fixture(scope="session")
def engine():
    """Create an in-memory SQLite database shared across tests.

    StaticPool keeps a single connection so TestClient worker threads see
    the same database as the test itself.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_db(engine):
    """Reset all tables before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db(engine):
    """Return a new SQLAlchemy session for each test."""
    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded(db):
    """Seed the system permission catalogue and roles; returns roles by name."""
    return seed_system(db)


@pytest.fixture
def permission_ids(db, seeded):
    """Map of permission name -> id for the seeded catalogue."""
    return {p.name: p.id for p in db.query(Permission).all()}
