import logging

import uvicorn

from orgauthz.db.database import SessionLocal, init_db
from orgauthz.logging_config import configure_logging
from orgauthz.services.seed_service import seed_system

logger = logging.getLogger(__name__)


def main():
    uvicorn.run(
        "orgauthz.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )


def seed():
    """Create tables, then seed the system permissions and roles."""
    configure_logging()
    init_db()

    db = SessionLocal()
    try:
        roles = seed_system(db)
        logger.info(f"System roles ready: {', '.join(sorted(roles))}")
    finally:
        db.close()
