"""Database session management."""

from typing import Generator

from sqlalchemy.orm import Session

from donvie_api.config.env import get_database_url
from donvie_api.db.engine import build_engine, build_sessionmaker

# Production fail-fast: get_database_url() raises when DATABASE_URL is unset in prod
DATABASE_URL = get_database_url()

engine = build_engine(DATABASE_URL)

SessionLocal = build_sessionmaker(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Session: SQLAlchemy session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
