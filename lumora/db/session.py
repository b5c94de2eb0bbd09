"""
Database session management. SQLAlchemy 2.x style.
"""

from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from lumora.config import get_settings

settings = get_settings()


def _connect_args(url: str) -> dict:
    """PostgreSQL gets a connect timeout and UTC session timezone; other dialects none."""
    if url.startswith("postgresql"):
        return {
            "connect_timeout": settings.db_connect_timeout,
            "options": "-c timezone=UTC",
        }
    return {}


_pool_kwargs = (
    {"pool_size": 5, "max_overflow": 10}
    if settings.database_url.startswith("postgresql")
    else {}
)

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.debug,
    connect_args=_connect_args(settings.database_url),
    **_pool_kwargs,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


def check_db_connection() -> None:
    """
    Verify database connectivity. Raises if unreachable.
    Call during application startup.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
