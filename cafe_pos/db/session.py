"""Database engine and session management."""

from collections.abc import Generator
from typing import Annotated, Any, Dict

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cafe_pos.core.config import settings


def build_engine(database_url: str, **overrides: Any) -> Engine:
    """Create an engine with the pooling and pragmas appropriate to the backend."""
    connect_args: Dict[str, Any] = {}
    pool_config: Dict[str, Any] = {}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    else:
        # PostgreSQL/MySQL connection pooling configuration
        pool_config = {
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
        }
    pool_config.update(overrides)

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=settings.sql_echo,
        **pool_config,
    )

    # Orders must never outlive their customer, so foreign keys are enforced on SQLite too
    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
