"""
Database engine and session management.

Provides the SQLAlchemy engine, the session factory used per request and the
declarative Base shared by all ORM models.
"""

import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./taskmanagement.db")


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.

    SQLite ships with foreign keys disabled, which would silently skip the
    ON DELETE CASCADE / RESTRICT rules declared on the models.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding one session (one unit of work) per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
