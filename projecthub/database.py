"""
Database Configuration and Session Management

The engine and session factory live on a Database object that is built
once at startup, stored on app.state and disposed at shutdown. Request
handlers get their session through the get_db dependency, never from a
module-level global.
"""
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import QueuePool
import logging

from projecthub.config import Settings

logger = logging.getLogger(__name__)

# Base class for all models
Base = declarative_base()


class Database:
    """
    Storage context shared by all requests of one application instance.

    expire_on_commit=False lets handlers serialize objects after commit
    without another round trip.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the pooled engine described by settings."""
        if settings.DATABASE_URL.startswith("sqlite"):
            engine = create_engine(
                settings.DATABASE_URL,
                connect_args={"check_same_thread": False},
                echo=settings.DEBUG,
            )
        else:
            engine = create_engine(
                settings.DATABASE_URL,
                poolclass=QueuePool,
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_MAX_OVERFLOW,
                pool_pre_ping=True,
                echo=settings.DEBUG,
            )

        if settings.DATABASE_URL.startswith("postgresql"):
            @event.listens_for(engine, "connect")
            def set_utc_timezone(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("SET TIME ZONE 'UTC'")
                cursor.close()
                logger.debug("New database connection established")

        return cls(engine)

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        """
        Create all tables.

        Dev/test convenience only; production schemas are managed outside
        the application.
        """
        # Models must be imported so their tables are registered on Base
        import projecthub.models  # noqa: F401

        logger.warning("Creating database tables - do not rely on this in production")
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency function that provides a database session.

    The session is closed after the request completes. Transactions are
    committed or rolled back by the service code that opened them.
    """
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
