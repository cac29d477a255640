import logging
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for SQLAlchemy models
Base = declarative_base()


class Database:
    """
    Store handle owning the SQLAlchemy engine and session factory.

    Built once per application by the app factory and kept on app.state;
    repositories receive sessions from it instead of reaching for a
    module-level connection.
    """

    def __init__(self, url: str, engine: Engine | None = None):
        self.url = url
        self.engine = engine or build_engine(url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_db(self) -> bool:
        """
        Create all tables.

        A failure is logged and reported as False instead of raised, so the
        service keeps starting up and serves requests that fail until the
        store becomes reachable.
        """
        logger.debug(f"Initializing database with URL: {self.url}")
        try:
            # Import models to register them with Base.metadata
            from vendecasas import models  # noqa: F401

            Base.metadata.create_all(bind=self.engine)
            logger.info("Database initialized successfully")
            return True
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            return False

    def check_health(self) -> bool:
        """
        Check if the store is reachable and the listings table exists.

        Returns:
            True if DB is healthy and schema exists, False otherwise.
        """
        logger.debug("Checking database health...")
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                if not inspect(conn).has_table("propiedades"):
                    logger.error("Database schema not applied: 'propiedades' table not found")
                    return False
            logger.debug("Database health check passed")
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connections released")


def build_engine(url: str) -> Engine:
    """Create an engine, applying the SQLite-specific settings when needed."""
    if url.startswith("sqlite"):
        # check_same_thread=False is required for SQLite to work with FastAPI's async
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Share the single in-memory database across sessions
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
