import logging
from typing import Generator

from fastapi import Depends
from sqlalchemy import create_engine, func, inspect, text
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from app.config import settings

logger = logging.getLogger(__name__)

MESSAGES_TABLE = "Messages"


def _connect_args(database_url: str) -> dict:
    # SQLite connections are shared with FastAPI's worker threads
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    echo=settings.DB_ECHO,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class StorageError(Exception):
    """Raised when a message cannot be persisted."""


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {engine.url!r}")
    try:
        # Import models to register them with Base.metadata
        from app.models import Message  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and the Messages table exists.

    Returns:
        True if DB is healthy and schema exists, False otherwise.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            if not inspect(conn).has_table(MESSAGES_TABLE):
                logger.error(f"Database schema not applied: '{MESSAGES_TABLE}' table not found")
                return False
        logger.debug("Database health check passed")
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Message Store
# =============================================================================

class MessageStore:
    """
    Write access to the Messages table through one database session.

    Ids come from the database's autoincrement, so concurrent writers using
    separate sessions never receive the same id.
    """

    def __init__(self, db: Session):
        self.db = db

    def insert(self, message) -> int:
        """
        Persist a message and return its generated id.

        The insert is committed as a single transaction; on failure it is
        rolled back and StorageError is raised with the original cause.
        """
        try:
            self.db.add(message)
            self.db.commit()
            self.db.refresh(message)
        except Exception as e:
            self.db.rollback()
            raise StorageError(f"Failed to insert message: {e}") from e

        logger.debug(f"Message inserted with id {message.id}")
        return message.id

    def get(self, message_id: int):
        """Look up a stored message by id, or None."""
        from app.models import Message

        return self.db.get(Message, message_id)

    def count(self) -> int:
        from app.models import Message

        return self.db.query(func.count(Message.id)).scalar() or 0


def get_store(db: Session = Depends(get_db)) -> MessageStore:
    """Dependency providing a request scoped MessageStore."""
    return MessageStore(db)
