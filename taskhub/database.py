import logging
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from taskhub.config import settings
from taskhub.exceptions import ConflictError, InternalError

logger = logging.getLogger("taskhub.database")

# Default to a local SQLite database if no DATABASE_URL is provided or usable
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(BASE_DIR, ".."))
DEFAULT_DB_PATH = os.path.join(PROJECT_ROOT, "taskhub.db")


def _build_engine():
    """Create the SQLAlchemy engine, preferring the configured DATABASE_URL."""
    database_url = settings.DATABASE_URL or None

    if database_url:
        try:
            engine = create_engine(database_url, pool_pre_ping=True)
            # Ensure the target database is reachable; otherwise fall back to SQLite
            with engine.connect():
                pass
            return engine
        except (ModuleNotFoundError, SQLAlchemyError) as exc:
            logger.warning("DATABASE_URL unusable (%s); falling back to SQLite at %s", exc, DEFAULT_DB_PATH)

    sqlite_url = f"sqlite:///{DEFAULT_DB_PATH}"
    return create_engine(sqlite_url, connect_args={"check_same_thread": False})


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for the models
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit(db: Session, action: str, conflict_message: Optional[str] = None) -> None:
    """Commit the session, translating store failures into API errors.

    Integrity violations become a ``ConflictError`` when ``conflict_message`` is
    given (e.g. two concurrent requests adding the same member). Anything else
    rolls back and surfaces as ``InternalError``; nothing is half-applied.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if conflict_message is not None:
            logger.info("Integrity conflict during %s: %s", action, exc.orig)
            raise ConflictError(conflict_message) from exc
        logger.exception("Integrity error during %s", action)
        raise InternalError(f"Server error during {action}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Store failure during %s", action)
        raise InternalError(f"Server error during {action}") from exc
