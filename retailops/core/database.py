"""
RetailOps Database Configuration
SQLAlchemy engine, session factory and unit-of-work helpers
"""
from contextlib import contextmanager
from typing import Generator, Iterator
import logging

from sqlalchemy import create_engine, MetaData, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from .config import settings
from .exceptions import StateConflict, ValidationError

logger = logging.getLogger(__name__)

# SQLSTATE 23505; SQLite has no codes and reports the constraint kind in the message
UNIQUE_VIOLATION = "23505"


def _engine_options(url: str) -> dict:
    """Connection pool options; SQLite uses the dialect defaults"""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_pre_ping": True,
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


class Base(DeclarativeBase):
    """Declarative base with a constraint naming convention"""

    metadata = MetaData(naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s"
    })


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the integrity error is a duplicate key rather than bad data"""
    pgcode = getattr(error.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode == UNIQUE_VIOLATION
    message = str(error.orig).upper()
    return "UNIQUE CONSTRAINT" in message or "DUPLICATE KEY" in message


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Run a block of writes as one transaction.

    Commits when the block exits normally. Any exception rolls back every
    write made in the block. Lost optimistic-concurrency races and unique
    key races are reported as StateConflict; other constraint violations
    (CHECK, NOT NULL, foreign keys) come from bad input and are reported as
    ValidationError.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification detected: {e}")
        raise StateConflict(
            "The record was modified by another request; reload and retry"
        ) from e
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            logger.warning(f"Integrity conflict: {e.orig}")
            raise StateConflict(
                "A conflicting record was written by another request; reload and retry"
            ) from e
        logger.warning(f"Constraint violation: {e.orig}")
        raise ValidationError(
            "The data violates a database constraint",
            {"constraint": str(e.orig)},
        ) from e
    except Exception:
        db.rollback()
        raise


def init_db(bind=None):
    """
    Initialize database tables

    This function creates all tables defined in models
    """
    try:
        # Import all models to ensure they are registered with Base
        from retailops import models  # noqa: F401

        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is working

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
