"""
Database Configuration Module

Rate cards, seller overrides and partner configuration are owned by the
storage collaborator. This module only wires a SQLAlchemy engine/session for
them, built from DATABASE_URL.

Connection Pooling Strategy:
- PostgreSQL: pool_size=10, max_overflow=10, pre-ping, 30 min recycle
- SQLite (local/dev): default pool, check_same_thread disabled
"""

from datetime import datetime
import uuid as uuid
from pytz import timezone

from sqlalchemy import Column, TIMESTAMP, Boolean, Integer, Uuid, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

import config
from logger import logging


# ============================================
# ENGINE CONFIGURATION
# ============================================


def build_engine(database_url: str = None):
    database_url = database_url or config.DATABASE_URL

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_engine(
        database_url,
        pool_size=10,
        max_overflow=10,
        pool_timeout=30,
        pool_pre_ping=True,
        pool_recycle=1800,
        echo=False,
    )


db_engine = build_engine()

SessionLocal = sessionmaker(
    autoflush=False,  # Manual flush for better control
    bind=db_engine,
    expire_on_commit=False,  # Prevent attribute expiration on commit
)

UTC = timezone("UTC")


def time_now():
    """Get current UTC time"""
    return datetime.now(UTC)


# ============================================
# DECLARATIVE BASE
# ============================================

DBBase = declarative_base()


def init_models(engine=None):
    """Create all tables known to the declarative base."""
    import models  # noqa: F401  (register tables)

    DBBase.metadata.create_all(bind=engine or db_engine)


# ============================================
# SESSION MANAGEMENT
# ============================================


def get_db():
    """
    Generator function for database session dependency injection.

    Handles:
    - Session creation
    - Automatic commit on success
    - Rollback on error or when the request flagged a rollback
    - Session cleanup
    """
    from context_manager.context import context_set_db_session_rollback

    db: Session = SessionLocal()
    try:
        logging.debug("DB session created")
        yield db

        if context_set_db_session_rollback.get():
            logging.debug("Rolling back DB session")
            db.rollback()
        else:
            logging.debug("Committing DB session")
            db.commit()

    except Exception as e:
        logging.error(f"DB session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


# ============================================
# BASE MODEL CLASS
# ============================================


class DBBaseClass:
    """
    Base class for all database models.

    Provides:
    - Auto-incrementing primary key (id)
    - UUID for external references
    - Created/updated timestamps
    - is_deleted flag, hidden from every repository query
    """

    id = Column(Integer, primary_key=True, unique=True, autoincrement=True)

    uuid = Column(Uuid(as_uuid=True), default=uuid.uuid4, unique=True, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=time_now, nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=time_now,
        onupdate=time_now,
        nullable=False,
    )

    is_deleted = Column(Boolean, default=False, index=True)
