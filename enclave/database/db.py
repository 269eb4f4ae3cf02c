"""SQLAlchemy database setup and session management."""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from enclave.config import load_settings

logger = logging.getLogger(__name__)

DATABASE_URL = load_settings().database_url


def make_engine(url: str):
    """Create an engine; in-memory SQLite shares one connection."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine)


def validate_schema():
    """
    Validate that the database schema matches the SQLAlchemy models.

    Returns a list of discrepancies (empty list if schema is valid).
    Each discrepancy is a dict with 'type', 'table', and 'message' keys.
    """
    from .schema import Base

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    discrepancies = []

    for table_name, table in Base.metadata.tables.items():
        if table_name not in existing_tables:
            discrepancies.append({
                'type': 'missing_table',
                'table': table_name,
                'message': f"Table '{table_name}' is missing from database"
            })
            continue

        actual_columns = {col['name'] for col in inspector.get_columns(table_name)}
        for col in table.columns:
            if col.name not in actual_columns:
                discrepancies.append({
                    'type': 'missing_column',
                    'table': table_name,
                    'column': col.name,
                    'message': f"Column '{table_name}.{col.name}' ({col.type}) is missing from database"
                })

    return discrepancies


def init_db():
    """Initialize the database, creating all tables."""
    from .schema import Base
    Base.metadata.create_all(engine)

    for disc in validate_schema():
        logger.warning("Schema mismatch: %s", disc['message'])


def get_session() -> Session:
    """Get a new database session."""
    return SessionLocal()


@contextmanager
def session_scope():
    """Provide a transactional scope around a series of operations."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
