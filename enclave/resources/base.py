"""Helpers shared by the resource modules."""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from enclave.errors import NotFound, StoreError, ValidationFailed

logger = logging.getLogger(__name__)


def commit(session, what: str = "record"):
    """Commit the session, translating store failures into request errors."""
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning("Constraint violation saving %s: %s", what, e.orig)
        raise ValidationFailed(f"Could not save {what}: {e.orig}") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Store error saving %s: %s", what, e)
        raise StoreError(f"Could not save {what}: {e}") from e


def get_or_404(session, record_cls, record_id, what: str = None):
    """Load a record by primary key or raise NotFound."""
    record = session.get(record_cls, record_id) if record_id is not None else None
    if record is None:
        raise NotFound(f"{what or record_cls.__name__.replace('Record', '')} not found")
    return record


def checkbox(value) -> bool:
    """Interpret an HTML checkbox / form flag."""
    if isinstance(value, bool):
        return value
    return str(value or "").lower() in ("on", "true", "1", "yes")


def blank_to_none(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def int_or_none(value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
