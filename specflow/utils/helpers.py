"""Shared service helpers.

get_or_raise:       primary-key fetch that raises NotFoundError
storage_operation:  wraps a unit of work; rollback + StorageError on driver failure
parse_int_arg:      query-string integer parsing for the blueprints
"""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from specflow.core.exceptions import NotFoundError, StorageError, ValidationError
from specflow.models import db

logger = logging.getLogger(__name__)


def get_or_raise(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    label = label or model.__name__
    try:
        obj = db.session.get(model, pk)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error loading %s id=%s", label, pk)
        raise StorageError(f"load {label}", exc) from exc
    if obj is None:
        raise NotFoundError(resource=label, resource_id=pk)
    return obj


@contextmanager
def storage_operation(operation: str):
    """Run a unit of work against the session.

    Usage::

        with storage_operation("update document"):
            db.session.add(rev)
            db.session.flush()
            ...
            db.session.commit()

    Domain exceptions raised inside the block roll the session back and
    propagate unchanged. SQLAlchemyError rolls back and is re-raised as
    StorageError with the driver exception on ``__cause__``.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error during %s", operation)
        raise StorageError(operation, exc) from exc
    except Exception:
        db.session.rollback()
        raise


def parse_int_arg(raw, name: str, *, default=None, minimum=None):
    """Parse an integer request argument, raising ValidationError on bad input."""
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"{name} must be an integer", details={name: raw},
        ) from exc
    if minimum is not None and value < minimum:
        raise ValidationError(
            f"{name} must be >= {minimum}", details={name: value},
        )
    return value
