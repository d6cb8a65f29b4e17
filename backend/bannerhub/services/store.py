"""Commit and lookup helpers shared by the banner services.

Store failures are translated here: a unique-index violation on the active
priority index becomes ``PriorityConflict``; anything else the database raises
is rolled back, logged and surfaced as ``PersistenceError``.
"""
import logging
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bannerhub.core.errors import InvalidArgument, NotFound, PersistenceError, PriorityConflict
from bannerhub.models.banner import ACTIVE_PRIORITY_INDEX, SLUG_INDEX, Banner

logger = logging.getLogger(__name__)

# SQLite reports the column list, Postgres the index name
_PRIORITY_MARKERS = (ACTIVE_PRIORITY_INDEX, "banners.priority")
_SLUG_MARKERS = (SLUG_INDEX, "banners.slug")


class SlugTaken(Exception):
    """Raised when a concurrent writer claimed the same slug; callers regenerate it."""


def parse_banner_id(value: Any) -> int:
    """Validate the shape of a banner id before any store access."""
    if isinstance(value, bool):
        raise InvalidArgument(details={"id": value})
    if isinstance(value, int):
        if value > 0:
            return value
        raise InvalidArgument(details={"id": value})
    if isinstance(value, str):
        s = value.strip()
        if s.isascii() and s.isdigit() and int(s) > 0:
            return int(s)
    raise InvalidArgument(details={"id": value})


def get_banner_or_404(db: Session, banner_id: Any) -> Banner:
    bid = parse_banner_id(banner_id)
    try:
        banner = db.get(Banner, bid)
    except SQLAlchemyError as exc:
        raise _persistence_failure(db, exc, "load banner")
    if banner is None:
        raise NotFound()
    return banner


def is_priority_violation(exc: IntegrityError) -> bool:
    msg = str(exc.orig)
    return any(m in msg for m in _PRIORITY_MARKERS)


def commit(db: Session, action: str, priority: Optional[int] = None) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_priority_violation(exc):
            logger.info("Priority conflict during %s (priority=%s)", action, priority)
            raise PriorityConflict(priority)
        if any(m in str(exc.orig) for m in _SLUG_MARKERS):
            raise SlugTaken()
        logger.exception("Integrity error during %s", action)
        raise PersistenceError(f"Failed to {action}")
    except SQLAlchemyError as exc:
        raise _persistence_failure(db, exc, action)


def run(db: Session, action: str, fn, *args, **kwargs):
    """Execute a store call, translating driver failures (timeouts included)."""
    try:
        return fn(*args, **kwargs)
    except IntegrityError as exc:
        db.rollback()
        if is_priority_violation(exc):
            raise PriorityConflict()
        logger.exception("Integrity error during %s", action)
        raise PersistenceError(f"Failed to {action}")
    except SQLAlchemyError as exc:
        raise _persistence_failure(db, exc, action)


def _persistence_failure(db: Session, exc: Exception, action: str) -> PersistenceError:
    db.rollback()
    logger.error("Store failure during %s", action, exc_info=exc)
    return PersistenceError(f"Failed to {action}")
