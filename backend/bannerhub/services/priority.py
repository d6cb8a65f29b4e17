"""Display-order priority among active banners.

The checks here are a fast path that produces a friendly error before any
write; the partial unique index ``uq_banners_active_priority`` remains the
authority when two writers race for the same value.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from bannerhub.core.errors import NotFound, PriorityConflict, ValidationError
from bannerhub.core.timeutils import utcnow
from bannerhub.models.banner import Banner
from bannerhub.services import store

logger = logging.getLogger(__name__)


def next_priority(db: Session) -> int:
    current = store.run(
        db,
        "compute next priority",
        db.scalar,
        select(func.max(Banner.priority)).where(Banner.is_active == True),  # noqa: E712
    )
    return (current or 0) + 1


def assign_or_validate(db: Session, requested: Optional[int] = None, excluding_id: Optional[int] = None) -> int:
    if requested is None:
        return next_priority(db)
    if requested < 1:
        raise ValidationError("Priority must be a positive integer", details={"priority": requested})
    q = select(Banner.id).where(Banner.priority == requested, Banner.is_active == True)  # noqa: E712
    if excluding_id is not None:
        q = q.where(Banner.id != excluding_id)
    holder = store.run(db, "check priority", db.scalar, q.limit(1))
    if holder is not None:
        raise PriorityConflict(requested)
    return requested


def first_taken(db: Session, priorities: Iterable[int], excluding_ids: Iterable[int] = ()) -> Optional[int]:
    """Lowest of ``priorities`` already held by an active banner outside ``excluding_ids``."""
    wanted = sorted(set(priorities))
    if not wanted:
        return None
    q = select(func.min(Banner.priority)).where(Banner.is_active == True, Banner.priority.in_(wanted))  # noqa: E712
    excluded = list(excluding_ids)
    if excluded:
        q = q.where(Banner.id.not_in(excluded))
    return store.run(db, "check priorities", db.scalar, q)


def bulk_reorder(db: Session, pairs: Iterable, actor: str) -> list[Banner]:
    """Reassign priorities for several banners as one transaction.

    ``pairs`` holds ``(id, priority)`` tuples or objects with ``id``/``priority``.
    Nothing is written unless every id is well formed and exists.
    """
    targets: dict[int, int] = {}
    for item in pairs:
        raw_id, priority = (item.id, item.priority) if hasattr(item, "priority") else item
        bid = store.parse_banner_id(raw_id)
        if isinstance(priority, bool) or not isinstance(priority, int) or priority < 1:
            raise ValidationError("Each priority item must have a valid priority number", details={"id": raw_id, "priority": priority})
        if bid in targets:
            raise ValidationError("Duplicate banner id in priorities", details={"id": bid})
        targets[bid] = priority
    if not targets:
        raise ValidationError("Priorities array is required")

    rows = store.run(
        db,
        "load banners for reorder",
        lambda: db.execute(select(Banner.id, Banner.is_active).where(Banner.id.in_(targets))).all(),
    )
    found = {r.id: r.is_active for r in rows}
    missing = [bid for bid in targets if bid not in found]
    if missing:
        raise NotFound("Banner not found", details={"missingIds": missing})

    seen: dict[int, int] = {}
    for bid, priority in targets.items():
        if not found[bid]:
            continue
        if priority in seen:
            raise PriorityConflict(priority, details={"ids": [seen[priority], bid]})
        seen[priority] = bid
    taken = first_taken(db, seen, excluding_ids=targets)
    if taken is not None:
        raise PriorityConflict(taken)

    now = utcnow()
    ids = list(targets)

    def _apply():
        # Stage every target on a negative placeholder first: row-by-row unique checks
        # would otherwise trip over values that are only being swapped.
        db.execute(
            update(Banner).where(Banner.id.in_(ids)).values(priority=-Banner.id),
            execution_options={"synchronize_session": False},
        )
        db.execute(
            update(Banner)
            .where(Banner.id.in_(ids))
            .values(
                priority=case(targets, value=Banner.id),
                updated_by=actor,
                updated_at=now,
            ),
            execution_options={"synchronize_session": False},
        )

    store.run(db, "reorder banners", _apply)
    store.commit(db, "reorder banners")
    logger.info("Reordered %d banners by %s", len(targets), actor)
    banners = store.run(
        db,
        "load reordered banners",
        lambda: db.execute(select(Banner).where(Banner.id.in_(ids)).order_by(Banner.priority.asc())).scalars().all(),
    )
    return list(banners)
