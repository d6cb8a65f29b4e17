"""Public display path: which banners are visible right now, and in which order."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from bannerhub.core.errors import BannerError, ValidationError
from bannerhub.core.timeutils import to_naive_utc, utcnow
from bannerhub.models.banner import BANNER_TYPES, Banner
from bannerhub.schemas.banner import serialize_banner
from bannerhub.services import analytics, store

logger = logging.getLogger(__name__)

MAX_PUBLIC_LIMIT = 50
DEVICES = {"mobile": Banner.show_on_mobile, "desktop": Banner.show_on_desktop}


def window_predicate(now: datetime):
    # Both bounds belong to the same conjunction; neither may replace the other.
    return and_(
        or_(Banner.start_date.is_(None), Banner.start_date <= now),
        or_(Banner.end_date.is_(None), Banner.end_date >= now),
    )


def get_active(
    db: Session,
    banner_type: Optional[str] = None,
    limit: Optional[int] = None,
    device: Optional[str] = None,
    now: Optional[datetime] = None,
) -> list[Banner]:
    """Snapshot of visible banners ordered by priority, newest first on ties."""
    if banner_type is not None and banner_type not in BANNER_TYPES:
        raise ValidationError("Banner type must be one of: " + ", ".join(BANNER_TYPES))
    if limit is not None and not 1 <= limit <= MAX_PUBLIC_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_PUBLIC_LIMIT}")
    if device is not None and device not in DEVICES:
        raise ValidationError("Device must be one of: " + ", ".join(DEVICES))
    now = to_naive_utc(now) or utcnow()

    q = select(Banner).where(
        Banner.is_active == True,  # noqa: E712
        Banner.is_published == True,  # noqa: E712
        window_predicate(now),
    )
    if banner_type:
        q = q.where(Banner.banner_type == banner_type)
    if device:
        q = q.where(DEVICES[device] == True)  # noqa: E712
    q = q.order_by(Banner.priority.asc(), Banner.created_at.desc(), Banner.id.desc())
    if limit:
        q = q.limit(limit)
    return list(store.run(db, "load active banners", lambda: db.execute(q).scalars().all()))


def serve_public_listing(
    db: Session,
    banner_type: Optional[str] = None,
    limit: Optional[int] = None,
    device: Optional[str] = None,
) -> list[dict]:
    """Serialize the active snapshot, then count one view per returned banner.

    Increments are independent: a failing one is logged and skipped.
    """
    banners = get_active(db, banner_type=banner_type, limit=limit, device=device)
    data = [serialize_banner(b) for b in banners]
    for item in data:
        try:
            analytics.increment_view(db, item["id"])
        except BannerError as exc:
            logger.warning("View increment skipped for banner %s: %s", item["id"], exc.message)
    return data
