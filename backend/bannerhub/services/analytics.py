"""Engagement counters.

Each increment is one ``UPDATE ... SET col = col + 1`` evaluated by the
database, so concurrent callers never lose updates and need no locking.
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from bannerhub.core.errors import NotFound, ValidationError
from bannerhub.core.timeutils import to_naive_utc, utcnow
from bannerhub.models.banner import Banner
from bannerhub.services import store


def _increment(db: Session, banner_id: Any, column, action: str, **extra) -> int:
    bid = store.parse_banner_id(banner_id)
    stmt = (
        update(Banner)
        .where(Banner.id == bid)
        .values({column.key: column + 1, **extra})
        .returning(column)
        .execution_options(synchronize_session=False)
    )
    value = store.run(db, action, lambda: db.execute(stmt).scalar_one_or_none())
    if value is None:
        db.rollback()
        raise NotFound()
    store.commit(db, action)
    return value


def increment_view(db: Session, banner_id: Any) -> int:
    return _increment(db, banner_id, Banner.views, "track banner view", last_viewed=utcnow())


def increment_click(db: Session, banner_id: Any) -> int:
    return _increment(db, banner_id, Banner.clicks, "track banner click")


def increment_conversion(db: Session, banner_id: Any) -> int:
    return _increment(db, banner_id, Banner.conversions, "track banner conversion")


def ctr(views: int, clicks: int) -> float:
    if not views:
        return 0
    return round(clicks / views * 100, 2)


def conversion_rate(clicks: int, conversions: int) -> float:
    if not clicks:
        return 0
    return round(conversions / clicks * 100, 2)


def get_analytics(db: Session, banner_id: Any, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> dict:
    """Lifetime counters with derived rates; the optional period is echoed back."""
    bid = store.parse_banner_id(banner_id)
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate")
    banner = store.get_banner_or_404(db, bid)
    return {
        "bannerId": banner.id,
        "externalId": banner.external_id,
        "bannerTitle": banner.title,
        "totalViews": banner.views,
        "totalClicks": banner.clicks,
        "totalConversions": banner.conversions,
        "clickThroughRate": ctr(banner.views, banner.clicks),
        "conversionRate": conversion_rate(banner.clicks, banner.conversions),
        "lastViewed": banner.last_viewed,
        "isActive": banner.is_active,
        "isPublished": banner.is_published,
        "priority": banner.priority,
        "period": {"startDate": start_date, "endDate": end_date},
    }
