from datetime import timedelta
import logging

from bannerhub.core.timeutils import utcnow
from bannerhub.db.session import engine, SessionLocal
from bannerhub.models import banner  # noqa: F401
from bannerhub.models.base import Base
from bannerhub.models.banner import Banner

logger = logging.getLogger(__name__)

SEED_ACTOR = "seed"

def create_tables():
    # Dev/test convenience; deployments apply Alembic migrations instead.
    Base.metadata.create_all(bind=engine)

def seed_demo_data():
    """Insert a few published demo banners when the table is empty (idempotent)."""
    from bannerhub.services import banners as banner_service
    from bannerhub.services import lifecycle

    db = SessionLocal()
    try:
        if db.query(Banner.id).first() is not None:
            return
        now = utcnow()
        demo = [
            {
                "title": "Welcome reward",
                "detail": "Get 10% off your first order.",
                "image": {"url": "https://example.com/banners/welcome.png"},
                "banner_type": "reward",
                "reward_details": {"reward_type": "welcome", "discount_percentage": 10},
            },
            {
                "title": "Seasonal sale",
                "detail": "Up to 30% off selected items this week.",
                "image": {"url": "https://example.com/banners/seasonal.png"},
                "banner_type": "seasonal",
                "display_settings": {"start_date": now, "end_date": now + timedelta(days=7)},
            },
        ]
        for payload in demo:
            created = banner_service.create_banner(db, payload, actor=SEED_ACTOR)
            lifecycle.publish(db, created.id, actor=SEED_ACTOR)
        logger.info("Seeded %d demo banners", len(demo))
    finally:
        db.close()
