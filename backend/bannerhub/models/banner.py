from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text, JSON, Index, func, true

from bannerhub.core.timeutils import utcnow
from bannerhub.models.base import Base

BANNER_TYPES = ("reward", "promotion", "announcement", "seasonal")
REWARD_TYPES = ("welcome", "birthday", "loyalty", "seasonal", "custom")
APPROVAL_STATUSES = ("draft", "pending_approval", "approved", "rejected")

ACTIVE_PRIORITY_INDEX = "uq_banners_active_priority"
SLUG_INDEX = "uq_banners_slug"


class Banner(Base):
    __tablename__ = "banners"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(String(64), nullable=False, unique=True)
    title = Column(String(100), nullable=False)
    detail = Column(Text, nullable=False)

    # image
    image_url = Column(Text, nullable=False)
    image_storage_ref = Column(String(255), nullable=True)
    image_alt_text = Column(String(255), nullable=True)

    # unique only among active banners, see ACTIVE_PRIORITY_INDEX below
    priority = Column(Integer, nullable=False)
    text_position_x = Column(Float, nullable=False, default=20)
    text_position_y = Column(Float, nullable=False, default=20)

    is_active = Column(Boolean, nullable=False, default=True)
    is_published = Column(Boolean, nullable=False, default=False)
    banner_type = Column(String(32), nullable=False, default="reward")  # reward | promotion | announcement | seasonal

    # display settings
    show_on_mobile = Column(Boolean, nullable=False, default=True)
    show_on_desktop = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    # reward details
    reward_type = Column(String(32), nullable=False, default="welcome")
    discount_percentage = Column(Float, nullable=True)
    discount_amount = Column(Float, nullable=True)
    min_order_value = Column(Float, nullable=False, default=0)
    max_discount_amount = Column(Float, nullable=True)
    validity_days = Column(Integer, nullable=False, default=30)
    is_stackable = Column(Boolean, nullable=False, default=False)

    # analytics: only ever changed through atomic increments
    views = Column(Integer, nullable=False, default=0, server_default="0")
    clicks = Column(Integer, nullable=False, default=0, server_default="0")
    conversions = Column(Integer, nullable=False, default=0, server_default="0")
    last_viewed = Column(DateTime, nullable=True)

    # seo
    meta_title = Column(String(60), nullable=True)
    meta_description = Column(String(160), nullable=True)
    slug = Column(String(255), nullable=False)

    approval_status = Column(String(32), nullable=False, default="draft")  # draft | pending_approval | approved | rejected
    approved_by = Column(String(64), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    tags = Column(JSON, nullable=False, default=list)

    created_by = Column(String(64), nullable=False)
    updated_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index(SLUG_INDEX, "slug", unique=True),
        Index("ix_banners_type_active", "banner_type", "is_active"),
        Index("ix_banners_window", "start_date", "end_date"),
        Index("ix_banners_approval_status", "approval_status"),
        Index("ix_banners_created_at", "created_at"),
    )


# The database, not a point-in-time read, guarantees priority uniqueness among active banners.
Index(
    ACTIVE_PRIORITY_INDEX,
    Banner.priority,
    unique=True,
    postgresql_where=Banner.is_active == true(),
    sqlite_where=Banner.is_active == true(),
)
