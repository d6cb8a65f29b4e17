"""Create, read, list and update banners.

Payloads arrive as the pydantic models from ``bannerhub.schemas.banner`` (dicts
are validated into them first), so every field is checked before the store is
touched. Nested objects on update are shallow-merged into the stored record.
"""
import logging
import math
import random
import re
import string
import time
import unicodedata
import uuid
from typing import Any, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from bannerhub.core.errors import PriorityConflict, ValidationError
from bannerhub.core.timeutils import utcnow
from bannerhub.models.banner import Banner
from bannerhub.schemas.banner import BannerCreate, BannerUpdate, BulkUpdateFields
from bannerhub.services import priority as priority_service
from bannerhub.services import store
from bannerhub.services.assets import AssetStore, PassthroughAssetStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

SORT_COLUMNS = {
    "priority": Banner.priority,
    "createdAt": Banner.created_at,
    "updatedAt": Banner.updated_at,
    "title": Banner.title,
    "bannerType": Banner.banner_type,
}
MAX_PAGE_SIZE = 100
_SLUG_ATTEMPTS = 5

# nested payload key -> {payload field: column}
NESTED_COLUMNS = {
    "text_position": {"x": "text_position_x", "y": "text_position_y"},
    "display_settings": {
        "show_on_mobile": "show_on_mobile",
        "show_on_desktop": "show_on_desktop",
        "start_date": "start_date",
        "end_date": "end_date",
    },
    "reward_details": {
        "reward_type": "reward_type",
        "discount_percentage": "discount_percentage",
        "discount_amount": "discount_amount",
        "min_order_value": "min_order_value",
        "max_discount_amount": "max_discount_amount",
        "validity_days": "validity_days",
        "is_stackable": "is_stackable",
    },
    "seo": {"meta_title": "meta_title", "meta_description": "meta_description"},
}


def placeholder_actor() -> str:
    return str(uuid.uuid4())


def resolve_actor(actor: Optional[str]) -> str:
    # Callers in a trusted context pass a real identity; otherwise a placeholder is generated.
    return actor or placeholder_actor()


def coerce(model: Type[M], payload: Any) -> M:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(details=exc.errors(include_url=False, include_context=False, include_input=False))


def generate_external_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"banner_{int(time.time() * 1000)}_{suffix}"


def slugify(text: str) -> str:
    slug = unicodedata.normalize("NFD", (text or "").lower().strip())
    slug = "".join(ch for ch in slug if unicodedata.category(ch) != "Mn")
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9\-]+", "", slug)
    slug = re.sub(r"\-+", "-", slug)
    return slug.strip("-")


def _unique_slug(db: Session, base: str) -> str:
    candidate = base
    counter = 1
    while store.run(db, "check slug", db.scalar, select(Banner.id).where(Banner.slug == candidate).limit(1)) is not None:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def _apply_nested(banner: Banner, data: dict) -> None:
    for key, columns in NESTED_COLUMNS.items():
        if key in data and data[key] is not None:
            for field, value in data[key].items():
                setattr(banner, columns[field], value)


def _check_window(db: Session, banner: Banner) -> None:
    if banner.start_date and banner.end_date and banner.start_date > banner.end_date:
        db.rollback()
        raise ValidationError("startDate must not be after endDate")


def create_banner(db: Session, payload: Any, actor: Optional[str] = None, assets: Optional[AssetStore] = None) -> Banner:
    data = coerce(BannerCreate, payload)
    actor = resolve_actor(actor)
    assets = assets or PassthroughAssetStore()

    priority = priority_service.assign_or_validate(db, data.priority)
    stored = assets.store(data.image.url, storage_ref=data.image.storage_ref)
    fields = data.model_dump(exclude_unset=True)
    external_id = generate_external_id()
    base_slug = slugify(data.title) or external_id

    for attempt in range(_SLUG_ATTEMPTS):
        banner = Banner(
            external_id=external_id,
            title=data.title,
            detail=data.detail,
            image_url=stored.url,
            image_storage_ref=stored.storage_ref,
            image_alt_text=data.image.alt_text or data.title,
            priority=priority,
            banner_type=data.banner_type,
            is_active=True,
            is_published=False,
            approval_status="draft",
            tags=data.tags or [],
            slug=_unique_slug(db, base_slug),
            created_by=actor,
            updated_by=actor,
        )
        _apply_nested(banner, fields)
        db.add(banner)
        try:
            store.commit(db, "create banner", priority=priority)
        except store.SlugTaken:
            logger.info("Slug %s claimed concurrently, retrying (%d)", banner.slug, attempt + 1)
            continue
        db.refresh(banner)
        logger.info("Created banner %s (priority=%s) by %s", banner.id, banner.priority, actor)
        return banner
    raise ValidationError("Could not allocate a unique slug", details={"title": data.title})


def get_banner(db: Session, banner_id: Any) -> Banner:
    return store.get_banner_or_404(db, banner_id)


def _search_clause(term: str):
    # LIKE wildcards in the term are matched literally
    cleaned = term.strip().lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{cleaned}%"
    columns = (Banner.title, Banner.detail, Banner.meta_title, Banner.meta_description, Banner.slug)
    return or_(*[func.lower(c).like(pattern, escape="\\") for c in columns])


def list_banners(
    db: Session,
    page: int = 1,
    limit: int = 10,
    sort_by: str = "priority",
    sort_order: str = "asc",
    banner_type: Optional[str] = None,
    is_active: Optional[bool] = None,
    is_published: Optional[bool] = None,
    approval_status: Optional[str] = None,
    search: Optional[str] = None,
) -> tuple[list[Banner], dict]:
    """Filtered, sorted page of banners plus pagination meta."""
    if page < 1:
        raise ValidationError("Page must be a positive integer")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    if sort_by not in SORT_COLUMNS:
        raise ValidationError("Sort by must be one of: " + ", ".join(SORT_COLUMNS))
    if sort_order not in ("asc", "desc"):
        raise ValidationError("Sort order must be either asc or desc")

    conditions = []
    if banner_type:
        conditions.append(Banner.banner_type == banner_type)
    if is_active is not None:
        conditions.append(Banner.is_active == is_active)
    if is_published is not None:
        conditions.append(Banner.is_published == is_published)
    if approval_status:
        conditions.append(Banner.approval_status == approval_status)
    if search and search.strip():
        conditions.append(_search_clause(search))

    column = SORT_COLUMNS[sort_by]
    ordering = column.desc() if sort_order == "desc" else column.asc()
    q = select(Banner).where(*conditions).order_by(ordering, Banner.id.asc())
    count_q = select(func.count(Banner.id)).where(*conditions)

    total = store.run(db, "count banners", db.scalar, count_q) or 0
    items = store.run(
        db,
        "list banners",
        lambda: db.execute(q.offset((page - 1) * limit).limit(limit)).scalars().all(),
    )
    total_pages = math.ceil(total / limit) if total else 0
    meta = {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "hasNextPage": page < total_pages,
        "hasPreviousPage": page > 1,
    }
    return list(items), meta


def update_banner(db: Session, banner_id: Any, payload: Any, actor: Optional[str] = None, assets: Optional[AssetStore] = None) -> Banner:
    bid = store.parse_banner_id(banner_id)
    data = coerce(BannerUpdate, payload)
    actor = resolve_actor(actor)
    banner = store.get_banner_or_404(db, bid)
    fields = data.model_dump(exclude_unset=True)

    becomes_active = fields.get("is_active", banner.is_active)
    new_priority = fields.get("priority")
    if becomes_active and (
        (new_priority is not None and new_priority != banner.priority) or not banner.is_active
    ):
        priority_service.assign_or_validate(db, new_priority or banner.priority, excluding_id=bid)

    for key in ("title", "detail", "banner_type", "tags", "is_active", "is_published"):
        if key in fields and fields[key] is not None:
            setattr(banner, key, fields[key])
    if new_priority is not None:
        banner.priority = new_priority
    if data.image is not None:
        stored = (assets or PassthroughAssetStore()).store(
            data.image.url, storage_ref=data.image.storage_ref or banner.image_storage_ref
        )
        banner.image_url = stored.url
        banner.image_storage_ref = stored.storage_ref
        banner.image_alt_text = data.image.alt_text or data.title or banner.image_alt_text
    # Nested objects merge into the stored values: only keys the caller sent are replaced.
    nested = {
        key: getattr(data, key).model_dump(exclude_unset=True)
        for key in NESTED_COLUMNS
        if getattr(data, key) is not None
    }
    _apply_nested(banner, nested)
    _check_window(db, banner)
    banner.updated_by = actor

    store.commit(db, "update banner", priority=banner.priority)
    db.refresh(banner)
    logger.info("Updated banner %s by %s (fields: %s)", bid, actor, ", ".join(sorted(fields)))
    return banner


def _check_reactivation(db: Session, ids: list[int]) -> None:
    """Banners switched back on keep their priority; it must still be free."""
    rows = store.run(
        db,
        "load banners for bulk update",
        lambda: db.execute(
            select(Banner.id, Banner.priority).where(Banner.id.in_(ids), Banner.is_active == False)  # noqa: E712
        ).all(),
    )
    seen: set[int] = set()
    for row in sorted(rows, key=lambda r: r.priority):
        if row.priority in seen:
            raise PriorityConflict(row.priority)
        seen.add(row.priority)
    taken = priority_service.first_taken(db, seen)
    if taken is not None:
        raise PriorityConflict(taken)


def bulk_update(db: Session, banner_ids: Iterable, updates: Any, actor: Optional[str] = None) -> dict:
    """Apply one partial update to many banners; reports matched/modified counts."""
    ids = []
    for raw in banner_ids:
        bid = store.parse_banner_id(raw)
        if bid not in ids:
            ids.append(bid)
    if not ids:
        raise ValidationError("Banner IDs array is required")
    fields = coerce(BulkUpdateFields, updates).model_dump(exclude_none=True)
    actor = resolve_actor(actor)
    if fields.get("is_active"):
        _check_reactivation(db, ids)

    differs = or_(*[getattr(Banner, k) != v for k, v in fields.items()])

    def _apply():
        matched = db.scalar(select(func.count(Banner.id)).where(Banner.id.in_(ids))) or 0
        result = db.execute(
            update(Banner)
            .where(Banner.id.in_(ids), differs)
            .values(**fields, updated_by=actor, updated_at=utcnow()),
            execution_options={"synchronize_session": False},
        )
        return matched, result.rowcount

    matched, modified = store.run(db, "bulk update banners", _apply)
    store.commit(db, "bulk update banners")
    logger.info("Bulk update by %s: matched=%d modified=%d fields=%s", actor, matched, modified, sorted(fields))
    return {"matchedCount": matched, "modifiedCount": modified}
