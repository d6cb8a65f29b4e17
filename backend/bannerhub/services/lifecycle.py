"""Approval and publish lifecycle of a banner.

``approval_status`` moves draft -> pending_approval -> approved | rejected.
``is_published`` is a side effect that only ``publish`` ever sets to true.
"""
import logging
from typing import Any, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from bannerhub.core.errors import InvalidTransition, NotFound, ValidationError
from bannerhub.core.timeutils import utcnow
from bannerhub.models.banner import Banner
from bannerhub.services import store
from bannerhub.services.banners import resolve_actor

logger = logging.getLogger(__name__)

# action -> approval statuses it may start from
ALLOWED_FROM = {
    "submit": {"draft", "rejected"},
    "publish": {"draft", "pending_approval", "approved"},
    "reject": {"draft", "pending_approval", "approved"},
}


def _guard(banner: Banner, action: str) -> None:
    if banner.approval_status not in ALLOWED_FROM[action]:
        raise InvalidTransition(
            f"Cannot {action} a banner in status {banner.approval_status}",
            details={"approvalStatus": banner.approval_status, "action": action},
        )


def submit_for_approval(db: Session, banner_id: Any, actor: Optional[str] = None) -> Banner:
    banner = store.get_banner_or_404(db, banner_id)
    _guard(banner, "submit")
    actor = resolve_actor(actor)
    banner.approval_status = "pending_approval"
    banner.rejection_reason = None
    banner.updated_by = actor
    store.commit(db, "submit banner")
    db.refresh(banner)
    logger.info("Banner %s submitted for approval by %s", banner.id, actor)
    return banner


def publish(db: Session, banner_id: Any, actor: Optional[str] = None) -> Banner:
    banner = store.get_banner_or_404(db, banner_id)
    _guard(banner, "publish")
    if not banner.is_active:
        raise InvalidTransition("Archived banners must be reactivated before publishing")
    actor = resolve_actor(actor)
    banner.approval_status = "approved"
    banner.is_published = True
    banner.approved_at = utcnow()
    banner.approved_by = actor
    banner.updated_by = actor
    store.commit(db, "publish banner")
    db.refresh(banner)
    logger.info("Banner %s published by %s", banner.id, actor)
    return banner


def unpublish(db: Session, banner_id: Any, actor: Optional[str] = None) -> Banner:
    banner = store.get_banner_or_404(db, banner_id)
    actor = resolve_actor(actor)
    banner.is_published = False
    banner.updated_by = actor
    store.commit(db, "unpublish banner")
    db.refresh(banner)
    logger.info("Banner %s unpublished by %s", banner.id, actor)
    return banner


def reject(db: Session, banner_id: Any, reason: Optional[str], actor: Optional[str] = None) -> Banner:
    bid = store.parse_banner_id(banner_id)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Rejection reason is required")
    banner = store.get_banner_or_404(db, bid)
    _guard(banner, "reject")
    actor = resolve_actor(actor)
    banner.approval_status = "rejected"
    banner.is_published = False
    banner.rejection_reason = reason
    banner.updated_by = actor
    store.commit(db, "reject banner")
    db.refresh(banner)
    logger.info("Banner %s rejected by %s", banner.id, actor)
    return banner


def soft_delete(db: Session, banner_id: Any, actor: Optional[str] = None) -> Banner:
    """Archive: the record and its analytics stay retrievable."""
    banner = store.get_banner_or_404(db, banner_id)
    actor = resolve_actor(actor)
    banner.is_active = False
    banner.is_published = False
    banner.updated_by = actor
    store.commit(db, "delete banner")
    db.refresh(banner)
    logger.info("Banner %s archived by %s", banner.id, actor)
    return banner


def permanent_delete(db: Session, banner_id: Any) -> int:
    bid = store.parse_banner_id(banner_id)
    result = store.run(db, "permanently delete banner", db.execute, delete(Banner).where(Banner.id == bid))
    if result.rowcount == 0:
        db.rollback()
        raise NotFound()
    store.commit(db, "permanently delete banner")
    logger.warning("Banner %s permanently deleted", bid)
    return bid
