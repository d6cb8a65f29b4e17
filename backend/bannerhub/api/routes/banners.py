from datetime import datetime
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bannerhub.api.deps import get_actor
from bannerhub.api.responses import success
from bannerhub.core.config import settings
from bannerhub.db.session import get_db
from bannerhub.schemas.banner import (
    ApprovalStatus,
    BannerCreate,
    BannerType,
    BannerUpdate,
    BulkReorderRequest,
    BulkUpdateRequest,
    RejectRequest,
    SortField,
    serialize_banner,
)
from bannerhub.services import analytics, banners, display, lifecycle, priority
from bannerhub.services.assets import AssetStore, get_asset_store

router = APIRouter()

""" Banner endpoints.

Public: /active listing (counts views), click and conversion tracking.
Everything else is the admin surface; the acting identity comes from the bearer token.
Static paths are declared before /{banner_id} so they are not captured by it.
"""

@router.post("/", status_code=201)
def create_banner(
    payload: BannerCreate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    assets: AssetStore = Depends(get_asset_store),
):
    banner = banners.create_banner(db, payload, actor=actor, assets=assets)
    return success("Banner created successfully", serialize_banner(banner), status_code=201)

@router.get("/")
def list_banners(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: SortField = Query("priority", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("asc", alias="sortOrder"),
    banner_type: Optional[BannerType] = Query(None, alias="bannerType"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_published: Optional[bool] = Query(None, alias="isPublished"),
    approval_status: Optional[ApprovalStatus] = Query(None, alias="approvalStatus"),
    search: Optional[str] = Query(None, max_length=200),
    db: Session = Depends(get_db),
):
    items, meta = banners.list_banners(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        banner_type=banner_type,
        is_active=is_active,
        is_published=is_published,
        approval_status=approval_status,
        search=search,
    )
    return success("Banners retrieved successfully", [serialize_banner(b) for b in items], meta)

# Public endpoint
@router.get("/active")
def active_banners(
    banner_type: Optional[BannerType] = Query(None, alias="bannerType"),
    limit: int = Query(settings.public_listing_default_limit, ge=1, le=display.MAX_PUBLIC_LIMIT),
    device: Optional[Literal["mobile", "desktop"]] = Query(None),
    db: Session = Depends(get_db),
):
    data = display.serve_public_listing(db, banner_type=banner_type, limit=limit, device=device)
    return success("Active banners retrieved successfully", data)

@router.patch("/priorities")
def reorder_banners(
    payload: BulkReorderRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
):
    updated = priority.bulk_reorder(db, payload.priorities, actor=banners.resolve_actor(actor))
    return success("Banner priorities updated successfully", [serialize_banner(b) for b in updated])

@router.patch("/bulk-update")
def bulk_update_banners(
    payload: BulkUpdateRequest,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
):
    counts = banners.bulk_update(db, payload.banner_ids, payload.updates, actor=actor)
    return success("Banners updated successfully", counts)

@router.get("/{banner_id}")
def get_banner(banner_id: str, db: Session = Depends(get_db)):
    banner = banners.get_banner(db, banner_id)
    return success("Banner retrieved successfully", serialize_banner(banner))

@router.put("/{banner_id}")
def update_banner(
    banner_id: str,
    payload: BannerUpdate,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
    assets: AssetStore = Depends(get_asset_store),
):
    banner = banners.update_banner(db, banner_id, payload, actor=actor, assets=assets)
    return success("Banner updated successfully", serialize_banner(banner))

@router.delete("/{banner_id}")
def delete_banner(banner_id: str, db: Session = Depends(get_db), actor: Optional[str] = Depends(get_actor)):
    banner = lifecycle.soft_delete(db, banner_id, actor=actor)
    return success("Banner deleted successfully", {"id": banner.id})

@router.delete("/{banner_id}/permanent")
def permanent_delete_banner(banner_id: str, db: Session = Depends(get_db)):
    bid = lifecycle.permanent_delete(db, banner_id)
    return success("Banner permanently deleted", {"id": bid})

@router.patch("/{banner_id}/submit")
def submit_banner(banner_id: str, db: Session = Depends(get_db), actor: Optional[str] = Depends(get_actor)):
    banner = lifecycle.submit_for_approval(db, banner_id, actor=actor)
    return success("Banner submitted for approval", serialize_banner(banner))

@router.patch("/{banner_id}/publish")
def publish_banner(banner_id: str, db: Session = Depends(get_db), actor: Optional[str] = Depends(get_actor)):
    banner = lifecycle.publish(db, banner_id, actor=actor)
    return success("Banner published successfully", serialize_banner(banner))

@router.patch("/{banner_id}/unpublish")
def unpublish_banner(banner_id: str, db: Session = Depends(get_db), actor: Optional[str] = Depends(get_actor)):
    banner = lifecycle.unpublish(db, banner_id, actor=actor)
    return success("Banner unpublished successfully", serialize_banner(banner))

@router.patch("/{banner_id}/reject")
def reject_banner(
    banner_id: str,
    payload: Optional[RejectRequest] = None,
    db: Session = Depends(get_db),
    actor: Optional[str] = Depends(get_actor),
):
    banner = lifecycle.reject(db, banner_id, payload.reason if payload else None, actor=actor)
    return success("Banner rejected", serialize_banner(banner))

@router.get("/{banner_id}/analytics")
def banner_analytics(
    banner_id: str,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    data = analytics.get_analytics(db, banner_id, start_date=start_date, end_date=end_date)
    return success("Banner analytics retrieved successfully", data)

# Public tracking endpoints
@router.post("/{banner_id}/click")
def track_click(banner_id: str, db: Session = Depends(get_db)):
    clicks = analytics.increment_click(db, banner_id)
    return success("Banner click tracked successfully", {"clicks": clicks})

@router.post("/{banner_id}/conversion")
def track_conversion(banner_id: str, db: Session = Depends(get_db)):
    conversions = analytics.increment_conversion(db, banner_id)
    return success("Banner conversion tracked successfully", {"conversions": conversions})
