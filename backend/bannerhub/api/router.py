from fastapi import APIRouter

from bannerhub.api.routes import health, banners

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])  # GET /
api_router.include_router(banners.router, prefix="/banners", tags=["banners"])  # admin CRUD, lifecycle, public listing, tracking
