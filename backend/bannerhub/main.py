from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
from pathlib import Path

from bannerhub.api.responses import error
from bannerhub.api.router import api_router
from bannerhub.core.config import settings
from bannerhub.core.errors import BannerError, PersistenceError
from bannerhub.db.init_db import create_tables, seed_demo_data

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

def _run_migrations_if_needed():
    """Apply Alembic migrations automatically in production if enabled.

    Controlled by AUTO_APPLY_MIGRATIONS (default: on). Safe to run repeatedly.
    """
    if settings.env.lower() != "prod":
        return
    if not settings.auto_apply_migrations:
        return
    from alembic import command
    from alembic.config import Config
    alembic_ini = Path(__file__).resolve().parents[1] / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found at %s, skipping auto-migrations", alembic_ini)
        return
    cfg = Config(str(alembic_ini))
    # Ensure script_location resolves correctly when launched from arbitrary CWD
    script_location = Path(__file__).resolve().parents[1] / "alembic"
    if script_location.exists():
        cfg.set_main_option("script_location", str(script_location))
    logger.info("Applying Alembic migrations -> head ...")
    try:
        command.upgrade(cfg, "head")
    except Exception:  # pragma: no cover
        # Do not kill the app on migration failure; it can be retried manually.
        logger.exception("Migration failed")
        return
    logger.info("Migrations applied successfully")

app = FastAPI(title=settings.app_name, version="0.1.0")

origins = settings.cors_origins
logger.info("Resolved CORS origins: %s", origins)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(BannerError)
async def banner_error_handler(request: Request, exc: BannerError):
    if isinstance(exc, PersistenceError):
        # Internal cause already logged where it was caught; the caller only sees the generic message.
        return error(exc.message, exc.status_code)
    return error(exc.message, exc.status_code, exc.details)

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    return error("Validation failed", 400, details)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error(str(exc.detail), exc.status_code)

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error("Internal server error", 500)

app.include_router(api_router)

@app.on_event("startup")
def startup():
    _run_migrations_if_needed()
    if settings.env.lower() in {"dev", "development"}:
        create_tables()
        seed_demo_data()
