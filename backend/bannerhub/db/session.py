from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import importlib.util
from bannerhub.core.config import normalize_database_url, settings

# DATABASE_URL must be set: Postgres in deployments, a SQLite file for local runs and tests.
SQLALCHEMY_DATABASE_URL = settings.database_url
if not SQLALCHEMY_DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable must be set")

# If the provided URL is the plain 'postgresql://' (or legacy 'postgres://') SQLAlchemy
# will try to load the default driver (psycopg2). We only ship 'psycopg' v3
# (dependency: psycopg[binary]), so the URL is adjusted to that driver when psycopg2 is absent.
try:
    psycopg2_present = importlib.util.find_spec("psycopg2") is not None  # type: ignore
except ImportError:  # pragma: no cover
    psycopg2_present = False

if not psycopg2_present:
    SQLALCHEMY_DATABASE_URL = normalize_database_url(SQLALCHEMY_DATABASE_URL)

IS_SQLITE = SQLALCHEMY_DATABASE_URL.startswith("sqlite")


def _connect_args() -> dict:
    # Every statement inherits the configured budget; a statement that exceeds it fails
    # and the surrounding transaction is rolled back by the caller.
    timeout_ms = settings.db_statement_timeout_ms
    if IS_SQLITE:
        return {"check_same_thread": False, "timeout": timeout_ms / 1000}
    if SQLALCHEMY_DATABASE_URL.startswith("postgresql"):
        return {"options": f"-c statement_timeout={timeout_ms}", "connect_timeout": max(1, timeout_ms // 1000)}
    return {}


engine_options: dict = {"connect_args": _connect_args(), "pool_pre_ping": True}
if not IS_SQLITE:
    engine_options["pool_timeout"] = settings.db_pool_timeout_seconds

engine = create_engine(SQLALCHEMY_DATABASE_URL, **engine_options)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
