import logging
import time

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# ---------------------------------------------------------
# CONNECTION HANDLE
# ---------------------------------------------------------
# One engine per process, created on first real use and reused afterwards.
_engine: Engine | None = None
_session_factory: sessionmaker | None = None

MAX_RETRIES = 10
WAIT_SECONDS = 3


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # a single shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is not configured")
        _engine = _build_engine(settings.DATABASE_URL)
        logger.info("✅ Database engine created (%s)", _engine.url.get_backend_name())
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory


def init_db(max_retries: int = MAX_RETRIES, wait_seconds: float = WAIT_SECONDS) -> None:
    """Create all tables, retrying while the database is still starting up."""
    # models must be imported so their tables are registered on Base.metadata
    from app.domain import models  # noqa: F401

    engine = get_engine()
    for attempt in range(max_retries):
        try:
            logger.info("🔄 Attempting DB connection (%d/%d)...", attempt + 1, max_retries)
            Base.metadata.create_all(bind=engine)
            logger.info("✅ DB Connected and Tables Created.")
            return
        except OperationalError:
            if attempt + 1 == max_retries:
                logger.error("❌ Could not connect to DB after %d attempts.", max_retries)
                raise
            logger.warning("⚠️ DB not ready yet. Waiting %ss...", wait_seconds)
            time.sleep(wait_seconds)
