from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.platform.config import settings


def _engine_kwargs(db_url: str) -> dict:
    if db_url.startswith("sqlite"):
        # Scan batches run on worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 20,
        "max_overflow": 30,
        "pool_timeout": 30,
    }


engine = create_engine(settings.DATABASE_URL, echo=False, future=True, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False, autocommit=False)


def get_db():
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_sync_db():
    """Get a database session for Celery tasks and scan runs. Caller closes it."""
    return SessionLocal()


def init_db(bind=None):
    from app.platform.db.base import Base

    # Import models so SQLAlchemy registers them
    from app.features.scan.models import DeviceConfig, GuidanceLevel, ScanRequest, ScanResult, ScanSchedule  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
