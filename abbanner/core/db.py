from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .settings import config_settings

DATABASE_URL = config_settings.DATABASE_URL

# 1. SQLAlchemy Engine
# Manages the connection pool and dialect.
engine = create_engine(
    DATABASE_URL,
    # Only needed for SQLite, the reporter writes from worker threads
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {}
)

# 2. SessionLocal
# Each request (and each in-process action log write) gets its own session.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Creates the storage and action log tables if they do not exist yet."""
    # Imported here so the ORM modules register on Base.metadata first
    from abbanner.models.orm.base import Base
    from abbanner.models.orm import action_log, storage_entry  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    Dependency that yields a database session for a single request,
    and ensures the session is closed afterward.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
