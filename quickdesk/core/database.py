# quickdesk/core/database.py
"""Database engine, session factory and FastAPI session dependency"""
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from quickdesk.core.config import Settings, get_settings
from quickdesk.core.logger import get_logger

logger = get_logger(__name__)

engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def init_engine(settings: Settings) -> Engine:
    """
    Create the process-wide engine from settings and bind the session factory.

    Args:
        settings: Application settings carrying database_url

    Returns:
        The configured engine
    """
    global engine

    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    SessionLocal.configure(bind=engine)
    return engine


def get_engine() -> Engine:
    if engine is None:
        return init_engine(get_settings())
    return engine


def get_db() -> Iterator[Session]:
    """Dependency injection for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Iterator[Session]:
    """Context manager for synchronous code (scripts, startup hooks)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> bool:
    """Create all tables in database"""
    # Import models so they register on the metadata
    from quickdesk.models import Base

    try:
        Base.metadata.create_all(bind=get_engine())
        logger.info("✓ Database tables initialized")
        return True
    except Exception as e:
        logger.error(f"✗ Failed to initialize database: {e}")
        return False


def test_connection() -> bool:
    """Test database connectivity"""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
            logger.info("✓ Database connection successful")
            return True
    except Exception as e:
        logger.error(f"✗ Database connection failed: {e}")
        return False
