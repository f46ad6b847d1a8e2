from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from erp_api.core.config import settings
import logging

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DATABASE_ECHO,
    connect_args=_connect_args
)


def enable_sqlite_foreign_keys(target_engine):
    """SQLite ignores FOREIGN KEY constraints unless asked per connection."""
    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if settings.is_sqlite:
    enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for the duration of a request."""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create every table registered on the declarative Base."""
    # Model modules must be imported so their tables are registered
    import erp_api.modules.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")
