import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import DateTime, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

from datamanager.config import settings
from datamanager.exceptions import DataManagerError, DuplicateResourceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLite uses a single-connection pool, the pool options only apply to server databases
if settings.database_url.startswith("sqlite"):
    engine = create_async_engine(settings.database_url, echo=settings.debug)
elif settings.environment == "production":
    engine = create_async_engine(
        settings.database_url,
        pool_size=20,
        max_overflow=50,
        pool_timeout=60,
        pool_recycle=1800,
    )
else:
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
    )

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime column that always hands back timezone-aware UTC values.

    SQLite drops tzinfo on the way in, so values are stored as naive UTC
    and re-tagged on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        value = as_utc(value)
        if value is None:
            return None
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        return as_utc(value)


async def get_db():
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await db.rollback()
            raise


async def run_in_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    retries: int | None = None,
    resource_type: str = "Resource",
) -> T:
    """
    Run a write operation and commit it, rolling back on failure.

    A unique-key violation means another writer created the same row first.
    The operation is re-run so its lookup finds that row and the write
    becomes an update. After the last attempt the conflict is raised.
    """
    attempts = retries if retries is not None else settings.save_retry_attempts
    attempts = max(attempts, 1)

    for attempt in range(1, attempts + 1):
        try:
            result = await operation()
            await db.commit()
            return result
        except IntegrityError as e:
            await db.rollback()
            if attempt >= attempts:
                logger.error(f"Save conflict not resolved after {attempts} attempts: {e.orig}")
                raise DuplicateResourceError(resource_type, "key", str(e.orig)) from e
            logger.warning(f"Save conflict on attempt {attempt}/{attempts}, retrying")
        except DataManagerError:
            await db.rollback()
            raise
        except Exception:
            await db.rollback()
            logger.exception("Transaction rolled back")
            raise

    raise AssertionError("unreachable")


def enable_sqlite_foreign_keys(async_engine) -> None:
    """SQLite ignores ON DELETE rules unless the pragma is set per connection."""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)
