from collections.abc import AsyncGenerator

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

# PostgreSQL SQLSTATEs that mean "another transaction got there first":
#   55P03 lock_not_available (lock_timeout), 40001 serialization_failure, 40P01 deadlock
_RETRYABLE_SQLSTATES = frozenset({"55P03", "40001", "40P01"})

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


def is_retryable_db_error(exc: BaseException) -> bool:
    """True if a DB error is a lock timeout, deadlock or serialization failure."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        sqlstate = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES:
            return True
    return False
