"""Async engine and the per-request session used by StorageService.

Routes never take a session directly; they depend on a service built from
`get_db`, one AsyncSession per request.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from drive.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
    pool_pre_ping=True,
)

# Services keep using rows after commit (responses are rendered from them).
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Yield a session; an error escaping the request rolls back open work.

    Under STRICT_QUOTA the user row lock is held by the open transaction, so
    the rollback also releases it.
    """
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
