from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from newsdesk.config import settings

_AFTER_COMMIT_KEY = "newsdesk.after_commit"

# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


def after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """
    Queue *callback* to run once the session's current transaction has
    committed.  Callbacks are dropped if the transaction rolls back.

    Used for side effects that must not be observed before the data is,
    such as invalidating the public-feed cache after an article write.
    """
    session.info.setdefault(_AFTER_COMMIT_KEY, []).append(callback)


async def commit(session: AsyncSession) -> None:
    """Commit *session*, then run the callbacks queued with ``after_commit``."""
    await session.commit()
    for callback in session.info.pop(_AFTER_COMMIT_KEY, []):
        await callback()


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            session.info.pop(_AFTER_COMMIT_KEY, None)
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Return the session factory for work that needs more than one session
    per request, such as the public feed running its count and page
    queries side by side.
    """
    return async_session
