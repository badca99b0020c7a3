import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from newsdesk.cache import cache
from newsdesk.config import settings
from newsdesk.database import get_session_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _format_error(exc: Exception) -> str:
    details = str(exc).strip()
    return details or type(exc).__name__


async def _check_database(db: AsyncSession) -> dict:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "up", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    except Exception as exc:
        message = _format_error(exc)
        logger.error("Database readiness check failed: %s", message)
        return {
            "status": "down",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "error": message,
        }


async def _check_redis() -> dict:
    start = time.perf_counter()
    try:
        await cache.ping()
        return {"status": "up", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    except Exception as exc:
        message = _format_error(exc)
        logger.warning("Redis readiness check failed: %s", message)
        return {
            "status": "down",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "error": message,
        }


@router.get("")
@router.get("/live")
async def live():
    return {"status": "ok", "version": settings.APP_VERSION}


@router.get("/ready")
async def ready(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """
    Readiness check.

    The database is required; Redis only backs the feed cache, so a Redis
    outage is reported but does not fail the check.
    """
    async with session_factory() as session:
        database = await _check_database(session)
    redis_check = await _check_redis()
    status = "ok" if database["status"] == "up" else "error"
    body = {
        "status": status,
        "checks": {"database": database, "redis": redis_check},
        "cache": cache.stats,
    }
    return JSONResponse(status_code=200 if status == "ok" else 503, content=body)
