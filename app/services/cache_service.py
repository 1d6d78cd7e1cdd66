"""DB-backed analysis cache with a TTL per entry.

Entries are independent: no cross-key invalidation beyond delete_pattern.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.analysis_cache import AnalysisCache

logger = logging.getLogger(__name__)


def serp_cache_key(keyword: str, domain: str, location: str | None = None, device: str | None = None) -> str:
    location = (location or settings.default_location).lower()
    device = (device or settings.default_device).lower()
    return f"serp:{keyword.strip().lower()}:{domain.lower()}:{location}:{device}"


def analysis_cache_key(analysis_id: str) -> str:
    return f"analysis:{analysis_id}"


async def get(db: AsyncSession, key: str):
    """Cached value, or None when missing or expired."""
    stmt = select(AnalysisCache.data).where(
        AnalysisCache.cache_key == key,
        AnalysisCache.expires_at > datetime.now(timezone.utc),
    )
    row = await db.execute(stmt)
    return row.scalar_one_or_none()


async def set(db: AsyncSession, key: str, data, ttl_seconds: int) -> None:  # noqa: A001
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
    row = await db.execute(select(AnalysisCache).where(AnalysisCache.cache_key == key))
    entry = row.scalar_one_or_none()
    if entry is None:
        db.add(AnalysisCache(cache_key=key, data=data, expires_at=expires_at))
    else:
        entry.data = data
        entry.expires_at = expires_at
    await db.flush()


async def delete_key(db: AsyncSession, key: str) -> None:
    await db.execute(delete(AnalysisCache).where(AnalysisCache.cache_key == key))
    await db.flush()


async def delete_pattern(db: AsyncSession, pattern: str) -> int:
    """Remove every entry whose key contains ``pattern``."""
    escaped = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    result = await db.execute(
        delete(AnalysisCache).where(AnalysisCache.cache_key.like(f"%{escaped}%", escape="\\"))
    )
    await db.flush()
    return result.rowcount or 0


async def clean_expired(db: AsyncSession) -> int:
    result = await db.execute(delete(AnalysisCache).where(AnalysisCache.expires_at <= datetime.now(timezone.utc)))
    await db.flush()
    removed = result.rowcount or 0
    if removed:
        logger.info("Cleaned %d expired cache entries", removed)
    return removed


async def stats(db: AsyncSession) -> dict:
    total = await db.scalar(select(func.count()).select_from(AnalysisCache))
    expired = await db.scalar(
        select(func.count()).select_from(AnalysisCache).where(AnalysisCache.expires_at <= datetime.now(timezone.utc))
    )
    return {"total": total or 0, "expired": expired or 0}
