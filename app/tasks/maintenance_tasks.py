"""Celery tasks for database maintenance."""

import logging

from app.tasks.celery_app import celery_app
from app.tasks.rank_tasks import _make_session_factory, _run_async

logger = logging.getLogger(__name__)


async def _clean_expired_cache_async() -> int:
    from app.services import cache_service

    engine, session_factory = _make_session_factory()
    try:
        async with session_factory() as db:
            removed = await cache_service.clean_expired(db)
            await db.commit()
            return removed
    finally:
        await engine.dispose()


@celery_app.task(name="clean_expired_cache")
def clean_expired_cache_task():
    """Delete analysis cache entries past their TTL. Runs daily via Celery Beat."""
    try:
        removed = _run_async(_clean_expired_cache_async())
        return {"status": "ok", "removed": removed}
    except Exception as exc:
        logger.error("Failed to clean expired cache: %s", exc)
        return {"status": "error", "error": str(exc)}
