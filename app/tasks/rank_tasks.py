"""Celery tasks for ranking sync.

No retries at task level: a failed run is re-triggered wholesale by the
next schedule or by the caller.
"""

import asyncio
import logging
from uuid import UUID

from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _make_session_factory():
    """Create a fresh async engine + session factory for Celery worker context.

    The module-level engine from app.db.postgres is bound to uvicorn's event loop
    and cannot be reused in a new event loop created by _run_async().
    """
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from app.core.config import settings
    from app.db.postgres import make_engine

    pool = {"pool_size": 5, "max_overflow": 5} if settings.database_dsn.startswith("postgresql") else {}
    engine = make_engine(**pool)
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _run_async(coro):
    """Run an async coroutine from sync Celery task context.

    Creates a fresh event loop each time to avoid conflicts with
    the module-level SQLAlchemy engine (which may be bound to a
    different loop created by uvicorn).
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _summary(result) -> dict:
    return {
        "project_id": str(result.project_id),
        "checked": result.checked,
        "updated": result.updated,
        "notifications": result.notifications,
        "errors": result.errors,
    }


async def _check_project_async(project_id: str, keyword_ids: list[str] | None = None) -> dict:
    from app.services.rank_sync_service import sync_project_rankings

    engine, session_factory = _make_session_factory()
    try:
        async with session_factory() as db:
            result = await sync_project_rankings(
                db,
                UUID(project_id),
                [UUID(k) for k in keyword_ids] if keyword_ids else None,
            )
            return _summary(result)
    finally:
        await engine.dispose()


async def _check_all_async() -> list[dict]:
    from app.services.rank_sync_service import sync_all_projects

    engine, session_factory = _make_session_factory()
    try:
        async with session_factory() as db:
            results = await sync_all_projects(db)
            return [_summary(r) for r in results]
    finally:
        await engine.dispose()


@celery_app.task(name="check_project_rankings")
def check_project_rankings_task(project_id: str, keyword_ids: list[str] | None = None):
    """Celery task: check rankings for one project."""
    logger.info("Starting rank check for project %s", project_id)
    result = _run_async(_check_project_async(project_id, keyword_ids))
    logger.info("Rank check done for project %s: %s", project_id, result)
    return result


@celery_app.task(name="check_all_rankings")
def check_all_rankings_task():
    """Celery task: daily rank check over every active project."""
    logger.info("Starting rank check for all active projects")
    results = _run_async(_check_all_async())
    failed = sum(1 for r in results if r["errors"] and r["checked"] == 0)
    logger.info("Rank check done: %d projects, %d failed", len(results), failed)
    return {"projects": len(results), "failed": failed, "results": results}
