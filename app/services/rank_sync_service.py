"""Ranking sync — checks a project's keywords and records the moves.

One sequential pass per run: look each keyword up through the source chain
(Search Console first when connected, SerpAPI otherwise or as fallback),
update the ranking row, append history, then write the notifications in a
single batch at the end.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.collectors.base import PositionReading, PositionSource
from app.collectors.chain import PositionSourceChain
from app.collectors.google_search_console import SearchConsoleAdapter
from app.collectors.serpapi import SerpApiClient
from app.core.config import settings
from app.core.exceptions import TokenRefreshError
from app.core.metrics import RANK_CHECKS, RANK_NOTIFICATIONS, RANK_SYNC_RUNS
from app.models.integration import ProjectIntegration
from app.models.notification import Notification
from app.models.project import Project
from app.notifications.ranking_alerts import build_ranking_notification, compute_change
from app.services import ranking_store

module_logger = logging.getLogger(__name__)


@dataclass
class RankSyncResult:
    project_id: uuid.UUID
    checked: int = 0
    updated: int = 0
    notifications: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.checked == 0:
            return "No keywords to check"
        return f"{self.updated} keywords updated, {self.notifications} notifications created"


def build_position_chain(db: AsyncSession, integration: ProjectIntegration | None) -> PositionSourceChain:
    """[SearchConsoleAdapter, SerpApiClient] when connected, else [SerpApiClient]."""
    serp = SerpApiClient()
    if integration is None:
        return PositionSourceChain([serp])

    integration_id = integration.id

    async def persist_tokens(access_token, refresh_token, expires_at):
        await ranking_store.save_integration_tokens(db, integration_id, access_token, refresh_token, expires_at)
        await db.commit()

    adapter = SearchConsoleAdapter.from_integration(integration, on_token_refresh=persist_tokens)
    return PositionSourceChain([adapter, serp])


async def sync_project_rankings(
    db: AsyncSession,
    project_id: uuid.UUID,
    keyword_ids: list[uuid.UUID] | None = None,
    *,
    sources: list[PositionSource] | None = None,
    delay_ms: int | None = None,
    logger: logging.Logger | None = None,
) -> RankSyncResult:
    """Check positions for a project's keywords (all tracked ones by default).

    Raises ProjectNotFoundError before any keyword is touched. Per-keyword
    failures are logged and skipped.
    """
    try:
        result = await _sync(
            db,
            project_id,
            keyword_ids,
            sources=sources,
            delay_ms=settings.rank_check_delay_ms if delay_ms is None else delay_ms,
            log=logger or module_logger,
        )
    except Exception:
        RANK_SYNC_RUNS.labels(status="failed").inc()
        raise
    RANK_SYNC_RUNS.labels(status="success").inc()
    return result


async def _sync(
    db: AsyncSession,
    project_id: uuid.UUID,
    keyword_ids: list[uuid.UUID] | None,
    *,
    sources: list[PositionSource] | None,
    delay_ms: int,
    log: logging.Logger,
) -> RankSyncResult:
    project = await ranking_store.load_project(db, project_id)
    # Plain values: ORM instances expire on rollback
    domain = project.domain
    user_id = project.user_id

    result = RankSyncResult(project_id=project_id)
    targets = await ranking_store.load_targets(db, project_id, keyword_ids)
    if not targets:
        log.info("Project %s: no keywords to check", project_id, extra={"project_id": str(project_id)})
        return result

    integration = await ranking_store.load_search_console_integration(db, project_id)
    integration_id = integration.id if integration is not None else None
    if sources is not None:
        chain = PositionSourceChain(sources)
    else:
        chain = build_position_chain(db, integration)

    log.info(
        "Project %s: checking %d keywords via %s",
        project_id,
        len(targets),
        " -> ".join(chain.source_names),
        extra={"project_id": str(project_id)},
    )

    pending: list[Notification] = []
    for index, target in enumerate(targets):
        if index and delay_ms:
            await asyncio.sleep(delay_ms / 1000)

        result.checked += 1
        extra = {"project_id": str(project_id), "keyword": target.keyword}
        try:
            try:
                reading = await chain.lookup(target.keyword, domain, location=target.location, device=target.device)
            except TokenRefreshError as e:
                log.warning("Search Console token refresh failed, falling back: %s", e, extra=extra)
                if integration_id is not None:
                    await ranking_store.mark_integration_status(db, integration_id, "expired", str(e))
                    await db.commit()
                chain = chain.without(SearchConsoleAdapter.name)
                reading = await chain.lookup(target.keyword, domain, location=target.location, device=target.device)

            if reading is None:
                reading = PositionReading(position=None, url=None, data_source=chain.sources[-1].name)

            change = compute_change(target.current_position, reading.position)
            await ranking_store.apply_reading(db, target, reading, change)
            await db.commit()
        except Exception as e:
            await db.rollback()
            log.error("Rank check failed for %r: %s", target.keyword, e, extra=extra)
            RANK_CHECKS.labels(source="unknown", status="error").inc()
            result.errors.append(f"{target.keyword}: {e}")
            continue

        result.updated += 1
        RANK_CHECKS.labels(
            source=reading.data_source,
            status="found" if reading.position is not None else "not_found",
        ).inc()
        log.info(
            "%r: %s -> %s (change %+d, %s)",
            target.keyword,
            target.current_position,
            reading.position,
            change,
            reading.data_source,
            extra={**extra, "data_source": reading.data_source},
        )

        notification = build_ranking_notification(
            user_id=user_id,
            project_id=project_id,
            keyword=target.keyword,
            previous_position=target.current_position,
            new_position=reading.position,
            change=change,
            data_source=reading.data_source,
        )
        if notification is not None:
            pending.append(notification)

    if pending:
        try:
            result.notifications = await ranking_store.insert_notifications(db, pending)
            await db.commit()
        except Exception as e:
            await db.rollback()
            log.error("Failed to insert %d notifications: %s", len(pending), e, extra={"project_id": str(project_id)})
            result.notifications = 0
        else:
            for notification in pending:
                RANK_NOTIFICATIONS.labels(priority=notification.priority).inc()

    if integration_id is not None and SearchConsoleAdapter.name in chain.source_names:
        try:
            await ranking_store.mark_integration_status(db, integration_id, "active")
            await db.commit()
        except Exception as e:
            await db.rollback()
            log.warning("Could not update integration %s status: %s", integration_id, e)

    log.info("Project %s: %s", project_id, result.message, extra={"project_id": str(project_id)})
    return result


async def sync_all_projects(
    db: AsyncSession,
    *,
    delay_ms: int | None = None,
) -> list[RankSyncResult]:
    """Run the sync for every active project. One project failing does not stop the rest."""
    rows = await db.execute(select(Project.id).where(Project.is_active.is_(True)).order_by(Project.created_at))
    project_ids = rows.scalars().all()

    results = []
    for pid in project_ids:
        try:
            results.append(await sync_project_rankings(db, pid, delay_ms=delay_ms))
        except Exception as e:
            await db.rollback()
            module_logger.error("Rank sync failed for project %s: %s", pid, e, extra={"project_id": str(pid)})
            results.append(RankSyncResult(project_id=pid, errors=[str(e)]))
    return results
