"""Ranking Store — data access for keyword rankings, history and notifications.

Functions here execute and flush but never commit; the caller owns the
transaction boundaries (the sync job commits once per keyword).
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.collectors.base import PositionReading
from app.core.encryption import encrypt_token
from app.core.exceptions import ProjectNotFoundError
from app.models.integration import ProjectIntegration
from app.models.keyword_ranking import KeywordRanking
from app.models.notification import Notification
from app.models.project import Project
from app.models.ranking_history import RankingHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingTarget:
    """Snapshot of a KeywordRanking row taken before the sync loop starts."""

    id: uuid.UUID
    keyword: str
    current_position: int | None
    location: str | None
    device: str
    search_engine: str = "google"


async def load_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


async def load_targets(
    db: AsyncSession,
    project_id: uuid.UUID,
    keyword_ids: list[uuid.UUID] | None = None,
) -> list[RankingTarget]:
    """Tracked keywords of a project, optionally restricted to ``keyword_ids``."""
    stmt = select(KeywordRanking).where(KeywordRanking.project_id == project_id)
    if keyword_ids:
        stmt = stmt.where(KeywordRanking.id.in_(keyword_ids))
    stmt = stmt.order_by(KeywordRanking.created_at, KeywordRanking.keyword)

    rows = await db.execute(stmt)
    return [
        RankingTarget(
            id=kr.id,
            keyword=kr.keyword,
            current_position=kr.current_position,
            location=kr.location,
            device=kr.device,
            search_engine=kr.search_engine,
        )
        for kr in rows.scalars().all()
    ]


async def load_search_console_integration(db: AsyncSession, project_id: uuid.UUID) -> ProjectIntegration | None:
    """Active Search Console integration with a property and a token, if any.

    Integrations in expired / error / disconnected state are skipped until a
    successful token save (save_integration_tokens) puts them back to active.
    """
    stmt = select(ProjectIntegration).where(
        ProjectIntegration.project_id == project_id,
        ProjectIntegration.integration_type == "search_console",
        ProjectIntegration.is_active.is_(True),
        ProjectIntegration.sync_status == "active",
    )
    row = await db.execute(stmt)
    integration = row.scalar_one_or_none()
    if integration is None or not integration.property_id or not integration.access_token:
        return None
    return integration


async def apply_reading(
    db: AsyncSession,
    target: RankingTarget,
    reading: PositionReading,
    change: int,
) -> RankingHistory | None:
    """Write a reading to the KeywordRanking row; append history if the position is known.

    previous_position always takes the old current_position, null included.
    """
    now = datetime.now(timezone.utc)
    metrics = reading.metrics or {}

    await db.execute(
        update(KeywordRanking)
        .where(KeywordRanking.id == target.id)
        .values(
            previous_position=target.current_position,
            current_position=reading.position,
            url=reading.url,
            data_source=reading.data_source,
            impressions=metrics.get("impressions"),
            clicks=metrics.get("clicks"),
            ctr=metrics.get("ctr"),
            updated_at=now,
        )
    )

    if reading.position is None:
        return None

    history = RankingHistory(
        keyword_ranking_id=target.id,
        position=reading.position,
        change_from_previous=change,
        recorded_at=now,
        metadata_={"data_source": reading.data_source, "url": reading.url, **metrics},
    )
    db.add(history)
    await db.flush()
    return history


async def insert_notifications(db: AsyncSession, notifications: list[Notification]) -> int:
    """Batch insert; returns how many rows were written."""
    if not notifications:
        return 0
    db.add_all(notifications)
    await db.flush()
    return len(notifications)


async def save_integration_tokens(
    db: AsyncSession,
    integration_id: uuid.UUID,
    access_token: str,
    refresh_token: str | None,
    expires_at: datetime | None,
) -> None:
    """Persist refreshed OAuth tokens (encrypted) back onto the integration."""
    values = {
        "access_token": encrypt_token(access_token),
        "token_expires_at": expires_at,
        "sync_status": "active",
        "sync_error": None,
        "updated_at": datetime.now(timezone.utc),
    }
    if refresh_token:
        values["refresh_token"] = encrypt_token(refresh_token)
    await db.execute(update(ProjectIntegration).where(ProjectIntegration.id == integration_id).values(**values))
    await db.flush()


async def mark_integration_status(
    db: AsyncSession,
    integration_id: uuid.UUID,
    status: str,
    error: str | None = None,
) -> None:
    values = {"sync_status": status, "sync_error": error, "updated_at": datetime.now(timezone.utc)}
    if status == "active":
        values["last_sync_at"] = datetime.now(timezone.utc)
    await db.execute(update(ProjectIntegration).where(ProjectIntegration.id == integration_id).values(**values))
    await db.flush()


async def list_rankings(db: AsyncSession, project_id: uuid.UUID) -> list[KeywordRanking]:
    stmt = (
        select(KeywordRanking)
        .where(KeywordRanking.project_id == project_id)
        .order_by(KeywordRanking.current_position.is_(None), KeywordRanking.current_position, KeywordRanking.keyword)
    )
    rows = await db.execute(stmt)
    return list(rows.scalars().all())


async def fetch_ranking_history(
    db: AsyncSession,
    project_id: uuid.UUID,
    keywords: list[str] | None = None,
    days: int = 30,
) -> dict[str, list[dict]]:
    """History points per keyword over the last ``days`` days, oldest first."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    stmt = (
        select(KeywordRanking.keyword, RankingHistory)
        .join(RankingHistory, RankingHistory.keyword_ranking_id == KeywordRanking.id)
        .where(
            KeywordRanking.project_id == project_id,
            RankingHistory.recorded_at >= since,
        )
        .order_by(RankingHistory.recorded_at.asc())
    )
    if keywords:
        stmt = stmt.where(KeywordRanking.keyword.in_(keywords))

    rows = await db.execute(stmt)
    grouped: dict[str, list[dict]] = {}
    for keyword, entry in rows.all():
        meta = entry.metadata_ or {}
        grouped.setdefault(keyword, []).append(
            {
                "position": entry.position,
                "change_from_previous": entry.change_from_previous,
                "recorded_at": entry.recorded_at,
                "data_source": meta.get("data_source"),
                "url": meta.get("url"),
            }
        )
    return grouped


async def add_keyword(
    db: AsyncSession,
    project_id: uuid.UUID,
    keyword: str,
    *,
    search_engine: str = "google",
    device: str = "desktop",
    location: str | None = None,
) -> KeywordRanking:
    """Start tracking a keyword, or return the existing row for the same tuple."""
    keyword = keyword.strip()
    stmt = select(KeywordRanking).where(
        KeywordRanking.project_id == project_id,
        KeywordRanking.keyword == keyword,
        KeywordRanking.search_engine == search_engine,
        KeywordRanking.device == device,
        KeywordRanking.location.is_(None) if location is None else KeywordRanking.location == location,
    )
    existing = (await db.execute(stmt)).scalar_one_or_none()
    if existing is not None:
        return existing

    kr = KeywordRanking(
        project_id=project_id,
        keyword=keyword,
        search_engine=search_engine,
        device=device,
        location=location,
        data_source="manual",
    )
    db.add(kr)
    await db.flush()
    return kr


async def delete_keyword(db: AsyncSession, project_id: uuid.UUID, keyword_ranking_id: uuid.UUID) -> bool:
    """Stop tracking a keyword; its history goes with it."""
    owned = await db.execute(
        select(KeywordRanking.id).where(
            KeywordRanking.id == keyword_ranking_id,
            KeywordRanking.project_id == project_id,
        )
    )
    if owned.scalar_one_or_none() is None:
        return False

    await db.execute(delete(RankingHistory).where(RankingHistory.keyword_ranking_id == keyword_ranking_id))
    await db.execute(delete(KeywordRanking).where(KeywordRanking.id == keyword_ranking_id))
    await db.flush()
    return True
