"""Rankings API — trigger a sync, read current positions and history."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.analysis.competitive import calculate_days_span, get_history_maturity
from app.core.exceptions import NotFoundError, ProjectNotFoundError
from app.core.rate_limit import limiter
from app.db.postgres import get_db
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.ranking import (
    HistoryMaturityResponse,
    KeywordRankingCreate,
    KeywordRankingResponse,
    RankCheckRequest,
    RankCheckResponse,
    RankingHistoryPoint,
    RankingHistoryResponse,
)
from app.services import ranking_store
from app.services.rank_sync_service import sync_project_rankings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rankings", tags=["rankings"])


async def _require_project(db: AsyncSession, project_id: uuid.UUID):
    try:
        return await ranking_store.load_project(db, project_id)
    except ProjectNotFoundError:
        raise NotFoundError("Project not found")


@router.post(
    "/check",
    response_model=RankCheckResponse,
    responses={500: {"model": ErrorResponse}},
)
@limiter.limit("10/minute")
async def check_rankings(
    request: Request,
    body: RankCheckRequest,
    db: AsyncSession = Depends(get_db),
):
    """Run a ranking sync for a project now and report what changed."""
    try:
        result = await sync_project_rankings(db, body.project_id, body.keyword_ids)
    except Exception as e:
        logger.error("Ranking check failed for project %s: %s", body.project_id, e)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return RankCheckResponse(
        success=True,
        updated=result.updated,
        notifications=result.notifications,
        message=result.message,
    )


@router.get("/projects/{project_id}", response_model=list[KeywordRankingResponse])
async def list_project_rankings(
    project_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await _require_project(db, project_id)
    return await ranking_store.list_rankings(db, project_id)


@router.get("/projects/{project_id}/history", response_model=RankingHistoryResponse)
async def get_ranking_history(
    project_id: uuid.UUID,
    days: int = Query(30, ge=1, le=365),
    keyword: list[str] | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """History points per keyword (oldest first) plus how mature the history is."""
    await _require_project(db, project_id)
    grouped = await ranking_store.fetch_ranking_history(db, project_id, keywords=keyword, days=days)

    points = [p for series in grouped.values() for p in series]
    maturity = get_history_maturity(len(points), calculate_days_span([p["recorded_at"] for p in points]))

    return RankingHistoryResponse(
        project_id=project_id,
        days=days,
        keywords={kw: [RankingHistoryPoint(**p) for p in series] for kw, series in grouped.items()},
        maturity=HistoryMaturityResponse(
            status=maturity.status.value,
            days_of_data=maturity.days_of_data,
            total_data_points=maturity.total_data_points,
            message=maturity.message,
        ),
    )


@router.post("/projects/{project_id}/keywords", response_model=KeywordRankingResponse, status_code=201)
async def track_keyword(
    project_id: uuid.UUID,
    body: KeywordRankingCreate,
    db: AsyncSession = Depends(get_db),
):
    await _require_project(db, project_id)
    kr = await ranking_store.add_keyword(
        db,
        project_id,
        body.keyword,
        search_engine=body.search_engine,
        device=body.device,
        location=body.location,
    )
    await db.commit()
    await db.refresh(kr)
    return kr


@router.delete("/projects/{project_id}/keywords/{keyword_ranking_id}", response_model=MessageResponse)
async def untrack_keyword(
    project_id: uuid.UUID,
    keyword_ranking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    deleted = await ranking_store.delete_keyword(db, project_id, keyword_ranking_id)
    if not deleted:
        raise NotFoundError("Keyword not found")
    return MessageResponse(message="Keyword deleted")
