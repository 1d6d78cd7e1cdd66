"""Competitive analysis API."""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConfigurationError, NotFoundError, ProjectNotFoundError, ServiceUnavailableError
from app.db.postgres import get_db
from app.schemas.competitive import CompetitiveAnalysisResponse
from app.services.competitive_analysis_service import get_competitive_analysis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["competitive"])


@router.get("/{project_id}/competitive-analysis", response_model=CompetitiveAnalysisResponse)
async def competitive_analysis(
    project_id: uuid.UUID,
    refresh: bool = False,
    db: AsyncSession = Depends(get_db),
):
    """Positions of the project's domain against competitors on its tracked keywords.

    Served from cache for ``analysis_cache_ttl_seconds`` unless ``refresh`` is set.
    """
    try:
        return await get_competitive_analysis(db, project_id, refresh=refresh)
    except ProjectNotFoundError:
        raise NotFoundError("Project not found")
    except ConfigurationError as e:
        logger.error("Competitive analysis unavailable: %s", e)
        raise ServiceUnavailableError(str(e))
