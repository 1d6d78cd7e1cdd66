"""Competitive analysis for a project — SERP-derived, cached."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.analysis import competitive
from app.analysis.domains import normalize_domain
from app.analysis.seo_scoring import (
    calculate_overall_score,
    calculate_share_of_voice,
    compare_positions,
    get_position_category,
)
from app.analysis.types import to_dict
from app.collectors.serpapi import SerpApiClient
from app.core.config import settings
from app.core.exceptions import PositionLookupError
from app.services import cache_service, ranking_store

logger = logging.getLogger(__name__)

MAX_COMPETITORS = 10


def analysis_key(project_id: uuid.UUID) -> str:
    return cache_service.analysis_cache_key(f"competitive-{project_id}")


def _best_competitor(analysis) -> int | None:
    positions = [cp.position for cp in analysis.competitor_positions]
    return min(positions) if positions else None


async def _organic_results(
    db: AsyncSession,
    client: SerpApiClient,
    keyword: str,
    domain: str,
    location: str | None,
    device: str | None,
) -> list[dict]:
    key = cache_service.serp_cache_key(keyword, domain, location, device)
    cached = await cache_service.get(db, key)
    if cached is not None:
        return cached

    organic = await client.search(keyword, location=location, device=device)
    # Keep only what the analysis reads
    slim = [{"position": r.get("position"), "link": r.get("link"), "title": r.get("title", "")} for r in organic]
    await cache_service.set(db, key, slim, settings.serp_cache_ttl_seconds)
    return slim


async def get_competitive_analysis(
    db: AsyncSession,
    project_id: uuid.UUID,
    *,
    client: SerpApiClient | None = None,
    refresh: bool = False,
) -> dict:
    """Analyse where the project's domain stands against competitors on its tracked keywords."""
    project = await ranking_store.load_project(db, project_id)
    key = analysis_key(project_id)

    if not refresh:
        cached = await cache_service.get(db, key)
        if cached is not None:
            return {**cached, "cached": True}

    domain = normalize_domain(project.domain)
    declared = [normalize_domain(c) for c in (project.competitors or []) if c]
    targets = await ranking_store.load_targets(db, project_id)

    client = client or SerpApiClient()
    analyses = []
    contexts: list[tuple[str | None, str]] = []
    failed: list[str] = []
    seen: set[tuple[str, str | None, str]] = set()
    for target in targets:
        # One SERP per (keyword, location, device): results differ across them
        variant = (target.keyword, target.location, target.device)
        if variant in seen:
            continue
        seen.add(variant)
        try:
            organic = await _organic_results(db, client, target.keyword, domain, target.location, target.device)
        except PositionLookupError as e:
            logger.warning("Competitive analysis: SERP fetch failed for %r: %s", target.keyword, e)
            failed.append(target.keyword)
            continue
        analyses.append(competitive.build_keyword_analysis(target.keyword, organic, domain))
        contexts.append((target.location, target.device))

    discovered = {cp.domain for a in analyses for cp in a.competitor_positions}
    candidates = list(dict.fromkeys(declared + sorted(discovered)))
    competitors = competitive.analyze_competitors(candidates, analyses)
    # Declared competitors are always reported, discovered ones only when most relevant
    top = [c for c in competitors if c.domain in declared]
    top += [c for c in competitors if c.domain not in declared][: max(0, MAX_COMPETITORS - len(top))]

    result = {
        "project_id": str(project_id),
        "domain": domain,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "competitiveness_score": competitive.calculate_competitiveness_score(analyses),
        "overall_score": calculate_overall_score([a.target_domain_position for a in analyses]),
        "share_of_voice": calculate_share_of_voice(
            [
                {
                    "position": a.target_domain_position,
                    "search_volume": a.search_volume or competitive.DEFAULT_SEARCH_VOLUME,
                }
                for a in analyses
            ]
        ),
        "metrics": to_dict(competitive.calculate_competitive_metrics(analyses, competitors)),
        "competitors": [to_dict(c) for c in top],
        "opportunities": [to_dict(o) for o in competitive.identify_opportunities(analyses, domain)],
        "keywords": [
            {
                "keyword": a.keyword,
                "location": location,
                "device": device,
                "target_position": a.target_domain_position,
                "position_category": get_position_category(a.target_domain_position).value,
                "vs_best_competitor": compare_positions(a.target_domain_position, _best_competitor(a)).value,
                "competition_level": a.competition_level,
                "difficulty": to_dict(competitive.get_keyword_competitive_difficulty(a)),
                "potential": to_dict(competitive.get_keyword_potential(a)),
                "competitors_ahead": competitive.get_competitors_ahead(a)[:5],
                "recommendations": competitive.generate_keyword_recommendations(a),
            }
            for a, (location, device) in zip(analyses, contexts)
        ],
        "failed_keywords": failed,
    }

    await cache_service.set(db, key, result, settings.analysis_cache_ttl_seconds)
    return {**result, "cached": False}
