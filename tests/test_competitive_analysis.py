"""Tests for the cached competitive analysis service and its endpoint."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PositionLookupError, ProjectNotFoundError
from app.models.project import Project
from app.services import cache_service
from app.services.competitive_analysis_service import analysis_key, get_competitive_analysis

SERPS = {
    "running shoes": [
        {"position": 1, "link": "https://rival.com/shoes", "title": "Rival", "snippet": "long text"},
        {"position": 2, "link": "https://www.example.com/running", "title": "Us"},
        {"position": 3, "link": "https://blog.net/best-shoes", "title": "Blog"},
    ],
    "trail shoes": [
        {"position": 1, "link": "https://other.com/trail", "title": "Other"},
        {"position": 2, "link": "https://rival.com/trail", "title": "Rival"},
    ],
}


def _serp_client(fail_on: set[str] | None = None) -> MagicMock:
    fail_on = fail_on or set()

    async def search(keyword, *, location=None, device=None):
        if keyword in fail_on:
            raise PositionLookupError("quota exhausted")
        return SERPS.get(keyword, [])

    client = MagicMock()
    client.search = AsyncMock(side_effect=search)
    return client


@pytest.fixture
async def tracked(project: Project, add_ranking) -> Project:
    await add_ranking(project, "running shoes", 2)
    await add_ranking(project, "trail shoes", None)
    return project


@pytest.mark.asyncio
async def test_builds_analysis_from_serps(db: AsyncSession, tracked: Project):
    client = _serp_client()

    result = await get_competitive_analysis(db, tracked.id, client=client)

    assert result["cached"] is False
    assert result["domain"] == "example.com"
    keywords = {k["keyword"]: k for k in result["keywords"]}
    assert keywords["running shoes"]["target_position"] == 2
    assert keywords["trail shoes"]["target_position"] is None
    assert keywords["running shoes"]["competitors_ahead"] == [{"domain": "rival.com", "position": 1, "gap": 1}]

    domains = [c["domain"] for c in result["competitors"]]
    assert domains[:2] == ["rival.com", "other.com"]
    assert "blog.net" in domains
    assert result["opportunities"][0]["keyword"] == "trail shoes"
    assert result["opportunities"][0]["opportunity_type"] == "missing_keyword"
    assert result["failed_keywords"] == []


@pytest.mark.asyncio
async def test_reports_overall_score_and_share_of_voice(db: AsyncSession, tracked: Project):
    result = await get_competitive_analysis(db, tracked.id, client=_serp_client())

    # Only "running shoes" ranks (position 2): score 87, 15.7% CTR over 200 total volume
    assert result["overall_score"] == 87
    assert result["share_of_voice"] == 8
    keywords = {k["keyword"]: k for k in result["keywords"]}
    assert keywords["running shoes"]["position_category"] == "top3"
    assert keywords["running shoes"]["vs_best_competitor"] == "loss"
    assert keywords["trail shoes"]["position_category"] == "notFound"


@pytest.mark.asyncio
async def test_each_device_variant_gets_its_own_serp(db: AsyncSession, project: Project, add_ranking):
    await add_ranking(project, "running shoes", 2, device="desktop")
    await add_ranking(project, "running shoes", 5, device="mobile")
    client = _serp_client()

    result = await get_competitive_analysis(db, project.id, client=client)

    devices = sorted(call.kwargs["device"] for call in client.search.await_args_list)
    assert devices == ["desktop", "mobile"]
    assert sorted(k["device"] for k in result["keywords"]) == ["desktop", "mobile"]
    for device in ("desktop", "mobile"):
        key = cache_service.serp_cache_key("running shoes", "example.com", None, device)
        assert await cache_service.get(db, key) is not None


@pytest.mark.asyncio
async def test_second_call_is_served_from_cache(db: AsyncSession, tracked: Project):
    client = _serp_client()
    first = await get_competitive_analysis(db, tracked.id, client=client)
    await db.commit()

    second = await get_competitive_analysis(db, tracked.id, client=client)

    assert second["cached"] is True
    assert second["generated_at"] == first["generated_at"]
    assert client.search.await_count == 2


@pytest.mark.asyncio
async def test_refresh_recomputes_from_cached_serps(db: AsyncSession, tracked: Project):
    client = _serp_client()
    await get_competitive_analysis(db, tracked.id, client=client)
    await db.commit()

    refreshed = await get_competitive_analysis(db, tracked.id, client=client, refresh=True)

    assert refreshed["cached"] is False
    # SERPs have their own, longer-lived cache entries
    assert client.search.await_count == 2
    slim = await cache_service.get(db, cache_service.serp_cache_key("running shoes", "example.com"))
    assert slim[0] == {"position": 1, "link": "https://rival.com/shoes", "title": "Rival"}


@pytest.mark.asyncio
async def test_failed_keyword_is_reported(db: AsyncSession, tracked: Project):
    result = await get_competitive_analysis(db, tracked.id, client=_serp_client(fail_on={"trail shoes"}))

    assert result["failed_keywords"] == ["trail shoes"]
    assert [k["keyword"] for k in result["keywords"]] == ["running shoes"]


@pytest.mark.asyncio
async def test_missing_project(db: AsyncSession):
    with pytest.raises(ProjectNotFoundError):
        await get_competitive_analysis(db, uuid.uuid4(), client=_serp_client())


@pytest.mark.asyncio
async def test_endpoint_returns_cached_analysis(client: AsyncClient, db: AsyncSession, tracked: Project):
    await get_competitive_analysis(db, tracked.id, client=_serp_client())
    await db.commit()

    resp = await client.get(f"/api/v1/projects/{tracked.id}/competitive-analysis")

    assert resp.status_code == 200
    data = resp.json()
    assert data["cached"] is True
    assert data["project_id"] == str(tracked.id)
    assert len(data["keywords"]) == 2


@pytest.mark.asyncio
async def test_endpoint_unknown_project(client: AsyncClient):
    resp = await client.get(f"/api/v1/projects/{uuid.uuid4()}/competitive-analysis")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_endpoint_without_serpapi_key(client: AsyncClient, tracked: Project, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "serpapi_api_key", "")
    resp = await client.get(f"/api/v1/projects/{tracked.id}/competitive-analysis")
    assert resp.status_code == 503


@pytest.mark.asyncio
async def test_cache_key_is_per_project():
    a, b = uuid.uuid4(), uuid.uuid4()
    assert analysis_key(a) != analysis_key(b)
    assert analysis_key(a).startswith("analysis:")
