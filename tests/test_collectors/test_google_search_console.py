"""Tests for the Search Console adapter with mocked HTTP."""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.collectors.google_search_console import SearchConsoleAdapter
from app.core.encryption import encrypt_token
from app.core.exceptions import TokenRefreshError

TOKEN_URL = "https://oauth2.googleapis.com/token"


def _resp(status_code: int, payload: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    if status_code >= 400:
        resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=MagicMock(), response=resp
        )
    else:
        resp.raise_for_status = MagicMock()
    return resp


def _patch_client(*responses):
    """Patch httpx.AsyncClient; every client shares one post() fed by ``responses`` in order."""
    patcher = patch("app.collectors.google_search_console.httpx.AsyncClient")
    MockClient = patcher.start()
    mock_client = AsyncMock()
    mock_client.post.side_effect = list(responses)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    MockClient.return_value = mock_client
    return patcher, mock_client


ROWS = [
    {"keys": ["running shoes", "https://example.com/a"], "position": 2.0, "impressions": 300, "clicks": 30},
    {"keys": ["running shoes", "https://example.com/b"], "position": 6.0, "impressions": 100, "clicks": 2},
]


@pytest.fixture
def adapter():
    return SearchConsoleAdapter(
        property_id="sc-domain:example.com",
        access_token="old-access",
        refresh_token="refresh-1",
        token_expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        client_id="cid",
        client_secret="secret",
    )


class TestAggregateRows:
    def test_impression_weighted_position_and_top_page(self):
        reading = SearchConsoleAdapter.aggregate_rows(ROWS)
        assert reading.position == 3  # (2*300 + 6*100) / 400
        assert reading.url == "https://example.com/a"
        assert reading.data_source == "search_console"
        assert reading.metrics["impressions"] == 400
        assert reading.metrics["clicks"] == 32
        assert reading.metrics["ctr"] == 0.08

    def test_zero_impressions_uses_simple_mean(self):
        rows = [
            {"keys": ["q", "https://example.com/a"], "position": 1.4, "impressions": 0, "clicks": 0},
            {"keys": ["q", "https://example.com/b"], "position": 2.0, "impressions": 0, "clicks": 0},
        ]
        reading = SearchConsoleAdapter.aggregate_rows(rows)
        assert reading.position == 2
        assert reading.metrics["ctr"] == 0.0

    def test_position_is_at_least_one(self):
        rows = [{"keys": ["q", "https://example.com"], "position": 0.4, "impressions": 5, "clicks": 1}]
        assert SearchConsoleAdapter.aggregate_rows(rows).position == 1


class TestLookup:
    @pytest.mark.asyncio
    async def test_queries_yesterday_for_exact_keyword(self, adapter):
        patcher, mock_client = _patch_client(_resp(200, {"rows": ROWS}))
        try:
            reading = await adapter.lookup("running shoes", "example.com")
        finally:
            patcher.stop()

        assert reading.position == 3
        call = mock_client.post.call_args
        assert call.args[0].endswith("/sites/sc-domain%3Aexample.com/searchAnalytics/query")
        assert call.kwargs["headers"]["Authorization"] == "Bearer old-access"
        body = call.kwargs["json"]
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        assert body["startDate"] == yesterday
        assert body["endDate"] == yesterday
        assert body["dimensions"] == ["query", "page"]
        flt = body["dimensionFilterGroups"][0]["filters"][0]
        assert flt == {"dimension": "query", "operator": "equals", "expression": "running shoes"}
        assert body["rowLimit"] == 10

    @pytest.mark.asyncio
    async def test_no_rows_means_no_data(self, adapter):
        patcher, _ = _patch_client(_resp(200, {}))
        try:
            assert await adapter.lookup("running shoes", "example.com") is None
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_api_error_means_no_data(self, adapter):
        patcher, _ = _patch_client(_resp(500, {"error": {"message": "backend"}}))
        try:
            assert await adapter.lookup("running shoes", "example.com") is None
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_401_refreshes_once_and_retries(self, adapter):
        saved = AsyncMock()
        adapter.on_token_refresh = saved
        patcher, mock_client = _patch_client(
            _resp(401),
            _resp(200, {"access_token": "new-access", "expires_in": 3600}),
            _resp(200, {"rows": ROWS}),
        )
        try:
            reading = await adapter.lookup("running shoes", "example.com")
        finally:
            patcher.stop()

        assert reading.position == 3
        assert mock_client.post.call_count == 3
        token_call = mock_client.post.call_args_list[1]
        assert token_call.args[0] == TOKEN_URL
        assert token_call.kwargs["data"]["grant_type"] == "refresh_token"
        assert token_call.kwargs["data"]["refresh_token"] == "refresh-1"
        retry = mock_client.post.call_args_list[2]
        assert retry.kwargs["headers"]["Authorization"] == "Bearer new-access"

        saved.assert_awaited_once()
        access, refresh, expires_at = saved.await_args.args
        assert access == "new-access"
        assert refresh == "refresh-1"
        assert expires_at > datetime.now(timezone.utc)

    @pytest.mark.asyncio
    async def test_refresh_failure_raises(self, adapter):
        patcher, _ = _patch_client(_resp(401), _resp(400, {"error": "invalid_grant"}))
        try:
            with pytest.raises(TokenRefreshError):
                await adapter.lookup("running shoes", "example.com")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed_before_the_query(self, adapter):
        adapter.token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        patcher, mock_client = _patch_client(
            _resp(200, {"access_token": "fresh", "expires_in": 3600, "refresh_token": "refresh-2"}),
            _resp(200, {"rows": ROWS}),
        )
        try:
            await adapter.lookup("running shoes", "example.com")
        finally:
            patcher.stop()

        assert mock_client.post.call_args_list[0].args[0] == TOKEN_URL
        assert mock_client.post.call_args_list[1].kwargs["headers"]["Authorization"] == "Bearer fresh"
        assert adapter.refresh_token == "refresh-2"

    @pytest.mark.asyncio
    async def test_missing_refresh_token_raises(self):
        adapter = SearchConsoleAdapter(
            property_id="https://example.com/",
            access_token="",
            refresh_token=None,
            client_id="cid",
            client_secret="secret",
        )
        with pytest.raises(TokenRefreshError):
            await adapter.lookup("running shoes", "example.com")


def test_from_integration_decrypts_tokens():
    integration = SimpleNamespace(
        property_id="sc-domain:example.com",
        access_token=encrypt_token("plain-access"),
        refresh_token=encrypt_token("plain-refresh"),
        token_expires_at=datetime(2030, 1, 1),  # naive, as SQLite returns it
    )
    adapter = SearchConsoleAdapter.from_integration(integration)

    assert adapter.access_token == "plain-access"
    assert adapter.refresh_token == "plain-refresh"
    assert adapter.token_expires_at.tzinfo is not None
    assert not adapter.token_expired()
