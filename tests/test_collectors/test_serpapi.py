"""Tests for the SerpAPI client with mocked HTTP."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.collectors.serpapi import SerpApiClient
from app.core.exceptions import ConfigurationError, PositionLookupError


def _mock_http(payload=None, *, status_code=200, get_side_effect=None):
    """Patch httpx.AsyncClient inside the collector; returns (patcher, client mock)."""
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = payload
    if status_code >= 400:
        mock_resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=MagicMock(), response=mock_resp
        )
    else:
        mock_resp.raise_for_status = MagicMock()

    patcher = patch("app.collectors.serpapi.httpx.AsyncClient")
    MockClient = patcher.start()
    mock_client = AsyncMock()
    if get_side_effect is not None:
        mock_client.get.side_effect = get_side_effect
    else:
        mock_client.get.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    MockClient.return_value = mock_client
    return patcher, mock_client


@pytest.fixture
def client():
    return SerpApiClient(api_key="test-key")


def test_missing_api_key_is_a_configuration_error(monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "serpapi_api_key", "")
    with pytest.raises(ConfigurationError):
        SerpApiClient()


class TestLookup:
    @pytest.mark.asyncio
    async def test_finds_first_matching_result(self, client):
        payload = {
            "organic_results": [
                {"position": 1, "link": "https://rival.com/shoes"},
                {"position": 2, "link": "https://www.example.com/shoes"},
                {"position": 3, "link": "https://example.com/other"},
            ]
        }
        patcher, mock_client = _mock_http(payload)
        try:
            reading = await client.lookup("running shoes", "example.com", location="Austin, Texas", device="mobile")
        finally:
            patcher.stop()

        assert reading.position == 2
        assert reading.url == "https://www.example.com/shoes"
        assert reading.data_source == "serp_api"

        params = mock_client.get.call_args.kwargs["params"]
        assert params["q"] == "running shoes"
        assert params["location"] == "Austin, Texas"
        assert params["device"] == "mobile"
        assert params["num"] == 100
        assert params["api_key"] == "test-key"
        assert params["engine"] == "google"

    @pytest.mark.asyncio
    async def test_defaults_location_and_device(self, client):
        patcher, mock_client = _mock_http({"organic_results": []})
        try:
            await client.lookup("shoes", "example.com")
        finally:
            patcher.stop()

        params = mock_client.get.call_args.kwargs["params"]
        assert params["location"] == "Brazil"
        assert params["device"] == "desktop"

    @pytest.mark.asyncio
    async def test_domain_absent_gives_null_position_and_url(self, client):
        payload = {"organic_results": [{"position": 1, "link": "https://rival.com"}]}
        patcher, _ = _mock_http(payload)
        try:
            reading = await client.lookup("shoes", "example.com")
        finally:
            patcher.stop()

        assert reading is not None
        assert reading.position is None
        assert reading.url is None

    @pytest.mark.asyncio
    async def test_subdomain_matches(self, client):
        payload = {"organic_results": [{"position": 7, "link": "https://blog.example.com/post"}]}
        patcher, _ = _mock_http(payload)
        try:
            reading = await client.lookup("shoes", "https://www.example.com/")
        finally:
            patcher.stop()
        assert reading.position == 7

    @pytest.mark.asyncio
    async def test_http_error_raises_lookup_error(self, client):
        patcher, _ = _mock_http({}, status_code=500)
        try:
            with pytest.raises(PositionLookupError):
                await client.lookup("shoes", "example.com")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_network_error_raises_lookup_error(self, client):
        patcher, _ = _mock_http(get_side_effect=httpx.ConnectError("boom"))
        try:
            with pytest.raises(PositionLookupError):
                await client.lookup("shoes", "example.com")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_api_error_payload_raises_lookup_error(self, client):
        patcher, _ = _mock_http({"error": "Invalid API key."})
        try:
            with pytest.raises(PositionLookupError, match="Invalid API key"):
                await client.lookup("shoes", "example.com")
        finally:
            patcher.stop()

    @pytest.mark.asyncio
    async def test_no_results_error_is_not_found(self, client):
        patcher, _ = _mock_http({"error": "Google hasn't returned any results for this query."})
        try:
            reading = await client.lookup("zzzz qqqq", "example.com")
        finally:
            patcher.stop()
        assert reading.position is None


class TestFindPosition:
    def test_falls_back_to_index_when_position_missing(self):
        organic = [{"link": "https://rival.com"}, {"link": "https://example.com/x"}]
        assert SerpApiClient.find_position(organic, "example.com") == (2, "https://example.com/x")

    def test_skips_results_without_link(self):
        organic = [{"position": 1}, {"position": 2, "link": "https://example.com"}]
        assert SerpApiClient.find_position(organic, "example.com") == (2, "https://example.com")

    def test_empty(self):
        assert SerpApiClient.find_position([], "example.com") == (None, None)
