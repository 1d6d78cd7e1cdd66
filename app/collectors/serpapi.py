"""SerpAPI position lookup client.

Finds where a domain ranks in Google's organic results for a keyword.
No retries and no caching here: callers decide both.
"""

import logging

import httpx

from app.analysis.domains import domain_matches, normalize_domain
from app.collectors.base import PositionReading, PositionSource
from app.core.config import settings
from app.core.exceptions import ConfigurationError, PositionLookupError

logger = logging.getLogger(__name__)

DATA_SOURCE = "serp_api"

# SerpAPI answers with an "error" field instead of an empty list when Google has nothing
_NO_RESULTS_ERRORS = ("hasn't returned any results",)


class SerpApiClient(PositionSource):
    """Look up a domain's organic position via SerpAPI."""

    name = DATA_SOURCE

    def __init__(
        self,
        api_key: str | None = None,
        *,
        api_url: str | None = None,
        engine: str | None = None,
        num_results: int | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.serpapi_api_key
        if not self.api_key:
            raise ConfigurationError("SERPAPI_API_KEY is not configured")
        self.api_url = api_url or settings.serpapi_url
        self.engine = engine or settings.serpapi_engine
        self.num_results = num_results or settings.serpapi_num_results
        self.timeout = timeout or settings.serpapi_timeout

    async def lookup(
        self,
        keyword: str,
        domain: str,
        *,
        location: str | None = None,
        device: str | None = None,
    ) -> PositionReading:
        organic = await self.search(keyword, location=location, device=device)
        position, url = self.find_position(organic, domain)
        logger.debug("SerpAPI %r for %s: position=%s", keyword, domain, position)
        return PositionReading(position=position, url=url, data_source=DATA_SOURCE)

    async def search(
        self,
        keyword: str,
        *,
        location: str | None = None,
        device: str | None = None,
    ) -> list[dict]:
        """Return the raw ``organic_results`` list for a keyword."""
        params = {
            "engine": self.engine,
            "q": keyword,
            "location": location or settings.default_location,
            "device": device or settings.default_device,
            "num": self.num_results,
            "api_key": self.api_key,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(self.api_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise PositionLookupError(f"SerpAPI request failed for {keyword!r}: {e}") from e
        except ValueError as e:
            raise PositionLookupError(f"SerpAPI returned invalid JSON for {keyword!r}") from e

        if not isinstance(data, dict):
            raise PositionLookupError(f"SerpAPI returned unexpected payload for {keyword!r}")

        error = data.get("error")
        if error:
            if any(marker in str(error) for marker in _NO_RESULTS_ERRORS):
                return []
            raise PositionLookupError(f"SerpAPI error for {keyword!r}: {error}")

        organic = data.get("organic_results", [])
        if not isinstance(organic, list):
            raise PositionLookupError(f"SerpAPI response for {keyword!r} has no organic_results list")
        return organic

    @staticmethod
    def find_position(organic: list[dict], domain: str) -> tuple[int | None, str | None]:
        """Rank and URL of the first organic result on ``domain``, or (None, None)."""
        target = normalize_domain(domain)
        for index, item in enumerate(organic):
            if not isinstance(item, dict):
                continue
            link = item.get("link") or ""
            if not domain_matches(normalize_domain(link), target):
                continue
            reported = item.get("position")
            position = reported if isinstance(reported, int) and reported > 0 else index + 1
            return position, link
        return None, None
