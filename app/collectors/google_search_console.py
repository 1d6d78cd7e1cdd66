"""Google Search Console position adapter — async version.

Reads the average position of one exact query from the searchAnalytics
endpoint for the most recently completed day. Uses the OAuth2 tokens
stored (encrypted) on the project's integration record.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timedelta, timezone
from urllib.parse import quote

import httpx

from app.collectors.base import PositionReading, PositionSource
from app.core.config import settings
from app.core.encryption import decrypt_token
from app.core.exceptions import TokenRefreshError

logger = logging.getLogger(__name__)

DATA_SOURCE = "search_console"

# (access_token, refresh_token, expires_at) -> persisted somewhere
TokenSaver = Callable[[str, str | None, datetime | None], Awaitable[None]]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SearchConsoleAdapter(PositionSource):
    """Position source backed by a verified Search Console property."""

    name = DATA_SOURCE

    def __init__(
        self,
        property_id: str,
        access_token: str,
        refresh_token: str | None = None,
        token_expires_at: datetime | None = None,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        on_token_refresh: TokenSaver | None = None,
        row_limit: int | None = None,
        timeout: float = 30,
    ):
        """
        Args:
            property_id: Search Console property, e.g. "sc-domain:example.com"
                or "https://example.com/"
            access_token / refresh_token: plaintext OAuth2 tokens
            on_token_refresh: awaited with the new tokens after each refresh
        """
        self.property_id = property_id
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.token_expires_at = _as_utc(token_expires_at)
        self.client_id = client_id or settings.google_client_id
        self.client_secret = client_secret or settings.google_client_secret
        self.on_token_refresh = on_token_refresh
        self.row_limit = row_limit or settings.gsc_row_limit
        self.timeout = timeout

    @classmethod
    def from_integration(cls, integration, on_token_refresh: TokenSaver | None = None) -> "SearchConsoleAdapter":
        """Build an adapter from a ProjectIntegration row (tokens are decrypted here)."""
        return cls(
            property_id=integration.property_id,
            access_token=decrypt_token(integration.access_token),
            refresh_token=decrypt_token(integration.refresh_token) or None,
            token_expires_at=integration.token_expires_at,
            on_token_refresh=on_token_refresh,
        )

    @property
    def query_url(self) -> str:
        site = quote(self.property_id, safe="")
        return f"{settings.gsc_api_base}/sites/{site}/searchAnalytics/query"

    def token_expired(self) -> bool:
        if not self.access_token:
            return True
        if self.token_expires_at is None:
            return False
        return self.token_expires_at <= datetime.now(timezone.utc)

    async def lookup(
        self,
        keyword: str,
        domain: str,
        *,
        location: str | None = None,
        device: str | None = None,
    ) -> PositionReading | None:
        # location/device are fixed by the property itself; domain is implied by property_id
        if self.token_expired():
            await self.refresh_access_token()

        day = date.today() - timedelta(days=1)
        body = {
            "startDate": day.isoformat(),
            "endDate": day.isoformat(),
            "dimensions": ["query", "page"],
            "dimensionFilterGroups": [
                {"filters": [{"dimension": "query", "operator": "equals", "expression": keyword}]}
            ],
            "rowLimit": self.row_limit,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await self._post_query(client, body)
                if resp.status_code == 401:
                    # Try refreshing token once
                    await self.refresh_access_token()
                    resp = await self._post_query(client, body)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("GSC API error for %r on %s: %s", keyword, self.property_id, e)
            return None

        rows = data.get("rows") or []
        if not rows:
            return None
        return self.aggregate_rows(rows)

    async def _post_query(self, client: httpx.AsyncClient, body: dict) -> httpx.Response:
        return await client.post(
            self.query_url,
            headers={"Authorization": f"Bearer {self.access_token}"},
            json=body,
        )

    @staticmethod
    def aggregate_rows(rows: list[dict]) -> PositionReading:
        """Impression-weighted position over all (query, page) rows."""
        impressions = sum(row.get("impressions", 0) or 0 for row in rows)
        clicks = sum(row.get("clicks", 0) or 0 for row in rows)

        if impressions > 0:
            avg = sum((row.get("position", 0.0) or 0.0) * (row.get("impressions", 0) or 0) for row in rows) / impressions
        else:
            avg = sum(row.get("position", 0.0) or 0.0 for row in rows) / len(rows)

        best = max(rows, key=lambda row: row.get("impressions", 0) or 0)
        keys = best.get("keys", [])
        page = keys[1] if len(keys) > 1 else None

        return PositionReading(
            position=max(1, round(avg)),
            url=page,
            data_source=DATA_SOURCE,
            metrics={
                "impressions": impressions,
                "clicks": clicks,
                "ctr": round(clicks / impressions, 4) if impressions else 0.0,
                "average_position": round(avg, 1),
            },
        )

    async def refresh_access_token(self) -> str:
        """Exchange the refresh token for a new access token.

        Raises TokenRefreshError on any failure; the caller decides what that
        means for the integration.
        """
        if not all([self.refresh_token, self.client_id, self.client_secret]):
            raise TokenRefreshError("GSC: missing refresh credentials")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    settings.google_token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": self.refresh_token,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TokenRefreshError(f"GSC token refresh failed: {e}") from e

        new_token = data.get("access_token")
        if not new_token:
            raise TokenRefreshError("GSC token refresh returned no access_token")

        self.access_token = new_token
        # Google rotates refresh tokens only occasionally
        if data.get("refresh_token"):
            self.refresh_token = data["refresh_token"]
        expires_in = data.get("expires_in")
        self.token_expires_at = (
            datetime.now(timezone.utc) + timedelta(seconds=int(expires_in)) if expires_in else None
        )
        logger.info("GSC: access token refreshed for %s", self.property_id)

        if self.on_token_refresh is not None:
            await self.on_token_refresh(self.access_token, self.refresh_token, self.token_expires_at)
        return new_token
