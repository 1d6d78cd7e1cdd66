"""Ordered fallback across position sources."""

import logging

from app.collectors.base import PositionReading, PositionSource

logger = logging.getLogger(__name__)


class PositionSourceChain(PositionSource):
    """Try each source in order; the first one with data wins.

    A source returning None means "no data" and hands over to the next one.
    Exceptions are not swallowed here.
    """

    name = "chain"

    def __init__(self, sources: list[PositionSource]):
        if not sources:
            raise ValueError("PositionSourceChain needs at least one source")
        self.sources = list(sources)

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self.sources]

    def without(self, name: str) -> "PositionSourceChain":
        """Copy of the chain minus the named source."""
        return PositionSourceChain([s for s in self.sources if s.name != name])

    async def lookup(
        self,
        keyword: str,
        domain: str,
        *,
        location: str | None = None,
        device: str | None = None,
    ) -> PositionReading | None:
        for source in self.sources:
            reading = await source.lookup(keyword, domain, location=location, device=device)
            if reading is not None:
                return reading
            logger.debug("%s: no data for %r, falling back", source.name, keyword)
        return None
