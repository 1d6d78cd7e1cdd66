"""Position source interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class PositionReading:
    """One position observation for a keyword.

    ``position`` is None when the domain was not found in the scanned window;
    that is still a reading, unlike a source returning None ("no data").
    """

    position: int | None
    url: str | None
    data_source: str
    metrics: dict = field(default_factory=dict)  # impressions / clicks / ctr (Search Console only)


class PositionSource(ABC):
    """Something that can tell where a domain ranks for a keyword."""

    name: str = ""

    @abstractmethod
    async def lookup(
        self,
        keyword: str,
        domain: str,
        *,
        location: str | None = None,
        device: str | None = None,
    ) -> PositionReading | None:
        """Return a reading, or None when this source has no data for the keyword."""
        ...
