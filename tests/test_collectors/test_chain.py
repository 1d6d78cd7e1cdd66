"""Tests for the position source fallback chain."""

import pytest

from app.collectors.base import PositionReading, PositionSource
from app.collectors.chain import PositionSourceChain


class FakeSource(PositionSource):
    def __init__(self, name: str, reading: PositionReading | None = None, error: Exception | None = None):
        self.name = name
        self.reading = reading
        self.error = error
        self.calls: list[str] = []

    async def lookup(self, keyword, domain, *, location=None, device=None):
        self.calls.append(keyword)
        if self.error:
            raise self.error
        return self.reading


@pytest.mark.asyncio
async def test_first_source_with_data_wins():
    first = FakeSource("search_console", PositionReading(4, "https://example.com/a", "search_console"))
    second = FakeSource("serp_api", PositionReading(9, "https://example.com/b", "serp_api"))

    reading = await PositionSourceChain([first, second]).lookup("shoes", "example.com")

    assert reading.position == 4
    assert second.calls == []


@pytest.mark.asyncio
async def test_no_data_falls_back_to_next_source():
    first = FakeSource("search_console", None)
    second = FakeSource("serp_api", PositionReading(None, None, "serp_api"))

    reading = await PositionSourceChain([first, second]).lookup("shoes", "example.com")

    assert reading.data_source == "serp_api"
    assert reading.position is None
    assert first.calls == ["shoes"]
    assert second.calls == ["shoes"]


@pytest.mark.asyncio
async def test_all_sources_without_data():
    chain = PositionSourceChain([FakeSource("a"), FakeSource("b")])
    assert await chain.lookup("shoes", "example.com") is None


@pytest.mark.asyncio
async def test_errors_propagate():
    chain = PositionSourceChain([FakeSource("a", error=RuntimeError("down")), FakeSource("b")])
    with pytest.raises(RuntimeError):
        await chain.lookup("shoes", "example.com")


def test_without_drops_named_source():
    chain = PositionSourceChain([FakeSource("search_console"), FakeSource("serp_api")])
    assert chain.without("search_console").source_names == ["serp_api"]
    assert chain.source_names == ["search_console", "serp_api"]


def test_empty_chain_rejected():
    with pytest.raises(ValueError):
        PositionSourceChain([])
