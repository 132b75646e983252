import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from vibecast.aggregator import (
    CatalogAggregator,
    build_providers,
    filter_by_relative_duration,
    normalize_title,
)
from vibecast.db import Database
from vibecast.demo import DemoCatalog
from vibecast.errors import AllProvidersFailedError, ErrorKind
from vibecast.models import Episode
from vibecast.podcast_index import PodcastIndexClient
from vibecast.spotify import SpotifyClient


class FakeProvider:
    """In-memory provider returning the same raw records for every query."""

    def __init__(self, name, records=None, available=True, error=None, delay=0.0):
        self.name = name
        self.records = records or []
        self.available = available
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, int]] = []

    def is_available(self):
        return self.available

    async def search_by_category(self, term, limit=20):
        self.calls.append((term, limit))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.records[:limit]

    def parse_episode(self, raw):
        return Episode(
            id=f"{self.name}:{raw['id']}" if raw.get("id") else "",
            title=raw["title"],
            audio_length_sec=raw.get("minutes", 30) * 60,
            provider=self.name,
        )


def records(prefix: str, count: int, minutes: int = 30) -> list[dict]:
    return [{"id": f"{prefix}{i}", "title": f"{prefix} episode {i}", "minutes": minutes} for i in range(count)]


def test_normalize_title():
    assert normalize_title("  The Daily: Episode #12!  ") == "the daily episode 12"
    assert normalize_title("Hello,   World") == normalize_title("hello world")


def test_build_providers_skips_unknown():
    providers = build_providers(["podcastindex", "nope", "spotify"])
    assert [type(p) for p in providers] == [PodcastIndexClient, SpotifyClient]


def test_filter_by_relative_duration():
    episodes = [Episode(id=str(i), title=str(i), audio_length_sec=m * 60) for i, m in enumerate([30] * 6 + [120])]
    assert len(filter_by_relative_duration(episodes, 30)) == 6
    # keeping too few leaves the pool untouched
    assert len(filter_by_relative_duration(episodes[:3] + episodes[6:], 30)) == 4


def test_relative_duration_filter_keeps_show_records():
    shows = [Episode(id=f"show{i}", title=f"Show {i}", audio_length_sec=0) for i in range(6)]
    long_form = [Episode(id="long", title="Long", audio_length_sec=150 * 60)]
    assert [ep.id for ep in filter_by_relative_duration(shows + long_form, 30)] == [ep.id for ep in shows]


def test_fallback_defaults_to_demo_and_can_be_disabled():
    assert isinstance(CatalogAggregator([]).fallback, DemoCatalog)
    assert CatalogAggregator([], fallback=None).fallback is None


@pytest.mark.asyncio
async def test_dedup_by_id_and_title():
    first = FakeProvider("one", [{"id": "1", "title": "Same Show!"}, {"id": "2", "title": "Other"}])
    second = FakeProvider("two", [{"id": "9", "title": "same show"}])
    aggregator = CatalogAggregator([first, second], fallback=None)

    pool = await aggregator.search(["Comedy"])
    assert [ep.id for ep in pool] == ["one:1", "one:2"]


@pytest.mark.asyncio
async def test_query_limits_and_secondary_cap():
    provider = FakeProvider("one", records("a", 3))
    await CatalogAggregator([provider], fallback=None).search(["Comedy", "Music", "Arts", "Leisure"])
    assert provider.calls == [("Comedy", 50), ("Music", 20), ("Arts", 20)]


@pytest.mark.asyncio
async def test_empty_terms_use_default_query():
    provider = FakeProvider("one", records("a", 1))
    await CatalogAggregator([provider], fallback=None).search([])
    assert provider.calls == [("podcast", 50)]


@pytest.mark.asyncio
async def test_episodes_tagged_with_query_term():
    provider = FakeProvider("one", records("a", 1))
    pool = await CatalogAggregator([provider], fallback=None).search(["Comedy"])
    assert pool[0].categories == ["Comedy"]


@pytest.mark.asyncio
async def test_failed_and_unavailable_providers_are_skipped():
    broken = FakeProvider("broken", error=RuntimeError("boom"))
    locked = FakeProvider("locked", records("x", 5), available=False)
    working = FakeProvider("working", records("w", 3))
    aggregator = CatalogAggregator([broken, locked, working], fallback=None)

    pool = await aggregator.search(["Comedy"])
    assert {ep.provider for ep in pool} == {"working"}
    assert locked.calls == []


@pytest.mark.asyncio
async def test_stops_once_pool_is_large_enough():
    first = FakeProvider("one", records("a", 25))
    second = FakeProvider("two", records("b", 5))
    await CatalogAggregator([first, second], fallback=None).search(["Comedy"])
    assert second.calls == []


@pytest.mark.asyncio
async def test_empty_provider_falls_through_to_next():
    empty = FakeProvider("empty")
    second = FakeProvider("two", records("b", 2))
    pool = await CatalogAggregator([empty, second], fallback=None).search(["Comedy"])
    assert len(pool) == 2


@pytest.mark.asyncio
async def test_slow_provider_times_out():
    slow = FakeProvider("slow", records("s", 3), delay=1.0)
    fast = FakeProvider("fast", records("f", 3))
    aggregator = CatalogAggregator([slow, fast], fallback=None, provider_timeout=0.05)

    result = await aggregator.query_provider(slow, ["Comedy"])
    assert result.error == ErrorKind.TIMEOUT

    pool = await aggregator.search(["Comedy"])
    assert {ep.provider for ep in pool} == {"fast"}


@pytest.mark.asyncio
async def test_search_deadline_skips_remaining_providers():
    first = FakeProvider("first", records("f", 3))
    later = FakeProvider("later", records("l", 3))
    aggregator = CatalogAggregator([first, later], fallback=None, search_deadline=0)

    with pytest.raises(AllProvidersFailedError) as exc_info:
        await aggregator.search(["Comedy"])
    assert first.calls == later.calls == []
    assert "later: search deadline exceeded" in str(exc_info.value)
    assert "demo" not in str(exc_info.value)


@pytest.mark.asyncio
async def test_demo_fallback_when_live_providers_fail():
    broken = FakeProvider("broken", error=RuntimeError("boom"))
    pool = await CatalogAggregator([broken], fallback=DemoCatalog()).search(["Comedy"])
    assert pool
    assert all(ep.provider == "demo" for ep in pool)


@pytest.mark.asyncio
async def test_all_providers_failed():
    broken = FakeProvider("broken", error=RuntimeError("boom"))
    empty = FakeProvider("empty")
    aggregator = CatalogAggregator([broken], fallback=empty)

    with pytest.raises(AllProvidersFailedError) as exc_info:
        await aggregator.search(["Comedy"])
    message = str(exc_info.value)
    assert message.startswith("All search providers failed:")
    assert "broken: boom" in message
    assert "empty: no results" in message


@pytest.mark.asyncio
async def test_malformed_records_dropped():
    provider = FakeProvider("one", [{"id": "1"}, {"id": "2", "title": "Good"}])
    pool = await CatalogAggregator([provider], fallback=None).search(["Comedy"])
    assert [ep.id for ep in pool] == ["one:2"]


@pytest.mark.asyncio
async def test_missing_id_gets_title_based_id():
    provider = FakeProvider("one", [{"title": "The Big Show!"}, {"title": "  "}])
    pool = await CatalogAggregator([provider], fallback=None).search(["Comedy"])
    assert [ep.id for ep in pool] == ["one:the big show"]


@pytest.mark.asyncio
async def test_duration_filter_on_large_pools():
    provider = FakeProvider("one", records("a", 15, minutes=30) + records("b", 10, minutes=120))
    pool = await CatalogAggregator([provider], fallback=None).search(["Comedy"], 30)
    assert len(pool) == 15


@pytest.mark.asyncio
async def test_search_cache(tmp_path):
    db = Database(str(tmp_path / "cache.db"))
    provider = FakeProvider("one", records("a", 3))
    aggregator = CatalogAggregator([provider], fallback=None, cache=db)

    first = await aggregator.search(["Comedy"], 30)
    second = await aggregator.search(["Comedy"], 30)
    assert first == second
    assert len(provider.calls) == 1
    db.conn.close()


@pytest.mark.asyncio
async def test_partial_query_failure_keeps_successes():
    provider = FakeProvider("one", records("a", 2))
    original = provider.search_by_category

    async def flaky(term, limit=20):
        if term == "Music":
            raise RuntimeError("flaky")
        return await original(term, limit)

    with patch.object(provider, "search_by_category", new=AsyncMock(side_effect=flaky)):
        result = await CatalogAggregator([provider], fallback=None).query_provider(provider, ["Comedy", "Music"])

    assert result.ok
    assert len(result.value) == 2
