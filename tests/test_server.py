import json
import random

import pytest

from vibecast.aggregator import CatalogAggregator
from vibecast.db import Database
from vibecast.demo import DemoCatalog
from vibecast.preferences import PreferenceStore
from vibecast.recommender import VibeRecommender
from vibecast.shuffle import ShuffleSelector


@pytest.fixture
def server(tmp_path, monkeypatch):
    """MCP server module with its recommender swapped for a demo-backed one."""
    monkeypatch.setenv("VIBECAST_DB_PATH", str(tmp_path / "import.db"))
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    from vibecast import server as module

    db = Database(str(tmp_path / "mcp.db"))
    recommender = VibeRecommender(
        CatalogAggregator(providers=[], fallback=DemoCatalog()),
        store=PreferenceStore(local=db),
        selector=ShuffleSelector(random.Random(3)),
    )
    monkeypatch.setattr(module, "recommender", recommender)
    yield module
    db.conn.close()


async def call(server, name, arguments=None):
    (content,) = await server.call_tool(name, arguments or {})
    return json.loads(content.text)


@pytest.mark.asyncio
async def test_list_tools(server):
    tools = await server.list_tools()
    assert [t.name for t in tools] == ["recommend_episode", "shuffle_episode", "rate_episode", "get_preferences"]


@pytest.mark.asyncio
async def test_recommend_then_shuffle(server):
    episodes = await call(server, "recommend_episode", {"moods": ["happy"], "themes": ["laugh"], "max_results": 2})
    assert 0 < len(episodes) <= 2

    shuffled = await call(server, "shuffle_episode")
    assert shuffled["id"] != episodes[0]["id"]


@pytest.mark.asyncio
async def test_shuffle_before_recommend(server):
    result = await call(server, "shuffle_episode", {"session_id": "fresh"})
    assert result == {"message": "No more episodes to shuffle"}


@pytest.mark.asyncio
async def test_rate_and_preferences(server):
    result = await call(server, "rate_episode", {"episode_id": "demo:demo-1", "rating": 4, "moods": ["tired"], "themes": ["chill"]})
    assert result["status"] == "success"
    assert result["updated_weights"] == 1

    weights = await call(server, "get_preferences")
    assert [(w["mood"], w["theme"]) for w in weights] == [("tired", "chill")]


@pytest.mark.asyncio
async def test_errors_are_reported(server):
    assert "error" in await call(server, "rate_episode", {"episode_id": "x", "rating": 9})
    assert await call(server, "nope") == {"error": "Unknown tool: nope"}
