import random

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from vibecast import api
from vibecast.aggregator import CatalogAggregator
from vibecast.db import Database
from vibecast.demo import DemoCatalog
from vibecast.preferences import PreferenceStore
from vibecast.recommender import VibeRecommender
from vibecast.shuffle import ShuffleSelector


@pytest.fixture
def client(tmp_path):
    """API client wired to the demo catalog and a temporary database."""

    def factory():
        db = Database(str(tmp_path / "api.db"))
        aggregator = CatalogAggregator(providers=[], fallback=DemoCatalog())
        return VibeRecommender(aggregator, store=PreferenceStore(local=db), selector=ShuffleSelector(random.Random(1)))

    with patch.object(api, "create_recommender", factory):
        with TestClient(api.app) as test_client:
            yield test_client


def test_recommend(client):
    response = client.post(
        "/api/recommend",
        json={"session_id": "s1", "moods": ["happy"], "themes": ["laugh"], "duration_minutes": 30, "limit": 3},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["episode"]["id"] == data["episodes"][0]["id"]
    assert len(data["episodes"]) <= 3
    assert data["total"] >= len(data["episodes"])
    assert data["episode"]["match_reason"]


def test_recommend_rejects_unknown_mood(client):
    response = client.post("/api/recommend", json={"session_id": "s1", "moods": ["elated"]})
    assert response.status_code == 422


def test_recommend_all_providers_failed(client):
    api.recommender.aggregator.fallback = None
    response = client.post("/api/recommend", json={"session_id": "s1", "moods": ["happy"]})
    assert response.status_code == 503
    assert "All search providers failed" in response.json()["detail"]


def test_shuffle(client):
    first = client.post("/api/recommend", json={"session_id": "s1", "moods": ["curious"], "duration_minutes": 30})
    top_id = first.json()["episode"]["id"]

    response = client.post("/api/sessions/s1/shuffle")
    assert response.status_code == 200
    data = response.json()
    assert data["exhausted"] is False
    assert data["episode"]["id"] != top_id


def test_shuffle_unknown_session(client):
    assert client.post("/api/sessions/nope/shuffle").status_code == 404


def test_ratings_and_preferences(client):
    response = client.post(
        "/api/ratings",
        json={"episode_id": "demo:demo-1", "rating": 5, "moods": ["happy"], "themes": ["laugh", "learn"]},
    )
    assert response.status_code == 200
    assert len(response.json()["updated_weights"]) == 2

    ratings = client.get("/api/ratings", params={"episode_id": "demo:demo-1"}).json()["ratings"]
    assert len(ratings) == 1
    assert ratings[0]["rating"] == 5

    weights = client.get("/api/preferences").json()["weights"]
    assert {(w["mood"], w["theme"]) for w in weights} == {("happy", "laugh"), ("happy", "learn")}


def test_rating_summary_and_average(client):
    for stars, moods in ((5, ["happy"]), (3, ["happy", "bored"])):
        client.post("/api/ratings", json={"episode_id": "demo:demo-1", "rating": stars, "moods": moods, "themes": ["laugh"]})

    summary = client.get("/api/ratings/summary/demo:demo-1").json()
    assert summary["total_ratings"] == 2
    assert summary["average_rating"] == 4.0
    assert summary["mood_ratings"] == {"happy": 4.0, "bored": 3.0}

    average = client.get("/api/ratings/average", params={"mood": "bored", "theme": "laugh"}).json()
    assert average["average_rating"] == 3.0


def test_rating_summary_unknown_episode(client):
    assert client.get("/api/ratings/summary/nothing").status_code == 404


def test_rating_out_of_range(client):
    response = client.post("/api/ratings", json={"episode_id": "demo:demo-1", "rating": 6})
    assert response.status_code == 422


def test_playback(client):
    response = client.post("/api/playback", json={"episode_id": "demo:demo-1", "completion_rate": 0.8, "play_time": 120})
    assert response.status_code == 200
    assert response.json()["completion_rate"] == 0.8


def test_categories(client):
    data = client.get("/api/categories").json()
    assert "Comedy" in data["themes"]["laugh"]["primary"]
    assert "Stand-Up" in data["taxonomy"]["Comedy"]


def test_providers(client):
    data = client.get("/api/providers").json()
    assert data["providers"] == []
    assert data["fallback"] == "demo"
    assert data["remote_store"] is False
