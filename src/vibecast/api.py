"""Vibecast REST API: FastAPI wrapper around the recommender."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .categories import MOOD_CATEGORIES, PODCAST_CATEGORIES, THEME_CATEGORIES
from .config import configured_providers
from .errors import AllProvidersFailedError
from .models import Mood, Theme
from .recommender import VibeRecommender, create_recommender

logger = logging.getLogger(__name__)

recommender: VibeRecommender


@asynccontextmanager
async def lifespan(app: FastAPI):
    global recommender
    recommender = create_recommender()
    await recommender.store.check_remote()
    yield


app = FastAPI(title="Vibecast", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Recommendations ---


class RecommendRequest(BaseModel):
    session_id: str
    moods: list[Mood] = Field(default_factory=list)
    themes: list[Theme] = Field(default_factory=list)
    duration_minutes: float = Field(default=30, ge=0)
    limit: int = Field(default=10, ge=1, le=50)


@app.post("/api/recommend")
async def recommend(req: RecommendRequest):
    try:
        ranked = await recommender.recommend(req.moods, req.themes, req.duration_minutes, req.session_id)
    except AllProvidersFailedError as e:
        logger.error(f"Recommendation failed: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "session_id": req.session_id,
        "episode": ranked[0].model_dump() if ranked else None,
        "episodes": [ep.model_dump() for ep in ranked[: req.limit]],
        "total": len(ranked),
    }


@app.post("/api/sessions/{session_id}/shuffle")
async def shuffle(session_id: str):
    if session_id not in recommender.sessions:
        raise HTTPException(status_code=404, detail="Unknown session")
    episode = recommender.shuffle_next(session_id)
    return {"episode": episode.model_dump() if episode else None, "exhausted": episode is None}


# --- Ratings & Preferences ---


class RatingRequest(BaseModel):
    episode_id: str
    rating: int = Field(ge=1, le=5)
    moods: list[Mood] = Field(default_factory=list)
    themes: list[Theme] = Field(default_factory=list)
    comment: str | None = None
    session_id: str | None = None


@app.post("/api/ratings")
async def rate_episode(req: RatingRequest):
    touched = await recommender.rate(
        req.episode_id,
        req.rating,
        moods=req.moods,
        themes=req.themes,
        comment=req.comment,
        session_id=req.session_id,
    )
    return {"status": "success", "updated_weights": [w.model_dump() for w in touched]}


@app.get("/api/ratings")
async def get_ratings(episode_id: str | None = None, limit: int = Query(default=50, le=500)):
    if episode_id:
        ratings = await recommender.store.get_episode_ratings(episode_id)
    else:
        ratings = await recommender.store.get_all_ratings()
    return {"ratings": [r.model_dump() for r in ratings[-limit:]]}


@app.get("/api/ratings/summary/{episode_id}")
async def get_rating_summary(episode_id: str):
    summary = await recommender.store.get_rating_summary(episode_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="No ratings for this episode")
    return summary.model_dump(mode="json")


@app.get("/api/ratings/average")
async def get_average_rating(mood: Mood, theme: Theme):
    average = await recommender.store.get_average_rating(mood, theme)
    return {"mood": mood.value, "theme": theme.value, "average_rating": average}


@app.get("/api/preferences")
async def get_preferences():
    weights = await recommender.store.get_preference_weights()
    weights.sort(key=lambda w: w.weight, reverse=True)
    return {"weights": [w.model_dump() for w in weights]}


class PlaybackRequest(BaseModel):
    episode_id: str
    completion_rate: float | None = Field(default=None, ge=0, le=1)
    skipped: bool = False
    fast_forwards: int = Field(default=0, ge=0)
    play_time: float = Field(default=0, ge=0)
    session_id: str | None = None


@app.post("/api/playback")
async def record_playback(req: PlaybackRequest):
    feedback = await recommender.record_playback(
        req.episode_id,
        completion_rate=req.completion_rate,
        skipped=req.skipped,
        fast_forwards=req.fast_forwards,
        play_time=req.play_time,
        session_id=req.session_id,
    )
    return feedback.model_dump()


# --- Reference data ---


@app.get("/api/categories")
async def get_categories():
    return {
        "moods": {mood.value: selection for mood, selection in MOOD_CATEGORIES.items()},
        "themes": {theme.value: selection for theme, selection in THEME_CATEGORIES.items()},
        "taxonomy": PODCAST_CATEGORIES,
    }


@app.get("/api/providers")
async def get_providers():
    aggregator = recommender.aggregator
    return {
        "configured": configured_providers(),
        "providers": [{"name": p.name, "available": p.is_available()} for p in aggregator.providers],
        "fallback": aggregator.fallback.name if aggregator.fallback else None,
        "remote_store": recommender.store.remote_configured,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
