"""Supabase (PostgREST) mirror for ratings and preference weights."""

import logging
import os
from typing import Any

import httpx

from .errors import Result, classify_error
from .models import PreferenceWeight, RatingRecord

logger = logging.getLogger(__name__)


class SupabaseRatingStore:
    """Async client for the remote `ratings` and `preference_weights` tables."""

    def __init__(self, url: str | None = None, anon_key: str | None = None, timeout: float = 10.0):
        self.url = (url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.anon_key = anon_key or os.getenv("SUPABASE_ANON_KEY", "")
        if not self.url or not self.anon_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "SupabaseRatingStore | None":
        """Return a store when credentials are configured, else None."""
        if os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_ANON_KEY"):
            return cls()
        return None

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": "vibecast/0.1.0",
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> Any:
        headers = self._headers()
        if prefer:
            headers["Prefer"] = prefer
        async with httpx.AsyncClient() as client:
            response = await client.request(
                method,
                f"{self.url}/rest/v1/{table}",
                headers=headers,
                params=params or {},
                json=json_body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json() if response.content else None

    async def save_rating(self, record: RatingRecord) -> Result[None]:
        row = {
            "episode_id": record.episode_id,
            "rating": record.rating,
            "mood": [mood.value for mood in record.moods],
            "themes": [theme.value for theme in record.themes],
            "timestamp": record.timestamp_ms,
            "comment": record.comment,
        }
        try:
            await self._request("POST", "ratings", json_body=[row], prefer="return=minimal")
        except Exception as e:
            logger.warning(f"Error saving rating to Supabase: {e}")
            return Result.failure(classify_error(e), str(e))
        return Result.success(None)

    async def get_all_ratings(self) -> Result[list[RatingRecord]]:
        try:
            rows = await self._request("GET", "ratings", params={"select": "*", "order": "timestamp.asc"})
            records = [
                RatingRecord(
                    episode_id=row["episode_id"],
                    rating=row["rating"],
                    moods=row.get("mood") or [],
                    themes=row.get("themes") or [],
                    timestamp_ms=row["timestamp"],
                    comment=row.get("comment"),
                )
                for row in rows or []
            ]
        except Exception as e:
            logger.warning(f"Error fetching ratings from Supabase: {e}")
            return Result.failure(classify_error(e), str(e))
        return Result.success(records)

    async def get_preference_weights(self) -> Result[list[PreferenceWeight]]:
        try:
            rows = await self._request("GET", "preference_weights", params={"select": "*"})
            weights = [PreferenceWeight(**row) for row in rows or []]
        except Exception as e:
            logger.warning(f"Error fetching preference weights from Supabase: {e}")
            return Result.failure(classify_error(e), str(e))
        return Result.success(weights)

    async def save_preference_weights(self, weights: list[PreferenceWeight]) -> Result[None]:
        if not weights:
            return Result.success(None)
        try:
            await self._request(
                "POST",
                "preference_weights",
                params={"on_conflict": "mood,theme"},
                json_body=[w.model_dump(mode="json") for w in weights],
                prefer="resolution=merge-duplicates,return=minimal",
            )
        except Exception as e:
            logger.warning(f"Error saving preference weights to Supabase: {e}")
            return Result.failure(classify_error(e), str(e))
        return Result.success(None)

    async def ping(self) -> Result[None]:
        try:
            await self._request("GET", "ratings", params={"select": "episode_id", "limit": 1})
        except Exception as e:
            return Result.failure(classify_error(e), str(e))
        return Result.success(None)
