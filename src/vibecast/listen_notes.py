import os
import time
from datetime import datetime, timezone
from typing import Any

import httpx

from .models import Episode


class ListenNotesClient:
    """Async client for the Listen Notes podcast database API."""

    BASE_URL = "https://listen-api.listennotes.com/api/v2"

    name = "listennotes"

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or os.getenv("LISTEN_NOTES_API_KEY", "")

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.BASE_URL}/{endpoint}",
                headers={"X-ListenAPI-Key": self.api_key, "User-Agent": "vibecast/0.1.0"},
                params=params or {},
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def search_by_category(self, term: str, limit: int = 20) -> list[dict]:
        """Search episodes published within the last year for a category term."""
        one_year_ago_ms = int((time.time() - 365 * 24 * 60 * 60) * 1000)
        data = await self._get(
            "search",
            {
                "q": term,
                "type": "episode",
                "len_min": 5,
                "len_max": 180,
                "published_after": one_year_ago_ms,
                "safe_mode": 1,
            },
        )
        return list(data.get("results", []))[:limit]

    def parse_episode(self, item: dict) -> Episode:
        podcast = item.get("podcast") or {}
        pub_date_ms = item.get("pub_date_ms")
        published_at = (
            datetime.fromtimestamp(pub_date_ms / 1000, tz=timezone.utc).isoformat() if pub_date_ms else None
        )
        listen_score = podcast.get("listen_score")
        external = item.get("listennotes_url")

        return Episode(
            id=f"listennotes:{item['id']}" if item.get("id") else "",
            title=item.get("title_original") or item.get("title", ""),
            description=item.get("description_original") or item.get("description", "") or "",
            podcast_name=podcast.get("title_original") or podcast.get("title", ""),
            publisher=podcast.get("publisher_original") or podcast.get("publisher", ""),
            audio_length_sec=item.get("audio_length_sec") or 0,
            cover_art_url=item.get("image") or podcast.get("image"),
            external_url=external,
            published_at=published_at,
            popularity=max(0, min(100, listen_score)) if listen_score is not None else None,
            episode_count=podcast.get("total_episodes"),
            platform_links={"listennotes": external} if external else {},
            categories=[str(genre) for genre in podcast.get("genres", []) if isinstance(genre, str)],
            provider=self.name,
        )
