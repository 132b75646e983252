import base64
import os
import time
from typing import Any

import httpx

from .models import Episode


class SpotifyClient:
    """Async client for the Spotify Web API using the client-credentials flow."""

    BASE_URL = "https://api.spotify.com/v1"
    TOKEN_URL = "https://accounts.spotify.com/api/token"

    name = "spotify"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        market: str = "US",
        curated_show_ids: set[str] | None = None,
    ):
        self.client_id = client_id or os.getenv("SPOTIFY_CLIENT_ID", "")
        self.client_secret = client_secret or os.getenv("SPOTIFY_CLIENT_SECRET", "")
        self.market = market
        if curated_show_ids is None:
            raw = os.getenv("SPOTIFY_CURATED_SHOW_IDS", "")
            curated_show_ids = {show_id.strip() for show_id in raw.split(",") if show_id.strip()}
        self.curated_show_ids = curated_show_ids
        self._token: str | None = None
        self._token_expires_at = 0.0

    def is_available(self) -> bool:
        return bool(self.client_id and self.client_secret)

    async def _get_access_token(self) -> str:
        """Fetch (or reuse) an app access token."""
        if self._token and time.time() < self._token_expires_at - 60:
            return self._token

        credentials = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode()).decode()
        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.TOKEN_URL,
                headers={"Authorization": f"Basic {credentials}"},
                data={"grant_type": "client_credentials"},
                timeout=30.0,
            )
            response.raise_for_status()
            payload = response.json()

        self._token = payload["access_token"]
        self._token_expires_at = time.time() + payload.get("expires_in", 3600)
        return self._token

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        """Make authenticated GET request to the Spotify Web API."""
        token = await self._get_access_token()
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.BASE_URL}/{endpoint}",
                headers={"Authorization": f"Bearer {token}", "User-Agent": "vibecast/0.1.0"},
                params=params or {},
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def search_by_category(self, term: str, limit: int = 20) -> list[dict]:
        """Search episodes and shows for a category term, returning raw records."""
        data = await self._get(
            "search",
            {"q": term, "type": "episode,show", "market": self.market, "limit": min(limit, 50)},
        )
        records: list[dict] = []
        for item in (data.get("episodes") or {}).get("items", []):
            if item:
                records.append({**item, "kind": "episode"})
        for item in (data.get("shows") or {}).get("items", []):
            if item:
                records.append({**item, "kind": "show"})
        return records[:limit]

    def parse_episode(self, item: dict) -> Episode:
        """Parse a raw episode or show record into an Episode."""
        show = item.get("show") or {}
        is_show = item.get("kind") == "show"
        show_id = item.get("id") if is_show else show.get("id")
        images = item.get("images") or show.get("images") or []
        external = (item.get("external_urls") or {}).get("spotify")
        popularity = item.get("popularity", show.get("popularity"))

        return Episode(
            id=f"spotify:{item['id']}" if item.get("id") else "",
            title=item.get("name", ""),
            description=item.get("description", "") or "",
            podcast_name=item.get("name", "") if is_show else show.get("name", ""),
            publisher=item.get("publisher", "") if is_show else show.get("publisher", ""),
            audio_length_sec=0 if is_show else int((item.get("duration_ms") or 0) / 1000),
            cover_art_url=images[0]["url"] if images else None,
            external_url=external,
            published_at=item.get("release_date") or None,
            is_top_quality=bool(show_id and show_id in self.curated_show_ids),
            popularity=max(0, min(100, popularity)) if popularity is not None else None,
            episode_count=item.get("total_episodes") if is_show else show.get("total_episodes"),
            platform_links={"spotify": external} if external else {},
            provider=self.name,
        )
