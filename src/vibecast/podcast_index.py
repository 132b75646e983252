import hashlib
import os
import time
from datetime import datetime, timezone
from typing import Any

import httpx

from .models import Episode


class PodcastIndexClient:
    """Async client for Podcast Index API with proper authentication."""

    BASE_URL = "https://api.podcastindex.org/api/1.0"

    name = "podcastindex"

    def __init__(self, api_key: str | None = None, api_secret: str | None = None):
        self.api_key = api_key or os.getenv("PODCAST_INDEX_KEY", "")
        self.api_secret = api_secret or os.getenv("PODCAST_INDEX_SECRET", "")

    def is_available(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def _get_auth_headers(self) -> dict[str, str]:
        """Generate authentication headers with timestamp and hash."""
        unix_time = str(int(time.time()))
        data_to_hash = self.api_key + self.api_secret + unix_time
        hash_value = hashlib.sha1(data_to_hash.encode()).hexdigest()

        return {
            "User-Agent": "vibecast/0.1.0",
            "X-Auth-Key": self.api_key,
            "X-Auth-Date": unix_time,
            "Authorization": hash_value,
        }

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        """Make authenticated GET request to Podcast Index API."""
        url = f"{self.BASE_URL}/{endpoint}"
        headers = self._get_auth_headers()

        async with httpx.AsyncClient() as client:
            response = await client.get(url, headers=headers, params=params or {}, timeout=30.0)
            response.raise_for_status()
            return response.json()

    async def _search_feeds(self, query: str, max_feeds: int = 5) -> list[dict]:
        """Search for podcast feeds, trying the full query first then individual words."""
        feed_data = await self._get("search/byterm", {"q": query, "max": max_feeds})
        feeds = feed_data.get("feeds", [])
        if feeds:
            return feeds

        # Full query returned nothing, try individual words for multi-word queries
        words = [word for word in query.replace("&", " ").split() if len(word) >= 3]
        if len(words) <= 1:
            return []

        seen_ids: set[int] = set()
        all_feeds: list[dict] = []
        for word in words:
            data = await self._get("search/byterm", {"q": word, "max": 3})
            for feed in data.get("feeds", []):
                fid = feed.get("id")
                if fid and fid not in seen_ids:
                    seen_ids.add(fid)
                    all_feeds.append(feed)
        return all_feeds[:max_feeds]

    async def get_trending_podcasts(self, max: int = 100, category: str | None = None, lang: str = "en") -> dict[int, dict]:
        """Trending feeds keyed by feed id, with their 0-based chart rank."""
        params: dict[str, Any] = {"max": max, "lang": lang}
        if category:
            params["cat"] = category
        data = await self._get("podcasts/trending", params)
        return {
            feed["id"]: {
                "title": feed.get("title", ""),
                "rank": rank,
                "trend_score": feed.get("trendScore"),
            }
            for rank, feed in enumerate(data.get("feeds", []))
            if feed.get("id")
        }

    async def search_by_category(self, term: str, limit: int = 20) -> list[dict]:
        """Find feeds for a category term, then return recent raw episodes from each."""
        feeds = await self._search_feeds(term)
        if not feeds:
            return []

        trending = await self.get_trending_podcasts(category=term)

        items: list[dict] = []
        eps_per_feed = max(2, limit // len(feeds))
        for feed in feeds:
            feed_id = feed.get("id")
            if not feed_id:
                continue
            ep_data = await self._get("episodes/byfeedid", {"id": feed_id, "max": eps_per_feed})
            feed_meta = {**feed, "chartRank": trending.get(feed_id, {}).get("rank")}
            for item in ep_data.get("items", []):
                items.append({**item, "feed": feed_meta})
                if len(items) >= limit:
                    return items

        return items

    def parse_episode(self, item: dict) -> Episode:
        """Parse raw API episode data into Episode model."""
        feed = item.get("feed") or {}
        date_published = item.get("datePublished")
        published_at = (
            datetime.fromtimestamp(date_published, tz=timezone.utc).isoformat()
            if isinstance(date_published, (int, float)) and date_published > 0
            else None
        )
        chart_rank = feed.get("chartRank")
        link = item.get("link", "") or item.get("enclosureUrl", "") or None

        return Episode(
            id=f"podcastindex:{item['id']}" if item.get("id") else "",
            title=item.get("title", ""),
            description=item.get("description", "") or "",
            podcast_name=item.get("feedTitle", "") or feed.get("title", ""),
            publisher=feed.get("author", "") or feed.get("ownerName", "") or "",
            audio_length_sec=item.get("duration") or 0,
            cover_art_url=item.get("feedImage") or item.get("image") or feed.get("artwork"),
            external_url=link,
            published_at=published_at,
            chart_position=chart_rank + 1 if chart_rank is not None and chart_rank < 100 else None,
            episode_count=feed.get("episodeCount"),
            categories=list((feed.get("categories") or {}).values()),
            provider=self.name,
        )
