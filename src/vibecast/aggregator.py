"""
Catalog aggregation across podcast providers.

Providers are queried in configured order. Each one gets a primary query
for the first category term plus a couple of smaller supplementary
queries, all under a per-provider timeout. Results are normalized into
Episode models, deduplicated by id and by normalized title, and the live
providers stop being consulted once the pool is large enough. The demo
catalog answers when nothing live does.
"""

import asyncio
import hashlib
import json
import logging
import re
from typing import Literal, Protocol

from pydantic import ValidationError

from .config import (
    MAX_SECONDARY_QUERIES,
    MIN_POOL_SIZE,
    PRIMARY_QUERY_LIMIT,
    PROVIDER_TIMEOUT_SECONDS,
    SEARCH_CACHE_TTL,
    SEARCH_DEADLINE_SECONDS,
    SECONDARY_QUERY_LIMIT,
    configured_providers,
)
from .db import Database
from .demo import DemoCatalog
from .errors import AllProvidersFailedError, ErrorKind, Result, classify_error
from .listen_notes import ListenNotesClient
from .models import Episode
from .podcast_index import PodcastIndexClient
from .scoring import episode_duration_minutes
from .spotify import SpotifyClient

logger = logging.getLogger(__name__)

DEFAULT_QUERY = "podcast"
DEFAULT_FALLBACK = "demo"
DURATION_FILTER_THRESHOLD = 20
DURATION_FILTER_MIN_KEPT = 5
DURATION_FILTER_RATIO = 0.5

PROVIDER_CLASSES = {
    "spotify": SpotifyClient,
    "listennotes": ListenNotesClient,
    "podcastindex": PodcastIndexClient,
}


class CatalogProvider(Protocol):
    name: str

    def is_available(self) -> bool: ...

    async def search_by_category(self, term: str, limit: int = 20) -> list[dict]: ...

    def parse_episode(self, raw: dict) -> Episode: ...


def normalize_title(title: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    stripped = re.sub(r"[^\w\s]", "", title.lower())
    return re.sub(r"\s+", " ", stripped).strip()


def build_providers(names: list[str] | None = None) -> list[CatalogProvider]:
    """Instantiate live providers by name, in order. Unknown names are skipped."""
    providers: list[CatalogProvider] = []
    for name in names if names is not None else configured_providers():
        provider_class = PROVIDER_CLASSES.get(name)
        if provider_class is None:
            logger.warning(f"Unknown provider '{name}' in configuration, skipping")
            continue
        providers.append(provider_class())
    return providers


def filter_by_relative_duration(episodes: list[Episode], target_minutes: float) -> list[Episode]:
    """Keep episodes within ±50% of the target, unless that leaves too few."""
    low = target_minutes * (1 - DURATION_FILTER_RATIO)
    high = target_minutes * (1 + DURATION_FILTER_RATIO)
    kept = [ep for ep in episodes if low <= episode_duration_minutes(ep) <= high]
    if len(kept) > DURATION_FILTER_MIN_KEPT:
        return kept
    return episodes


class CatalogAggregator:
    def __init__(
        self,
        providers: list[CatalogProvider] | None = None,
        fallback: CatalogProvider | None | Literal["demo"] = DEFAULT_FALLBACK,
        provider_timeout: float = PROVIDER_TIMEOUT_SECONDS,
        search_deadline: float = SEARCH_DEADLINE_SECONDS,
        min_pool_size: int = MIN_POOL_SIZE,
        cache: Database | None = None,
        cache_ttl: int = SEARCH_CACHE_TTL,
    ):
        self.providers = providers if providers is not None else build_providers()
        # None disables the last-resort catalog
        self.fallback = DemoCatalog() if fallback == DEFAULT_FALLBACK else fallback
        self.provider_timeout = provider_timeout
        self.search_deadline = search_deadline
        self.min_pool_size = min_pool_size
        self.cache = cache
        self.cache_ttl = cache_ttl

    @staticmethod
    def _cache_key(terms: list[str], target_minutes: float | None) -> str:
        payload = json.dumps({"terms": terms, "duration": target_minutes}, sort_keys=True)
        return hashlib.sha256(payload.encode()).hexdigest()

    def _normalize(self, provider: CatalogProvider, raws: list[dict], term: str) -> list[Episode]:
        episodes: list[Episode] = []
        for raw in raws:
            try:
                episode = provider.parse_episode(raw)
            except (ValidationError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed record from {provider.name}: {e}")
                continue

            if not episode.id:
                title_key = normalize_title(episode.title)
                if not title_key:
                    logger.warning(f"Dropping record from {provider.name} with no id or title")
                    continue
                episode = episode.model_copy(update={"id": f"{provider.name}:{title_key}"})

            if term and term not in episode.categories:
                episode = episode.model_copy(update={"categories": [*episode.categories, term]})
            episodes.append(episode)
        return episodes

    async def _run_queries(self, provider: CatalogProvider, terms: list[str]) -> list[Episode]:
        queries = [(terms[0], PRIMARY_QUERY_LIMIT)]
        queries += [(term, SECONDARY_QUERY_LIMIT) for term in terms[1 : 1 + MAX_SECONDARY_QUERIES]]

        results = await asyncio.gather(
            *(provider.search_by_category(term, limit) for term, limit in queries),
            return_exceptions=True,
        )

        episodes: list[Episode] = []
        errors: list[BaseException] = []
        for (term, _), result in zip(queries, results):
            if isinstance(result, BaseException):
                logger.warning(f"{provider.name} query '{term}' failed: {result}")
                errors.append(result)
                continue
            episodes.extend(self._normalize(provider, result, term))

        if errors and len(errors) == len(queries):
            raise errors[0]
        return episodes

    async def query_provider(
        self, provider: CatalogProvider, terms: list[str], timeout: float | None = None
    ) -> Result[list[Episode]]:
        """Run one provider's queries. Never raises; failures come back as a Result."""
        if not provider.is_available():
            return Result.failure(ErrorKind.AUTH, "not authenticated")

        try:
            episodes = await asyncio.wait_for(
                self._run_queries(provider, terms), timeout=timeout or self.provider_timeout
            )
        except Exception as e:
            kind = classify_error(e)
            message = "timed out" if kind == ErrorKind.TIMEOUT else str(e) or type(e).__name__
            return Result.failure(kind, message)

        if not episodes:
            return Result.failure(ErrorKind.UNAVAILABLE, "no results")
        return Result.success(episodes)

    async def search(self, category_terms: list[str], target_duration_minutes: float | None = None) -> list[Episode]:
        """Aggregate a deduplicated episode pool for the given category terms.

        Raises AllProvidersFailedError only when every provider, the demo
        catalog included, failed or returned nothing.
        """
        terms = [term for term in category_terms if term] or [DEFAULT_QUERY]

        cache_key = self._cache_key(terms, target_duration_minutes)
        if self.cache:
            cached = self.cache.get_search_cache(cache_key, self.cache_ttl)
            if cached:
                logger.info(f"Search cache hit for {terms[0]!r} ({len(cached)} episodes)")
                return cached

        pool: list[Episode] = []
        seen_ids: set[str] = set()
        seen_titles: set[str] = set()
        failures: list[str] = []

        def merge(episodes: list[Episode]) -> int:
            added = 0
            for episode in episodes:
                title_key = normalize_title(episode.title)
                if episode.id in seen_ids or (title_key and title_key in seen_titles):
                    continue
                seen_ids.add(episode.id)
                if title_key:
                    seen_titles.add(title_key)
                pool.append(episode)
                added += 1
            return added

        loop = asyncio.get_running_loop()
        started = loop.time()

        for provider in self.providers:
            if len(pool) >= self.min_pool_size:
                logger.info(f"Pool has {len(pool)} episodes, skipping {provider.name}")
                continue

            remaining = self.search_deadline - (loop.time() - started)
            if remaining <= 0:
                failures.append(f"{provider.name}: search deadline exceeded")
                logger.warning(f"Search deadline exceeded before querying {provider.name}")
                continue

            result = await self.query_provider(provider, terms, timeout=min(self.provider_timeout, remaining))
            if not result.ok:
                failures.append(f"{provider.name}: {result.message}")
                logger.warning(f"Provider {provider.name} contributed nothing ({result.error.value}): {result.message}")
                continue

            added = merge(result.value)
            logger.info(f"{provider.name} returned {len(result.value)} episodes, {added} new")

        if not pool and self.fallback is not None:
            logger.info("No live provider results, using demo catalog")
            result = await self.query_provider(self.fallback, terms)
            if result.ok:
                merge(result.value)
            else:
                failures.append(f"{self.fallback.name}: {result.message}")

        if not pool:
            raise AllProvidersFailedError(failures)

        if target_duration_minutes and len(pool) > DURATION_FILTER_THRESHOLD:
            pool = filter_by_relative_duration(pool, target_duration_minutes)

        if self.cache:
            self.cache.set_search_cache(cache_key, pool)

        return pool
