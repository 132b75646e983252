"""Duration-window filtering, concurrent scoring and ordering of an episode pool."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from .categories import categories_for, coerce_moods, coerce_themes
from .config import (
    MIN_CANDIDATES_BEFORE_WIDENING,
    PRIMARY_DURATION_TOLERANCE,
    RECENT_WINDOW_SIZE,
    WIDE_DURATION_TOLERANCE,
)
from .models import Episode, Mood, ScoredEpisode, SessionState, Theme
from .scoring import ScoringEngine, episode_duration_minutes

logger = logging.getLogger(__name__)


def filter_by_duration(episodes: list[Episode], target_minutes: float, tolerance: float) -> list[Episode]:
    """Keep episodes whose length is within target +/- tolerance minutes, preserving order."""
    low, high = target_minutes - tolerance, target_minutes + tolerance
    return [ep for ep in episodes if low <= episode_duration_minutes(ep) <= high]


def select_candidates(episodes: list[Episode], target_minutes: float) -> list[Episode]:
    """Apply the primary window, widening against the original pool when too few survive."""
    candidates = filter_by_duration(episodes, target_minutes, PRIMARY_DURATION_TOLERANCE)
    if len(candidates) < MIN_CANDIDATES_BEFORE_WIDENING:
        widened = filter_by_duration(episodes, target_minutes, WIDE_DURATION_TOLERANCE)
        logger.info(
            f"Only {len(candidates)} episodes within {PRIMARY_DURATION_TOLERANCE} min of {target_minutes}, "
            f"widened to {len(widened)}"
        )
        candidates = widened
    return candidates


class Ranker:
    def __init__(self, engine: ScoringEngine, recent_window: int = RECENT_WINDOW_SIZE):
        self.engine = engine
        self.recent_window = recent_window

    async def rank(
        self,
        episodes: list[Episode],
        moods: Iterable[Mood | str],
        themes: Iterable[Theme | str],
        target_minutes: float,
        session: SessionState | None = None,
    ) -> list[ScoredEpisode]:
        if target_minutes < 0:
            raise ValueError(f"target_minutes must be >= 0, got {target_minutes}")
        moods = coerce_moods(moods)
        themes = coerce_themes(themes)

        candidates = select_candidates(episodes, target_minutes)
        if not candidates:
            return []

        selection = categories_for(moods, themes)
        now = datetime.now(timezone.utc)
        snapshot = await self.engine.load_snapshot()
        scored = await asyncio.gather(
            *(
                self.engine.score(
                    ep, moods, themes, target_minutes, session=session, now=now, selection=selection, snapshot=snapshot
                )
                for ep in candidates
            )
        )

        ranked = sorted(scored, key=lambda ep: (-ep.score, ep.id))

        if session is not None:
            session.remember(ranked[0], max_size=self.recent_window)

        logger.info(f"Ranked {len(ranked)} of {len(episodes)} episodes, top pick {ranked[0].id}")
        return ranked
