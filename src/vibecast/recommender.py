"""Vibe-based recommendation facade: search, rank, shuffle and learn."""

import logging
import time
from collections.abc import Iterable

from .aggregator import CatalogAggregator
from .categories import coerce_moods, coerce_themes, search_terms_for
from .config import RECENT_WINDOW_SIZE
from .db import Database
from .models import Episode, ImplicitFeedback, Mood, PreferenceWeight, RatingRecord, ScoredEpisode, SessionState, Theme
from .preferences import PreferenceStore
from .ranker import Ranker
from .remote_store import SupabaseRatingStore
from .scoring import ScoringEngine
from .shuffle import ShuffleSelector

logger = logging.getLogger(__name__)

# Playback past this completion ends a skip streak
COMPLETION_RESETS_SKIPS = 0.5


class VibeRecommender:
    def __init__(
        self,
        aggregator: CatalogAggregator,
        store: PreferenceStore | None = None,
        engine: ScoringEngine | None = None,
        selector: ShuffleSelector | None = None,
        recent_window: int = RECENT_WINDOW_SIZE,
    ):
        self.aggregator = aggregator
        self.store = store
        self.engine = engine or ScoringEngine(store=store)
        self.ranker = Ranker(self.engine, recent_window=recent_window)
        self.selector = selector or ShuffleSelector()
        self.sessions: dict[str, SessionState] = {}

    def get_session(self, session_id: str) -> SessionState:
        """Return the state for a session id, creating it on first use."""
        session = self.sessions.get(session_id)
        if session is None:
            session = SessionState(session_id=session_id)
            self.sessions[session_id] = session
        return session

    async def search(
        self, moods: Iterable[Mood | str], themes: Iterable[Theme | str], target_minutes: float | None = None
    ) -> list[Episode]:
        terms = search_terms_for(coerce_moods(moods), coerce_themes(themes))
        return await self.aggregator.search(terms, target_minutes)

    async def rank_episodes(
        self,
        pool: list[Episode],
        moods: Iterable[Mood | str],
        themes: Iterable[Theme | str],
        target_minutes: float,
        session_id: str,
    ) -> list[ScoredEpisode]:
        """Rank a pool for a session. Starts a fresh shuffle cycle for that session."""
        session = self.get_session(session_id)
        ranked = await self.ranker.rank(pool, moods, themes, target_minutes, session=session)

        session.ranked = ranked
        session.current_pick = ranked[0] if ranked else None
        session.shuffle.reset()
        session.session_count += 1
        return ranked

    async def recommend(
        self,
        moods: Iterable[Mood | str],
        themes: Iterable[Theme | str],
        target_minutes: float,
        session_id: str,
    ) -> list[ScoredEpisode]:
        """Search the catalog for the selected vibe and rank the results.

        Raises AllProvidersFailedError when no provider, demo included, answers.
        """
        if target_minutes < 0:
            raise ValueError(f"target_minutes must be >= 0, got {target_minutes}")
        moods = coerce_moods(moods)
        themes = coerce_themes(themes)
        pool = await self.search(moods, themes, target_minutes)
        return await self.rank_episodes(pool, moods, themes, target_minutes, session_id)

    def shuffle_next(self, session_id: str) -> ScoredEpisode | None:
        """Next unseen alternative for the session's last ranking, or None when exhausted."""
        session = self.get_session(session_id)
        return self.selector.next(session.current_pick, session.ranked, session)

    async def submit_rating(self, record: RatingRecord, session_id: str | None = None) -> list[PreferenceWeight]:
        if self.store is None:
            raise RuntimeError("No preference store configured")
        if session_id is not None:
            self.get_session(session_id).consecutive_skips = 0
        return await self.store.submit_rating(record)

    async def rate(
        self,
        episode_id: str,
        rating: int,
        moods: Iterable[Mood | str] = (),
        themes: Iterable[Theme | str] = (),
        comment: str | None = None,
        session_id: str | None = None,
    ) -> list[PreferenceWeight]:
        """Build a RatingRecord stamped with the current time and submit it."""
        record = RatingRecord(
            episode_id=episode_id,
            rating=rating,
            moods=coerce_moods(moods),
            themes=coerce_themes(themes),
            timestamp_ms=int(time.time() * 1000),
            comment=comment,
        )
        return await self.submit_rating(record, session_id=session_id)

    async def record_playback(
        self,
        episode_id: str,
        completion_rate: float | None = None,
        skipped: bool = False,
        fast_forwards: int = 0,
        play_time: float = 0.0,
        session_id: str | None = None,
    ) -> ImplicitFeedback:
        if self.store is None:
            raise RuntimeError("No preference store configured")
        feedback = await self.store.record_playback(
            episode_id,
            completion_rate=completion_rate,
            skipped=skipped,
            fast_forwards=fast_forwards,
            play_time=play_time,
        )
        if session_id is not None and completion_rate is not None and completion_rate >= COMPLETION_RESETS_SKIPS:
            self.get_session(session_id).consecutive_skips = 0
        return feedback


def create_recommender(db: Database | None = None) -> VibeRecommender:
    """Wire the default stack: configured providers, local SQLite, optional Supabase mirror."""
    db = db or Database()
    store = PreferenceStore(local=db, remote=SupabaseRatingStore.from_env())
    aggregator = CatalogAggregator(cache=db)
    return VibeRecommender(aggregator, store=store)
