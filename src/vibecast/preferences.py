"""
Preference store and learning rules.

The store wraps the local SQLite database and, when configured, a remote
Supabase mirror. Every public method degrades gracefully: remote failures
fall back to the local copy, local failures return empty results.

Preference learning:
    alpha = 1 / max(1, episode_count / PREFERENCE_WINDOW_SIZE)
    weight = weight * (1 - alpha) + normalized_rating * alpha
where normalized_rating = (stars - 3) / 2 maps 1-5 stars onto -1..1.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TypeVar

from .config import LEARNED_WEIGHT_MULTIPLIER, PERSONAL_BONUS_LIMIT, PREFERENCE_WINDOW_SIZE
from .db import Database
from .errors import Result, classify_error
from .models import (
    ImplicitFeedback,
    Mood,
    PreferenceSnapshot,
    PreferenceWeight,
    RatingRecord,
    RatingSummary,
    Theme,
)
from .remote_store import SupabaseRatingStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Scale factors for rating-history terms of the personal bonus
OVERALL_RATING_SCALE = 1.0
MOOD_RATING_SCALE = 1.5
THEME_RATING_SCALE = 1.0


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_rating(stars: int) -> float:
    """Map a 1-5 star rating onto -1.0..1.0."""
    return (stars - 3) / 2


def update_preference_weights(
    weights: list[PreferenceWeight], record: RatingRecord, timestamp: str | None = None
) -> list[PreferenceWeight]:
    """Apply one rating to every (mood, theme) pair it touches.

    Returns the created or updated rows only. Rows are created lazily.
    """
    timestamp = timestamp or _now_iso()
    by_pair = {(w.mood, w.theme): w for w in weights}
    target = normalize_rating(record.rating)
    touched: list[PreferenceWeight] = []

    for mood in dict.fromkeys(record.moods):
        for theme in dict.fromkeys(record.themes):
            row = by_pair.get((mood, theme)) or PreferenceWeight(mood=mood, theme=theme)
            alpha = 1 / max(1, row.episode_count / PREFERENCE_WINDOW_SIZE)
            weight = row.weight * (1 - alpha) + target * alpha
            count = row.episode_count + 1
            updated = row.model_copy(
                update={
                    "weight": max(-1.0, min(1.0, weight)),
                    "episode_count": count,
                    "avg_rating": (row.avg_rating * row.episode_count + record.rating) / count,
                    "last_updated": timestamp,
                }
            )
            by_pair[(mood, theme)] = updated
            touched.append(updated)

    return touched


def _average(values: list[int]) -> float | None:
    return sum(values) / len(values) if values else None


def summarize_ratings(episode_id: str, ratings: list[RatingRecord]) -> RatingSummary | None:
    """Overall, per-mood and per-theme average stars for one episode."""
    if not ratings:
        return None
    by_mood: dict[Mood, list[int]] = {}
    by_theme: dict[Theme, list[int]] = {}
    for record in ratings:
        for mood in record.moods:
            by_mood.setdefault(mood, []).append(record.rating)
        for theme in record.themes:
            by_theme.setdefault(theme, []).append(record.rating)

    return RatingSummary(
        episode_id=episode_id,
        average_rating=_average([r.rating for r in ratings]),
        total_ratings=len(ratings),
        mood_ratings={mood: _average(stars) for mood, stars in by_mood.items()},
        theme_ratings={theme: _average(stars) for theme, stars in by_theme.items()},
    )


def calculate_personal_bonus(
    episode_ratings: list[RatingRecord],
    weights: list[PreferenceWeight],
    feedback: ImplicitFeedback | None,
    moods: Iterable[Mood],
    themes: Iterable[Theme],
) -> float:
    """
    Combine rating history, learned weights and playback signals.

    Terms:
    - overall average rating of this episode, centered at 3
    - per-mood and per-theme average rating of this episode, centered at 3
    - mean learned weight of the selected (mood, theme) pairs
    - completion rate (centered at 50%), once any completion was reported
    - skip and fast-forward penalties

    Returns:
        Bonus clamped to [-PERSONAL_BONUS_LIMIT, PERSONAL_BONUS_LIMIT]
    """
    moods = list(moods)
    themes = list(themes)
    bonus = 0.0

    overall = _average([r.rating for r in episode_ratings])
    if overall is not None:
        bonus += (overall - 3) * OVERALL_RATING_SCALE

    for mood in moods:
        avg = _average([r.rating for r in episode_ratings if mood in r.moods])
        if avg is not None:
            bonus += (avg - 3) * MOOD_RATING_SCALE

    for theme in themes:
        avg = _average([r.rating for r in episode_ratings if theme in r.themes])
        if avg is not None:
            bonus += (avg - 3) * THEME_RATING_SCALE

    by_pair = {(w.mood, w.theme): w.weight for w in weights}
    learned = [by_pair[(m, t)] for m in moods for t in themes if (m, t) in by_pair]
    if learned:
        bonus += sum(learned) / len(learned) * LEARNED_WEIGHT_MULTIPLIER

    if feedback is not None:
        if feedback.completion_samples:
            bonus += (feedback.completion_rate - 0.5) * 2
        bonus -= min(feedback.skip_count, 3) * 0.5
        bonus -= min(feedback.fast_forward_count, 4) * 0.25

    return max(-PERSONAL_BONUS_LIMIT, min(PERSONAL_BONUS_LIMIT, bonus))


class PreferenceStore:
    """Ratings, learned weights and implicit feedback with local fallback."""

    def __init__(self, local: Database | None = None, remote: SupabaseRatingStore | None = None):
        self.local = local or Database()
        self.remote = remote

    @property
    def remote_configured(self) -> bool:
        return self.remote is not None

    def _local(self, operation: Callable[..., T], *args) -> Result[T]:
        try:
            return Result.success(operation(*args))
        except Exception as e:
            logger.warning(f"Local preference store error in {getattr(operation, '__name__', operation)}: {e}")
            return Result.failure(classify_error(e), str(e))

    # --- Capability ---

    async def save_rating(self, record: RatingRecord) -> None:
        self._local(self.local.save_rating, record)
        if self.remote:
            result = await self.remote.save_rating(record)
            if not result.ok:
                logger.warning(f"Rating kept locally only ({result.error.value}): {result.message}")

    async def get_all_ratings(self) -> list[RatingRecord]:
        if self.remote:
            result = await self.remote.get_all_ratings()
            if result.ok:
                return result.unwrap_or([])
            logger.warning(f"Falling back to local ratings ({result.error.value})")
        return self._local(self.local.get_all_ratings).unwrap_or([])

    async def get_preference_weights(self) -> list[PreferenceWeight]:
        if self.remote:
            result = await self.remote.get_preference_weights()
            if result.ok:
                return result.unwrap_or([])
            logger.warning(f"Falling back to local preference weights ({result.error.value})")
        return self._local(self.local.get_preference_weights).unwrap_or([])

    async def save_preference_weights(self, weights: list[PreferenceWeight]) -> None:
        self._local(self.local.save_preference_weights, weights)
        if self.remote:
            result = await self.remote.save_preference_weights(weights)
            if not result.ok:
                logger.warning(f"Preference weights kept locally only ({result.error.value})")

    async def get_episode_ratings(self, episode_id: str) -> list[RatingRecord]:
        if self.remote:
            result = await self.remote.get_all_ratings()
            if result.ok:
                return [r for r in result.unwrap_or([]) if r.episode_id == episode_id]
            logger.warning(f"Falling back to local ratings for {episode_id} ({result.error.value})")
        return self._local(self.local.get_ratings_for_episode, episode_id).unwrap_or([])

    async def get_implicit_feedback(self, episode_id: str) -> ImplicitFeedback | None:
        return self._local(self.local.get_implicit_feedback, episode_id).unwrap_or(None)

    async def check_remote(self) -> Result[None]:
        """Ping the remote mirror. Local-only stores are always healthy."""
        if not self.remote:
            return Result.success(None)
        result = await self.remote.ping()
        if not result.ok:
            logger.warning(
                f"Supabase unreachable, ratings will be served locally ({result.error.value}): {result.message}"
            )
        return result

    # --- Rating stats ---

    async def get_rating_summary(self, episode_id: str) -> RatingSummary | None:
        return summarize_ratings(episode_id, await self.get_episode_ratings(episode_id))

    async def get_average_rating(self, mood: Mood, theme: Theme) -> float:
        """Average stars over ratings tagged with both mood and theme, 0.0 when there are none."""
        ratings = [r for r in await self.get_all_ratings() if mood in r.moods and theme in r.themes]
        return _average([r.rating for r in ratings]) or 0.0

    # --- Write paths ---

    async def submit_rating(self, record: RatingRecord) -> list[PreferenceWeight]:
        """Persist a rating and fold it into the learned mood x theme weights."""
        await self.save_rating(record)
        weights = await self.get_preference_weights()
        touched = update_preference_weights(weights, record)
        if touched:
            await self.save_preference_weights(touched)
        logger.info(
            f"Rating {record.rating}/5 for {record.episode_id} updated {len(touched)} preference weights"
        )
        return touched

    async def record_playback(
        self,
        episode_id: str,
        completion_rate: float | None = None,
        skipped: bool = False,
        fast_forwards: int = 0,
        play_time: float = 0.0,
    ) -> ImplicitFeedback:
        """Merge one playback event into the episode's implicit feedback."""
        current = await self.get_implicit_feedback(episode_id) or ImplicitFeedback(episode_id=episode_id)
        completion = current.completion_rate
        samples = current.completion_samples
        if completion_rate is not None:
            completion_rate = max(0.0, min(1.0, completion_rate))
            completion = (completion * samples + completion_rate) / (samples + 1)
            samples += 1

        merged = current.model_copy(
            update={
                "skip_count": current.skip_count + (1 if skipped else 0),
                "completion_rate": completion,
                "completion_samples": samples,
                "fast_forward_count": current.fast_forward_count + max(0, fast_forwards),
                "total_play_time": current.total_play_time + max(0.0, play_time),
                "last_updated": _now_iso(),
            }
        )
        self._local(self.local.save_implicit_feedback, merged)
        return merged

    # --- Read path for scoring ---

    async def snapshot(self) -> PreferenceSnapshot:
        """Read ratings and weights once so a whole ranking pass sees the same history."""
        return PreferenceSnapshot(ratings=await self.get_all_ratings(), weights=await self.get_preference_weights())

    async def get_personal_bonus(
        self,
        episode_id: str,
        moods: Iterable[Mood],
        themes: Iterable[Theme],
        snapshot: PreferenceSnapshot | None = None,
    ) -> float:
        if snapshot is None:
            snapshot = await self.snapshot()
        feedback = await self.get_implicit_feedback(episode_id)
        episode_ratings = [r for r in snapshot.ratings if r.episode_id == episode_id]
        return calculate_personal_bonus(episode_ratings, snapshot.weights, feedback, moods, themes)
