# src/vibecast/scoring.py
"""
Scoring functions for the ranking engine.

Each factor function returns a (score, reasons) tuple:
- score is normalized (0.0-1.0, except diversity which is -0.5..0.2)
- reasons are short human-readable messages shown to the listener

Factors are combined with the weights defined in config.py. The combined
score is an unnormalized weighted sum.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable
from datetime import datetime, timezone

from vibecast.categories import CategorySelection, categories_for, coerce_moods, coerce_themes, parent_category
from vibecast.config import DEFAULT_SHOW_MINUTES, PERSONAL_BONUS_LIMIT, ScoringWeights
from vibecast.models import Episode, Mood, PreferenceSnapshot, ScoredEpisode, SessionState, Theme

logger = logging.getLogger(__name__)

REASON_SEPARATOR = " • "
DEFAULT_REASON = "General match based on your preferences"

PROFESSIONAL_WORDS = ["interview", "discussion", "analysis", "review", "conversation", "investigation"]
SPAM_PHRASES = ["subscribe now", "click here", "free download", "buy now", "limited time", "act now"]

MOOD_KEYWORDS: dict[Mood, list[str]] = {
    Mood.HAPPY: ["uplifting", "joy", "funny", "positive", "feel good"],
    Mood.SAD: ["empathy", "healing", "grief", "storytelling", "emotions"],
    Mood.ANXIOUS: ["calm", "soothing", "mindfulness", "meditation", "relax"],
    Mood.BORED: ["banter", "entertaining", "weird", "viral"],
    Mood.CURIOUS: ["learning", "explainer", "interview", "science", "ideas"],
    Mood.TIRED: ["soft voice", "chill", "low energy", "slow paced"],
    Mood.FOCUSED: ["productivity", "deep dive", "motivation", "workflow"],
    Mood.STRESSED: ["relaxing", "coping", "unwind", "decompress"],
    Mood.SURPRISE_ME: [],
    Mood.DONT_KNOW: [],
}

THEME_KEYWORDS: dict[Theme, list[str]] = {
    Theme.LAUGH: ["comedy", "banter", "funny", "sketch"],
    Theme.CRY: ["moving", "emotional", "true story", "family"],
    Theme.LEARN: ["education", "explainer", "deep dive", "how to"],
    Theme.BE_INSPIRED: ["motivation", "success", "resilience"],
    Theme.ESCAPE: ["thriller", "fiction", "mystery", "narrative"],
    Theme.CHILL: ["calm", "ambient", "meditation", "soft spoken"],
    Theme.BE_DISTRACTED: ["random", "light", "banter", "entertaining"],
    Theme.BE_SHOCKED: ["true crime", "scandal", "unbelievable", "twist"],
    Theme.REFLECT: ["introspective", "life", "meaning", "mental health"],
    Theme.STAY_UPDATED: ["news", "current events", "culture", "politics"],
    Theme.FEEL_SEEN: ["identity", "relationships", "personal stories"],
    Theme.KILL_TIME: ["facts", "trivia", "low effort", "background"],
}

FactorResult = tuple[float, list[str]]

SCORED_FIELDS = {"score", "match_reasons", "match_reason", "factors"}


def episode_duration_minutes(episode: Episode) -> float:
    """Episode length in minutes; show records without a length use an estimate."""
    if episode.audio_length_sec <= 0:
        return float(DEFAULT_SHOW_MINUTES)
    return episode.audio_length_sec / 60.0


def _matched_categories(episode: Episode, wanted: list[str]) -> list[str]:
    """Categories in `wanted` that the episode was found under (directly or via a sub-genre)."""
    found = {c.lower() for c in episode.categories}
    found |= {parent.lower() for parent in map(parent_category, episode.categories) if parent}
    return [category for category in wanted if category.lower() in found]


def calculate_category_relevance(episode: Episode, selection: CategorySelection) -> FactorResult:
    """
    Score trust in an episode that surfaced from a category-filtered search.

    Presence in the pool earns a base credit; metadata and category matches
    add graduated bonuses:
    - base: 0.4
    - description over 100 chars: +0.1
    - named publisher: +0.1
    - cover art: +0.1
    - each primary category match: +0.1 (max 0.2)
    - each secondary category match: +0.05 (max 0.1)

    Returns:
        Score between 0.0 and 1.0 plus reasons
    """
    score = 0.4
    reasons: list[str] = []

    if len(episode.description) > 100:
        score += 0.1
    if episode.publisher.strip():
        score += 0.1
    if episode.cover_art_url:
        score += 0.1

    primary = _matched_categories(episode, selection.primary)
    secondary = [c for c in _matched_categories(episode, selection.secondary) if c not in primary]
    if primary:
        score += min(0.2, 0.1 * len(primary))
        reasons.append(f"Fits your vibe: {', '.join(primary)}")
    if secondary:
        score += min(0.1, 0.05 * len(secondary))
        reasons.append(f"Related to {', '.join(secondary)}")

    return max(0.0, min(1.0, score)), reasons


def calculate_duration_score(episode: Episode, target_minutes: float) -> FactorResult:
    """
    Score based on distance from the requested listening time.

    Tiers on abs(duration - target) in minutes:
    - <= 2: 1.0
    - <= 5: 0.8
    - <= 10: 0.6
    - <= 15: 0.4
    - longer than target when target > 60: 0.3 (long-form listeners)
    - otherwise: 0.1

    Returns:
        Score between 0.0 and 1.0 plus reasons
    """
    minutes = episode_duration_minutes(episode)
    shown = round(minutes)
    diff = abs(minutes - target_minutes)

    if diff <= 2:
        return 1.0, [f"Perfect length at {shown} minutes"]
    if diff <= 5:
        return 0.8, [f"Great length at {shown} minutes"]
    if diff <= 10:
        return 0.6, [f"Good length at {shown} minutes"]
    if diff <= 15:
        return 0.4, [f"Close to your time at {shown} minutes"]
    if minutes > target_minutes and target_minutes > 60:
        return 0.3, [f"Long-form listen at {shown} minutes"]
    if minutes > target_minutes:
        return 0.1, [f"A bit longer than requested at {shown} minutes"]
    return 0.1, [f"A bit shorter than requested at {shown} minutes"]


def calculate_popularity_score(episode: Episode) -> FactorResult:
    """
    Score based on popularity indicators (0.0-1.0).

    Weighted blend of available signals, missing ones count as 0:
    - provider popularity (0-100): 60%
    - follower count, log10 scaled so 1M followers = 1.0: 30%
    - chart position (1 best, 100 worst), inverted: 10%

    Returns:
        Score between 0.0 and 1.0 plus reasons
    """
    popularity = (episode.popularity or 0) / 100.0

    followers = 0.0
    if episode.follower_count and episode.follower_count > 0:
        followers = min(1.0, math.log10(episode.follower_count + 1) / 6.0)

    chart = 0.0
    if episode.chart_position:
        chart = (101 - episode.chart_position) / 100.0

    score = max(0.0, min(1.0, popularity * 0.6 + followers * 0.3 + chart * 0.1))

    reasons: list[str] = []
    if score >= 0.5:
        reasons.append("🔥 Highly popular podcast")
    elif score >= 0.3:
        reasons.append("Popular with listeners")
    if episode.chart_position and episode.chart_position <= 10:
        reasons.append(f"Top {episode.chart_position} on the charts")
    return score, reasons


def calculate_top_quality(episode: Episode) -> FactorResult:
    """1.0 when the episode came from a curated/official provider feed."""
    if episode.is_top_quality:
        return 1.0, ["⭐ From a curated top podcast"]
    return 0.0, []


def _parse_published(published_at: str) -> datetime | None:
    try:
        published = datetime.fromisoformat(published_at.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def calculate_quality_signals(episode: Episode, now: datetime | None = None) -> FactorResult:
    """
    Heuristic production-quality score (0.0-1.0).

    - cover art: 0.2
    - metadata completeness (title, description, publisher, art): up to 0.25
    - recency: 0.25 within 7 days, 0.15 within 30, 0.1 within 90
    - professional title shape (mixed case, 10-100 chars): 0.1
    - professional words (interview, discussion, analysis, review...): 0.2
    - spam phrases ("subscribe now", "click here"...): -0.3

    Returns:
        Score between 0.0 and 1.0 plus reasons
    """
    now = now or datetime.now(timezone.utc)
    score = 0.0
    reasons: list[str] = []

    if episode.cover_art_url:
        score += 0.2

    if episode.title.strip():
        score += 0.05
    if len(episode.description) > 50:
        score += 0.1
    if episode.publisher.strip():
        score += 0.05
    if episode.cover_art_url:
        score += 0.05

    if episode.published_at:
        published = _parse_published(episode.published_at)
        if published is not None:
            age_days = (now - published).total_seconds() / 86400.0
            if age_days <= 7:
                score += 0.25
                reasons.append("Fresh this week")
            elif age_days <= 30:
                score += 0.15
                reasons.append("Recently published")
            elif age_days <= 90:
                score += 0.1

    title = episode.title.strip()
    if 10 <= len(title) <= 100 and title != title.upper() and title != title.lower():
        score += 0.1

    text = f"{episode.title} {episode.description}".lower()
    professional = [word for word in PROFESSIONAL_WORDS if re.search(rf"\b{word}", text)]
    if professional:
        score += 0.2
        reasons.append(f"Thoughtful {professional[0]} format")

    if any(phrase in text for phrase in SPAM_PHRASES):
        score -= 0.3

    return max(0.0, min(1.0, score)), reasons


def calculate_diversity(episode: Episode, session: SessionState | None) -> FactorResult:
    """
    Diversity adjustment against the session's recent picks.

    - -0.5 if this episode was recently recommended
    - +0.2 if its podcast has not been recommended recently
    - 0.0 otherwise
    """
    if session is None:
        return 0.0, []
    if episode.id in session.recent_ids:
        return -0.5, ["Recently recommended"]
    if episode.podcast_name.lower() not in session.recent_podcasts:
        return 0.2, ["New podcast for this session"]
    return 0.0, []


def calculate_keyword_match(episode: Episode, moods: Iterable[Mood], themes: Iterable[Theme]) -> FactorResult:
    """
    Legacy keyword matching against static mood/theme keyword lists.

    Each matched keyword adds 1/3, capped at 1.0.
    """
    text = f"{episode.title} {episode.description}".lower()
    matches = 0
    reasons: list[str] = []

    for mood in moods:
        matched = [kw for kw in MOOD_KEYWORDS.get(mood, []) if kw in text]
        if matched:
            matches += len(matched)
            reasons.append(f"Matches your {mood.value} mood ({', '.join(matched)})")

    for theme in themes:
        matched = [kw for kw in THEME_KEYWORDS.get(theme, []) if kw in text]
        if matched:
            matches += len(matched)
            reasons.append(f"Perfect to {theme.value.replace('_', ' ')} ({', '.join(matched)})")

    return min(1.0, matches / 3.0), reasons


def personal_fit_from_bonus(bonus: float) -> float:
    """Normalize a personal bonus in [-limit, limit] onto 0.0-1.0 (0.5 = neutral)."""
    clamped = max(-PERSONAL_BONUS_LIMIT, min(PERSONAL_BONUS_LIMIT, bonus))
    return (clamped + PERSONAL_BONUS_LIMIT) / (2 * PERSONAL_BONUS_LIMIT)


def personal_reasons(bonus: float) -> list[str]:
    if bonus >= 1.0:
        return ["❤️ Matches what you've loved before"]
    if bonus <= -1.0:
        return ["You've rated similar picks lower"]
    return []


def calculate_composite_score(
    factors: dict[str, float],
    weights: type[ScoringWeights] = ScoringWeights,
) -> float:
    """
    Weighted sum of all factor scores.

    Unknown factor names are ignored. The result is not clamped.
    """
    weight_map = weights.as_dict()
    return sum(value * weight_map[name] for name, value in factors.items() if name in weight_map)


class ScoringEngine:
    """Computes a multi-factor score and explanation for a single episode."""

    def __init__(self, store=None, weights: type[ScoringWeights] = ScoringWeights, keyword_fallback: bool = False):
        self.store = store
        self.weights = weights
        self.keyword_fallback = keyword_fallback

    async def load_snapshot(self) -> PreferenceSnapshot | None:
        """Read the store's ratings and weights once for a batch of score() calls."""
        if self.store is None:
            return None
        try:
            return await self.store.snapshot()
        except Exception as e:
            logger.warning(f"Could not load preference history, scoring per episode: {e}")
            return None

    async def _personal_bonus(
        self, episode: Episode, moods: list[Mood], themes: list[Theme], snapshot: PreferenceSnapshot | None
    ) -> float | None:
        """Return the store's bonus, or None when personalization is unavailable."""
        if self.store is None:
            return None
        try:
            return await self.store.get_personal_bonus(episode.id, moods, themes, snapshot=snapshot)
        except Exception as e:
            logger.warning(f"Personalization unavailable for {episode.id}, scoring without it: {e}")
            return None

    async def score(
        self,
        episode: Episode,
        moods: Iterable[Mood | str],
        themes: Iterable[Theme | str],
        target_minutes: float,
        session: SessionState | None = None,
        now: datetime | None = None,
        selection: CategorySelection | None = None,
        snapshot: PreferenceSnapshot | None = None,
    ) -> ScoredEpisode:
        if target_minutes < 0:
            raise ValueError(f"target_minutes must be >= 0, got {target_minutes}")
        moods = coerce_moods(moods)
        themes = coerce_themes(themes)
        selection = selection or categories_for(moods, themes)

        factors: dict[str, float] = {}
        reasons: list[str] = []

        def add(name: str, result: FactorResult):
            value, messages = result
            factors[name] = value
            reasons.extend(messages)

        add("category_relevance", calculate_category_relevance(episode, selection))
        add("duration", calculate_duration_score(episode, target_minutes))

        bonus = await self._personal_bonus(episode, moods, themes, snapshot)
        if bonus is None:
            add("personal_fit", (0.0, []))
        else:
            add("personal_fit", (personal_fit_from_bonus(bonus), personal_reasons(bonus)))

        add("popularity", calculate_popularity_score(episode))
        add("top_quality", calculate_top_quality(episode))
        add("quality_signals", calculate_quality_signals(episode, now))
        add("diversity", calculate_diversity(episode, session))
        if self.keyword_fallback:
            add("keyword_fallback", calculate_keyword_match(episode, moods, themes))

        return ScoredEpisode(
            **episode.model_dump(exclude=SCORED_FIELDS),
            score=calculate_composite_score(factors, self.weights),
            match_reasons=reasons,
            match_reason=REASON_SEPARATOR.join(reasons) if reasons else DEFAULT_REASON,
            factors=factors,
        )
