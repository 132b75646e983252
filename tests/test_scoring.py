# tests/test_scoring.py
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

from vibecast.categories import categories_for
from vibecast.config import ScoringWeights
from vibecast.models import Episode, Mood, SessionState, Theme
from vibecast.scoring import (
    ScoringEngine,
    calculate_category_relevance,
    calculate_composite_score,
    calculate_diversity,
    calculate_duration_score,
    calculate_keyword_match,
    calculate_popularity_score,
    calculate_quality_signals,
    calculate_top_quality,
    episode_duration_minutes,
    personal_fit_from_bonus,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_episode(**kwargs) -> Episode:
    data = {"id": "ep-1", "title": "Morning Show", "podcast_name": "The Show", "audio_length_sec": 45 * 60}
    data.update(kwargs)
    return Episode(**data)


class TestCategoryRelevance:
    """Base credit for being in a category-filtered pool plus metadata and match bonuses"""

    def test_base_credit(self):
        score, reasons = calculate_category_relevance(make_episode(), categories_for([], []))
        assert score == pytest.approx(0.4)
        assert reasons == []

    def test_metadata_bonuses(self):
        episode = make_episode(description="x" * 101, publisher="Acme", cover_art_url="https://img")
        score, _ = calculate_category_relevance(episode, categories_for([], []))
        assert score == pytest.approx(0.7)

    def test_primary_match_capped(self):
        selection = categories_for([Mood.HAPPY], [])
        episode = make_episode(categories=["Comedy", "Music", "Health & Fitness"])
        score, reasons = calculate_category_relevance(episode, selection)
        assert score == pytest.approx(0.6)
        assert reasons[0].startswith("Fits your vibe:")

    def test_subgenre_counts_for_parent(self):
        selection = categories_for([], [Theme.LAUGH])
        score, _ = calculate_category_relevance(make_episode(categories=["Stand-Up"]), selection)
        assert score == pytest.approx(0.5)

    def test_secondary_match(self):
        selection = categories_for([Mood.HAPPY], [])
        score, reasons = calculate_category_relevance(make_episode(categories=["Arts"]), selection)
        assert score == pytest.approx(0.45)
        assert reasons == ["Related to Arts"]


class TestDurationScore:
    @pytest.mark.parametrize(
        "minutes,expected",
        [(45, 1.0), (48, 0.8), (53, 0.6), (58, 0.4), (80, 0.1), (10, 0.1)],
    )
    def test_tiers(self, minutes, expected):
        score, _ = calculate_duration_score(make_episode(audio_length_sec=minutes * 60), 45)
        assert score == expected

    def test_long_form_tier(self):
        score, reasons = calculate_duration_score(make_episode(audio_length_sec=120 * 60), 90)
        assert score == 0.3
        assert reasons == ["Long-form listen at 120 minutes"]

    def test_monotonic_in_distance(self):
        """Farther from the target never scores higher"""
        target = 30
        scores = [
            calculate_duration_score(make_episode(audio_length_sec=(target + d) * 60), target)[0]
            for d in [0, 1, 3, 4, 7, 9, 12, 14, 20, 40]
        ]
        assert scores == sorted(scores, reverse=True)

    def test_show_records_use_estimate(self):
        assert episode_duration_minutes(make_episode(audio_length_sec=0)) == 30


class TestPopularityScore:
    def test_no_signals(self):
        assert calculate_popularity_score(make_episode()) == (0.0, [])

    def test_blend(self):
        episode = make_episode(popularity=100, follower_count=999_999, chart_position=1)
        score, reasons = calculate_popularity_score(episode)
        assert score == pytest.approx(1.0)
        assert "🔥 Highly popular podcast" in reasons
        assert "Top 1 on the charts" in reasons

    def test_moderate_popularity(self):
        score, reasons = calculate_popularity_score(make_episode(popularity=60))
        assert score == pytest.approx(0.36)
        assert reasons == ["Popular with listeners"]


def test_top_quality():
    assert calculate_top_quality(make_episode(is_top_quality=True))[0] == 1.0
    assert calculate_top_quality(make_episode())[0] == 0.0


class TestQualitySignals:
    def test_fresh_professional_episode(self):
        episode = make_episode(
            title="An Interview With A Scientist",
            description="A long conversation about research and discovery in modern labs.",
            publisher="Acme",
            cover_art_url="https://img",
            published_at=(NOW - timedelta(days=2)).isoformat(),
        )
        score, reasons = calculate_quality_signals(episode, NOW)
        assert score == pytest.approx(1.0)
        assert "Fresh this week" in reasons
        assert "Thoughtful interview format" in reasons

    def test_spam_penalty(self):
        clean = make_episode(title="Weekly Roundup Show", cover_art_url="https://img")
        spammy = make_episode(title="Weekly Roundup Show", cover_art_url="https://img", description="Subscribe now!")
        assert calculate_quality_signals(spammy, NOW)[0] < calculate_quality_signals(clean, NOW)[0]

    def test_unparseable_date_ignored(self):
        score, reasons = calculate_quality_signals(make_episode(published_at="yesterday"), NOW)
        assert "Fresh this week" not in reasons
        assert 0.0 <= score <= 1.0


class TestDiversity:
    def test_no_session(self):
        assert calculate_diversity(make_episode(), None) == (0.0, [])

    def test_recent_episode_penalized(self):
        session = SessionState()
        session.remember(make_episode())
        assert calculate_diversity(make_episode(), session)[0] == -0.5

    def test_new_podcast_bonus(self):
        session = SessionState()
        session.remember(make_episode(id="other", podcast_name="Other Show"))
        assert calculate_diversity(make_episode(), session)[0] == 0.2

    def test_same_podcast_neutral(self):
        session = SessionState()
        session.remember(make_episode(id="other", podcast_name="the show"))
        assert calculate_diversity(make_episode(), session)[0] == 0.0


def test_keyword_match():
    episode = make_episode(description="A funny, uplifting comedy hour")
    score, reasons = calculate_keyword_match(episode, [Mood.HAPPY], [Theme.LAUGH])
    assert score == 1.0
    assert len(reasons) == 2


def test_personal_fit_normalization():
    assert personal_fit_from_bonus(0) == 0.5
    assert personal_fit_from_bonus(6) == 1.0
    assert personal_fit_from_bonus(-20) == 0.0


def test_composite_score_is_weighted_sum():
    factors = {"duration": 1.0, "popularity": 0.5, "unknown": 10.0}
    expected = ScoringWeights.DURATION + 0.5 * ScoringWeights.POPULARITY
    assert calculate_composite_score(factors) == pytest.approx(expected)


class TestScoringEngine:
    @pytest.mark.asyncio
    async def test_scores_without_store(self):
        scored = await ScoringEngine().score(make_episode(), [Mood.HAPPY], [Theme.LAUGH], 45, now=NOW)
        assert scored.factors["personal_fit"] == 0.0
        assert "keyword_fallback" not in scored.factors
        assert scored.match_reason.startswith("Perfect length at 45 minutes")

    @pytest.mark.asyncio
    async def test_reasons_follow_factor_order(self):
        episode = make_episode(categories=["Comedy"], popularity=90, is_top_quality=True)
        scored = await ScoringEngine().score(episode, [Mood.HAPPY], [], 45, session=SessionState(), now=NOW)
        assert scored.match_reasons == [
            "Fits your vibe: Comedy",
            "Perfect length at 45 minutes",
            "🔥 Highly popular podcast",
            "⭐ From a curated top podcast",
            "New podcast for this session",
        ]
        assert scored.match_reason == " • ".join(scored.match_reasons)

    @pytest.mark.asyncio
    async def test_store_failure_scores_without_personalization(self):
        store = Mock()
        store.get_personal_bonus = AsyncMock(side_effect=RuntimeError("store down"))
        scored = await ScoringEngine(store=store).score(make_episode(), ["happy"], ["laugh"], 45, now=NOW)
        assert scored.factors["personal_fit"] == 0.0
        assert scored.score > 0

    @pytest.mark.asyncio
    async def test_store_bonus_used(self):
        store = Mock()
        store.get_personal_bonus = AsyncMock(return_value=6.0)
        scored = await ScoringEngine(store=store).score(make_episode(), ["happy"], ["laugh"], 45, now=NOW)
        assert scored.factors["personal_fit"] == 1.0
        assert "❤️ Matches what you've loved before" in scored.match_reasons

    @pytest.mark.asyncio
    async def test_keyword_fallback_opt_in(self):
        engine = ScoringEngine(keyword_fallback=True)
        scored = await engine.score(make_episode(description="funny comedy"), ["happy"], ["laugh"], 45, now=NOW)
        assert scored.factors["keyword_fallback"] > 0

    @pytest.mark.asyncio
    async def test_negative_target_raises(self):
        with pytest.raises(ValueError):
            await ScoringEngine().score(make_episode(), [], [], -1)

    @pytest.mark.asyncio
    async def test_rescoring_a_scored_episode(self):
        engine = ScoringEngine()
        first = await engine.score(make_episode(), [], [], 45, now=NOW)
        second = await engine.score(first, [], [], 45, now=NOW)
        assert second.score == first.score

    @pytest.mark.asyncio
    async def test_end_to_end_ordering(self):
        """Right length and popular beats close and less popular beats far too short"""
        engine = ScoringEngine()
        a = make_episode(id="a", title="Episode Alpha", audio_length_sec=45 * 60, categories=["Comedy"], popularity=90)
        c = make_episode(id="c", title="Episode Gamma", audio_length_sec=44 * 60, categories=["Arts"], popularity=50)
        b = make_episode(id="b", title="Episode Bravo", audio_length_sec=10 * 60, categories=["Comedy"], popularity=20)

        scores = {
            ep.id: (await engine.score(ep, [Mood.HAPPY], [], 45, now=NOW)).score
            for ep in (a, b, c)
        }
        assert scores["a"] > scores["c"] > scores["b"]
