from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .config import RECENT_WINDOW_SIZE


class Mood(str, Enum):
    HAPPY = "happy"
    SAD = "sad"
    ANXIOUS = "anxious"
    BORED = "bored"
    CURIOUS = "curious"
    TIRED = "tired"
    FOCUSED = "focused"
    STRESSED = "stressed"
    SURPRISE_ME = "surprise_me"
    DONT_KNOW = "dont_know"


class Theme(str, Enum):
    LAUGH = "laugh"
    CRY = "cry"
    LEARN = "learn"
    BE_INSPIRED = "be_inspired"
    ESCAPE = "escape"
    CHILL = "chill"
    BE_DISTRACTED = "be_distracted"
    BE_SHOCKED = "be_shocked"
    REFLECT = "reflect"
    STAY_UPDATED = "stay_updated"
    FEEL_SEEN = "feel_seen"
    KILL_TIME = "kill_time"


class Episode(BaseModel):
    id: str
    title: str
    description: str = ""
    podcast_name: str = ""
    publisher: str = ""
    audio_length_sec: int = Field(default=0, ge=0)  # 0 = show record, length unknown
    cover_art_url: str | None = None
    external_url: str | None = None
    published_at: str | None = None
    is_top_quality: bool = False
    popularity: float | None = Field(default=None, ge=0, le=100)
    follower_count: int | None = None
    chart_position: int | None = Field(default=None, ge=1, le=100)
    episode_count: int | None = None
    platform_links: dict[str, str] = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=list)
    provider: str = ""


class ScoredEpisode(Episode):
    score: float
    match_reasons: list[str] = Field(default_factory=list)
    match_reason: str = ""
    factors: dict[str, float] = Field(default_factory=dict)


class RatingRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    episode_id: str
    rating: int = Field(ge=1, le=5)
    moods: list[Mood] = Field(default_factory=list)
    themes: list[Theme] = Field(default_factory=list)
    timestamp_ms: int
    comment: str | None = None


class RatingSummary(BaseModel):
    episode_id: str
    average_rating: float
    total_ratings: int
    mood_ratings: dict[Mood, float] = Field(default_factory=dict)  # average per tagged mood
    theme_ratings: dict[Theme, float] = Field(default_factory=dict)


class PreferenceWeight(BaseModel):
    mood: Mood
    theme: Theme
    weight: float = Field(default=0.0, ge=-1.0, le=1.0)
    episode_count: int = 0
    avg_rating: float = 0.0
    last_updated: str = ""


class PreferenceSnapshot(BaseModel):
    """Ratings and learned weights read together for one scoring pass."""

    ratings: list[RatingRecord] = Field(default_factory=list)
    weights: list[PreferenceWeight] = Field(default_factory=list)


class ImplicitFeedback(BaseModel):
    episode_id: str
    skip_count: int = 0
    completion_rate: float = Field(default=0.0, ge=0.0, le=1.0)  # mean over completion_samples events
    completion_samples: int = Field(default=0, ge=0)
    fast_forward_count: int = 0
    total_play_time: float = 0.0  # seconds
    last_updated: str = ""


class RecentPick(BaseModel):
    episode_id: str
    podcast_name: str = ""


class ShuffleState(BaseModel):
    shown: set[str] = Field(default_factory=set)
    options: list[ScoredEpisode] = Field(default_factory=list)
    cursor: int = 0

    def reset(self):
        self.shown.clear()
        self.options = []
        self.cursor = 0


class SessionState(BaseModel):
    """Per-listener ranking state, owned by the caller and passed in explicitly."""

    session_id: str = ""
    recent: list[RecentPick] = Field(default_factory=list)
    shuffle: ShuffleState = Field(default_factory=ShuffleState)
    ranked: list[ScoredEpisode] = Field(default_factory=list)
    current_pick: ScoredEpisode | None = None
    session_count: int = 0
    consecutive_skips: int = 0

    def remember(self, episode: Episode, max_size: int = RECENT_WINDOW_SIZE):
        """Push a surfaced episode onto the recent window, evicting the oldest."""
        self.recent.append(RecentPick(episode_id=episode.id, podcast_name=episode.podcast_name))
        if len(self.recent) > max_size:
            del self.recent[: len(self.recent) - max_size]

    @property
    def recent_ids(self) -> set[str]:
        return {pick.episode_id for pick in self.recent}

    @property
    def recent_podcasts(self) -> set[str]:
        return {pick.podcast_name.lower() for pick in self.recent if pick.podcast_name}
