# src/vibecast/config.py
"""
Recommendation System Configuration

SCORING WEIGHTS:
Each factor is normalized by the scoring functions (most to 0.0-1.0,
diversity to -0.5..0.2) and multiplied by its weight. The weighted sum is
NOT normalized: a score is only meaningful relative to the other episodes
in the same ranking call.

Category trust signals:
- CATEGORY_RELEVANCE: Presence in a category-filtered result set + metadata
- DURATION: How close the episode is to the requested listening time
- PERSONAL_FIT: Learned from star ratings and listening behaviour

Discovery signals:
- POPULARITY: Provider popularity, followers and chart position
- TOP_QUALITY: Episode came from a curated/official feed
- QUALITY_SIGNALS: Production-quality heuristics
- DIVERSITY: Avoid repeating recent picks in a session

Legacy:
- KEYWORD_FALLBACK: Description keyword matching, off unless enabled
"""

import os


class ScoringWeights:
    # Category trust signals
    CATEGORY_RELEVANCE = 30.0
    DURATION = 25.0
    PERSONAL_FIT = 20.0

    # Discovery signals
    POPULARITY = 35.0
    TOP_QUALITY = 15.0
    QUALITY_SIGNALS = 12.0
    DIVERSITY = 5.0

    # Legacy keyword variant
    KEYWORD_FALLBACK = 10.0

    @classmethod
    def as_dict(cls) -> dict[str, float]:
        return {
            "category_relevance": cls.CATEGORY_RELEVANCE,
            "duration": cls.DURATION,
            "personal_fit": cls.PERSONAL_FIT,
            "popularity": cls.POPULARITY,
            "top_quality": cls.TOP_QUALITY,
            "quality_signals": cls.QUALITY_SIGNALS,
            "diversity": cls.DIVERSITY,
            "keyword_fallback": cls.KEYWORD_FALLBACK,
        }

    @classmethod
    def validate(cls):
        """Ensure every weight is a positive number"""
        for name, weight in cls.as_dict().items():
            if weight <= 0:
                raise AssertionError(f"Weight {name} must be positive, got {weight}")
        return True


# Validate on import
ScoringWeights.validate()


# Duration windows (in minutes)
PRIMARY_DURATION_TOLERANCE = 15
WIDE_DURATION_TOLERANCE = 25
MIN_CANDIDATES_BEFORE_WIDENING = 15
DEFAULT_SHOW_MINUTES = 30  # estimate for show records without episode length

# Session state
RECENT_WINDOW_SIZE = 20

# Shuffle selector
SHUFFLE_BATCH_SIZE = 10
SHUFFLE_MAX_ATTEMPTS = 50
PREMIUM_TIER_SIZE = 5
QUALITY_TIER_SIZE = 15
EXPLORATION_TIER_SIZE = 30
NEW_USER_SESSIONS = 3
SKIP_STREAK_LIMIT = 2

# Preference learning
PREFERENCE_WINDOW_SIZE = 5
LEARNED_WEIGHT_MULTIPLIER = 2.0
PERSONAL_BONUS_LIMIT = 6.0

# Catalog aggregation
PRIMARY_QUERY_LIMIT = 50
SECONDARY_QUERY_LIMIT = 20
MAX_SECONDARY_QUERIES = 2
MIN_POOL_SIZE = 20
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("VIBECAST_PROVIDER_TIMEOUT", "10"))
SEARCH_DEADLINE_SECONDS = float(os.getenv("VIBECAST_SEARCH_DEADLINE", "25"))

# Cache TTLs (in seconds)
SEARCH_CACHE_TTL = 1 * 60 * 60  # 1 hour

# Providers tried in order; the demo catalog is always the last resort
DEFAULT_PROVIDERS = ["spotify", "listennotes", "podcastindex"]


def configured_providers() -> list[str]:
    raw = os.getenv("VIBECAST_PROVIDERS", "")
    names = [name.strip().lower() for name in raw.split(",") if name.strip()]
    return names or list(DEFAULT_PROVIDERS)
