"""
Shuffle selector: non-repeating alternative picks within a search session.

Candidates come from three overlapping tiers of the still-unseen ranked
list (premium = top 5, quality = top 15, exploration = top 30). Tier odds
depend on how experienced the listener is and on their current skip streak.
"""

import logging
import random

from .config import (
    EXPLORATION_TIER_SIZE,
    NEW_USER_SESSIONS,
    PREMIUM_TIER_SIZE,
    QUALITY_TIER_SIZE,
    SHUFFLE_BATCH_SIZE,
    SHUFFLE_MAX_ATTEMPTS,
    SKIP_STREAK_LIMIT,
)
from .models import ScoredEpisode, SessionState

logger = logging.getLogger(__name__)

# (premium, quality, exploration)
NEW_USER_TIER_WEIGHTS = (0.7, 0.25, 0.05)
EXPERIENCED_TIER_WEIGHTS = (0.4, 0.35, 0.25)
NEW_USER_SKIPPING_WEIGHTS = (0.75, 0.25, 0.0)
EXPERIENCED_SKIPPING_WEIGHTS = (0.55, 0.45, 0.0)


def tier_weights(session_count: int, consecutive_skips: int) -> tuple[float, float, float]:
    new_user = session_count < NEW_USER_SESSIONS
    if consecutive_skips >= SKIP_STREAK_LIMIT:
        return NEW_USER_SKIPPING_WEIGHTS if new_user else EXPERIENCED_SKIPPING_WEIGHTS
    return NEW_USER_TIER_WEIGHTS if new_user else EXPERIENCED_TIER_WEIGHTS


class ShuffleSelector:
    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def generate_options(
        self,
        available: list[ScoredEpisode],
        session_count: int = 0,
        consecutive_skips: int = 0,
    ) -> list[ScoredEpisode]:
        """Sample up to SHUFFLE_BATCH_SIZE unique episodes from the tiers of `available`."""
        if not available:
            return []

        tiers = [
            available[:PREMIUM_TIER_SIZE],
            available[:QUALITY_TIER_SIZE],
            available[:EXPLORATION_TIER_SIZE],
        ]
        weights = tier_weights(session_count, consecutive_skips)

        picks: list[ScoredEpisode] = []
        picked_ids: set[str] = set()
        attempts = 0
        while len(picks) < SHUFFLE_BATCH_SIZE and attempts < SHUFFLE_MAX_ATTEMPTS:
            attempts += 1
            tier = self.rng.choices(tiers, weights=weights, k=1)[0]
            candidate = self.rng.choice(tier)
            if candidate.id not in picked_ids:
                picked_ids.add(candidate.id)
                picks.append(candidate)

        logger.debug(f"Generated {len(picks)} shuffle options in {attempts} attempts")
        return picks

    def next(
        self,
        current_pick: ScoredEpisode | None,
        ranked_pool: list[ScoredEpisode],
        session: SessionState,
    ) -> ScoredEpisode | None:
        """Return the next unseen alternative, or None when the pool is exhausted."""
        state = session.shuffle
        if current_pick is not None:
            state.shown.add(current_pick.id)

        while True:
            if state.cursor >= len(state.options):
                available = [ep for ep in ranked_pool if ep.id not in state.shown]
                state.options = self.generate_options(
                    available, session.session_count, session.consecutive_skips
                )
                state.cursor = 0
                if not state.options:
                    logger.info(f"Shuffle exhausted for session {session.session_id or '<anonymous>'}")
                    return None

            option = state.options[state.cursor]
            state.cursor += 1
            if option.id in state.shown:
                continue

            state.shown.add(option.id)
            session.consecutive_skips += 1
            session.current_pick = option
            return option
