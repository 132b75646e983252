import json
import os
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

from .models import Episode, ImplicitFeedback, Mood, PreferenceWeight, RatingRecord, Theme


class Database:
    """SQLite database for ratings, learned preference weights and playback signals."""

    def __init__(self, db_path: str | None = None):
        if db_path is None:
            db_path = os.getenv("VIBECAST_DB_PATH")
        if db_path is None:
            db_dir = Path.home() / ".vibecast"
            db_dir.mkdir(parents=True, exist_ok=True)
            db_path = str(db_dir / "vibecast.db")

        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Initialize database tables if they don't exist."""
        self.conn = sqlite3.connect(self.db_path)

        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ratings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                episode_id TEXT NOT NULL,
                rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                moods TEXT NOT NULL DEFAULT '[]',
                themes TEXT NOT NULL DEFAULT '[]',
                timestamp_ms INTEGER NOT NULL,
                comment TEXT
            )
        """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS preference_weights (
                mood TEXT NOT NULL,
                theme TEXT NOT NULL,
                weight REAL NOT NULL DEFAULT 0,
                episode_count INTEGER NOT NULL DEFAULT 0,
                avg_rating REAL NOT NULL DEFAULT 0,
                last_updated TEXT,
                PRIMARY KEY (mood, theme)
            )
        """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS implicit_feedback (
                episode_id TEXT PRIMARY KEY,
                skip_count INTEGER NOT NULL DEFAULT 0,
                completion_rate REAL NOT NULL DEFAULT 0,
                completion_samples INTEGER NOT NULL DEFAULT 0,
                fast_forward_count INTEGER NOT NULL DEFAULT 0,
                total_play_time REAL NOT NULL DEFAULT 0,
                last_updated TEXT
            )
        """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS search_cache (
                cache_key TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                cached_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )
        self.conn.commit()

    # --- Ratings ---

    def save_rating(self, record: RatingRecord) -> int:
        """Append a rating record and return its row ID."""
        cursor = self.conn.execute(
            """
            INSERT INTO ratings (episode_id, rating, moods, themes, timestamp_ms, comment)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                record.episode_id,
                record.rating,
                json.dumps([mood.value for mood in record.moods]),
                json.dumps([theme.value for theme in record.themes]),
                record.timestamp_ms,
                record.comment,
            ),
        )
        self.conn.commit()
        return cursor.lastrowid or 0

    def _query_ratings(self, where: str = "", params: tuple = ()) -> list[RatingRecord]:
        self.conn.row_factory = sqlite3.Row
        cursor = self.conn.execute(
            f"SELECT episode_id, rating, moods, themes, timestamp_ms, comment FROM ratings {where} ORDER BY id",
            params,
        )
        rows = cursor.fetchall()
        self.conn.row_factory = None
        return [
            RatingRecord(
                episode_id=row["episode_id"],
                rating=row["rating"],
                moods=json.loads(row["moods"]),
                themes=json.loads(row["themes"]),
                timestamp_ms=row["timestamp_ms"],
                comment=row["comment"],
            )
            for row in rows
        ]

    def get_all_ratings(self) -> list[RatingRecord]:
        """Retrieve every rating in insertion order."""
        return self._query_ratings()

    def get_ratings_for_episode(self, episode_id: str) -> list[RatingRecord]:
        return self._query_ratings("WHERE episode_id = ?", (episode_id,))

    # --- Preference Weights ---

    def get_preference_weights(self) -> list[PreferenceWeight]:
        self.conn.row_factory = sqlite3.Row
        cursor = self.conn.execute(
            """
            SELECT mood, theme, weight, episode_count, avg_rating, last_updated
            FROM preference_weights
            ORDER BY mood, theme
        """
        )
        rows = cursor.fetchall()
        self.conn.row_factory = None
        return [
            PreferenceWeight(
                mood=Mood(row["mood"]),
                theme=Theme(row["theme"]),
                weight=row["weight"],
                episode_count=row["episode_count"],
                avg_rating=row["avg_rating"],
                last_updated=row["last_updated"] or "",
            )
            for row in rows
        ]

    def save_preference_weights(self, weights: list[PreferenceWeight]):
        """Upsert weight rows keyed by (mood, theme)."""
        self.conn.executemany(
            """
            INSERT INTO preference_weights (mood, theme, weight, episode_count, avg_rating, last_updated)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(mood, theme)
            DO UPDATE SET weight = excluded.weight,
                         episode_count = excluded.episode_count,
                         avg_rating = excluded.avg_rating,
                         last_updated = excluded.last_updated
            """,
            [
                (w.mood.value, w.theme.value, w.weight, w.episode_count, w.avg_rating, w.last_updated)
                for w in weights
            ],
        )
        self.conn.commit()

    # --- Implicit Feedback ---

    def get_implicit_feedback(self, episode_id: str) -> ImplicitFeedback | None:
        self.conn.row_factory = sqlite3.Row
        row = self.conn.execute(
            "SELECT * FROM implicit_feedback WHERE episode_id = ?", (episode_id,)
        ).fetchone()
        self.conn.row_factory = None
        if not row:
            return None
        data = dict(row)
        data["last_updated"] = data["last_updated"] or ""
        return ImplicitFeedback(**data)

    def save_implicit_feedback(self, feedback: ImplicitFeedback):
        self.conn.execute(
            """
            INSERT OR REPLACE INTO implicit_feedback
                (episode_id, skip_count, completion_rate, completion_samples,
                 fast_forward_count, total_play_time, last_updated)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                feedback.episode_id,
                feedback.skip_count,
                feedback.completion_rate,
                feedback.completion_samples,
                feedback.fast_forward_count,
                feedback.total_play_time,
                feedback.last_updated,
            ),
        )
        self.conn.commit()

    # --- Search Cache ---

    def set_search_cache(self, cache_key: str, episodes: list[Episode]) -> None:
        """Store an aggregated search result"""
        self.conn.execute(
            """INSERT OR REPLACE INTO search_cache (cache_key, data, cached_at)
               VALUES (?, ?, ?)""",
            (
                cache_key,
                json.dumps([ep.model_dump() for ep in episodes]),
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        self.conn.commit()

    def get_search_cache(self, cache_key: str, max_age_seconds: int) -> list[Episode] | None:
        """Return cached episodes or None if expired/missing."""
        row = self.conn.execute(
            "SELECT data, cached_at FROM search_cache WHERE cache_key = ?",
            (cache_key,),
        ).fetchone()

        if not row:
            return None

        cached_at = datetime.fromisoformat(row[1])
        if cached_at.tzinfo is None:
            cached_at = cached_at.replace(tzinfo=timezone.utc)
        if datetime.now(timezone.utc) - cached_at > timedelta(seconds=max_age_seconds):
            return None

        return [Episode(**item) for item in json.loads(row[0])]
