"""
Mood/theme to podcast category mapping.

Translates the listener's vocabulary (moods and themes) into catalog
taxonomy categories so providers can be queried by category instead of by
fragile free-text keywords. Category names follow the Apple Podcasts /
Listen Notes taxonomy.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

from .models import Mood, Theme

PODCAST_CATEGORIES: dict[str, list[str]] = {
    "Arts": ["Books", "Design", "Fashion & Beauty", "Food", "Performing Arts", "Visual Arts"],
    "Business": ["Careers", "Entrepreneurship", "Investing", "Management", "Marketing", "Non-Profit"],
    "Comedy": ["Comedy Interviews", "Improv", "Stand-Up", "Entertainment", "Talk Shows", "Radio Comedy"],
    "Education": ["Courses", "How To", "Language Learning", "Self-Improvement"],
    "Fiction": ["Comedy Fiction", "Drama", "Science Fiction"],
    "Government": [],
    "History": [],
    "Health & Fitness": ["Alternative Health", "Fitness", "Medicine", "Mental Health", "Nutrition", "Sexuality"],
    "Leisure": [
        "Animation & Manga", "Automotive", "Aviation", "Crafts", "Games", "Hobbies", "Home & Garden", "Video Games",
    ],
    "Music": ["Music Commentary", "Music History", "Music Interviews"],
    "News": [
        "Business News", "Daily News", "Entertainment News", "News Commentary", "Politics", "Sports News", "Tech News",
    ],
    "Religion & Spirituality": ["Buddhism", "Christianity", "Hinduism", "Islam", "Judaism", "Religion", "Spirituality"],
    "Science": [
        "Astronomy", "Chemistry", "Earth Sciences", "Life Sciences", "Mathematics", "Natural Sciences", "Nature",
        "Physics", "Social Sciences",
    ],
    "Society & Culture": ["Documentary", "Personal Journals", "Philosophy", "Places & Travel", "Relationships"],
    "Sports": [
        "Baseball", "Basketball", "Cricket", "Fantasy Sports", "Football", "Golf", "Hockey", "Rugby", "Soccer",
        "Swimming", "Tennis", "Volleyball", "Wilderness", "Wrestling",
    ],
    "Technology": [],
    "True Crime": [],
    "TV & Film": ["After Shows", "Film History", "Film Interviews", "Film Reviews", "TV Reviews"],
}

MOOD_CATEGORIES: dict[Mood, dict[str, list[str]]] = {
    Mood.HAPPY: {
        "primary": ["Comedy", "Music", "Health & Fitness"],
        "secondary": ["Arts", "Leisure", "Society & Culture"],
    },
    Mood.SAD: {
        "primary": ["Health & Fitness", "Society & Culture", "Religion & Spirituality"],
        "secondary": ["Music", "Arts", "Education"],
    },
    Mood.ANXIOUS: {
        "primary": ["Health & Fitness", "Religion & Spirituality", "Education"],
        "secondary": ["Society & Culture", "Music"],
    },
    Mood.BORED: {
        "primary": ["Comedy", "TV & Film", "Leisure"],
        "secondary": ["True Crime", "News", "Sports"],
    },
    Mood.CURIOUS: {
        "primary": ["Science", "Education", "History"],
        "secondary": ["Technology", "News", "Society & Culture"],
    },
    Mood.TIRED: {
        "primary": ["Health & Fitness", "Religion & Spirituality", "Music"],
        "secondary": ["Society & Culture", "Fiction"],
    },
    Mood.FOCUSED: {
        "primary": ["Education", "Business", "Science"],
        "secondary": ["Technology", "Health & Fitness", "News"],
    },
    Mood.STRESSED: {
        "primary": ["Health & Fitness", "Religion & Spirituality", "Music"],
        "secondary": ["Comedy", "Society & Culture"],
    },
    Mood.SURPRISE_ME: {
        "primary": ["Comedy", "True Crime", "Science"],
        "secondary": ["Fiction", "TV & Film", "Leisure"],
    },
    Mood.DONT_KNOW: {
        "primary": ["Comedy", "News", "Society & Culture"],
        "secondary": ["Education", "Health & Fitness", "Arts"],
    },
}

THEME_CATEGORIES: dict[Theme, dict[str, list[str]]] = {
    Theme.LAUGH: {
        "primary": ["Comedy"],
        "secondary": ["TV & Film", "Leisure"],
    },
    Theme.CRY: {
        "primary": ["Fiction", "Society & Culture"],
        "secondary": ["Health & Fitness", "True Crime"],
    },
    Theme.LEARN: {
        "primary": ["Education", "Science", "History"],
        "secondary": ["Technology", "Business", "News"],
    },
    Theme.BE_INSPIRED: {
        "primary": ["Education", "Business", "Health & Fitness"],
        "secondary": ["Religion & Spirituality", "Society & Culture"],
    },
    Theme.ESCAPE: {
        "primary": ["Fiction", "True Crime", "TV & Film"],
        "secondary": ["Science Fiction", "Arts", "Leisure"],
    },
    Theme.CHILL: {
        "primary": ["Health & Fitness", "Religion & Spirituality", "Music"],
        "secondary": ["Society & Culture", "Nature"],
    },
    Theme.BE_DISTRACTED: {
        "primary": ["Comedy", "Leisure", "TV & Film"],
        "secondary": ["Music", "Sports", "Arts"],
    },
    Theme.BE_SHOCKED: {
        "primary": ["True Crime", "News"],
        "secondary": ["Society & Culture", "Government"],
    },
    Theme.REFLECT: {
        "primary": ["Religion & Spirituality", "Society & Culture", "Health & Fitness"],
        "secondary": ["Philosophy", "Education", "Arts"],
    },
    Theme.STAY_UPDATED: {
        "primary": ["News", "Technology", "Business"],
        "secondary": ["Science", "Government", "Sports"],
    },
    Theme.FEEL_SEEN: {
        "primary": ["Society & Culture", "Health & Fitness", "Religion & Spirituality"],
        "secondary": ["Personal Journals", "Relationships", "Arts"],
    },
    Theme.KILL_TIME: {
        "primary": ["Comedy", "Leisure", "TV & Film"],
        "secondary": ["Sports", "Music", "True Crime"],
    },
}


class CategorySelection(BaseModel):
    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)
    subcategories: list[str] = Field(default_factory=list)


def coerce_moods(moods: Iterable[Mood | str]) -> list[Mood]:
    """Convert raw values to Mood members. Unknown values raise ValueError."""
    return [Mood(mood) for mood in moods]


def coerce_themes(themes: Iterable[Theme | str]) -> list[Theme]:
    """Convert raw values to Theme members. Unknown values raise ValueError."""
    return [Theme(theme) for theme in themes]


def _add_unique(target: list[str], values: Iterable[str]):
    for value in values:
        if value not in target:
            target.append(value)


def categories_for(moods: Iterable[Mood | str], themes: Iterable[Theme | str]) -> CategorySelection:
    """Get all relevant categories for a set of moods and themes.

    Order follows the selection order, moods before themes. An empty
    selection gives an empty CategorySelection.
    """
    primary: list[str] = []
    secondary: list[str] = []

    for mood in coerce_moods(moods):
        mapping = MOOD_CATEGORIES[mood]
        _add_unique(primary, mapping["primary"])
        _add_unique(secondary, mapping["secondary"])

    for theme in coerce_themes(themes):
        mapping = THEME_CATEGORIES[theme]
        _add_unique(primary, mapping["primary"])
        _add_unique(secondary, mapping["secondary"])

    subcategories: list[str] = []
    for category in primary + secondary:
        _add_unique(subcategories, PODCAST_CATEGORIES.get(category, []))

    return CategorySelection(primary=primary, secondary=secondary, subcategories=subcategories)


def search_terms_for(moods: Iterable[Mood | str], themes: Iterable[Theme | str]) -> list[str]:
    """Flatten primary, secondary and subcategories into deduplicated search terms."""
    selection = categories_for(moods, themes)
    terms: list[str] = []
    _add_unique(terms, selection.primary)
    _add_unique(terms, selection.secondary)
    _add_unique(terms, selection.subcategories)
    return terms


def parent_category(name: str) -> str | None:
    """Return the top-level category a sub-genre belongs to, if any."""
    lowered = name.lower()
    for category, subs in PODCAST_CATEGORIES.items():
        if category.lower() == lowered:
            return category
        if any(sub.lower() == lowered for sub in subs):
            return category
    return None
