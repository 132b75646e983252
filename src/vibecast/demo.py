"""Offline demo catalog used when no live provider returns results."""

from datetime import datetime, timedelta, timezone

from .models import Episode

DEMO_EPISODES: list[dict] = [
    {
        "id": "demo-1",
        "title": "The Science of Happiness: What Makes Us Truly Happy",
        "description": (
            "Explore the latest research on happiness and well-being. Learn practical strategies to boost "
            "your mood and live a more fulfilling life. This episode covers positive psychology, gratitude "
            "practices, and the neuroscience of joy."
        ),
        "audio_length_sec": 2700,
        "podcast_name": "The Happiness Lab",
        "publisher": "Pushkin Industries",
        "cover_art_url": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode1",
        "age_days": 7,
        "categories": ["Science", "Health & Fitness", "Mental Health"],
        "popularity": 82,
        "is_top_quality": True,
    },
    {
        "id": "demo-2",
        "title": "True Crime: The Mystery of the Missing Heiress",
        "description": (
            "A gripping investigation into the disappearance of a wealthy socialite. Follow the clues, "
            "examine the evidence, and dive deep into this unsolved mystery that has baffled investigators "
            "for decades. Unbelievable twists and shocking revelations."
        ),
        "audio_length_sec": 3600,
        "podcast_name": "Mystery Files",
        "publisher": "Mystery Files Media",
        "cover_art_url": "https://images.unsplash.com/photo-1578662996442-48f60103fc96?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode2",
        "age_days": 3,
        "categories": ["True Crime"],
        "popularity": 74,
    },
    {
        "id": "demo-3",
        "title": "Comedy Gold: Stand-Up Stories from the Road",
        "description": (
            "Hilarious tales from touring comedians. Laugh along as they share their funniest moments, "
            "biggest failures, and the weird encounters that happen on the comedy circuit. Pure comedy and banter!"
        ),
        "audio_length_sec": 1800,
        "podcast_name": "Laugh Track",
        "publisher": "Laugh Track Studios",
        "cover_art_url": "https://images.unsplash.com/photo-1541532713592-79a0317b6b77?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode3",
        "age_days": 1,
        "categories": ["Comedy", "Stand-Up"],
        "popularity": 68,
    },
    {
        "id": "demo-4",
        "title": "Mindful Meditation: Finding Peace in Chaos",
        "description": (
            "A calming guide to meditation and mindfulness. Learn breathing techniques, body scans, and mental "
            "exercises to reduce anxiety and find inner peace. Perfect for stress relief and relaxation."
        ),
        "audio_length_sec": 1500,
        "podcast_name": "Zen Moments",
        "publisher": "Zen Moments",
        "cover_art_url": "https://images.unsplash.com/photo-1506905925346-21bda4d32df4?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode4",
        "age_days": 5,
        "categories": ["Health & Fitness", "Religion & Spirituality"],
        "popularity": 55,
    },
    {
        "id": "demo-5",
        "title": "Success Stories: From Startup to Millions",
        "description": (
            "Inspiring interviews with successful entrepreneurs. Learn about their journey, failures, "
            "breakthroughs, and the resilience that drove them to build amazing companies. Full of motivation "
            "and practical advice."
        ),
        "audio_length_sec": 4200,
        "podcast_name": "Business Builders",
        "publisher": "Builders Network",
        "cover_art_url": "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode5",
        "age_days": 2,
        "categories": ["Business", "Entrepreneurship"],
        "popularity": 61,
        "is_top_quality": True,
    },
    {
        "id": "demo-6",
        "title": "Quick Tech Tips: Productivity Hacks in 15 Minutes",
        "description": (
            "Fast-paced tech tips and productivity hacks. Learn how to optimize your workflow, master "
            "keyboard shortcuts, and boost your efficiency in just 15 minutes."
        ),
        "audio_length_sec": 900,
        "podcast_name": "Tech Quick",
        "publisher": "",
        "cover_art_url": "https://images.unsplash.com/photo-1531297484001-80022131f5a1?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode6",
        "age_days": 4,
        "categories": ["Technology", "Tech News"],
        "popularity": 40,
    },
    {
        "id": "demo-7",
        "title": "Morning Motivation: 10-Minute Energy Boost",
        "description": (
            "Start your day right with this energizing 10-minute motivation session. Positive affirmations, "
            "goal-setting tips, and inspiring stories to fuel your morning routine."
        ),
        "audio_length_sec": 600,
        "podcast_name": "Daily Boost",
        "publisher": "",
        "cover_art_url": "https://images.unsplash.com/photo-1506905925346-21bda4d32df4?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode7",
        "age_days": 1,
        "categories": ["Education", "Self-Improvement"],
        "popularity": 35,
    },
    {
        "id": "demo-8",
        "title": "Deep Dive: The History of Space Exploration",
        "description": (
            "A comprehensive 90-minute journey through the history of space exploration. From the first "
            "satellites to Mars missions, explore humanity's greatest adventure in detail."
        ),
        "audio_length_sec": 5400,
        "podcast_name": "Space Chronicles",
        "publisher": "Orbit Audio",
        "cover_art_url": "https://images.unsplash.com/photo-1446776877081-d282a0f896e2?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode8",
        "age_days": 6,
        "categories": ["History", "Science", "Astronomy"],
        "popularity": 58,
    },
    {
        "id": "demo-9",
        "title": "Lunch Break Learning: Psychology Facts",
        "description": (
            "Perfect for your lunch break! Discover fascinating psychology facts and insights in this "
            "bite-sized 20-minute episode. Learn about human behavior, cognitive biases, and mental tricks."
        ),
        "audio_length_sec": 1200,
        "podcast_name": "Mind Bites",
        "publisher": "Mind Bites",
        "cover_art_url": "https://images.unsplash.com/photo-1559757148-5c350d0d3c56?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode9",
        "age_days": 3,
        "categories": ["Education", "Social Sciences"],
        "popularity": 47,
    },
    {
        "id": "demo-10",
        "title": "Weekend Stories: 2-Hour True Crime Marathon",
        "description": (
            "Settle in for a long-form true crime investigation. This 2-hour deep dive covers multiple cases, "
            "interviews with experts, and detailed analysis of criminal psychology."
        ),
        "audio_length_sec": 7200,
        "podcast_name": "Crime Deep Dive",
        "publisher": "Deep Dive Audio",
        "cover_art_url": "https://images.unsplash.com/photo-1578662996442-48f60103fc96?w=300&h=300&fit=crop",
        "external_url": "https://example.com/episode10",
        "age_days": 8,
        "categories": ["True Crime", "Documentary"],
        "popularity": 63,
    },
]


class DemoCatalog:
    """Static catalog that always answers, for offline use and as the last fallback."""

    name = "demo"

    def __init__(self, records: list[dict] | None = None):
        self.records = records if records is not None else DEMO_EPISODES

    def is_available(self) -> bool:
        return True

    async def search_by_category(self, term: str, limit: int = 20) -> list[dict]:
        """Records tagged with the category (or mentioning it); every record if none match."""
        needle = term.lower()
        matched = [
            record
            for record in self.records
            if any(needle == c.lower() for c in record.get("categories", []))
            or needle in f"{record['title']} {record['description']}".lower()
        ]
        return (matched or list(self.records))[:limit]

    def parse_episode(self, record: dict) -> Episode:
        now = datetime.now(timezone.utc)
        data = {key: value for key, value in record.items() if key != "age_days"}
        if "age_days" in record:
            data["published_at"] = (now - timedelta(days=record["age_days"])).isoformat()
        data["id"] = f"demo:{record['id']}" if record.get("id") else ""
        data["provider"] = self.name
        return Episode(**data)
