#!/usr/bin/env python3
"""Vibecast MCP Server: mood-based podcast episode recommendations."""

import json

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .models import Mood, Theme
from .recommender import create_recommender

DEFAULT_SESSION = "mcp"

recommender = create_recommender()

# Create MCP server
app = Server("vibecast")

MOOD_SCHEMA = {
    "type": "array",
    "items": {"type": "string", "enum": [m.value for m in Mood]},
    "description": "How the listener feels right now",
}
THEME_SCHEMA = {
    "type": "array",
    "items": {"type": "string", "enum": [t.value for t in Theme]},
    "description": "What the listener wants from the episode",
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="recommend_episode",
            description="Find and rank podcast episodes for a mood, theme and available time",
            inputSchema={
                "type": "object",
                "properties": {
                    "moods": MOOD_SCHEMA,
                    "themes": THEME_SCHEMA,
                    "duration_minutes": {"type": "number", "description": "Time available to listen", "default": 30},
                    "max_results": {"type": "integer", "description": "Number of ranked episodes to return", "default": 5},
                    "session_id": {"type": "string", "description": "Listening session id", "default": DEFAULT_SESSION},
                },
            },
        ),
        Tool(
            name="shuffle_episode",
            description="Get a different episode from the last recommendation without repeats",
            inputSchema={
                "type": "object",
                "properties": {
                    "session_id": {"type": "string", "description": "Listening session id", "default": DEFAULT_SESSION},
                },
            },
        ),
        Tool(
            name="rate_episode",
            description="Rate an episode 1-5 so future recommendations learn from it",
            inputSchema={
                "type": "object",
                "properties": {
                    "episode_id": {"type": "string", "description": "The episode ID"},
                    "rating": {"type": "integer", "minimum": 1, "maximum": 5},
                    "moods": MOOD_SCHEMA,
                    "themes": THEME_SCHEMA,
                    "comment": {"type": "string", "description": "Optional note about the episode"},
                    "session_id": {"type": "string", "description": "Listening session id", "default": DEFAULT_SESSION},
                },
                "required": ["episode_id", "rating"],
            },
        ),
        Tool(
            name="get_preferences",
            description="Show the learned mood x theme preference weights",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        if name == "recommend_episode":
            ranked = await recommender.recommend(
                arguments.get("moods", []),
                arguments.get("themes", []),
                arguments.get("duration_minutes", 30),
                arguments.get("session_id", DEFAULT_SESSION),
            )
            max_results = arguments.get("max_results", 5)
            result = [ep.model_dump() for ep in ranked[:max_results]]
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        elif name == "shuffle_episode":
            episode = recommender.shuffle_next(arguments.get("session_id", DEFAULT_SESSION))
            if episode is None:
                return [TextContent(type="text", text=json.dumps({"message": "No more episodes to shuffle"}))]
            return [TextContent(type="text", text=episode.model_dump_json(indent=2))]

        elif name == "rate_episode":
            touched = await recommender.rate(
                arguments["episode_id"],
                arguments["rating"],
                moods=arguments.get("moods", []),
                themes=arguments.get("themes", []),
                comment=arguments.get("comment"),
                session_id=arguments.get("session_id", DEFAULT_SESSION),
            )
            return [
                TextContent(
                    type="text",
                    text=json.dumps({"status": "success", "updated_weights": len(touched), "rating": arguments["rating"]}),
                )
            ]

        elif name == "get_preferences":
            weights = await recommender.store.get_preference_weights()
            result = [w.model_dump(mode="json") for w in weights]
            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        else:
            return [TextContent(type="text", text=json.dumps({"error": f"Unknown tool: {name}"}))]

    except Exception as e:
        return [TextContent(type="text", text=json.dumps({"error": str(e)}))]


async def main():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
