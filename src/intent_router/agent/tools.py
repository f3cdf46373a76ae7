"""Built-in tool implementations: world clock and runbook search."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator

from intent_router.agent.registry import (
    RUNBOOK_SEARCH_TOOL,
    WORLD_TIME_TOOL,
    ToolRegistry,
    ToolSpec,
)
from intent_router.retrieval.index import SemanticSearchIndex

UNKNOWN_ANSWER = "I don't know."
NO_RUNBOOK_RESULTS = "No relevant runbook documents found."
EXCERPT_CHARS = 180

CITY_TIMEZONES: dict[str, str] = {
    "Zurich": "Europe/Zurich",
    "Geneva": "Europe/Zurich",
    "London": "Europe/London",
    "New York": "America/New_York",
    "Tokyo": "Asia/Tokyo",
    "Sydney": "Australia/Sydney",
}


class WorldTimeInput(BaseModel):
    city: str = Field(max_length=64)

    @field_validator("city")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("city must not be blank")
        return value


class RunbookSearchInput(BaseModel):
    query: str = Field(max_length=500)

    @field_validator("query")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class WorldTimeTool:
    """Current local time for a fixed set of cities."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_city_time(self, city: str) -> str:
        name = " ".join(part.capitalize() for part in city.strip().lower().split())
        zone_name = CITY_TIMEZONES.get(name)
        if zone_name is None:
            return UNKNOWN_ANSWER

        local = self._clock().astimezone(ZoneInfo(zone_name))
        return f"It is {local:%H:%M} in {name}."


class RunbookSearchTool:
    def __init__(self, index: SemanticSearchIndex, top_k: int = 3) -> None:
        self.index = index
        self.top_k = top_k

    async def search(self, query: str) -> str:
        hits = await self.index.search(query, top_k=self.top_k)
        if not hits:
            return NO_RUNBOOK_RESULTS

        lines = ["Relevant documents:"]
        for hit in hits:
            doc = hit.document
            lines.append(f"- {doc.id}: {doc.title} (score: {hit.score:.3f})")
            lines.append(f"  Excerpt: {_truncate(doc.body, EXCERPT_CHARS)}")
        return "\n".join(lines)


def register_builtin_tools(
    registry: ToolRegistry,
    index: SemanticSearchIndex,
    *,
    top_k: int = 3,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """Register the two allow-listed tools.

    Tools:
    - `WorldTime.GetCityTime`: `HH:MM` in one of six known cities.
    - `Runbooks.Search`: top runbook matches with scores and excerpts.
    """

    world_time = WorldTimeTool(clock)
    runbooks = RunbookSearchTool(index, top_k=top_k)

    def _world_time(input_data: WorldTimeInput) -> str:
        return world_time.get_city_time(input_data.city)

    async def _runbook_search(input_data: RunbookSearchInput) -> str:
        return await runbooks.search(input_data.query)

    registry.register(
        ToolSpec(
            name=WORLD_TIME_TOOL,
            description="Return the current local time in a supported city.",
            args_schema=WorldTimeInput,
            handler=_world_time,
            invalid_argument_message="Invalid city.",
            tags=["time"],
        )
    )
    registry.register(
        ToolSpec(
            name=RUNBOOK_SEARCH_TOOL,
            description="Search incident runbooks by semantic similarity.",
            args_schema=RunbookSearchInput,
            handler=_runbook_search,
            invalid_argument_message="Invalid query.",
            tags=["retrieval", "runbooks"],
        )
    )


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
