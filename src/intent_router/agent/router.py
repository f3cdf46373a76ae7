"""Routes a classified request to a tool call or a composed answer."""

from __future__ import annotations

import asyncio
import logging
import re

from intent_router.agent.composer import UNKNOWN_ANSWER, AnswerComposer, looks_like_unknown
from intent_router.agent.registry import RUNBOOK_SEARCH_TOOL, WORLD_TIME_TOOL, ToolRegistry
from intent_router.intents.classifier import IntentClassifier
from intent_router.types import (
    INTENT_ORDER,
    Intent,
    IntentRoutingResult,
    RoutingPath,
    ToolPlan,
)

logger = logging.getLogger(__name__)

MULTI_INTENT_CONFIDENCE = 0.40
MAX_CITY_CHARS = 64
UNKNOWN_GUIDANCE = (
    "I don't know. Try asking for the time in a city, "
    "or describe an incident (Redis, DB pool, pods restarting)."
)
CITY_CLARIFICATION = "Which city?"

_INTENT_LABELS: dict[Intent, str] = {
    Intent.WORLD_TIME: "time in a city",
    Intent.RUNBOOK_SEARCH: "runbook/incident search",
    Intent.GENERAL_OPS_ADVICE: "general ops advice",
}

_IN_WORD = re.compile(r"\bin\s+", flags=re.IGNORECASE)


def extract_city(text: str) -> str | None:
    """Pull a city out of "time in X", else "...time...in X"."""

    lower = text.lower()
    marker = "time in "
    idx = lower.find(marker)
    if idx >= 0:
        return _clean_city(text[idx + len(marker) :])

    if "time" in lower:
        match = _IN_WORD.search(text)
        if match:
            return _clean_city(text[match.end() :])
    return None


def _clean_city(raw: str) -> str | None:
    city = raw.strip().rstrip("?.!").strip()[:MAX_CITY_CHARS]
    return city or None


def format_intent_options(intents: set[Intent]) -> str:
    ordered = sorted(intents, key=INTENT_ORDER.index)
    return ", ".join(_INTENT_LABELS.get(intent, "something else") for intent in ordered)


class IntentRouter:
    """Turns one request into exactly one `IntentRoutingResult`."""

    def __init__(
        self,
        classifier: IntentClassifier,
        tools: ToolRegistry,
        composer: AnswerComposer,
        *,
        tool_timeout_seconds: float = 1.5,
        compose_timeout_seconds: float = 4.0,
    ) -> None:
        self.classifier = classifier
        self.tools = tools
        self.composer = composer
        self.tool_timeout_seconds = tool_timeout_seconds
        self.compose_timeout_seconds = compose_timeout_seconds

    async def route_and_execute(self, text: str) -> IntentRoutingResult:
        matches = self.classifier.detect_rule_matches(text)
        if len(matches) >= 2:
            options = format_intent_options(matches)
            logger.info("Multiple intents detected: %s", options)
            return IntentRoutingResult(
                Intent.UNKNOWN,
                MULTI_INTENT_CONFIDENCE,
                RoutingPath.RULES_ONLY,
                f"I can only handle one request at a time. Which do you want: {options}?",
            )

        classification = await self.classifier.classify(text)
        intent, confidence, path = (
            classification.intent,
            classification.confidence,
            classification.path,
        )

        if intent is Intent.WORLD_TIME:
            return await self._handle_world_time(text, confidence, path)
        if intent is Intent.RUNBOOK_SEARCH:
            return await self._handle_runbook_search(text, confidence, path)
        if intent is Intent.GENERAL_OPS_ADVICE:
            return await self._handle_general_advice(text, confidence, path)
        return IntentRoutingResult(Intent.UNKNOWN, confidence, path, UNKNOWN_GUIDANCE)

    async def _handle_world_time(
        self, text: str, confidence: float, path: RoutingPath
    ) -> IntentRoutingResult:
        city = extract_city(text)
        if city is None:
            return IntentRoutingResult(Intent.WORLD_TIME, confidence, path, CITY_CLARIFICATION)

        plan = ToolPlan.tool(WORLD_TIME_TOOL, {"city": city})
        result = await self.tools.execute(plan, timeout=self.tool_timeout_seconds)
        response = result.output if result.ok else result.safe_message
        return IntentRoutingResult(Intent.WORLD_TIME, confidence, path, response or UNKNOWN_ANSWER)

    async def _handle_runbook_search(
        self, text: str, confidence: float, path: RoutingPath
    ) -> IntentRoutingResult:
        plan = ToolPlan.tool(RUNBOOK_SEARCH_TOOL, {"query": text})
        result = await self.tools.execute(plan, timeout=self.tool_timeout_seconds)
        if not result.ok or result.output is None:
            return IntentRoutingResult(Intent.RUNBOOK_SEARCH, confidence, path, result.safe_message)

        tool_output = result.output
        try:
            composed = await asyncio.wait_for(
                self.composer.compose_from_tool_output(text, RUNBOOK_SEARCH_TOOL, tool_output),
                timeout=self.compose_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Composition timed out; returning raw tool output.")
            composed = UNKNOWN_ANSWER

        final = tool_output if looks_like_unknown(composed) else composed
        return IntentRoutingResult(Intent.RUNBOOK_SEARCH, confidence, path, final)

    async def _handle_general_advice(
        self, text: str, confidence: float, path: RoutingPath
    ) -> IntentRoutingResult:
        try:
            answer = await asyncio.wait_for(
                self.composer.compose_general_answer(text),
                timeout=self.compose_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("General answer composition timed out.")
            answer = UNKNOWN_ANSWER
        return IntentRoutingResult(Intent.GENERAL_OPS_ADVICE, confidence, path, answer)
