import asyncio

import pytest

from intent_router.agent.composer import AnswerComposer
from intent_router.agent.registry import (
    RUNBOOK_SEARCH_TOOL,
    TOOL_TIMEOUT_MESSAGE,
    ToolRegistry,
    ToolSpec,
)
from intent_router.agent.router import (
    CITY_CLARIFICATION,
    UNKNOWN_GUIDANCE,
    IntentRouter,
    extract_city,
)
from intent_router.agent.tools import RunbookSearchInput, register_builtin_tools
from intent_router.config import IntentRoutingConfig
from intent_router.intents.classifier import IntentClassifier
from intent_router.retrieval.index import SemanticSearchIndex
from intent_router.types import Intent, IntentRoutingResult, RoutingPath

RAW_RUNBOOK_OUTPUT = "Relevant documents:\n- INC-101: Redis Outage (score: 0.900)"


class StubComposer:
    def __init__(self, answer: str = "Composed answer.", delay: float = 0.0) -> None:
        self.answer = answer
        self.delay = delay
        self.calls: list[tuple[str, ...]] = []

    async def compose_from_tool_output(self, question: str, tool_name: str, tool_output: str) -> str:
        self.calls.append((question, tool_name, tool_output))
        await asyncio.sleep(self.delay)
        return self.answer

    async def compose_general_answer(self, question: str) -> str:
        self.calls.append((question,))
        await asyncio.sleep(self.delay)
        return self.answer


def _rules_only_classifier(make_service) -> IntentClassifier:
    return IntentClassifier(make_service(), IntentRoutingConfig(use_embedding_disambiguation=False))


def _runbook_registry(handler, *, timeout_seconds: float = 1.5) -> ToolRegistry:
    registry = ToolRegistry(timeout_seconds=timeout_seconds)
    registry.register(
        ToolSpec(
            name=RUNBOOK_SEARCH_TOOL,
            description="Search runbooks.",
            args_schema=RunbookSearchInput,
            handler=handler,
        )
    )
    return registry


def _router(classifier, registry, composer, *, compose_timeout_seconds: float = 1.0) -> IntentRouter:
    return IntentRouter(
        classifier,
        registry,
        composer,
        tool_timeout_seconds=1.0,
        compose_timeout_seconds=compose_timeout_seconds,
    )


@pytest.mark.asyncio
async def test_world_time_request_end_to_end(make_service, fixed_clock) -> None:
    service = make_service()
    registry = ToolRegistry()
    register_builtin_tools(registry, SemanticSearchIndex([], service), clock=fixed_clock)
    router = _router(IntentClassifier(service), registry, AnswerComposer(service))

    result = await router.route_and_execute("What time is it in Tokyo?")

    assert result == IntentRoutingResult(
        Intent.WORLD_TIME, 0.90, RoutingPath.RULES_ONLY, "It is 09:00 in Tokyo."
    )


@pytest.mark.asyncio
async def test_world_time_without_city_asks_for_one(make_service) -> None:
    registry = ToolRegistry()
    register_builtin_tools(registry, SemanticSearchIndex([], make_service()))
    router = _router(_rules_only_classifier(make_service), registry, StubComposer())

    result = await router.route_and_execute("what time is it?")

    assert result.intent is Intent.WORLD_TIME
    assert result.response_text == CITY_CLARIFICATION


@pytest.mark.asyncio
async def test_multiple_intents_ask_user_to_choose(make_service) -> None:
    service = make_service()
    composer = StubComposer()
    router = _router(IntentClassifier(service), ToolRegistry(), composer)

    result = await router.route_and_execute("Redis outage, and what's the time in Tokyo?")

    assert result == IntentRoutingResult(
        Intent.UNKNOWN,
        0.40,
        RoutingPath.RULES_ONLY,
        "I can only handle one request at a time. "
        "Which do you want: time in a city, runbook/incident search?",
    )
    assert service.embeddings.calls == []
    assert composer.calls == []


@pytest.mark.asyncio
async def test_slow_runbook_tool_times_out_without_composing(make_service) -> None:
    async def slow_search(args: RunbookSearchInput) -> str:
        await asyncio.sleep(1.0)
        return RAW_RUNBOOK_OUTPUT

    composer = StubComposer()
    router = _router(
        _rules_only_classifier(make_service),
        _runbook_registry(slow_search, timeout_seconds=0.05),
        composer,
    )

    result = await router.route_and_execute("redis outage in prod")

    assert result.intent is Intent.RUNBOOK_SEARCH
    assert result.response_text == TOOL_TIMEOUT_MESSAGE
    assert composer.calls == []


@pytest.mark.asyncio
async def test_unknown_composition_falls_back_to_raw_tool_output(make_service) -> None:
    composer = StubComposer(answer="I don't know.")
    router = _router(
        _rules_only_classifier(make_service),
        _runbook_registry(lambda args: RAW_RUNBOOK_OUTPUT),
        composer,
    )

    result = await router.route_and_execute("redis outage in prod")

    assert result.response_text == RAW_RUNBOOK_OUTPUT
    assert composer.calls == [("redis outage in prod", RUNBOOK_SEARCH_TOOL, RAW_RUNBOOK_OUTPUT)]


@pytest.mark.asyncio
async def test_grounded_composition_replaces_tool_output(make_service) -> None:
    router = _router(
        _rules_only_classifier(make_service),
        _runbook_registry(lambda args: RAW_RUNBOOK_OUTPUT),
        StubComposer(answer="Enable LRU eviction and raise memory limits."),
    )

    result = await router.route_and_execute("redis outage in prod")

    assert result.response_text == "Enable LRU eviction and raise memory limits."


@pytest.mark.asyncio
async def test_slow_composition_returns_raw_tool_output(make_service) -> None:
    router = _router(
        _rules_only_classifier(make_service),
        _runbook_registry(lambda args: RAW_RUNBOOK_OUTPUT),
        StubComposer(delay=1.0),
        compose_timeout_seconds=0.05,
    )

    result = await router.route_and_execute("redis outage in prod")

    assert result.response_text == RAW_RUNBOOK_OUTPUT


@pytest.mark.asyncio
async def test_general_advice_is_composed(make_service) -> None:
    composer = StubComposer(answer="Start with traces and error budgets.")
    router = _router(_rules_only_classifier(make_service), ToolRegistry(), composer)

    result = await router.route_and_execute("How do we improve observability?")

    assert result == IntentRoutingResult(
        Intent.GENERAL_OPS_ADVICE,
        0.70,
        RoutingPath.RULES_ONLY,
        "Start with traces and error budgets.",
    )
    assert composer.calls == [("How do we improve observability?",)]


@pytest.mark.asyncio
async def test_slow_general_advice_becomes_unknown(make_service) -> None:
    router = _router(
        _rules_only_classifier(make_service),
        ToolRegistry(),
        StubComposer(delay=1.0),
        compose_timeout_seconds=0.05,
    )

    result = await router.route_and_execute("How do we improve observability?")

    assert result.response_text == "I don't know."


@pytest.mark.asyncio
async def test_unknown_intent_returns_guidance(make_service) -> None:
    composer = StubComposer()
    router = _router(_rules_only_classifier(make_service), ToolRegistry(), composer)

    result = await router.route_and_execute("tell me a joke")

    assert result == IntentRoutingResult(
        Intent.UNKNOWN, 0.30, RoutingPath.RULES_ONLY, UNKNOWN_GUIDANCE
    )
    assert composer.calls == []


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("What's the time in Paris?", "Paris"),
        ("time in   new york!!", "new york"),
        ("what time is it in London", "London"),
        ("the time in ?", None),
        ("Tell me about Berlin", None),
        ("time in " + "x" * 100, "x" * 64),
    ],
)
def test_extract_city(text: str, expected: str | None) -> None:
    assert extract_city(text) == expected
