"""One-time initialization: build shared, read-only state and wire the pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from intent_router.agent.composer import AnswerComposer
from intent_router.agent.pipeline import AssistantPipeline
from intent_router.agent.registry import ToolRegistry
from intent_router.agent.router import IntentRouter
from intent_router.agent.tools import register_builtin_tools
from intent_router.config import AppSettings
from intent_router.guardrails.input_guard import InputGuard
from intent_router.guardrails.policy import DeterministicPolicy
from intent_router.intents.classifier import IntentClassifier
from intent_router.llm.backends import create_chat_model, create_embeddings
from intent_router.llm.service import LanguageModelService
from intent_router.obs.tracing import TraceStore
from intent_router.retrieval.corpus import load_corpus
from intent_router.retrieval.index import SemanticSearchIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AgentRuntime:
    settings: AppSettings
    service: LanguageModelService
    index: SemanticSearchIndex
    classifier: IntentClassifier
    tools: ToolRegistry
    router: IntentRouter
    pipeline: AssistantPipeline
    trace_store: TraceStore


async def build_runtime(
    settings: AppSettings,
    *,
    service: LanguageModelService | None = None,
) -> AgentRuntime:
    """Build the index and wire every component.

    Must complete before the first request is served. An index build failure
    (`IndexBuildError`) propagates and aborts startup.
    """

    backend = settings.backend
    logger.info(
        "Backend: provider=%s base_url=%s chat=%s embed=%s",
        backend.provider,
        backend.base_url,
        backend.chat_model,
        backend.embedding_model,
    )
    if service is None:
        service = LanguageModelService(
            chat_model=create_chat_model(backend),
            embeddings=create_embeddings(backend),
        )

    corpus = load_corpus(settings.corpus_path)
    index = await SemanticSearchIndex.build(corpus, service)

    tools = ToolRegistry(timeout_seconds=settings.tool_timeout_seconds)
    register_builtin_tools(tools, index, top_k=settings.search_top_k)

    classifier = IntentClassifier(service, settings.intent_routing)
    router = IntentRouter(
        classifier,
        tools,
        AnswerComposer(service),
        tool_timeout_seconds=settings.tool_timeout_seconds,
        compose_timeout_seconds=settings.compose_timeout_seconds,
    )
    trace_store = TraceStore()
    pipeline = AssistantPipeline(
        guard=InputGuard(),
        policy=DeterministicPolicy(),
        router=router,
        tools=tools,
        trace_store=trace_store,
        max_input_chars=settings.max_input_chars,
        request_timeout_seconds=settings.request_timeout_seconds,
    )
    return AgentRuntime(
        settings=settings,
        service=service,
        index=index,
        classifier=classifier,
        tools=tools,
        router=router,
        pipeline=pipeline,
        trace_store=trace_store,
    )
