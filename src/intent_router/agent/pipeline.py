"""Per-request pipeline: guard -> policy -> router, under one outer deadline."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from intent_router.agent.registry import ToolRegistry
from intent_router.agent.router import IntentRouter
from intent_router.errors import HandledBy
from intent_router.guardrails.input_guard import InputGuard
from intent_router.guardrails.policy import DeterministicPolicy
from intent_router.obs.tracing import Timer, TraceStore
from intent_router.types import IntentRoutingResult, ToolTrace

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_MESSAGE = "Timed out. Try a simpler request."
UNHANDLED_FAILURE_MESSAGE = "Something failed safely. Try again."


@dataclass(frozen=True, slots=True)
class PipelineResponse:
    text: str
    handled_by: HandledBy
    routing: IntentRoutingResult | None = None
    trace_id: str | None = None
    latency_ms: float = 0.0


class AssistantPipeline:
    """Always answers: every failure becomes one of a few fixed sentences."""

    def __init__(
        self,
        *,
        guard: InputGuard,
        policy: DeterministicPolicy,
        router: IntentRouter,
        tools: ToolRegistry,
        trace_store: TraceStore | None = None,
        max_input_chars: int = 2000,
        request_timeout_seconds: float = 20.0,
    ) -> None:
        self.guard = guard
        self.policy = policy
        self.router = router
        self.tools = tools
        self.trace_store = trace_store or TraceStore()
        self.max_input_chars = max_input_chars
        self.request_timeout_seconds = request_timeout_seconds

    async def handle(self, text: str) -> PipelineResponse:
        tool_traces: list[ToolTrace] = []
        with Timer() as timer, self.tools.observe() as observed:
            text_out, handled_by, routing = await self._run(text)
            tool_traces.extend(observed)

        record = self.trace_store.create_record(
            message=text,
            response=text_out,
            handled_by=handled_by.value,
            intent=routing.intent.value if routing else None,
            confidence=routing.confidence if routing else None,
            path=routing.path.value if routing else None,
            tool_traces=tool_traces,
            latency_ms=timer.elapsed_ms,
        )
        if routing is not None:
            logger.info(
                "Intent=%s Confidence=%.2f Path=%s",
                routing.intent.value,
                routing.confidence,
                routing.path.value,
            )
        return PipelineResponse(
            text=text_out,
            handled_by=handled_by,
            routing=routing,
            trace_id=record.trace_id,
            latency_ms=record.latency_ms,
        )

    async def _run(self, text: str) -> tuple[str, HandledBy, IntentRoutingResult | None]:
        validation = self.guard.validate(text, self.max_input_chars)
        if not validation.ok:
            logger.info("Validation failed: %s", validation.error_message)
            return validation.error_message or "", HandledBy.GUARD, None

        deterministic = self.policy.try_handle(text)
        if deterministic is not None:
            logger.info("Deterministic policy handled request.")
            return deterministic, HandledBy.POLICY, None

        try:
            routing = await asyncio.wait_for(
                self.router.route_and_execute(text),
                timeout=self.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Request timed out after %.1fs", self.request_timeout_seconds)
            return REQUEST_TIMEOUT_MESSAGE, HandledBy.TIMEOUT, None
        except Exception:
            logger.exception("Unhandled error")
            return UNHANDLED_FAILURE_MESSAGE, HandledBy.ERROR, None

        return routing.response_text, HandledBy.ROUTER, routing
