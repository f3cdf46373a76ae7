"""Allow-listed tool registry built on Pydantic v2 models."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from time import perf_counter
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from intent_router.errors import ToolErrorKind
from intent_router.types import ToolExecutionResult, ToolPlan, ToolPlanAction, ToolTrace

logger = logging.getLogger(__name__)

WORLD_TIME_TOOL = "WorldTime.GetCityTime"
RUNBOOK_SEARCH_TOOL = "Runbooks.Search"
ALLOWED_TOOLS: frozenset[str] = frozenset({WORLD_TIME_TOOL, RUNBOOK_SEARCH_TOOL})
# Tool names compare case-insensitively.
_ALLOWED_KEYS: frozenset[str] = frozenset(name.casefold() for name in ALLOWED_TOOLS)

TOOL_TIMEOUT_MESSAGE = "Tool timed out. Try again with a simpler request."
TOOL_FAILURE_MESSAGE = "Tool failed safely. Try again."
TOOL_NOT_ALLOWED_MESSAGE = "Tool not allowed."

# Handlers may be plain functions or coroutines returning the tool's text.
ToolHandler = Callable[[Any], Any]

_active_traces: ContextVar[list[ToolTrace] | None] = ContextVar("tool_traces", default=None)


class ToolSpec(BaseModel):
    """Declarative tool specification for registration and validation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    description: str
    args_schema: type[BaseModel]
    handler: ToolHandler
    invalid_argument_message: str = "Invalid arguments."
    tags: list[str] = Field(default_factory=list)

    def validate_arguments(self, payload: dict[str, Any]) -> BaseModel:
        return self.args_schema.model_validate(payload)

    async def run(self, data: BaseModel) -> str:
        output = self.handler(data)
        if inspect.isawaitable(output):
            output = await output
        return str(output)


class ToolRegistry:
    """Executes allow-listed tools with validation, a deadline, and safe failures.

    `execute` never raises for tool problems; every failure becomes a
    `ToolExecutionResult` with a fixed user-facing message. Cancellation of
    the calling task still propagates so an outer deadline can win.
    """

    def __init__(self, *, timeout_seconds: float = 1.5) -> None:
        self.timeout_seconds = timeout_seconds
        self._tools: dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        key = spec.name.casefold()
        if key not in _ALLOWED_KEYS:
            raise ValueError(f"Tool is not on the allow-list: {spec.name}")
        if key in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[key] = spec

    def specs(self) -> list[ToolSpec]:
        return list(self._tools.values())

    @contextmanager
    def observe(self) -> Iterator[list[ToolTrace]]:
        """Collect traces of tool calls made by the current task."""

        traces: list[ToolTrace] = []
        token = _active_traces.set(traces)
        try:
            yield traces
        finally:
            _active_traces.reset(token)

    async def execute(
        self, plan: ToolPlan, *, timeout: float | None = None
    ) -> ToolExecutionResult:
        if plan.action is not ToolPlanAction.TOOL:
            return ToolExecutionResult.fail(
                "Tool execution requested incorrectly.", ToolErrorKind.BAD_PLAN
            )
        if not plan.tool_name or not plan.tool_name.strip():
            return ToolExecutionResult.fail("Missing tool name.", ToolErrorKind.BAD_PLAN)

        key = plan.tool_name.strip().casefold()
        spec = self._tools.get(key) if key in _ALLOWED_KEYS else None
        if spec is None:
            logger.warning("Rejected tool outside allow-list: %s", plan.tool_name)
            return ToolExecutionResult.fail(TOOL_NOT_ALLOWED_MESSAGE, ToolErrorKind.NOT_ALLOWED)

        try:
            data = spec.validate_arguments(plan.arguments)
        except ValidationError as exc:
            logger.info("Invalid arguments for %s: %d error(s)", spec.name, exc.error_count())
            result = ToolExecutionResult.fail(
                _invalid_argument_message(spec, exc), ToolErrorKind.INVALID_ARGUMENT
            )
            self._record(spec.name, plan.arguments, result, 0.0)
            return result

        logger.info("Tool execution requested: %s", spec.name)
        deadline = self.timeout_seconds if timeout is None else min(timeout, self.timeout_seconds)
        start = perf_counter()
        try:
            output = await asyncio.wait_for(spec.run(data), timeout=deadline)
            result = ToolExecutionResult.success(output)
        except asyncio.TimeoutError:
            logger.warning("Tool timed out: %s", spec.name)
            result = ToolExecutionResult.fail(TOOL_TIMEOUT_MESSAGE, ToolErrorKind.TIMEOUT)
        except Exception:
            logger.warning("Tool failed safely: %s", spec.name, exc_info=True)
            result = ToolExecutionResult.fail(TOOL_FAILURE_MESSAGE, ToolErrorKind.FAILURE)

        self._record(spec.name, plan.arguments, result, (perf_counter() - start) * 1000.0)
        return result

    @staticmethod
    def _record(
        name: str, payload: dict[str, Any], result: ToolExecutionResult, latency_ms: float
    ) -> None:
        traces = _active_traces.get()
        if traces is None:
            return
        preview = result.output if result.ok else result.safe_message
        traces.append(
            ToolTrace(
                name=name,
                input_payload=dict(payload),
                output_preview=(preview or "")[:320],
                ok=result.ok,
                latency_ms=latency_ms,
            )
        )


def _invalid_argument_message(spec: ToolSpec, exc: ValidationError) -> str:
    for error in exc.errors():
        if error.get("type") == "missing" and error.get("loc"):
            return f"Missing required argument: {error['loc'][0]}"
    return spec.invalid_argument_message
