"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from intent_router.errors import ToolErrorKind


class Intent(str, Enum):
    """Closed set of request categories, in routing priority order."""

    UNKNOWN = "unknown"
    WORLD_TIME = "world_time"
    RUNBOOK_SEARCH = "runbook_search"
    GENERAL_OPS_ADVICE = "general_ops_advice"


INTENT_ORDER: tuple[Intent, ...] = tuple(Intent)


class RoutingPath(str, Enum):
    """Which decision layer produced the final intent (diagnostic only)."""

    RULES_ONLY = "rules_only"
    RULES_PLUS_EMBEDDINGS = "rules_plus_embeddings"


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    intent: Intent
    confidence: float
    path: RoutingPath = RoutingPath.RULES_ONLY


@dataclass(frozen=True, slots=True)
class KnowledgeDocument:
    """A runbook or incident write-up from the static corpus."""

    id: str
    title: str
    body: str


@dataclass(frozen=True, slots=True)
class SearchHit:
    """A retrieval result with its cosine score."""

    document: KnowledgeDocument
    score: float


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str
    content: str


class ToolPlanAction(str, Enum):
    TOOL = "tool"
    ANSWER = "answer"
    REFUSE = "refuse"


@dataclass(frozen=True, slots=True)
class ToolPlan:
    """A single, non-reusable request to run one tool."""

    action: ToolPlanAction
    tool_name: str | None = None
    arguments: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def tool(cls, tool_name: str, arguments: dict[str, Any]) -> "ToolPlan":
        return cls(action=ToolPlanAction.TOOL, tool_name=tool_name, arguments=dict(arguments))


@dataclass(frozen=True, slots=True)
class ToolExecutionResult:
    ok: bool
    output: str | None = None
    safe_message: str = ""
    error: ToolErrorKind | None = None

    @classmethod
    def success(cls, output: str) -> "ToolExecutionResult":
        return cls(ok=True, output=output)

    @classmethod
    def fail(cls, safe_message: str, error: ToolErrorKind) -> "ToolExecutionResult":
        return cls(ok=False, output=None, safe_message=safe_message, error=error)


@dataclass(frozen=True, slots=True)
class IntentRoutingResult:
    intent: Intent
    confidence: float
    path: RoutingPath
    response_text: str


@dataclass(slots=True)
class ToolTrace:
    """Trace record for an executed tool call."""

    name: str
    input_payload: dict[str, Any]
    output_preview: str
    ok: bool
    latency_ms: float
