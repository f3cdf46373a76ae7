"""Exception types and failure tags used across the pipeline."""

from __future__ import annotations

from enum import Enum


class IntentRouterError(Exception):
    """Base class for errors raised inside the routing pipeline."""


class LanguageModelUnavailable(IntentRouterError):
    """Raised when a chat call is made without a configured chat model."""


class IndexBuildError(IntentRouterError):
    """Raised when the search index cannot be built at startup."""


class ClassificationDegraded(IntentRouterError):
    """Embedding disambiguation could not produce a usable signal."""


class ExpressionError(ValueError):
    """Malformed arithmetic expression."""


class DivideByZero(ExpressionError):
    """Division by exactly zero."""


class GuardFailure(str, Enum):
    EMPTY_INPUT = "empty_input"
    TOO_LONG = "too_long"
    POLICY_REFUSAL = "policy_refusal"


class ToolErrorKind(str, Enum):
    BAD_PLAN = "bad_plan"
    NOT_ALLOWED = "tool_not_allowed"
    INVALID_ARGUMENT = "invalid_argument"
    TIMEOUT = "tool_timeout"
    FAILURE = "tool_failure"


class HandledBy(str, Enum):
    """Which pipeline stage produced the user-facing answer."""

    GUARD = "guard"
    POLICY = "policy"
    ROUTER = "router"
    TIMEOUT = "timeout"
    ERROR = "error"
