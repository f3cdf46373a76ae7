"""Keyword rules for the first classification layer.

Rules are plain data evaluated by pure functions so tests (and deployments)
can swap keyword sets without touching the classification logic.
"""

from __future__ import annotations

from dataclasses import dataclass

from intent_router.types import ClassificationResult, Intent, RoutingPath

UNKNOWN_RULE_CONFIDENCE = 0.30


@dataclass(frozen=True, slots=True)
class KeywordRule:
    """Matches when the normalized text contains any phrase or starts with any prefix."""

    intent: Intent
    confidence: float
    phrases: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()

    def matches(self, normalized: str) -> bool:
        return any(phrase in normalized for phrase in self.phrases) or any(
            normalized.startswith(prefix) for prefix in self.prefixes
        )


# Priority order: first match wins in `classify_with_rules`.
DEFAULT_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(
        intent=Intent.WORLD_TIME,
        confidence=0.90,
        phrases=("time in ", "current time"),
        prefixes=("what time",),
    ),
    KeywordRule(
        intent=Intent.RUNBOOK_SEARCH,
        confidence=0.85,
        phrases=(
            "redis",
            "outage",
            "incident",
            "kubernetes",
            "pod restart",
            "connection pool",
            "high cpu",
        ),
    ),
    KeywordRule(
        intent=Intent.GENERAL_OPS_ADVICE,
        confidence=0.70,
        phrases=(
            "observability",
            "evaluation",
            "guardrail",
            "hallucination",
            "feedback loop",
            "production ai",
        ),
    ),
)


def normalize(text: str) -> str:
    return text.strip().lower()


def classify_with_rules(
    text: str, rules: tuple[KeywordRule, ...] = DEFAULT_RULES
) -> ClassificationResult:
    normalized = normalize(text)
    for rule in rules:
        if rule.matches(normalized):
            return ClassificationResult(rule.intent, rule.confidence, RoutingPath.RULES_ONLY)
    return ClassificationResult(Intent.UNKNOWN, UNKNOWN_RULE_CONFIDENCE, RoutingPath.RULES_ONLY)


def detect_rule_matches(
    text: str, rules: tuple[KeywordRule, ...] = DEFAULT_RULES
) -> set[Intent]:
    """Evaluate every rule without early exit."""

    normalized = normalize(text)
    return {rule.intent for rule in rules if rule.matches(normalized)}
