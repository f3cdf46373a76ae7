"""Deterministic pre-routing policy: secret refusals and literal arithmetic."""

from __future__ import annotations

import logging
import re

from intent_router.errors import ExpressionError
from intent_router.guardrails.arithmetic import evaluate, format_decimal

logger = logging.getLogger(__name__)

SECRET_KEYWORDS: tuple[str, ...] = (
    "password",
    "api key",
    "secret",
    "token",
    "hack",
    "bypass",
    "exploit",
)

SECRET_REFUSAL = "I can't help with credential, secret, or hacking-related requests."
ARITHMETIC_FAILURE = "I couldn't evaluate that expression safely."

_ARITHMETIC_PATTERN = re.compile(r"^[0-9+\-*/().\s]+$")


class DeterministicPolicy:
    """Answers a small set of requests without touching any model."""

    def __init__(self, secret_keywords: tuple[str, ...] = SECRET_KEYWORDS) -> None:
        self.secret_keywords = tuple(keyword.lower() for keyword in secret_keywords)

    def try_handle(self, text: str) -> str | None:
        """Return a final answer, or None when the pipeline should continue."""

        stripped = text.strip()
        if self._is_secret_request(stripped):
            logger.info("Policy refused secret/security request.")
            return SECRET_REFUSAL
        return self._try_arithmetic(stripped)

    def _is_secret_request(self, text: str) -> bool:
        lower = text.lower()
        return any(keyword in lower for keyword in self.secret_keywords)

    @staticmethod
    def _try_arithmetic(text: str) -> str | None:
        candidate = text.lower().replace("calculate", "").strip()
        if not _ARITHMETIC_PATTERN.fullmatch(candidate):
            return None

        try:
            value = evaluate(candidate)
        except ExpressionError as exc:
            logger.info("Arithmetic evaluation rejected: %s", exc)
            return ARITHMETIC_FAILURE
        return f"Result: {format_decimal(value)}"
