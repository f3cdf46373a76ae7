"""Syntactic input validation and static prompt-injection refusal."""

from __future__ import annotations

from dataclasses import dataclass

from intent_router.errors import GuardFailure

INJECTION_PHRASES: tuple[str, ...] = (
    "ignore previous instructions",
    "reveal system prompt",
    "developer message",
    "print the hidden",
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    error_message: str | None = None
    failure: GuardFailure | None = None

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def fail(cls, failure: GuardFailure, message: str) -> "ValidationResult":
        return cls(ok=False, error_message=message, failure=failure)


class InputGuard:
    """Rejects empty, oversized, and obviously adversarial input."""

    def __init__(self, injection_phrases: tuple[str, ...] = INJECTION_PHRASES) -> None:
        self.injection_phrases = tuple(phrase.lower() for phrase in injection_phrases)

    def validate(self, text: str | None, max_chars: int) -> ValidationResult:
        if text is None or not text.strip():
            return ValidationResult.fail(GuardFailure.EMPTY_INPUT, "Please enter a question.")

        trimmed = text.strip()
        if len(trimmed) > max_chars:
            return ValidationResult.fail(
                GuardFailure.TOO_LONG,
                f"Input too long. Max allowed is {max_chars} characters.",
            )

        lower = trimmed.lower()
        if any(phrase in lower for phrase in self.injection_phrases):
            return ValidationResult.fail(
                GuardFailure.POLICY_REFUSAL, "I can't process that request."
            )

        return ValidationResult.success()
