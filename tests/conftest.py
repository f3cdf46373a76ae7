from __future__ import annotations

from datetime import datetime, timezone

import pytest
from langchain_core.embeddings import Embeddings

from intent_router.intents.classifier import INTENT_PROTOTYPES
from intent_router.llm.service import LanguageModelService
from intent_router.types import Intent


class MappedEmbeddings(Embeddings):
    """Returns fixed vectors per text and records every call."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        *,
        default: list[float] | None = None,
        fail_on: tuple[str, ...] = (),
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = default if default is not None else [0.0, 0.0, 0.0]
        self.fail_on = set(fail_on)
        self.calls: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise ConnectionError("embedding backend unreachable")
        return list(self.vectors.get(text, self.default))


_AXES = {
    Intent.WORLD_TIME: [1.0, 0.0, 0.0],
    Intent.RUNBOOK_SEARCH: [0.0, 1.0, 0.0],
    Intent.GENERAL_OPS_ADVICE: [0.0, 0.0, 1.0],
}


@pytest.fixture
def prototype_vectors() -> dict[str, list[float]]:
    """One orthogonal axis per intent prototype description."""
    return {text: _AXES[intent] for intent, text in INTENT_PROTOTYPES}


@pytest.fixture
def make_service():
    def _make(
        vectors: dict[str, list[float]] | None = None,
        *,
        chat_model: object | None = None,
        default: list[float] | None = None,
        fail_on: tuple[str, ...] = (),
    ) -> LanguageModelService:
        embeddings = MappedEmbeddings(vectors, default=default, fail_on=fail_on)
        return LanguageModelService(chat_model=chat_model, embeddings=embeddings)

    return _make


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
