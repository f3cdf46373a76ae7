"""Build-once semantic index over the runbook corpus."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from intent_router.errors import IndexBuildError
from intent_router.llm.service import LanguageModelService
from intent_router.retrieval.similarity import cosine_similarity
from intent_router.types import KnowledgeDocument, SearchHit

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SearchIndexEntry:
    document: KnowledgeDocument
    embedding: tuple[float, ...]


class SemanticSearchIndex:
    """Immutable cosine-similarity index.

    Use `await SemanticSearchIndex.build(...)` once at startup; there are no
    insert/update/delete operations, so concurrent searches need no locking.
    Rebuilding means constructing a new index.
    """

    def __init__(
        self,
        entries: Iterable[SearchIndexEntry],
        service: LanguageModelService,
    ) -> None:
        self._entries: tuple[SearchIndexEntry, ...] = tuple(entries)
        self._service = service

    @classmethod
    async def build(
        cls,
        documents: Iterable[KnowledgeDocument],
        service: LanguageModelService,
    ) -> "SemanticSearchIndex":
        """Embed every document body; any unusable embedding aborts the build."""

        docs = list(documents)
        logger.info("Indexing %d runbooks...", len(docs))

        entries: list[SearchIndexEntry] = []
        for doc in docs:
            vector = await service.embed(doc.body)
            if not vector:
                raise IndexBuildError(f"Could not embed document {doc.id}")
            entries.append(SearchIndexEntry(document=doc, embedding=tuple(vector)))

        logger.info("Runbook index ready.")
        return cls(entries, service)

    @property
    def entries(self) -> tuple[SearchIndexEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def search(self, query: str, top_k: int = 3) -> list[SearchHit]:
        """Return up to `top_k` hits by descending cosine score.

        A query with no usable embedding (blank text, backend error or
        timeout) returns no hits instead of every document scored 0.0, so
        callers report "nothing found" rather than arbitrary documents.
        """

        logger.info("Runbook search: top_k=%d", top_k)
        query_vector = await self._service.embed(query)
        if not query_vector:
            logger.warning("Runbook search skipped: no usable query embedding.")
            return []

        hits = self.rank(query_vector)[: max(0, top_k)]
        logger.info("Runbook search results: %d", len(hits))
        return hits

    def rank(self, query_vector: list[float]) -> list[SearchHit]:
        """Score every entry; ties keep corpus order."""

        scored = [
            SearchHit(document=entry.document, score=cosine_similarity(query_vector, entry.embedding))
            for entry in self._entries
        ]
        return sorted(scored, key=lambda hit: hit.score, reverse=True)
