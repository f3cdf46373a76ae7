"""Static runbook corpus and optional JSON override."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from intent_router.types import KnowledgeDocument

SEED_RUNBOOKS: tuple[KnowledgeDocument, ...] = (
    KnowledgeDocument(
        id="INC-101",
        title="Redis Outage - Cache Saturation",
        body=(
            "The Redis cluster became unavailable due to memory exhaustion. "
            "Eviction was disabled, causing requests to fail. "
            "Resolution: increase memory limits, enable eviction (LRU), and add alerting on memory usage."
        ),
    ),
    KnowledgeDocument(
        id="RUN-201",
        title="Database Connection Pool Runbook",
        body=(
            "If the application experiences slowdowns, check the database connection pool. "
            "A saturated pool can block incoming requests. "
            "Actions: increase pool size, identify connection leaks, and add metrics for pool wait time."
        ),
    ),
    KnowledgeDocument(
        id="INC-305",
        title="High CPU Usage on API Nodes",
        body=(
            "API servers showed sustained high CPU usage due to inefficient JSON serialization. "
            "Actions: switch to source-generated serializers, reduce allocations, and cache hot responses."
        ),
    ),
    KnowledgeDocument(
        id="RUN-404",
        title="Kubernetes Pod Restart Troubleshooting",
        body=(
            "Repeated pod restarts are often caused by failing health checks or insufficient memory limits. "
            "Actions: inspect logs, check OOMKilled events, and adjust probes and resource requests/limits."
        ),
    ),
)


class _CorpusEntry(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str


_CORPUS_ADAPTER = TypeAdapter(list[_CorpusEntry])


def load_corpus(path: str | Path | None = None) -> tuple[KnowledgeDocument, ...]:
    """Return the seed runbooks, or the documents listed in a JSON file.

    The file must hold a list of `{"id", "title", "body"}` objects. Ids must
    be unique; order is preserved because it breaks search score ties.
    """

    if path is None:
        return SEED_RUNBOOKS

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    entries = _CORPUS_ADAPTER.validate_python(payload)

    seen: set[str] = set()
    documents: list[KnowledgeDocument] = []
    for entry in entries:
        if entry.id in seen:
            raise ValueError(f"Duplicate document id in corpus: {entry.id}")
        seen.add(entry.id)
        documents.append(KnowledgeDocument(id=entry.id, title=entry.title, body=entry.body))
    return tuple(documents)
