"""FastAPI entrypoint for route/search/trace endpoints."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from intent_router.config import get_settings
from intent_router.runtime import AgentRuntime, build_runtime


class RouteRequest(BaseModel):
    message: str


class SourceSearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=3, ge=1, le=10)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app.state.runtime = await build_runtime(settings)
    yield


app = FastAPI(title="Intent Routing Agent", version="0.1.0", lifespan=lifespan)


def _runtime(request: Request) -> AgentRuntime:
    return request.app.state.runtime


@app.get("/health")
def health(request: Request) -> dict[str, Any]:
    runtime = _runtime(request)
    return {
        "status": "ok",
        "provider": runtime.settings.backend.provider,
        "chat_configured": runtime.service.chat_configured,
        "indexed_documents": len(runtime.index),
        "prototypes_cached": len(runtime.classifier.prototype_vectors),
    }


@app.post("/route")
async def route(payload: RouteRequest, request: Request) -> dict[str, Any]:
    response = await _runtime(request).pipeline.handle(payload.message)
    routing = response.routing
    return {
        "response": response.text,
        "handled_by": response.handled_by.value,
        "intent": routing.intent.value if routing else None,
        "confidence": routing.confidence if routing else None,
        "path": routing.path.value if routing else None,
        "trace_id": response.trace_id,
        "latency_ms": response.latency_ms,
    }


@app.post("/sources/search")
async def source_search(payload: SourceSearchRequest, request: Request) -> dict[str, Any]:
    hits = await _runtime(request).index.search(payload.query, top_k=payload.top_k)
    return {
        "items": [
            {
                "id": hit.document.id,
                "title": hit.document.title,
                "score": hit.score,
                "body": hit.document.body,
            }
            for hit in hits
        ]
    }


@app.get("/traces")
def traces(request: Request, limit: int = 20) -> dict[str, Any]:
    records = [asdict(record) for record in _runtime(request).trace_store.list_recent(limit=limit)]
    return {"items": records}


@app.get("/traces/{trace_id}")
def trace_detail(trace_id: str, request: Request) -> dict[str, Any]:
    try:
        record = _runtime(request).trace_store.get(trace_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(record)


@app.get("/metrics")
def metrics(request: Request) -> dict[str, Any]:
    return _runtime(request).trace_store.summary()
