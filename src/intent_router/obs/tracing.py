"""Per-request trace records and routing metrics."""

from __future__ import annotations

import threading
import time
import uuid
from collections import Counter, OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from statistics import fmean

from intent_router.types import ToolTrace


@dataclass(slots=True)
class TraceRecord:
    trace_id: str
    timestamp_utc: str
    message: str
    response: str
    handled_by: str
    intent: str | None
    confidence: float | None
    path: str | None
    tool_traces: list[ToolTrace]
    latency_ms: float


class TraceStore:
    """Bounded in-memory trace log; the oldest record is evicted first.

    Records are written from the event loop and read from FastAPI's sync
    endpoints, which run on a worker thread, so access goes through a lock.
    """

    def __init__(self, max_records: int = 1000) -> None:
        self._records: OrderedDict[str, TraceRecord] = OrderedDict()
        self._max_records = max_records
        self._lock = threading.Lock()

    def create_record(
        self,
        *,
        message: str,
        response: str,
        handled_by: str,
        intent: str | None,
        confidence: float | None,
        path: str | None,
        tool_traces: list[ToolTrace],
        latency_ms: float,
    ) -> TraceRecord:
        record = TraceRecord(
            trace_id=uuid.uuid4().hex,
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            message=message,
            response=response,
            handled_by=handled_by,
            intent=intent,
            confidence=confidence,
            path=path,
            tool_traces=list(tool_traces),
            latency_ms=latency_ms,
        )
        with self._lock:
            self._records[record.trace_id] = record
            while len(self._records) > self._max_records:
                self._records.popitem(last=False)
        return record

    def get(self, trace_id: str) -> TraceRecord:
        with self._lock:
            try:
                return self._records[trace_id]
            except KeyError:
                raise KeyError(f"Trace not found: {trace_id}") from None

    def list_recent(self, limit: int = 20) -> list[TraceRecord]:
        if limit <= 0:
            return []
        with self._lock:
            records = list(self._records.values())
        return records[-limit:]

    def summary(self) -> dict[str, object]:
        """Request counts, latency percentiles and routing breakdowns."""
        with self._lock:
            records = list(self._records.values())

        latencies = sorted(record.latency_ms for record in records)
        tool_calls = [trace for record in records for trace in record.tool_traces]
        return {
            "total_requests": len(records),
            "avg_latency_ms": fmean(latencies) if latencies else 0.0,
            "p95_latency_ms": _percentile(latencies, 0.95),
            "by_handler": dict(Counter(record.handled_by for record in records)),
            "by_intent": dict(Counter(record.intent for record in records if record.intent)),
            "by_path": dict(Counter(record.path for record in records if record.path)),
            "tool_calls": len(tool_calls),
            "tool_failures": sum(1 for trace in tool_calls if not trace.ok),
        }


def _percentile(sorted_values: list[float], fraction: float) -> float:
    if not sorted_values:
        return 0.0
    index = max(0, int(len(sorted_values) * fraction) - 1)
    return sorted_values[index]


class Timer:
    """Wall-clock timer for one request."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
