"""Per-query trace of pipeline stages.

Each ``build_context`` call owns one ``TraceContext``. Stages run inside
``trace.span(name)``; a stage that raises is still recorded, with the
exception type in its ``error`` field.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import uuid4

from retrieval_engine.models.domain import PipelineTrace


@dataclass
class Span:
    name: str
    start_ms: float
    end_ms: float = 0.0
    error: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms

    def to_dict(self) -> dict:
        record = {
            "name": self.name,
            "start_ms": round(self.start_ms, 3),
            "duration_ms": round(self.duration_ms, 3),
            **self.metadata,
        }
        if self.error is not None:
            record["error"] = self.error
        return record


class TraceContext:
    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or uuid4().hex[:16]
        self.spans: list[Span] = []
        self._started = time.monotonic()
        self._created_at = datetime.now(timezone.utc)

    def _now_ms(self) -> float:
        return (time.monotonic() - self._started) * 1000

    @contextmanager
    def span(self, name: str, **metadata):
        s = Span(name=name, start_ms=self._now_ms(), metadata=metadata)
        try:
            yield s
        except Exception as e:
            s.error = type(e).__name__
            raise
        finally:
            s.end_ms = self._now_ms()
            self.spans.append(s)

    @property
    def elapsed_ms(self) -> float:
        return self._now_ms()

    def stage_latencies(self) -> dict[str, float]:
        """Milliseconds per stage name; repeated stages are summed."""
        latencies: dict[str, float] = {}
        for s in self.spans:
            latencies[s.name] = round(latencies.get(s.name, 0.0) + s.duration_ms, 2)
        return latencies

    def to_trace(self, query: str) -> PipelineTrace:
        return PipelineTrace(
            trace_id=self.trace_id,
            query=query,
            timestamp=self._created_at,
            latency_ms=self.elapsed_ms,
            spans=[s.to_dict() for s in self.spans],
        )
