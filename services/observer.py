# services/observer.py
"""LangSmith-style run tracing for matching and validation, mirrored to OpenTelemetry spans."""

import time
import traceback
import threading
import uuid
from datetime import datetime
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from contextlib import contextmanager
from enum import Enum

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.resources import Resource
from opentelemetry.trace import Status, StatusCode, SpanKind

provider = TracerProvider(resource=Resource.create({
    "service.name": "supplier-match-agent",
    "service.version": "1.0.0",
    "service.namespace": "govcon-matching"
}))
# Spans stay in-process; add an OTLP exporter to ship them:
# provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
trace.set_tracer_provider(provider)
tracer = trace.get_tracer("supplier-match-agent", "1.0.0")

PREVIEW_CHARS = 1000
PREVIEW_ITEMS = 10


class RunType(Enum):
    CHAIN = "chain"
    LLM = "llm"
    TOOL = "tool"


def _preview(value: Any) -> Any:
    """Shorten long strings and lists so traces stay readable."""
    if isinstance(value, str) and len(value) > PREVIEW_CHARS:
        return value[:PREVIEW_CHARS] + "..."
    if isinstance(value, dict):
        return {k: _preview(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        items = [_preview(v) for v in value[:PREVIEW_ITEMS]]
        return items + ["..."] if len(value) > PREVIEW_ITEMS else items
    return value


@dataclass
class Run:
    """One traced unit of work: a chain step, an LLM call or a tool call."""
    id: str
    name: str
    run_type: str
    trace_id: str
    parent_run_id: Optional[str] = None
    child_run_ids: List[str] = field(default_factory=list)
    status: str = "running"
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())
    end_time: Optional[str] = None
    latency_ms: Optional[float] = None
    inputs: Dict[str, Any] = field(default_factory=dict)
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    model: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    token_usage: Dict[str, int] = field(default_factory=dict)
    tool_name: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def finish(self, status: str, error: Optional[BaseException] = None):
        self.status = status
        self.end_time = datetime.now().isoformat()
        if error is not None:
            self.error = str(error)
            self.error_type = type(error).__name__

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["inputs"] = _preview(self.inputs)
        data["outputs"] = _preview(self.outputs) if self.outputs else None
        return data


@dataclass
class RunStats:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    tokens: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    latencies: List[float] = field(default_factory=list)

    def record(self, run: Run):
        self.total += 1
        if run.status == "success":
            self.succeeded += 1
        else:
            self.failed += 1
        self.by_type[run.run_type] = self.by_type.get(run.run_type, 0) + 1
        if run.latency_ms is not None:
            self.latencies.append(run.latency_ms)

    def percentile(self, q: float) -> float:
        if not self.latencies:
            return 0
        ordered = sorted(self.latencies)
        return round(ordered[min(len(ordered) - 1, int(len(ordered) * q))], 2)


class Observer:
    """
    Collects runs, events and errors for one matching or validation request.

    An observer may be shared by the worker threads of a request: each
    thread keeps its own stack of open runs, runs opened on a thread with an
    empty stack attach to the request's root run, and all shared state is
    guarded by one lock.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self.tracer = tracer
        self.clear()

    def clear(self):
        with self._lock:
            self.runs: Dict[str, Run] = {}
            self.roots: List[str] = []
            self.events: List[Dict] = []
            self.errors: List[Dict] = []
            self.stats = RunStats()
            self.trace_id: Optional[str] = None
            self._root_run_id: Optional[str] = None
            self._local = threading.local()

    # ---------- run bookkeeping ----------

    def _stack(self) -> List[str]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def _open_run(self, name: str, run_type: RunType, **fields) -> Run:
        stack = self._stack()
        with self._lock:
            if self.trace_id is None:
                self.trace_id = uuid.uuid4().hex
            run = Run(
                id=uuid.uuid4().hex[:16],
                name=name,
                run_type=run_type.value,
                trace_id=self.trace_id,
                parent_run_id=stack[-1] if stack else self._root_run_id,
                **fields
            )
            parent = self.runs.get(run.parent_run_id)
            if parent is not None:
                parent.child_run_ids.append(run.id)
            else:
                self.roots.append(run.id)
            self.runs[run.id] = run
        return run

    def _record_error(self, name: str, run_id: str, error: BaseException, stack_trace: str = None):
        with self._lock:
            self.errors.append({
                "run_id": run_id,
                "name": name,
                "error_type": type(error).__name__,
                "message": str(error),
                "stack_trace": stack_trace,
                "timestamp": datetime.now().isoformat()
            })

    def _event(self, event_type: str, node: str, status: str, data: Dict[str, Any],
               run_id: str = None, duration_ms: float = None):
        with self._lock:
            self.events.append({
                "timestamp": datetime.now().isoformat(),
                "type": event_type,
                "node": node,
                "status": status,
                "data": data,
                "duration_ms": duration_ms,
                "trace_id": self.trace_id,
                "span_id": run_id
            })

    # ---------- public tracing API ----------

    @contextmanager
    def trace_run(
        self,
        name: str,
        run_type: RunType = RunType.CHAIN,
        inputs: Dict[str, Any] = None,
        tags: List[str] = None
    ):
        """Trace the enclosed block as one run (and one OpenTelemetry span)."""
        run = self._open_run(name, run_type, inputs=inputs or {}, tags=tags or [])
        with self._lock:
            owns_root = self._root_run_id is None
            if owns_root:
                self._root_run_id = run.id

        stack = self._stack()
        stack.append(run.id)
        started = time.perf_counter()

        with self.tracer.start_as_current_span(
            name,
            kind=SpanKind.INTERNAL,
            attributes={"run_id": run.id, "run_type": run.run_type}
        ) as span:
            try:
                yield run
            except Exception as e:
                run.finish("error", e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                self._record_error(name, run.id, e, traceback.format_exc())
                raise
            else:
                run.finish("success")
                span.set_status(Status(StatusCode.OK))
            finally:
                # a node may have set its own latency around the timed section
                if run.latency_ms is None:
                    run.latency_ms = round((time.perf_counter() - started) * 1000, 2)
                stack.pop()
                with self._lock:
                    if owns_root:
                        self._root_run_id = None
                    self.stats.record(run)

    def log_llm_call(
        self,
        name: str,
        model: str,
        prompts: List[Dict[str, str]],
        response: str,
        token_usage: Dict[str, int] = None,
        model_parameters: Dict[str, Any] = None,
        latency_ms: float = None
    ) -> str:
        """Record a completed LLM call."""
        usage = {
            key: (token_usage or {}).get(key, 0)
            for key in ("prompt_tokens", "completion_tokens", "total_tokens")
        }
        run = self._open_run(
            name, RunType.LLM,
            inputs={"messages": [m.get("content", "")[:500] for m in prompts]},
            outputs={"response": response[:2000]},
            model=model,
            params=model_parameters or {},
            token_usage=usage,
            latency_ms=latency_ms,
            tags=["llm", model.split("/")[-1]]
        )
        run.finish("success")

        with self._lock:
            self.stats.tokens += usage["total_tokens"]
        self._event("llm", name, "success", {"model": model, **usage},
                    run_id=run.id, duration_ms=latency_ms)
        return run.id

    def log_tool_call(
        self,
        name: str,
        tool_name: str,
        tool_input: Dict[str, Any],
        tool_output: Any,
        latency_ms: float = None,
        error: Exception = None
    ) -> str:
        """Record a deterministic tool call such as ranking or aggregation."""
        run = self._open_run(
            name, RunType.TOOL,
            inputs=tool_input,
            outputs=None if error else {"result": tool_output},
            tool_name=tool_name,
            latency_ms=latency_ms,
            tags=["tool", tool_name]
        )
        run.finish("error" if error else "success", error)
        if error:
            self._record_error(name, run.id, error)

        self._event("tool", tool_name, run.status,
                    {"input": tool_input, "output_preview": str(tool_output)[:200]},
                    run_id=run.id, duration_ms=latency_ms)
        return run.id

    def log(self, event_type: str, node: str, data: Dict[str, Any] = None,
            status: str = "success", error: Exception = None):
        """Record a plain event, and the error that came with it if any."""
        event_id = uuid.uuid4().hex[:16]
        self._event(event_type, node, status, data or {}, run_id=event_id)
        if error:
            self._record_error(node, event_id, error)

    # ---------- read API ----------

    def get_events(self, event_type: str = None) -> List[Dict]:
        with self._lock:
            return [e for e in self.events if event_type is None or e["type"] == event_type]

    def get_runs(self) -> List[Dict]:
        with self._lock:
            return [run.to_dict() for run in self.runs.values()]

    def get_run_tree(self) -> List[Dict]:
        """Runs nested under their parents, for display."""
        def subtree(run_id: str, depth: int) -> Dict:
            run = self.runs[run_id]
            return {
                **run.to_dict(),
                "depth": depth,
                "children": [subtree(child, depth + 1) for child in run.child_run_ids]
            }

        with self._lock:
            return [subtree(root, 0) for root in self.roots]

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            stats = self.stats
            latencies = stats.latencies
            return {
                "total_events": len(self.events),
                "total_runs": stats.total,
                "successful_runs": stats.succeeded,
                "failed_runs": stats.failed,
                "llm_calls": len([e for e in self.events if e["type"] == "llm"]),
                "tool_calls": len([e for e in self.events if e["type"] == "tool"]),
                "total_tokens": stats.tokens,
                "total_duration_ms": round(sum(latencies), 2),
                "avg_latency_ms": round(sum(latencies) / len(latencies), 2) if latencies else 0,
                "p50_latency_ms": stats.percentile(0.5),
                "p99_latency_ms": stats.percentile(0.99),
                "trace_id": self.trace_id,
                "runs_by_type": dict(stats.by_type),
                "errors_count": len(self.errors)
            }
