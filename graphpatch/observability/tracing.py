from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional


try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.trace import Span, Status, StatusCode
except Exception as e:  # pragma: no cover
    raise RuntimeError("opentelemetry-sdk is required (see pyproject.toml)") from e

if TYPE_CHECKING:
    from graphpatch.errors import PatchException


APPLY_SPAN = "graphpatch.apply"

_initialized = False
_enabled = False


@dataclass(frozen=True)
class TraceIds:
    trace_id_hex: str
    span_id_hex: str


def init_tracing(*, enabled: bool, service_name: str = "graphpatch") -> None:
    global _initialized, _enabled
    if _initialized and (_enabled or not enabled):
        return

    _initialized = True
    if not enabled:
        _enabled = False
        return

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    trace.set_tracer_provider(provider)
    _enabled = True


def tracing_enabled() -> bool:
    return _enabled


def current_trace_ids() -> Optional[TraceIds]:
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return TraceIds(trace_id_hex=f"{int(ctx.trace_id):032x}", span_id_hex=f"{int(ctx.span_id):016x}")


@contextmanager
def patch_span(*, operations: int, target: object) -> Iterator[Span]:
    """One span per patch application; a no-op span until a provider is installed."""
    tracer = trace.get_tracer("graphpatch")
    with tracer.start_as_current_span(APPLY_SPAN) as span:
        span.set_attribute("graphpatch.operations", operations)
        span.set_attribute("graphpatch.target_type", type(target).__name__)
        yield span


def record_patch_failure(span: Span, error: "PatchException") -> None:
    span.set_attribute("graphpatch.error_code", error.error_code)
    if error.index is not None:
        span.set_attribute("graphpatch.failed_index", error.index)
    if error.op is not None:
        span.set_attribute("graphpatch.failed_op", error.op)
    if error.path is not None:
        span.set_attribute("graphpatch.failed_path", error.path)
    span.set_status(Status(StatusCode.ERROR, error.message))
