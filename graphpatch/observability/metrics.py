from __future__ import annotations


try:
    from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
except Exception as e:  # pragma: no cover
    raise RuntimeError("prometheus_client is required (see pyproject.toml)") from e


patch_apply_total = Counter(
    "patch_apply_total",
    "Patch applications by outcome.",
    labelnames=("status",),
)

patch_operations_total = Counter(
    "patch_operations_total",
    "Patch operations attempted, by op kind and outcome.",
    labelnames=("op", "status"),
)

patch_apply_latency_ms = Histogram(
    "patch_apply_latency_ms",
    "Time to apply a whole patch in milliseconds.",
    labelnames=("status",),
    buckets=(
        0.1,
        0.5,
        1,
        5,
        10,
        50,
        100,
        500,
        1000,
    ),
)


def observe_operation(*, op: str, status: str) -> None:
    patch_operations_total.labels(op=op, status=status).inc()


def observe_apply(*, duration_ms: float, status: str) -> None:
    if duration_ms < 0:
        return
    patch_apply_total.labels(status=status).inc()
    patch_apply_latency_ms.labels(status=status).observe(duration_ms)


def render_prometheus() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
