from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


def _require_dict(obj: Any, *, path: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"{path} must be a mapping")
    return obj


def _require_bool(obj: Any, *, path: str) -> bool:
    if not isinstance(obj, bool):
        raise ValueError(f"{path} must be a boolean")
    return obj


def _require_positive_int(obj: Any, *, path: str) -> int:
    if isinstance(obj, bool) or not isinstance(obj, int) or obj <= 0:
        raise ValueError(f"{path} must be a positive integer")
    return obj


def _section(doc: dict[str, Any], key: str) -> Any:
    # An empty YAML section ("engine:") loads as None.
    value = doc.get(key)
    return {} if value is None else value


@dataclass(frozen=True)
class PatchPolicy:
    """Limits enforced on incoming patch documents before any operation runs."""

    max_operations: int = 200
    max_path_depth: int = 32
    allow_remove: bool = True


@dataclass(frozen=True)
class ObservabilityConfig:
    metrics_enabled: bool = True
    tracing_enabled: bool = False


@dataclass(frozen=True)
class EngineConfig:
    policy: PatchPolicy
    observability: ObservabilityConfig


def parse_config(doc: Any) -> EngineConfig:
    doc = _require_dict(doc if doc is not None else {}, path="config")

    engine = _require_dict(_section(doc, "engine"), path="engine")
    defaults = PatchPolicy()
    policy = PatchPolicy(
        max_operations=_require_positive_int(
            engine.get("max_operations", defaults.max_operations), path="engine.max_operations"
        ),
        max_path_depth=_require_positive_int(
            engine.get("max_path_depth", defaults.max_path_depth), path="engine.max_path_depth"
        ),
        allow_remove=_require_bool(engine.get("allow_remove", defaults.allow_remove), path="engine.allow_remove"),
    )

    obs = _require_dict(_section(doc, "observability"), path="observability")
    obs_defaults = ObservabilityConfig()
    observability = ObservabilityConfig(
        metrics_enabled=_require_bool(
            obs.get("metrics_enabled", obs_defaults.metrics_enabled), path="observability.metrics_enabled"
        ),
        tracing_enabled=_require_bool(
            obs.get("tracing_enabled", obs_defaults.tracing_enabled), path="observability.tracing_enabled"
        ),
    )

    return EngineConfig(policy=policy, observability=observability)


def load_config(*, path: Path) -> EngineConfig:
    return parse_config(yaml.safe_load(path.read_text(encoding="utf-8")))
