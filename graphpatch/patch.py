from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Union

from graphpatch.errors import PatchException
from graphpatch.observability.metrics import observe_apply, observe_operation
from graphpatch.observability.tracing import patch_span, record_patch_failure
from graphpatch.operations import ApplyContext, PatchOperation
from graphpatch.records import DEFAULT_MAPPINGS, PropertyMappings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, init=False)
class Patch:
    """An ordered list of operations, applied in sequence.

    Each operation is atomic, the patch is not: when operation ``n`` fails,
    operations ``0..n-1`` stay applied and ``n+1..`` never run.
    """

    operations: tuple[PatchOperation, ...]

    def __init__(self, operations: Iterable[PatchOperation] = ()) -> None:
        object.__setattr__(self, "operations", tuple(operations))

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self) -> Iterator[PatchOperation]:
        return iter(self.operations)

    def apply(
        self,
        target: Any,
        *,
        root_type: Any = Any,
        mappings: PropertyMappings = DEFAULT_MAPPINGS,
    ) -> None:
        context = ApplyContext(root_type=root_type, mappings=mappings)
        t0 = time.perf_counter()
        with patch_span(operations=len(self.operations), target=target) as span:
            for index, operation in enumerate(self.operations):
                try:
                    operation.perform(target, context)
                except PatchException as e:
                    e.with_context(op=operation.op, path=operation.path, index=index)
                    observe_operation(op=operation.op, status=e.error_code.lower())
                    observe_apply(duration_ms=(time.perf_counter() - t0) * 1000, status="failed")
                    record_patch_failure(span, e)
                    logger.warning("patch aborted at operation %d: %s", index, e)
                    raise
                observe_operation(op=operation.op, status="ok")
                logger.debug("applied %s %s", operation.op, operation.path)
        observe_apply(duration_ms=(time.perf_counter() - t0) * 1000, status="ok")


def apply_operations(
    operations: Union[Patch, Iterable[PatchOperation]],
    target: Any,
    *,
    root_type: Any = Any,
    mappings: PropertyMappings = DEFAULT_MAPPINGS,
) -> None:
    """Apply ``operations`` to ``target`` in place; raises the first ``PatchException``."""
    patch = operations if isinstance(operations, Patch) else Patch(operations)
    patch.apply(target, root_type=root_type, mappings=mappings)
