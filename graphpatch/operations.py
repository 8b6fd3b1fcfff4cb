from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from graphpatch.canonical import structurally_equal, to_document
from graphpatch.errors import InvalidPathError, PatchConflictError, PatchException
from graphpatch.evaluator import LateObjectEvaluator, TypedValue, as_evaluator
from graphpatch.path import Path
from graphpatch.records import DEFAULT_MAPPINGS, PropertyMappings
from graphpatch.traversal import Access, compile_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyContext:
    root_type: Any = Any
    mappings: PropertyMappings = field(default=DEFAULT_MAPPINGS)

    def options(self) -> dict[str, Any]:
        return {"root_type": self.root_type, "mappings": self.mappings}


@dataclass(frozen=True)
class PatchOperation(ABC):
    op: ClassVar[str]

    path: str

    def __post_init__(self) -> None:
        # Fail on malformed pointers at construction, not halfway through a patch.
        Path.parse(self.path)

    @abstractmethod
    def perform(self, target: Any, context: ApplyContext) -> None:
        """Apply this operation to ``target`` in place."""


@dataclass(frozen=True)
class ValueOperation(PatchOperation):
    value: Any

    @property
    def evaluator(self) -> LateObjectEvaluator:
        return as_evaluator(self.value)


@dataclass(frozen=True)
class FromOperation(PatchOperation):
    from_path: str

    def __post_init__(self) -> None:
        super().__post_init__()
        Path.parse(self.from_path)


@dataclass(frozen=True)
class AddOperation(ValueOperation):
    op: ClassVar[str] = "add"

    def perform(self, target: Any, context: ApplyContext) -> None:
        compile_path(self.path).insert(target, self.evaluator, **context.options())


@dataclass(frozen=True)
class RemoveOperation(PatchOperation):
    op: ClassVar[str] = "remove"

    def perform(self, target: Any, context: ApplyContext) -> None:
        compile_path(self.path).remove(target, **context.options())


@dataclass(frozen=True)
class ReplaceOperation(ValueOperation):
    op: ClassVar[str] = "replace"

    def perform(self, target: Any, context: ApplyContext) -> None:
        compile_path(self.path).replace(target, self.evaluator, **context.options())


@dataclass(frozen=True)
class TestOperation(ValueOperation):
    """Precondition check; never mutates the target."""

    op: ClassVar[str] = "test"
    __test__ = False

    def perform(self, target: Any, context: ApplyContext) -> None:
        loc = compile_path(self.path).locate(target, access=Access.READ, **context.options())
        current = loc.get()
        expected = self.value
        if isinstance(expected, TypedValue):
            expected = expected.value
        elif isinstance(expected, LateObjectEvaluator):
            expected = expected.evaluate(loc.declared_type)

        try:
            equal = structurally_equal(current, expected, mappings=context.mappings)
        except (TypeError, ValueError):
            # non-JSON values, or non-finite numbers that have no canonical form
            equal = current == expected
        if not equal:
            raise PatchConflictError(
                f"test failed: expected {_render(expected, context)} but found {_render(current, context)}",
                path=self.path,
            )


@dataclass(frozen=True)
class MoveOperation(FromOperation):
    """Remove the value at ``from_path`` and add it at ``path``.

    ``path`` is resolved after the removal, so indexes into the same sequence
    refer to the shortened sequence. When the surrounding persistence layer
    re-derives sequence order on every read, a committed move may not be
    observable after re-fetching the object.
    """

    op: ClassVar[str] = "move"

    def perform(self, target: Any, context: ApplyContext) -> None:
        source = Path.parse(self.from_path)
        dest = Path.parse(self.path)
        if source.is_proper_prefix_of(dest):
            raise InvalidPathError(
                f"cannot move '{self.from_path}' into one of its own children", path=self.path
            )

        value, restore = compile_path(source).remove(target, **context.options())
        try:
            compile_path(dest).insert(target, TypedValue(value), **context.options())
        except PatchException:
            restore()
            logger.debug("move to %s failed, value restored at %s", self.path, self.from_path)
            raise


@dataclass(frozen=True)
class CopyOperation(FromOperation):
    op: ClassVar[str] = "copy"

    def perform(self, target: Any, context: ApplyContext) -> None:
        value = compile_path(self.from_path).get_value(target, **context.options())
        compile_path(self.path).insert(target, TypedValue(copy.deepcopy(value)), **context.options())


OPERATION_TYPES: dict[str, type[PatchOperation]] = {
    cls.op: cls
    for cls in (AddOperation, RemoveOperation, ReplaceOperation, MoveOperation, CopyOperation, TestOperation)
}


def _render(value: Any, context: ApplyContext) -> str:
    try:
        return repr(to_document(value, mappings=context.mappings))
    except TypeError:
        return repr(value)
