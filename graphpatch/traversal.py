from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional, Union

from graphpatch.errors import InvalidPathError, UnknownPropertyError
from graphpatch.evaluator import LateObjectEvaluator
from graphpatch.path import APPEND_TOKEN, Path, parse_index
from graphpatch.records import (
    DEFAULT_MAPPINGS,
    PropertyMappings,
    RecordProperty,
    RecordType,
    record_type_of,
)
from graphpatch.type_hints import (
    is_sequence_type,
    is_untyped,
    mapping_value_type,
    sequence_element_type,
)


class Access(enum.Enum):
    READ = "read"
    REPLACE = "replace"
    INSERT = "insert"


class NodeKind(enum.Enum):
    ROOT = "root"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    RECORD = "record"


@dataclass
class Location:
    """A resolved (container, accessor) pair. Valid only until the graph changes."""

    path: Path
    kind: NodeKind
    container: Any
    key: Any
    declared_type: Any
    record: Optional[RecordType] = None
    append: bool = False
    # Set when an unset sequence-valued record property is created on first insert.
    attach: Optional[Callable[[], None]] = None

    @property
    def prop(self) -> RecordProperty:
        assert self.kind is NodeKind.RECORD
        return self.key

    def get(self) -> Any:
        if self.kind is NodeKind.ROOT:
            return self.container
        if self.kind is NodeKind.RECORD:
            assert self.record is not None
            return self.record.get(self.container, self.prop)
        return self.container[self.key]

    def set(self, value: Any) -> None:
        if self.kind is NodeKind.RECORD:
            assert self.record is not None
            self.record.set(self.container, self.prop, value)
        elif self.kind is NodeKind.ROOT:
            raise InvalidPathError("the document root cannot be replaced", path=str(self.path))
        else:
            self.container[self.key] = value

    def insert(self, value: Any) -> None:
        if self.kind is NodeKind.SEQUENCE:
            if self.append:
                self.container.append(value)
            else:
                self.container.insert(self.key, value)
        else:
            self.set(value)
        if self.attach is not None:
            self.attach()

    def remove(self) -> Callable[[], None]:
        """Remove the addressed value and return a callable that puts it back."""
        if self.kind is NodeKind.SEQUENCE:
            index = self.key
            old = self.container.pop(index)
            return lambda: self.container.insert(index, old)
        if self.kind is NodeKind.MAPPING:
            key = self.key
            old = self.container.pop(key)
            return lambda: self.container.__setitem__(key, old)
        if self.kind is NodeKind.RECORD:
            old = self.get()
            self.set(None)
            return lambda: self.set(old)
        raise InvalidPathError("the document root cannot be removed", path=str(self.path))


def _kind_of(node: Any) -> tuple[Optional[NodeKind], Optional[RecordType]]:
    if isinstance(node, (list, tuple)):
        return NodeKind.SEQUENCE, None
    if isinstance(node, dict):
        return NodeKind.MAPPING, None
    record = record_type_of(node)
    if record is not None:
        return NodeKind.RECORD, record
    return None, None


@dataclass(frozen=True)
class Traversal:
    """A compiled path that can read, overwrite, insert into, and remove from a graph."""

    path: Path

    def _fail(self, message: str, depth: int) -> InvalidPathError:
        at = str(Path(self.path.segments[:depth]))
        return InvalidPathError(f"{message} (at '{at}')", path=str(self.path))

    def _index(self, seq: Any, seg: str, depth: int, *, allow_end: bool) -> int:
        idx = parse_index(seg)
        if idx is None:
            raise self._fail(f"'{seg}' is not a valid sequence index", depth)
        limit = len(seq) if allow_end else len(seq) - 1
        if idx > limit:
            raise self._fail(f"index {idx} is out of bounds for a sequence of length {len(seq)}", depth)
        return idx

    def _property(
        self, record: RecordType, seg: str, mappings: PropertyMappings, depth: int
    ) -> RecordProperty:
        prop = mappings.resolve(record, seg)
        if prop is None:
            raise UnknownPropertyError(
                f"{record.cls.__name__} has no property '{seg}'",
                property_name=seg,
                record_type=record.cls,
                path=str(self.path),
            )
        return prop

    def locate(
        self,
        root: Any,
        *,
        access: Access,
        root_type: Any = Any,
        mappings: PropertyMappings = DEFAULT_MAPPINGS,
        lazy_init: bool = False,
    ) -> Location:
        segments = self.path.segments
        if not segments:
            if access is not Access.READ:
                raise InvalidPathError("the document root cannot be modified", path="")
            return Location(path=self.path, kind=NodeKind.ROOT, container=root, key=None, declared_type=root_type)

        node = root
        declared = root_type
        attach: Optional[Callable[[], None]] = None
        last = len(segments) - 1

        for depth, seg in enumerate(segments[:-1]):
            kind, record = _kind_of(node)
            if kind is NodeKind.SEQUENCE:
                if seg == APPEND_TOKEN:
                    raise self._fail(f"'{APPEND_TOKEN}' is only allowed as the final segment", depth)
                node = node[self._index(node, seg, depth, allow_end=False)]
                declared = sequence_element_type(declared)
            elif kind is NodeKind.MAPPING:
                if seg not in node:
                    raise self._fail(f"no entry named '{seg}'", depth)
                node = node[seg]
                declared = mapping_value_type(declared)
            elif kind is NodeKind.RECORD:
                assert record is not None
                prop = self._property(record, seg, mappings, depth)
                owner = node
                node = record.get(owner, prop)
                declared = prop.declared_type
                if (
                    node is None
                    and lazy_init
                    and depth == last - 1
                    and segments[last] == APPEND_TOKEN
                    and is_sequence_type(declared)
                    and not record.read_only
                ):
                    node = []
                    attach = _attacher(record, owner, prop, node)
            elif node is None:
                raise self._fail("cannot traverse through a null value", depth)
            else:
                raise self._fail(f"cannot traverse into a {type(node).__name__} value", depth)

            if is_untyped(declared) and node is not None:
                nested = record_type_of(node)
                if nested is not None:
                    declared = nested.cls

        return self._locate_final(node, declared, segments[last], access, mappings, attach)

    def _locate_final(
        self,
        node: Any,
        declared: Any,
        seg: str,
        access: Access,
        mappings: PropertyMappings,
        attach: Optional[Callable[[], None]],
    ) -> Location:
        depth = len(self.path.segments) - 1
        kind, record = _kind_of(node)
        if kind is NodeKind.SEQUENCE:
            if access is not Access.READ and isinstance(node, tuple):
                raise self._fail("cannot modify an immutable sequence", depth)
            elem = sequence_element_type(declared)
            if seg == APPEND_TOKEN:
                if access is not Access.INSERT:
                    raise InvalidPathError(
                        f"'{APPEND_TOKEN}' does not address an existing element", path=str(self.path)
                    )
                return Location(
                    path=self.path,
                    kind=kind,
                    container=node,
                    key=len(node),
                    declared_type=elem,
                    append=True,
                    attach=attach,
                )
            idx = self._index(node, seg, depth, allow_end=access is Access.INSERT)
            return Location(path=self.path, kind=kind, container=node, key=idx, declared_type=elem)

        if kind is NodeKind.MAPPING:
            if access is not Access.INSERT and seg not in node:
                raise self._fail(f"no entry named '{seg}'", depth + 1)
            return Location(
                path=self.path, kind=kind, container=node, key=seg, declared_type=mapping_value_type(declared)
            )

        if kind is NodeKind.RECORD:
            assert record is not None
            prop = self._property(record, seg, mappings, depth)
            if access is not Access.READ and record.read_only:
                raise self._fail(f"{record.cls.__name__} is read-only", depth)
            return Location(
                path=self.path,
                kind=kind,
                container=node,
                key=prop,
                declared_type=prop.declared_type,
                record=record,
            )

        if node is None:
            raise self._fail("cannot traverse through a null value", depth)
        raise self._fail(f"cannot traverse into a {type(node).__name__} value", depth)

    def get_value(self, root: Any, **kwargs: Any) -> Any:
        return self.locate(root, access=Access.READ, **kwargs).get()

    def insert(
        self,
        root: Any,
        value: LateObjectEvaluator,
        *,
        root_type: Any = Any,
        mappings: PropertyMappings = DEFAULT_MAPPINGS,
    ) -> Location:
        """Resolve for insertion, materialize ``value`` against the destination type, and store it.

        Shared by add, copy, and move so the append token and lazy
        initialization of unset sequence properties behave identically.
        """
        loc = self.locate(root, access=Access.INSERT, root_type=root_type, mappings=mappings, lazy_init=True)
        loc.insert(value.evaluate(loc.declared_type))
        return loc

    def replace(
        self,
        root: Any,
        value: LateObjectEvaluator,
        *,
        root_type: Any = Any,
        mappings: PropertyMappings = DEFAULT_MAPPINGS,
    ) -> Location:
        loc = self.locate(root, access=Access.REPLACE, root_type=root_type, mappings=mappings)
        loc.set(value.evaluate(loc.declared_type))
        return loc

    def remove(
        self,
        root: Any,
        *,
        root_type: Any = Any,
        mappings: PropertyMappings = DEFAULT_MAPPINGS,
    ) -> tuple[Any, Callable[[], None]]:
        loc = self.locate(root, access=Access.REPLACE, root_type=root_type, mappings=mappings)
        old = loc.get()
        return old, loc.remove()


def _attacher(record: RecordType, owner: Any, prop: RecordProperty, value: list) -> Callable[[], None]:
    def attach() -> None:
        record.set(owner, prop, value)

    return attach


@lru_cache(maxsize=1024)
def _compile(path: Path) -> Traversal:
    return Traversal(path=path)


def compile_path(path: Union[str, Path]) -> Traversal:
    if not isinstance(path, Path):
        path = Path.parse(path)
    return _compile(path)
