"""JSON Merge Patch (RFC 7386) support.

Two strategies are exposed separately:

* :func:`merge_patch_operations` translates a merge document into an
  equivalent :class:`~graphpatch.patch.Patch` of ``remove``/``add``
  operations, which then runs through the regular operation machinery.
* :func:`apply_merge_patch` merges the document straight into the target.
  All values are resolved and materialized first; the target is only
  touched once the whole merge is known to succeed.
"""

from __future__ import annotations

from typing import Any, Callable

from graphpatch.errors import InvalidPathError, MalformedPatchError, UnknownPropertyError
from graphpatch.evaluator import JsonLateObjectEvaluator
from graphpatch.operations import AddOperation, PatchOperation, RemoveOperation
from graphpatch.patch import Patch
from graphpatch.path import Path
from graphpatch.records import DEFAULT_MAPPINGS, PropertyMappings, record_type_of
from graphpatch.type_hints import is_untyped, mapping_value_type


def _strip_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _strip_nulls(v) for k, v in value.items() if v is not None}
    return value


def _is_container(node: Any) -> bool:
    return isinstance(node, dict) or record_type_of(node) is not None


def _child(node: Any, key: str, mappings: PropertyMappings) -> tuple[bool, Any]:
    if isinstance(node, dict):
        return key in node, node.get(key)
    record = record_type_of(node)
    if record is not None:
        prop = mappings.resolve(record, key)
        if prop is not None:
            return True, record.get(node, prop)
    return False, None


def _require_object(merge_doc: Any) -> dict[str, Any]:
    if not isinstance(merge_doc, dict):
        raise MalformedPatchError("a merge patch applied to an object graph must be a JSON object")
    return merge_doc


def _translate(
    node: Any, merge: dict[str, Any], path: Path, mappings: PropertyMappings, out: list[PatchOperation]
) -> None:
    is_record = record_type_of(node) is not None
    for key, value in merge.items():
        child_path = path.child(key)
        present, current = _child(node, key, mappings)
        if value is None:
            # Records always get the op so that undeclared names fail at apply time.
            if present or is_record:
                out.append(RemoveOperation(str(child_path)))
        elif isinstance(value, dict) and present and _is_container(current):
            _translate(current, value, child_path, mappings, out)
        else:
            out.append(
                AddOperation(str(child_path), JsonLateObjectEvaluator(_strip_nulls(value), mappings=mappings))
            )


def merge_patch_operations(
    target: Any, merge_doc: Any, *, mappings: PropertyMappings = DEFAULT_MAPPINGS
) -> Patch:
    """Translate a merge document into the operations that produce the same result on ``target``."""
    out: list[PatchOperation] = []
    _translate(target, _require_object(merge_doc), Path(()), mappings, out)
    return Patch(out)


def _plan(
    node: Any,
    declared: Any,
    merge: dict[str, Any],
    path: Path,
    mappings: PropertyMappings,
    steps: list[Callable[[], None]],
) -> None:
    if isinstance(node, dict):
        value_type = mapping_value_type(declared)
        for key, value in merge.items():
            child_path = path.child(key)
            current = node.get(key)
            if value is None:
                if key in node:
                    steps.append(lambda k=key: node.pop(k))
            elif isinstance(value, dict) and _is_container(current):
                _plan(current, value_type, value, child_path, mappings, steps)
            else:
                new = JsonLateObjectEvaluator(_strip_nulls(value), mappings=mappings).evaluate(value_type)
                steps.append(lambda k=key, v=new: node.__setitem__(k, v))
        return

    record = record_type_of(node)
    if record is None:
        raise InvalidPathError(f"cannot merge into a {type(node).__name__} value", path=str(path))
    if record.read_only:
        raise InvalidPathError(f"{record.cls.__name__} is read-only", path=str(path))
    for key, value in merge.items():
        child_path = path.child(key)
        prop = mappings.resolve(record, key)
        if prop is None:
            raise UnknownPropertyError(
                f"{record.cls.__name__} has no property '{key}'",
                property_name=key,
                record_type=record.cls,
                path=str(child_path),
            )
        current = record.get(node, prop)
        if value is None:
            steps.append(lambda p=prop: record.set(node, p, None))
        elif isinstance(value, dict) and _is_container(current):
            _plan(current, prop.declared_type, value, child_path, mappings, steps)
        else:
            new = JsonLateObjectEvaluator(_strip_nulls(value), mappings=mappings).evaluate(prop.declared_type)
            steps.append(lambda p=prop, v=new: record.set(node, p, v))


def apply_merge_patch(
    target: Any,
    merge_doc: Any,
    *,
    root_type: Any = Any,
    mappings: PropertyMappings = DEFAULT_MAPPINGS,
) -> None:
    """Merge ``merge_doc`` into ``target`` in place: null removes, absent keys are left alone."""
    merge = _require_object(merge_doc)
    declared = root_type
    if is_untyped(declared) and record_type_of(target) is not None:
        declared = type(target)
    steps: list[Callable[[], None]] = []
    _plan(target, declared, merge, Path(()), mappings, steps)
    for step in steps:
        step()
