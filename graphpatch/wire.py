from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path as FilePath
from typing import Any, Optional

from graphpatch.canonical import to_document
from graphpatch.config import PatchPolicy
from graphpatch.errors import MalformedPatchError, PatchException
from graphpatch.evaluator import JsonLateObjectEvaluator, TypedValue
from graphpatch.operations import OPERATION_TYPES, FromOperation, PatchOperation, ValueOperation
from graphpatch.patch import Patch
from graphpatch.path import Path
from graphpatch.records import DEFAULT_MAPPINGS, PropertyMappings

SCHEMA_PATH = FilePath(__file__).resolve().parent / "schemas" / "json_patch.schema.json"


@lru_cache(maxsize=1)
def _validator() -> Any:
    try:
        import jsonschema
    except Exception as e:
        raise RuntimeError(f"jsonschema dependency unavailable: {e}") from e

    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return jsonschema.Draft202012Validator(schema)


def validate_patch_document(doc: Any) -> None:
    errors = sorted(_validator().iter_errors(doc), key=lambda e: list(e.absolute_path))
    if not errors:
        return
    first = errors[0]
    location = list(first.absolute_path)
    index = location[0] if location and isinstance(location[0], int) else None
    where = "/".join(str(p) for p in location) or "<document>"
    raise MalformedPatchError(f"invalid patch document at {where}: {first.message}", index=index)


def _enforce_policy(doc: list[dict[str, Any]], policy: PatchPolicy) -> None:
    if len(doc) > policy.max_operations:
        raise MalformedPatchError(
            f"patch has {len(doc)} operations, policy allows at most {policy.max_operations}"
        )
    for index, item in enumerate(doc):
        op = item["op"]
        if op == "remove" and not policy.allow_remove:
            raise MalformedPatchError("remove operations are not allowed", op=op, path=item["path"], index=index)
        for key in ("path", "from"):
            if key in item and len(Path.parse(item[key]).segments) > policy.max_path_depth:
                raise MalformedPatchError(
                    f"'{key}' is deeper than {policy.max_path_depth} segments",
                    op=op,
                    path=item["path"],
                    index=index,
                )


def decode_operation(
    item: dict[str, Any], *, mappings: PropertyMappings = DEFAULT_MAPPINGS
) -> PatchOperation:
    cls = OPERATION_TYPES[item["op"]]
    if issubclass(cls, ValueOperation):
        return cls(path=item["path"], value=JsonLateObjectEvaluator(item["value"], mappings=mappings))
    if issubclass(cls, FromOperation):
        return cls(path=item["path"], from_path=item["from"])
    return cls(path=item["path"])


def decode_patch(
    doc: Any,
    *,
    policy: Optional[PatchPolicy] = None,
    mappings: PropertyMappings = DEFAULT_MAPPINGS,
) -> Patch:
    """Build a Patch from a decoded JSON Patch document.

    Values stay as raw JSON nodes until each operation knows its destination type.
    """
    validate_patch_document(doc)
    _enforce_policy(doc, policy or PatchPolicy())

    operations = []
    for index, item in enumerate(doc):
        try:
            operations.append(decode_operation(item, mappings=mappings))
        except PatchException as e:
            raise MalformedPatchError(e.message, op=item["op"], path=item["path"], index=index) from e
    return Patch(operations)


def loads_patch(text: str, **kwargs: Any) -> Patch:
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedPatchError(f"patch is not valid JSON: {e}") from e
    return decode_patch(doc, **kwargs)


def encode_value(value: Any, *, mappings: PropertyMappings = DEFAULT_MAPPINGS) -> Any:
    if isinstance(value, JsonLateObjectEvaluator):
        return value.node
    if isinstance(value, TypedValue):
        value = value.value
    return to_document(value, mappings=mappings)


def encode_patch(patch: Patch, *, mappings: PropertyMappings = DEFAULT_MAPPINGS) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for operation in patch:
        item: dict[str, Any] = {"op": operation.op, "path": operation.path}
        if isinstance(operation, ValueOperation):
            item["value"] = encode_value(operation.value, mappings=mappings)
        elif isinstance(operation, FromOperation):
            item["from"] = operation.from_path
        out.append(item)
    return out
