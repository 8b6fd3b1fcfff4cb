from __future__ import annotations

import copy
import dataclasses
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError

from graphpatch.errors import UnknownPropertyError, ValueConversionError
from graphpatch.records import DEFAULT_MAPPINGS, PropertyMappings, RecordProperty, RecordType, record_type_of
from graphpatch.type_hints import (
    describe,
    is_assignable,
    is_sequence_type,
    is_untyped,
    mapping_value_type,
    sequence_element_type,
    unwrap_optional,
)


class LateObjectEvaluator(ABC):
    """A value whose concrete type is decided where it is stored."""

    @abstractmethod
    def evaluate(self, target_type: Any) -> Any:
        """Return the value as an instance of ``target_type``."""


@dataclass(frozen=True)
class TypedValue(LateObjectEvaluator):
    value: Any

    def evaluate(self, target_type: Any) -> Any:
        if not is_assignable(self.value, target_type):
            raise ValueConversionError(
                f"{type(self.value).__name__} value is not assignable to {describe(target_type)}"
            )
        return self.value


@lru_cache(maxsize=256)
def _cached_adapter(target_type: Any) -> TypeAdapter:
    return TypeAdapter(target_type)


def _adapter_for(target_type: Any) -> TypeAdapter:
    try:
        hash(target_type)
    except TypeError:
        # unhashable Annotated metadata
        return TypeAdapter(target_type)
    return _cached_adapter(target_type)


def _record_target(tp: Any) -> Optional[RecordType]:
    if not isinstance(tp, type) or typing.get_origin(tp) is not None:
        return None
    if dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel):
        return record_type_of(tp)
    return None


def _field_key(record: RecordType, prop: RecordProperty) -> str:
    # pydantic models validate by alias, dataclasses by field name.
    if issubclass(record.cls, BaseModel):
        return prop.mapped_name
    return prop.name


def _internal_names(node: Any, target_type: Any, mappings: PropertyMappings) -> Any:
    """Rename external keys to the names the record type validates by, recursively along ``target_type``.

    Keys that are not an exposed external name of the record are rejected, so a
    value can never reach a hidden property or a renamed one by its internal name.
    """
    tp = unwrap_optional(target_type)
    if isinstance(node, list):
        if is_sequence_type(tp):
            elem = sequence_element_type(tp)
            return [_internal_names(v, elem, mappings) for v in node]
        return node
    if not isinstance(node, dict):
        return node
    record = _record_target(tp)
    if record is not None:
        out: dict[str, Any] = {}
        for key, v in node.items():
            prop = mappings.resolve(record, key)
            if prop is None:
                raise UnknownPropertyError(
                    f"{record.cls.__name__} has no property '{key}'",
                    property_name=key,
                    record_type=record.cls,
                )
            out[_field_key(record, prop)] = _internal_names(v, prop.declared_type, mappings)
        return out
    value_type = mapping_value_type(tp)
    if is_untyped(value_type):
        return node
    return {k: _internal_names(v, value_type, mappings) for k, v in node.items()}


@dataclass(frozen=True)
class JsonLateObjectEvaluator(LateObjectEvaluator):
    """Holds a raw decoded JSON node until the destination type is known."""

    node: Any
    mappings: PropertyMappings = field(default=DEFAULT_MAPPINGS, compare=False, repr=False)

    def evaluate(self, target_type: Any) -> Any:
        if is_untyped(target_type):
            return copy.deepcopy(self.node)
        raw = _internal_names(self.node, target_type, self.mappings)
        try:
            return _adapter_for(target_type).validate_python(raw)
        except (ValidationError, PydanticSchemaGenerationError, TypeError, ValueError) as e:
            raise ValueConversionError(
                f"could not read {self.node!r} into {describe(target_type)}"
            ) from e


def as_evaluator(value: Any) -> LateObjectEvaluator:
    if isinstance(value, LateObjectEvaluator):
        return value
    return TypedValue(value)
