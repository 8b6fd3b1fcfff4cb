from __future__ import annotations

import collections.abc
import types
import typing
from typing import Any

_SEQUENCE_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
)

_MAPPING_ORIGINS = (
    dict,
    collections.abc.Mapping,
    collections.abc.MutableMapping,
)


def _is_union(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    return origin is typing.Union or origin is types.UnionType


def _strip_annotated(tp: Any) -> Any:
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def unwrap_optional(tp: Any) -> Any:
    """Optional[X] -> X. Other unions are returned unchanged."""
    tp = _strip_annotated(tp)
    if not _is_union(tp):
        return tp
    args = [a for a in typing.get_args(tp) if a is not type(None)]
    if len(args) == 1:
        return _strip_annotated(args[0])
    return tp


def is_sequence_type(tp: Any) -> bool:
    tp = unwrap_optional(tp)
    if tp is list:
        return True
    return typing.get_origin(tp) in _SEQUENCE_ORIGINS


def sequence_element_type(tp: Any) -> Any:
    tp = unwrap_optional(tp)
    if typing.get_origin(tp) in _SEQUENCE_ORIGINS:
        args = typing.get_args(tp)
        if args:
            return args[0]
    return Any


def mapping_value_type(tp: Any) -> Any:
    tp = unwrap_optional(tp)
    if typing.get_origin(tp) in _MAPPING_ORIGINS:
        args = typing.get_args(tp)
        if len(args) == 2:
            return args[1]
    return Any


def is_untyped(tp: Any) -> bool:
    return tp is Any or tp is object or isinstance(tp, (typing.TypeVar, typing.ForwardRef, str))


def is_assignable(value: Any, tp: Any) -> bool:
    """Shallow runtime check that ``value`` may be stored where ``tp`` is declared.

    Generic containers are checked by origin only; their items are not visited.
    """
    tp = _strip_annotated(tp)
    if is_untyped(tp):
        return True
    if tp is None or tp is type(None):
        return value is None
    if _is_union(tp):
        return any(is_assignable(value, a) for a in typing.get_args(tp))

    origin = typing.get_origin(tp)
    if origin is typing.Literal:
        return value in typing.get_args(tp)
    if origin is not None:
        return isinstance(origin, type) and isinstance(value, origin)

    if tp is float and isinstance(value, int) and not isinstance(value, bool):
        return True
    if tp is int and isinstance(value, bool):
        return False
    if isinstance(tp, type):
        return isinstance(value, tp)
    return True


def describe(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")
