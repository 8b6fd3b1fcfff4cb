from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional

from pydantic import BaseModel

# Dataclass field metadata keys consulted when building accessor tables.
JSON_NAME = "json_name"
EXPOSED = "exposed"


@dataclass(frozen=True)
class RecordProperty:
    name: str
    mapped_name: str
    declared_type: Any
    exposed: bool = True


@dataclass(frozen=True)
class RecordType:
    """Accessor table for one structured-record class.

    Built once per class and looked up by external name during traversal.
    Records are fixed-shape: properties cannot be created or deleted through
    the table, only read, set, or nulled.
    """

    cls: type
    properties: tuple[RecordProperty, ...]
    read_only: bool = False

    def property_named(self, name: str) -> Optional[RecordProperty]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def get(self, obj: Any, prop: RecordProperty) -> Any:
        return getattr(obj, prop.name)

    def set(self, obj: Any, prop: RecordProperty, value: Any) -> None:
        setattr(obj, prop.name, value)


_registered: dict[type, RecordType] = {}


def register_record_type(
    cls: type,
    *,
    properties: Mapping[str, Any],
    names: Optional[Mapping[str, str]] = None,
    hidden: typing.Iterable[str] = (),
    read_only: bool = False,
) -> RecordType:
    """Declare the property table of a class that is neither a dataclass nor a pydantic model."""
    names = names or {}
    hidden_set = set(hidden)
    record = RecordType(
        cls=cls,
        properties=tuple(
            RecordProperty(
                name=name,
                mapped_name=names.get(name, name),
                declared_type=tp,
                exposed=name not in hidden_set,
            )
            for name, tp in properties.items()
        ),
        read_only=read_only,
    )
    _registered[cls] = record
    _record_type_for_class.cache_clear()
    return record


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except Exception:
        return dict(getattr(cls, "__annotations__", {}))


def _dataclass_record(cls: type) -> RecordType:
    hints = _type_hints(cls)
    props = []
    for f in dataclasses.fields(cls):
        props.append(
            RecordProperty(
                name=f.name,
                mapped_name=str(f.metadata.get(JSON_NAME, f.name)),
                declared_type=hints.get(f.name, Any),
                exposed=bool(f.metadata.get(EXPOSED, True)),
            )
        )
    params = getattr(cls, "__dataclass_params__", None)
    return RecordType(cls=cls, properties=tuple(props), read_only=bool(params and params.frozen))


def _pydantic_record(cls: type[BaseModel]) -> RecordType:
    props = []
    for name, info in cls.model_fields.items():
        props.append(
            RecordProperty(
                name=name,
                mapped_name=info.alias or name,
                declared_type=info.annotation if info.annotation is not None else Any,
                exposed=not bool(info.exclude),
            )
        )
    frozen = bool(cls.model_config.get("frozen", False))
    return RecordType(cls=cls, properties=tuple(props), read_only=frozen)


@lru_cache(maxsize=512)
def _record_type_for_class(cls: type) -> Optional[RecordType]:
    for base in cls.__mro__:
        if base in _registered:
            return _registered[base]
    if dataclasses.is_dataclass(cls):
        return _dataclass_record(cls)
    if issubclass(cls, BaseModel):
        return _pydantic_record(cls)
    return None


def record_type_of(obj_or_cls: Any) -> Optional[RecordType]:
    """Return the accessor table for a record instance or class, None for anything else."""
    cls = obj_or_cls if isinstance(obj_or_cls, type) else type(obj_or_cls)
    if cls in (dict, list, tuple, str, int, float, bool, type(None)):
        return None
    return _record_type_for_class(cls)


class PropertyMappings:
    """External-name translation supplied by the resource-mapping layer.

    ``overrides`` maps a record class to ``{internal_name: external_name}``.
    An external name of ``None`` hides the property. Classes without an
    override use the names declared on the record itself.
    """

    def __init__(self, overrides: Optional[Mapping[type, Mapping[str, Optional[str]]]] = None) -> None:
        self._overrides = {cls: dict(m) for cls, m in (overrides or {}).items()}

    def _override_for(self, record: RecordType) -> Optional[dict[str, Optional[str]]]:
        for base in record.cls.__mro__:
            if base in self._overrides:
                return self._overrides[base]
        return None

    def mapped_name(self, record: RecordType, prop: RecordProperty) -> Optional[str]:
        if not prop.exposed:
            return None
        override = self._override_for(record)
        if override is not None and prop.name in override:
            return override[prop.name]
        return prop.mapped_name

    def resolve(self, record: RecordType, external_name: str) -> Optional[RecordProperty]:
        for prop in record.properties:
            if self.mapped_name(record, prop) == external_name:
                return prop
        return None

    def exposed_properties(self, record: RecordType) -> list[tuple[str, RecordProperty]]:
        out = []
        for prop in record.properties:
            name = self.mapped_name(record, prop)
            if name is not None:
                out.append((name, prop))
        return out


DEFAULT_MAPPINGS = PropertyMappings()
