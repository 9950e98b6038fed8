"""Per-type field descriptors.

A :class:`MappingDescriptor` is the static table of (name, getter, setter,
declared type) for one record class. It is built once, on first use, by a
:class:`DescriptorRegistry` and shared read-only afterwards.

Row-to-record mapping is narrow: a column is copied onto a field only when the
value's runtime type is exactly the field's declared type. Anything else, NULLs
included, is skipped without an error. A column holding an ``int`` will not
populate a ``float`` field, for instance, and a subclass of the declared type is
skipped too.
"""

import dataclasses
import threading
import types
import typing
import weakref
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Final, Optional, Union
from uuid import UUID

import msgspec

from dbmap.utils.logging import get_logger
from dbmap.utils.type_guards import is_attrs_schema, is_dataclass, is_frozen, is_msgspec_struct, is_pydantic_model

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

__all__ = ("NO_DEFAULT", "DescriptorRegistry", "FieldDescriptor", "MappingDescriptor", "build_descriptor")

logger = get_logger("mapping")

NO_DEFAULT: Final[object] = object()
"""Marker for declared types without a meaningful "unset" value."""

_DEFAULT_VALUES: Final["dict[type, Any]"] = {
    bool: False,
    int: 0,
    float: 0.0,
    str: "",
    bytes: b"",
    Decimal: Decimal(0),
    UUID: UUID(int=0),
}


def _unwrap_type(annotation: Any) -> Optional[type]:
    """Reduce an annotation to the class a runtime value must be an instance of.

    ``Optional[X]`` and ``Annotated[X, ...]`` collapse to ``X``; parametrized generics
    collapse to their origin. ``Any`` and anything unresolvable give None.
    """
    if annotation is Any or annotation is None:
        return None
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return _unwrap_type(typing.get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        return _unwrap_type(members[0]) if len(members) == 1 else None
    if origin is not None:
        return origin if isinstance(origin, type) else None
    return annotation if isinstance(annotation, type) else None


def _is_optional(annotation: Any) -> bool:
    """Whether ``annotation`` admits None, looking through ``Annotated``."""
    origin = typing.get_origin(annotation)
    if origin is typing.Annotated:
        return _is_optional(typing.get_args(annotation)[0])
    if origin is Union or origin is types.UnionType:
        return type(None) in typing.get_args(annotation)
    return False


@dataclasses.dataclass(frozen=True)
class FieldDescriptor:
    """Accessors and type information for one mapped field."""

    name: str
    declared_type: Any
    getter: "Callable[[Any], Any]" = dataclasses.field(repr=False, compare=False)
    setter: "Callable[[Any, Any], None]" = dataclasses.field(repr=False, compare=False)
    match_type: Optional[type] = dataclasses.field(init=False, compare=False)
    default_value: Any = dataclasses.field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        match_type = _unwrap_type(self.declared_type)
        object.__setattr__(self, "match_type", match_type)
        # Optional declarations use None as their only unset value
        has_default = match_type is not None and not _is_optional(self.declared_type)
        object.__setattr__(self, "default_value", _DEFAULT_VALUES.get(match_type, NO_DEFAULT) if has_default else NO_DEFAULT)

    def get(self, record: Any) -> Any:
        return self.getter(record)

    def set(self, record: Any, value: Any) -> None:
        self.setter(record, value)

    def accepts(self, value: Any) -> bool:
        """Whether a row value may be assigned to this field without conversion."""
        if value is None:
            return False
        return self.match_type is None or type(value) is self.match_type

    def is_default(self, value: Any) -> bool:
        """Whether ``value`` is None or, for a non-Optional declaration, the type's zero value."""
        if value is None:
            return True
        return self.default_value is not NO_DEFAULT and value == self.default_value

    def coerce(self, value: Any) -> Any:
        """Convert a driver value, such as a generated identity, to the declared type."""
        if value is None or self.match_type is None or isinstance(value, self.match_type):
            return value
        from dbmap.driver._executor import convert_scalar

        return convert_scalar(value, self.match_type)


class MappingDescriptor:
    """Cached name-to-accessor table for one record type.

    The record type is held weakly so a registry entry does not keep its own key alive.
    """

    __slots__ = ("_by_name", "_record_type", "fields")

    def __init__(self, record_type: type, fields: "Sequence[FieldDescriptor]") -> None:
        self._record_type = weakref.ref(record_type)
        self.fields: tuple[FieldDescriptor, ...] = tuple(fields)
        self._by_name: types.MappingProxyType[str, FieldDescriptor] = types.MappingProxyType(
            {field.name.lower(): field for field in self.fields}
        )

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> "Iterator[FieldDescriptor]":
        return iter(self.fields)

    def __repr__(self) -> str:
        name = getattr(self.record_type, "__name__", None)
        return f"MappingDescriptor({name}, fields={[f.name for f in self.fields]!r})"

    @property
    def record_type(self) -> Optional[type]:
        """The described class, or None once it has been garbage collected."""
        return self._record_type()

    @property
    def field_names(self) -> "list[str]":
        return [field.name for field in self.fields]

    def find(self, name: str) -> Optional[FieldDescriptor]:
        """Look up a field by name, ignoring case."""
        return self._by_name.get(name.lower())

    def from_row(self, record: Any, columns: "Sequence[str]", values: "Sequence[Any]") -> Any:
        """Copy row values onto ``record`` where column name and value type match a field.

        Returns:
            The same record, for chaining.
        """
        for name, value in zip(columns, values):
            field = self._by_name.get(name.lower())
            if field is not None and field.accepts(value):
                field.set(record, value)
        return record

    def to_pairs(self, record: Any, visit: "Callable[[str, Any], None]") -> None:
        """Call ``visit(name, value)`` for every mapped field, in descriptor order."""
        for field in self.fields:
            visit(field.name, field.get(record))

    def iter_pairs(self, record: Any) -> "Iterator[tuple[str, Any]]":
        for field in self.fields:
            yield field.name, field.get(record)


def _type_hints(record_type: type) -> "dict[str, Any]":
    try:
        return typing.get_type_hints(record_type, include_extras=True)
    except (NameError, TypeError):
        hints: dict[str, Any] = {}
        for klass in reversed(record_type.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints


def _attribute_field(name: str, declared_type: Any) -> FieldDescriptor:
    def getter(record: Any) -> Any:
        return getattr(record, name, None)

    def setter(record: Any, value: Any) -> None:
        setattr(record, name, value)

    return FieldDescriptor(name, declared_type, getter, setter)


def _declared_names(record_type: type, hints: "dict[str, Any]") -> "list[tuple[str, Any]]":
    if is_dataclass(record_type):
        return [(f.name, hints.get(f.name, f.type)) for f in dataclasses.fields(record_type)]
    if is_msgspec_struct(record_type):
        return [(f.name, f.type) for f in msgspec.structs.fields(record_type)]
    if is_pydantic_model(record_type):
        return [(name, info.annotation) for name, info in record_type.model_fields.items()]  # type: ignore[attr-defined]
    if is_attrs_schema(record_type):
        import attrs

        return [(a.name, hints.get(a.name, a.type)) for a in attrs.fields(record_type)]
    return [
        (name, annotation)
        for name, annotation in hints.items()
        if not name.startswith("_")
        and annotation is not typing.ClassVar
        and typing.get_origin(annotation) is not typing.ClassVar
    ]


def _property_fields(record_type: type, seen: "set[str]") -> "list[FieldDescriptor]":
    fields: list[FieldDescriptor] = []
    for klass in reversed(record_type.__mro__):
        for name, member in vars(klass).items():
            if not isinstance(member, property) or name.startswith("_") or name.lower() in seen:
                continue
            if member.fget is None or member.fset is None:
                continue
            declared = typing.get_type_hints(member.fget).get("return", Any) if member.fget.__annotations__ else Any
            fields.append(_attribute_field(name, declared))
            seen.add(name.lower())
    return fields


def build_descriptor(record_type: type) -> MappingDescriptor:
    """Reflect over ``record_type`` and collect its readable and writable fields.

    Dataclasses, attrs classes, msgspec Structs, pydantic models and plain annotated
    classes are understood; plain classes also contribute properties that have a setter.
    Frozen classes expose no writable fields and therefore map no columns.
    """
    if is_frozen(record_type):
        logger.debug("Record type %s is frozen; no fields are writable", record_type.__name__)
        return MappingDescriptor(record_type, ())

    hints = _type_hints(record_type)
    fields = [_attribute_field(name, declared) for name, declared in _declared_names(record_type, hints)]
    if not (
        is_dataclass(record_type)
        or is_msgspec_struct(record_type)
        or is_pydantic_model(record_type)
        or is_attrs_schema(record_type)
    ):
        fields.extend(_property_fields(record_type, {field.name.lower() for field in fields}))
    return MappingDescriptor(record_type, fields)


class DescriptorRegistry:
    """Lazily populated descriptor cache keyed by record type.

    Entries live as long as their record type does. Lookups take no lock once a
    descriptor exists; building one is serialized so each type is reflected once.
    """

    __slots__ = ("_descriptors", "_lock")

    def __init__(self) -> None:
        self._descriptors: weakref.WeakKeyDictionary[type, MappingDescriptor] = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def get(self, record_type: type) -> MappingDescriptor:
        descriptor = self._descriptors.get(record_type)
        if descriptor is None:
            with self._lock:
                descriptor = self._descriptors.get(record_type)
                if descriptor is None:
                    descriptor = build_descriptor(record_type)
                    self._descriptors[record_type] = descriptor
                    logger.debug("Built descriptor for %s with %d fields", record_type.__name__, len(descriptor))
        return descriptor

    def __contains__(self, record_type: object) -> bool:
        return record_type in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()
