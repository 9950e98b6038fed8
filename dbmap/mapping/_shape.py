"""Record shapes.

A shape is the one seam the persistence engine and the executor need in order
to treat typed and dynamic records alike: create a record from a reader row,
enumerate its fields, and read or write its primary key.
"""

from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Final, Generic, Optional

from dbmap.exceptions import ImproperConfigurationError
from dbmap.mapping._descriptor import DescriptorRegistry
from dbmap.mapping._row import Row
from dbmap.typing import RecordT

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from dbmap.mapping._descriptor import FieldDescriptor, MappingDescriptor

__all__ = ("MISSING", "DynamicShape", "RecordShape", "TypedShape", "shape_for")

MISSING: Final[object] = object()
"""Snapshot marker for a key that was absent from a dynamic record."""


class RecordShape(ABC, Generic[RecordT]):
    """Operations the persistence engine needs from a record type."""

    __slots__ = ("record_type",)

    def __init__(self, record_type: "type[RecordT]") -> None:
        self.record_type = record_type

    @property
    def default_table_name(self) -> str:
        return self.record_type.__name__

    @property
    @abstractmethod
    def select_columns(self) -> str:
        """Column list used when composing a SELECT for this shape."""

    @abstractmethod
    def create(self, columns: "Sequence[str]", values: "Sequence[Any]") -> "Optional[RecordT]":
        """Build a record from one reader row, or None when nothing could be mapped."""

    @abstractmethod
    def iter_fields(self, record: RecordT) -> "Iterator[tuple[str, Any]]":
        """Yield ``(name, value)`` for each field of ``record``."""

    @abstractmethod
    def resolve_key(self, name: str) -> str:
        """Spelling of the primary key column for this shape."""

    @abstractmethod
    def get_key(self, record: RecordT, key: str) -> Any:
        """Primary key value, or :data:`MISSING` when the record has no such field."""

    @abstractmethod
    def set_key(self, record: RecordT, key: str, value: Any) -> None: ...

    @abstractmethod
    def has_valid_key(self, record: RecordT, key: str) -> bool: ...

    def restore_key(self, record: RecordT, key: str, snapshot: Any) -> None:
        """Put back a value captured earlier with :meth:`get_key`."""
        self.set_key(record, key, snapshot)


class TypedShape(RecordShape[RecordT]):
    """Shape of a declared record class, backed by its :class:`MappingDescriptor`."""

    __slots__ = ("descriptor",)

    def __init__(self, record_type: "type[RecordT]", descriptor: "MappingDescriptor") -> None:
        super().__init__(record_type)
        self.descriptor = descriptor

    @property
    def select_columns(self) -> str:
        return ", ".join(self.descriptor.field_names) or "*"

    def _instantiate(self) -> RecordT:
        try:
            return self.record_type()
        except TypeError as e:
            msg = f"Record type {self.record_type.__name__} must be constructible without arguments"
            raise ImproperConfigurationError(msg) from e

    def create(self, columns: "Sequence[str]", values: "Sequence[Any]") -> RecordT:
        record = self._instantiate()
        self.descriptor.from_row(record, columns, values)
        return record

    def iter_fields(self, record: RecordT) -> "Iterator[tuple[str, Any]]":
        return self.descriptor.iter_pairs(record)

    def _field(self, key: str) -> "FieldDescriptor":
        field = self.descriptor.find(key)
        if field is None:
            msg = f"Record type {self.record_type.__name__} has no field named {key!r}"
            raise ImproperConfigurationError(msg)
        return field

    def resolve_key(self, name: str) -> str:
        return self._field(name).name

    def get_key(self, record: RecordT, key: str) -> Any:
        return self._field(key).get(record)

    def set_key(self, record: RecordT, key: str, value: Any) -> None:
        field = self._field(key)
        field.set(record, field.coerce(value))

    def restore_key(self, record: RecordT, key: str, snapshot: Any) -> None:
        self._field(key).set(record, snapshot)

    def has_valid_key(self, record: RecordT, key: str) -> bool:
        return not self._field(key).is_default(self.get_key(record, key))


class DynamicShape(RecordShape[Row]):
    """Shape of schema-less records: :class:`Row` or any mutable mapping."""

    __slots__ = ()

    def __init__(self) -> None:
        super().__init__(Row)

    @property
    def default_table_name(self) -> str:
        return Row.__name__

    @property
    def select_columns(self) -> str:
        return "*"

    def create(self, columns: "Sequence[str]", values: "Sequence[Any]") -> "Optional[Row]":
        if not columns:
            return None
        return Row.from_values(columns, values)

    def iter_fields(self, record: "MutableMapping[str, Any]") -> "Iterator[tuple[str, Any]]":  # type: ignore[override]
        return iter(list(record.items()))

    def resolve_key(self, name: str) -> str:
        return name

    @staticmethod
    def _find(record: "MutableMapping[str, Any]", key: str) -> Optional[str]:
        if isinstance(record, Row):
            return record.canonical_name(key)
        folded = key.lower()
        return next((name for name in record if name.lower() == folded), None)

    def get_key(self, record: "MutableMapping[str, Any]", key: str) -> Any:  # type: ignore[override]
        name = self._find(record, key)
        return MISSING if name is None else record[name]

    def set_key(self, record: "MutableMapping[str, Any]", key: str, value: Any) -> None:  # type: ignore[override]
        record[self._find(record, key) or key] = value

    def restore_key(self, record: "MutableMapping[str, Any]", key: str, snapshot: Any) -> None:  # type: ignore[override]
        if snapshot is MISSING:
            name = self._find(record, key)
            if name is not None:
                del record[name]
            return
        self.set_key(record, key, snapshot)

    def has_valid_key(self, record: "MutableMapping[str, Any]", key: str) -> bool:  # type: ignore[override]
        value = self.get_key(record, key)
        return value is not MISSING and value is not None


_DYNAMIC_SHAPE: Final = DynamicShape()


def shape_for(record_type: "Optional[type[Any]]", registry: "Optional[DescriptorRegistry]" = None) -> "RecordShape[Any]":
    """Pick the shape for ``record_type``.

    None, :class:`Row` and mapping types are dynamic; anything else is typed and
    described through ``registry`` (a private registry when omitted).
    """
    if record_type is None or (isinstance(record_type, type) and issubclass(record_type, MutableMapping)):
        return _DYNAMIC_SHAPE
    if registry is None:
        registry = DescriptorRegistry()
    return TypedShape(record_type, registry.get(record_type))
