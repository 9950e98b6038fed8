from importlib.util import find_spec
from typing import TYPE_CHECKING, Any, Union

from typing_extensions import TypeAlias, TypeVar

if TYPE_CHECKING:
    from dbmap.driver._base import DriverConnection, DriverTransaction

__all__ = (
    "AIOSQLITE_INSTALLED",
    "ATTRS_INSTALLED",
    "PYDANTIC_INSTALLED",
    "CommandTarget",
    "ConnectionT",
    "RecordT",
    "ValueT",
)

PYDANTIC_INSTALLED: bool = find_spec("pydantic") is not None
"""Whether pydantic models can be used as record types."""
ATTRS_INSTALLED: bool = find_spec("attrs") is not None
"""Whether attrs classes can be used as record types."""
AIOSQLITE_INSTALLED: bool = find_spec("aiosqlite") is not None
"""Whether the built-in SQLite provider is available."""

RecordT = TypeVar("RecordT", default=Any)
"""Type variable for record types handled by a :class:`~dbmap.mapping.Mapping`."""
ValueT = TypeVar("ValueT")
"""Type variable for scalar values returned by :func:`~dbmap.driver.select_value`."""
ConnectionT = TypeVar("ConnectionT", bound="DriverConnection")
"""Type variable for driver connection types."""

CommandTarget: TypeAlias = Union["DriverConnection", "DriverTransaction"]
"""Anything a command can run against: a bare connection or an open transaction."""
