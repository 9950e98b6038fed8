"""Dynamic, schema-less records."""

from collections.abc import Iterator, MutableMapping
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

__all__ = ("Row",)


class Row(MutableMapping[str, Any]):
    """Ordered name/value bag with case-insensitive keys.

    Keys keep the spelling they were first stored with; lookups ignore case.
    Fields are also reachable as attributes::

        row = Row({"Id": 1, "Name": "Ada"})
        row.name == row["NAME"] == "Ada"
    """

    __slots__ = ("_names", "_values")

    def __init__(self, data: "Optional[Union[Iterable[tuple[str, Any]], Mapping[str, Any]]]" = None, **kwargs: Any) -> None:
        object.__setattr__(self, "_values", {})
        object.__setattr__(self, "_names", {})
        if data is not None:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    @classmethod
    def from_values(cls, columns: "Sequence[str]", values: "Sequence[Any]") -> "Row":
        """Build a row from a reader's column names and values."""
        return cls(zip(columns, values))

    def __getitem__(self, key: str) -> Any:
        return self._values[key.lower()]

    def __setitem__(self, key: str, value: Any) -> None:
        folded = key.lower()
        self._names.setdefault(folded, key)
        self._values[folded] = value

    def __delitem__(self, key: str) -> None:
        folded = key.lower()
        del self._values[folded]
        del self._names[folded]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names.values())

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __getattr__(self, name: str) -> Any:
        if name in Row.__slots__:
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            msg = f"{type(self).__name__!r} object has no field {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in Row.__slots__:
            object.__setattr__(self, name, value)
            return
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def canonical_name(self, key: str) -> Optional[str]:
        """Spelling under which ``key`` is stored, if present."""
        return self._names.get(key.lower())

    def to_dict(self) -> "dict[str, Any]":
        return dict(self.items())

    def __repr__(self) -> str:
        return f"Row({self.to_dict()!r})"
