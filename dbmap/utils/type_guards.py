"""Type guard functions for runtime checks on record shapes."""

from typing import TYPE_CHECKING, Any

import msgspec

from dbmap.typing import ATTRS_INSTALLED, PYDANTIC_INSTALLED

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

    from dbmap.mapping._row import Row

__all__ = (
    "is_attrs_schema",
    "is_dataclass",
    "is_frozen",
    "is_msgspec_struct",
    "is_pydantic_model",
    "is_row",
)


def is_dataclass(obj: Any) -> bool:
    """Check if a class or instance is a dataclass.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    cls = obj if isinstance(obj, type) else type(obj)
    return hasattr(cls, "__dataclass_fields__")


def is_msgspec_struct(obj: Any) -> bool:
    """Check if a class or instance is a msgspec struct.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if isinstance(obj, type):
        return issubclass(obj, msgspec.Struct)
    return isinstance(obj, msgspec.Struct)


def is_pydantic_model(obj: Any) -> bool:
    """Check if a class or instance is a pydantic model.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if not PYDANTIC_INSTALLED:
        return False
    from pydantic import BaseModel

    if isinstance(obj, type):
        return issubclass(obj, BaseModel)
    return isinstance(obj, BaseModel)


def is_attrs_schema(obj: Any) -> bool:
    """Check if a class or instance is an attrs class.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if not ATTRS_INSTALLED:
        return False
    import attrs

    cls = obj if isinstance(obj, type) else type(obj)
    return attrs.has(cls)


def is_frozen(cls: type) -> bool:
    """Check whether instances of a record class reject attribute assignment."""
    if is_dataclass(cls):
        return bool(cls.__dataclass_params__.frozen)  # type: ignore[attr-defined]
    if is_msgspec_struct(cls):
        return bool(cls.__struct_config__.frozen)  # type: ignore[attr-defined]
    if is_pydantic_model(cls):
        return bool(cls.model_config.get("frozen", False))  # type: ignore[attr-defined]
    if is_attrs_schema(cls):
        # attrs marks frozen classes by installing its own __setattr__ hook
        return getattr(cls.__setattr__, "__name__", "") == "_frozen_setattrs"
    return False


def is_row(obj: Any) -> "TypeGuard[Row]":
    """Check if a value is a dynamic :class:`~dbmap.mapping.Row`."""
    from dbmap.mapping._row import Row

    return isinstance(obj, Row)
