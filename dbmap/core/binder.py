"""Conversion of positional arguments into driver parameters.

Every argument becomes a :class:`Parameter` named after its ordinal position in
the command (``@0``, ``@1``, ...). A handful of types are normalized on the way:

- ``None`` binds as SQL NULL.
- :class:`uuid.UUID` binds as a bounded string.
- A dynamic :class:`~dbmap.mapping.Row` binds as its first value, so a row read
  with ``SELECT id FROM ...`` can be passed straight back as an argument.
- Strings carry a size hint: bounded up to :data:`MAX_BOUNDED_SIZE` characters,
  unbounded beyond it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional
from uuid import UUID

from dbmap.utils.type_guards import is_row

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dbmap.core.command import Command

__all__ = (
    "MAX_BOUNDED_SIZE",
    "UNBOUNDED_SIZE",
    "DbType",
    "Parameter",
    "bind_argument",
    "bind_arguments",
    "create_parameter",
)

MAX_BOUNDED_SIZE: Final[int] = 4000
UNBOUNDED_SIZE: Final[int] = -1
PARAMETER_PREFIX: Final[str] = "@"


class DbType(Enum):
    """Storage hint attached to a parameter."""

    STRING = "string"
    OBJECT = "object"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class Parameter:
    """A named value bound to a command."""

    name: str
    value: Any
    db_type: DbType = DbType.OBJECT
    size: Optional[int] = None

    @property
    def key(self) -> str:
        """Parameter name without its placeholder prefix."""
        return self.name[len(PARAMETER_PREFIX) :] if self.name.startswith(PARAMETER_PREFIX) else self.name


def create_parameter(name: str, argument: Any) -> Parameter:
    """Build a parameter for ``argument`` applying the type-specific coercion rules.

    Args:
        name: Placeholder name, including the ``@`` prefix.
        argument: Value supplied by the caller.

    Returns:
        The parameter to attach to a command.
    """
    if argument is None:
        return Parameter(name, None)
    argument_type = type(argument)
    if argument_type is UUID:
        return Parameter(name, str(argument), db_type=DbType.STRING, size=MAX_BOUNDED_SIZE)
    if is_row(argument):
        return Parameter(name, next(iter(argument.values()), None))
    if argument_type is str:
        size = UNBOUNDED_SIZE if len(argument) > MAX_BOUNDED_SIZE else MAX_BOUNDED_SIZE
        return Parameter(name, argument, db_type=DbType.STRING, size=size)
    return Parameter(name, argument)


def bind_argument(command: "Command", argument: Any) -> Parameter:
    """Append ``argument`` to ``command`` as the next ordinal parameter.

    Returns:
        The parameter that was added.
    """
    parameter = create_parameter(f"{PARAMETER_PREFIX}{len(command.parameters)}", argument)
    command.parameters.append(parameter)
    return parameter


def bind_arguments(command: "Command", arguments: "Optional[Iterable[Any]]") -> None:
    """Append every argument, left to right."""
    if arguments is None:
        return
    for argument in arguments:
        bind_argument(command, argument)
