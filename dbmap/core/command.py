"""Commands: SQL text plus its ordered parameters."""

from typing import TYPE_CHECKING, Any, Optional

from dbmap.core.binder import bind_argument, bind_arguments

if TYPE_CHECKING:
    from collections.abc import Iterable

    from dbmap.core.binder import Parameter
    from dbmap.driver._base import DriverTransaction

__all__ = ("Command",)


class Command:
    """A single SQL statement ready to hand to a driver.

    The SQL text is passed through verbatim; placeholders are written ``@0``,
    ``@1``, ... and resolved by the driver against :attr:`parameters`.
    """

    __slots__ = ("parameters", "sql", "transaction")

    def __init__(
        self,
        sql: str = "",
        arguments: "Optional[Iterable[Any]]" = None,
        *,
        transaction: "Optional[DriverTransaction]" = None,
    ) -> None:
        self.sql = sql
        self.parameters: list[Parameter] = []
        self.transaction = transaction
        bind_arguments(self, arguments)

    def add(self, argument: Any) -> "Parameter":
        """Bind ``argument`` as the next positional parameter."""
        return bind_argument(self, argument)

    @property
    def next_placeholder(self) -> str:
        """Placeholder the next bound argument will answer to."""
        return f"@{len(self.parameters)}"

    def named_values(self) -> "dict[str, Any]":
        """Parameter values keyed by name without the placeholder prefix."""
        return {parameter.key: parameter.value for parameter in self.parameters}

    def __repr__(self) -> str:
        return f"Command(sql={self.sql!r}, parameters={len(self.parameters)})"
