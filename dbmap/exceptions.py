from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "CastError",
    "CommandError",
    "DatabaseConnectionError",
    "DbMapError",
    "ImproperConfigurationError",
    "MissingDependencyError",
    "PoolClosedError",
    "TransactionError",
    "wrap_exceptions",
)


class DbMapError(Exception):
    """Base exception class from which all dbmap exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``DbMapError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(DbMapError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install dbmap[{install_package or package}]' to install dbmap with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(DbMapError):
    """Improper Configuration error.

    Raised when a pool, provider or mapping is constructed with settings that cannot work.
    """


class DatabaseConnectionError(DbMapError):
    """A physical connection could not be opened or acquired."""


class PoolClosedError(DatabaseConnectionError):
    """Pool has been closed and cannot hand out connections."""


class CommandError(DbMapError):
    """The driver rejected a command's SQL or parameters."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class TransactionError(DbMapError):
    """A transaction could not be started, committed or rolled back."""


class CastError(DbMapError, TypeError):
    """A scalar result could not be converted to the requested type."""

    def __init__(self, value: Any, target_type: type) -> None:
        super().__init__(f"Cannot convert {type(value).__name__} value {value!r} to {target_type.__name__}")
        self.value = value
        self.target_type = target_type


@contextmanager
def wrap_exceptions(wrap_exceptions: bool = True) -> Generator[None, None, None]:
    """Re-raise unexpected exceptions as :class:`CommandError`.

    Exceptions that already belong to the dbmap hierarchy pass through untouched.
    """
    try:
        yield

    except DbMapError:
        raise
    except Exception as exc:
        if wrap_exceptions is False:
            raise
        msg = "An error occurred during the operation."
        raise CommandError(msg) from exc
