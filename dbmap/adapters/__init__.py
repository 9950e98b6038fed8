"""Driver collaborators and the provider registry."""

from typing import TYPE_CHECKING, Any, Final, Union

from dbmap.exceptions import ImproperConfigurationError, MissingDependencyError
from dbmap.protocols import ConnectionProvider
from dbmap.typing import AIOSQLITE_INSTALLED
from dbmap.utils.module_loader import import_string

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = ("BUILTIN_PROVIDERS", "resolve_provider")

BUILTIN_PROVIDERS: "Final[Mapping[str, tuple[str, str]]]" = {
    "aiosqlite": ("dbmap.adapters.aiosqlite:AiosqliteProvider", "aiosqlite"),
    "sqlite": ("dbmap.adapters.aiosqlite:AiosqliteProvider", "aiosqlite"),
}
"""Registered provider names, the import paths they stand for and the package they need."""

_INSTALLED: "Final[Mapping[str, bool]]" = {"aiosqlite": AIOSQLITE_INSTALLED}


def resolve_provider(identity: "Union[str, ConnectionProvider, type[Any]]") -> ConnectionProvider:
    """Turn a provider identity into a provider instance.

    Args:
        identity: A registered name such as ``"aiosqlite"``, an import path such as
            ``"package.module:Provider"``, a provider class, or a provider instance.

    Raises:
        MissingDependencyError: A built-in provider's driver package is not installed.
        ImproperConfigurationError: The identity cannot be imported or does not
            produce a connection provider.

    Returns:
        The provider.
    """
    target: Any = identity
    if isinstance(identity, str):
        path = identity
        builtin = BUILTIN_PROVIDERS.get(identity.lower())
        if builtin is not None:
            path, package = builtin
            if not _INSTALLED.get(package, True):
                raise MissingDependencyError(package)
        try:
            target = import_string(path)
        except ImportError as e:
            msg = f"Unknown database provider {identity!r}"
            raise ImproperConfigurationError(msg) from e
    if isinstance(target, type):
        try:
            target = target()
        except TypeError as e:
            msg = f"Provider class {target.__name__} must be constructible without arguments"
            raise ImproperConfigurationError(msg) from e
    if not isinstance(target, ConnectionProvider):
        msg = f"{identity!r} is not a connection provider"
        raise ImproperConfigurationError(msg)
    return target
