"""dbmap: asynchronous connection pooling, query execution and record mapping."""

from dbmap import adapters, base, core, driver, exceptions, mapping, typing, utils
from dbmap.__metadata__ import __version__
from dbmap.base import DbMap
from dbmap.config import DatabaseConfig
from dbmap.core import Command, Parameter
from dbmap.driver import (
    DriverConnection,
    DriverReader,
    DriverTransaction,
    execute,
    select,
    select_one_or_none,
    select_value,
)
from dbmap.exceptions import (
    CastError,
    CommandError,
    DatabaseConnectionError,
    DbMapError,
    ImproperConfigurationError,
    MissingDependencyError,
    PoolClosedError,
    TransactionError,
)
from dbmap.mapping import DescriptorRegistry, Mapping, MappingDescriptor, Row
from dbmap.pool import ConnectionPool

__all__ = (
    "CastError",
    "Command",
    "CommandError",
    "ConnectionPool",
    "DatabaseConfig",
    "DatabaseConnectionError",
    "DbMap",
    "DbMapError",
    "DescriptorRegistry",
    "DriverConnection",
    "DriverReader",
    "DriverTransaction",
    "ImproperConfigurationError",
    "Mapping",
    "MappingDescriptor",
    "MissingDependencyError",
    "Parameter",
    "PoolClosedError",
    "Row",
    "TransactionError",
    "__version__",
    "adapters",
    "base",
    "core",
    "driver",
    "exceptions",
    "execute",
    "mapping",
    "select",
    "select_one_or_none",
    "select_value",
    "typing",
    "utils",
)
